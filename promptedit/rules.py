"""
PROMPTEDIT Rules - Instruction normalization and the keyword rule table.

The table is plain data: each Rule maps a set of trigger phrases to one
operation. BLOCKING rules name requests that are deliberately unsupported;
NORMAL rules each contribute one operation to the plan. Table order is the
order operations are applied in.
"""

import re
from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Pattern, Tuple


NORMAL = 'normal'
BLOCKING = 'blocking'


def normalize_instruction(instruction: str) -> str:
    """Lower-case an instruction and collapse its whitespace."""
    return ' '.join(instruction.lower().split())


def compile_phrases(phrases) -> Pattern:
    """
    Build one regex matching any of ``phrases`` as whole words.

    A phrase only matches when it is not glued to another letter or digit,
    so "desaturate" never fires a "saturate" rule.
    """
    alternatives = '|'.join(
        re.escape(p) for p in sorted(phrases, key=len, reverse=True)
    )
    return re.compile(rf'(?<![a-z0-9])(?:{alternatives})(?![a-z0-9])')


# ---------------------------------------------------------------------------
# Operation variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OperationSpec:
    """Base for the transform variants; ``kind`` tags which one it is."""

    kind: ClassVar[str] = 'operation'

    def describe(self) -> str:
        return self.kind


@dataclass(frozen=True)
class Blur(OperationSpec):
    kind: ClassVar[str] = 'blur'
    radius: float = 5.0


@dataclass(frozen=True)
class Grayscale(OperationSpec):
    kind: ClassVar[str] = 'grayscale'


@dataclass(frozen=True)
class Sepia(OperationSpec):
    kind: ClassVar[str] = 'sepia'
    dark: str = '#2b1d0e'
    mid: str = '#a27b5c'
    light: str = '#fff1d6'


@dataclass(frozen=True)
class Brighten(OperationSpec):
    kind: ClassVar[str] = 'brighten'
    factor: float = 1.5


@dataclass(frozen=True)
class Darken(OperationSpec):
    kind: ClassVar[str] = 'darken'
    factor: float = 0.6


@dataclass(frozen=True)
class Saturate(OperationSpec):
    kind: ClassVar[str] = 'saturate'
    factor: float = 1.8


@dataclass(frozen=True)
class Desaturate(OperationSpec):
    kind: ClassVar[str] = 'desaturate'
    factor: float = 0.5


@dataclass(frozen=True)
class HorizontalFlip(OperationSpec):
    kind: ClassVar[str] = 'flip'


@dataclass(frozen=True)
class Rotate(OperationSpec):
    """Clockwise rotation in degrees."""

    kind: ClassVar[str] = 'rotate'
    angle: int = 90

    def describe(self) -> str:
        return f"rotate({self.angle})"


@dataclass(frozen=True)
class Sharpen(OperationSpec):
    kind: ClassVar[str] = 'sharpen'


@dataclass(frozen=True)
class Invert(OperationSpec):
    kind: ClassVar[str] = 'invert'


@dataclass(frozen=True)
class Resize(OperationSpec):
    """Fit within a bounding box; never upscales."""

    kind: ClassVar[str] = 'resize'
    width: int = 800
    height: int = 600

    def describe(self) -> str:
        return f"resize({self.width}x{self.height})"


@dataclass(frozen=True)
class Normalize(OperationSpec):
    kind: ClassVar[str] = 'normalize'
    cutoff: float = 1.0


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Rule:
    """
    One row of the dispatch table.

    Any single trigger phrase is enough to match. BLOCKING rules carry the
    reason and alternative suggestions returned instead of a plan; NORMAL
    rules carry the operation appended to it.
    """

    id: str
    trigger_phrases: Tuple[str, ...]
    kind: str = NORMAL
    operation: Optional[OperationSpec] = None
    priority: int = 0
    reason: str = ''
    suggestions: Tuple[str, ...] = ()
    pattern: Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.trigger_phrases:
            raise ValueError(f"Rule '{self.id}' has no trigger phrases")
        if self.kind == NORMAL and self.operation is None:
            raise ValueError(f"Normal rule '{self.id}' needs an operation")
        if self.kind == BLOCKING and not self.reason:
            raise ValueError(f"Blocking rule '{self.id}' needs a reason")
        object.__setattr__(self, 'pattern', compile_phrases(self.trigger_phrases))

    @property
    def keyword(self) -> str:
        """Canonical phrase shown to users."""
        return self.trigger_phrases[0]

    def matches(self, normalized: str) -> bool:
        return self.pattern.search(normalized) is not None


_DEFAULT_ALTERNATIVES = (
    'blur the image',
    'make it grayscale',
    'apply a sepia tint',
    'brighten the image',
    'increase saturation',
)


_RULES = [
    # Unsupported requests short-circuit everything else
    Rule(
        id='background-removal',
        kind=BLOCKING,
        priority=0,
        trigger_phrases=(
            'remove background',
            'remove the background',
            'background removal',
            'delete background',
            'delete the background',
            'erase background',
            'erase the background',
            'transparent background',
            'no background',
            'without background',
            'without the background',
            'replace background',
            'replace the background',
            'change background',
            'change the background',
        ),
        reason='Background removal is not supported. Only whole-image adjustments can be applied.',
        suggestions=_DEFAULT_ALTERNATIVES,
    ),
    Rule(
        id='subject-isolation',
        kind=BLOCKING,
        priority=1,
        trigger_phrases=(
            'isolate the subject',
            'isolate subject',
            'extract the subject',
            'extract subject',
            'cut out',
            'cutout',
            'remove the person',
            'remove person',
            'remove object',
            'remove the object',
        ),
        reason='Subject isolation and object removal are not supported. Only whole-image adjustments can be applied.',
        suggestions=_DEFAULT_ALTERNATIVES,
    ),

    # Geometry first so filters run on the final canvas
    Rule(
        id='resize',
        priority=10,
        trigger_phrases=('resize', 'smaller', 'shrink', 'downscale', 'thumbnail', 'scale down'),
        operation=Resize(),
    ),
    Rule(
        id='rotate',
        priority=20,
        trigger_phrases=('rotate', 'rotated', 'rotation'),
        operation=Rotate(),
    ),
    Rule(
        id='flip',
        priority=30,
        trigger_phrases=('flip', 'flipped', 'mirror', 'mirrored'),
        operation=HorizontalFlip(),
    ),

    # Filters and tone
    Rule(
        id='blur',
        priority=40,
        trigger_phrases=('blur', 'blurry', 'blurred', 'out of focus', 'soften'),
        operation=Blur(),
    ),
    Rule(
        id='sharpen',
        priority=50,
        trigger_phrases=('sharpen', 'sharper', 'crisp', 'crisper', 'more detail'),
        operation=Sharpen(),
    ),
    Rule(
        id='grayscale',
        priority=60,
        trigger_phrases=(
            'grayscale', 'greyscale', 'gray scale', 'grey scale',
            'black and white', 'black & white', 'b&w', 'monochrome',
        ),
        operation=Grayscale(),
    ),
    Rule(
        id='sepia',
        priority=70,
        trigger_phrases=('sepia', 'vintage', 'old photo', 'old-fashioned', 'retro'),
        operation=Sepia(),
    ),
    Rule(
        id='brighten',
        priority=80,
        trigger_phrases=(
            'brighten', 'brighter', 'lighten', 'lighter',
            'increase brightness', 'more brightness',
        ),
        operation=Brighten(),
    ),
    Rule(
        id='darken',
        priority=90,
        trigger_phrases=(
            'darken', 'darker', 'dim', 'dimmer',
            'decrease brightness', 'reduce brightness', 'less brightness',
        ),
        operation=Darken(),
    ),
    Rule(
        id='saturate',
        priority=100,
        trigger_phrases=(
            'saturate', 'saturated', 'more saturation', 'increase saturation',
            'vibrant', 'vivid', 'more colorful', 'more colourful',
        ),
        operation=Saturate(),
    ),
    Rule(
        id='desaturate',
        priority=110,
        trigger_phrases=(
            'desaturate', 'desaturated', 'less saturation', 'reduce saturation',
            'decrease saturation', 'muted', 'washed out', 'less colorful', 'less colourful',
        ),
        operation=Desaturate(),
    ),
    Rule(
        id='invert',
        priority=120,
        trigger_phrases=('invert', 'inverted', 'negative', 'inverse'),
        operation=Invert(),
    ),
    Rule(
        id='normalize',
        priority=130,
        trigger_phrases=(
            'normalize', 'normalise', 'auto contrast', 'autocontrast',
            'auto-contrast', 'auto level', 'auto levels', 'fix contrast',
        ),
        operation=Normalize(),
    ),
]


def _build_table(rules: List[Rule]) -> Tuple[Rule, ...]:
    """Sort rules by priority and reject duplicate ids."""
    seen = set()
    for rule in rules:
        if rule.id in seen:
            raise ValueError(f"Duplicate rule id: {rule.id}")
        seen.add(rule.id)
    # sorted() is stable, so equal priorities keep their listed order
    return tuple(sorted(rules, key=lambda r: r.priority))


RULE_TABLE: Tuple[Rule, ...] = _build_table(_RULES)

BLOCKING_RULES: Tuple[Rule, ...] = tuple(r for r in RULE_TABLE if r.kind == BLOCKING)
NORMAL_RULES: Tuple[Rule, ...] = tuple(r for r in RULE_TABLE if r.kind == NORMAL)


def supported_keywords() -> List[str]:
    """Canonical keyword of every NORMAL rule, in application order."""
    return [rule.keyword for rule in NORMAL_RULES]


def get_rule(rule_id: str) -> Optional[Rule]:
    for rule in RULE_TABLE:
        if rule.id == rule_id:
            return rule
    return None
