"""
PROMPTEDIT Dispatcher - Resolves an instruction into an operation plan.

Resolution rules:
1. BLOCKING rules are checked first, in table order; the first match ends
   resolution with an empty plan and that rule's reason.
2. Every NORMAL rule that matches contributes its operation, in table
   order. The rotate rule takes its angle from the instruction text.
3. If nothing matched, the result is blocked with a generic reason and the
   full keyword list as suggestions.

``resolve`` is a pure function of its input: no I/O, no shared state, and
it never raises.
"""

import re
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple

from promptedit.rules import (
    BLOCKING_RULES,
    NORMAL_RULES,
    OperationSpec,
    Rotate,
    Rule,
    normalize_instruction,
)


DEFAULT_ROTATE_ANGLE = 90

UNRECOGNIZED_REASON = (
    "Instruction not recognized. Try one of the supported keywords."
)

_ROTATE_WORD = r"\brotat(?:e|ed|ion)\b"
# "rotate 45", "rotate it by 45", "rotation of 45"
_ANGLE_RE = re.compile(
    _ROTATE_WORD
    + r"(?:\s+(?:it|the|this|image|photo|picture|by|to|of|about|a)\b)*\s+(-?\d+)(?!\d)"
)
# "rotate clockwise 45 degrees"
_DEGREES_RE = re.compile(
    _ROTATE_WORD + r"[^\d-]{0,24}?(-?\d+)\s*(?:degrees?|deg\b|°)"
)


@dataclass(frozen=True)
class BlockReason:
    """Why no operations will be applied, plus what the user could try."""

    reason: str
    suggestions: Tuple[str, ...] = ()
    rule_id: Optional[str] = None


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of resolving one instruction. A blocked result has no plan."""

    plan: Tuple[OperationSpec, ...] = ()
    blocked: Optional[BlockReason] = None
    rule_ids: Tuple[str, ...] = field(default=())

    @property
    def is_blocked(self) -> bool:
        return self.blocked is not None

    def describe_plan(self) -> List[str]:
        return [op.describe() for op in self.plan]


def extract_rotate_angle(text: str, default: int = DEFAULT_ROTATE_ANGLE) -> int:
    """
    Find the angle that follows a rotate keyword.

    "rotate 45 degrees" -> 45, "rotate by -30" -> -30. A number is only
    taken when it directly follows the keyword (filler words aside) or is
    marked as degrees, so "rotate and resize to 800" gives ``default``.
    The result is reduced to the range (-360, 360).
    """
    lowered = text.lower()
    match = _ANGLE_RE.search(lowered) or _DEGREES_RE.search(lowered)
    if not match:
        return default
    angle = int(match.group(1))
    # Keep the sign so "-90" still reads as counter-clockwise
    if angle < 0:
        return -((-angle) % 360)
    return angle % 360


def _operation_for(rule: Rule, raw_instruction: str) -> OperationSpec:
    if isinstance(rule.operation, Rotate):
        return replace(rule.operation, angle=extract_rotate_angle(raw_instruction))
    return rule.operation


def resolve(
    instruction: str,
    blocking_rules: Sequence[Rule] = BLOCKING_RULES,
    normal_rules: Sequence[Rule] = NORMAL_RULES,
) -> DispatchResult:
    """
    Resolve an instruction against the rule table.

    Args:
        instruction: Raw instruction text; normalized here
        blocking_rules: Override for the blocking rules (tests, experiments)
        normal_rules: Override for the normal rules

    Returns:
        DispatchResult with either a non-empty plan or a block reason
    """
    normalized = normalize_instruction(instruction or '')

    for rule in blocking_rules:
        if rule.matches(normalized):
            return DispatchResult(
                blocked=BlockReason(
                    reason=rule.reason,
                    suggestions=tuple(rule.suggestions),
                    rule_id=rule.id,
                ),
                rule_ids=(rule.id,),
            )

    plan = []
    rule_ids = []
    for rule in normal_rules:
        if rule.matches(normalized):
            plan.append(_operation_for(rule, instruction))
            rule_ids.append(rule.id)

    if not plan:
        keywords = [r.keyword for r in normal_rules]
        return DispatchResult(
            blocked=BlockReason(reason=UNRECOGNIZED_REASON, suggestions=tuple(keywords)),
        )

    return DispatchResult(plan=tuple(plan), rule_ids=tuple(rule_ids))
