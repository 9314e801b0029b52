"""Tests for dispatcher module."""

import sys
from pathlib import Path

import pytest

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from promptedit.dispatcher import (
    DEFAULT_ROTATE_ANGLE,
    UNRECOGNIZED_REASON,
    extract_rotate_angle,
    resolve,
)
from promptedit.rules import (
    NORMAL_RULES,
    Blur,
    Grayscale,
    Resize,
    Rotate,
    Sharpen,
    supported_keywords,
)


def _kinds(result):
    return [op.kind for op in result.plan]


class TestResolvePlans:
    """Tests for instructions that produce a plan."""

    def test_blur_and_grayscale(self):
        """Both operations fire, in table order."""
        result = resolve("blur the image and make it grayscale")

        assert not result.is_blocked
        assert result.plan == (Blur(), Grayscale())
        assert result.rule_ids == ('blur', 'grayscale')

    def test_order_follows_table_not_text(self):
        """Word order in the instruction does not change the plan order."""
        forward = resolve("sharpen it then resize it")
        backward = resolve("resize it then sharpen it")

        assert forward.plan == backward.plan == (Resize(), Sharpen())

    def test_plan_is_table_subsequence(self):
        result = resolve("invert, flip, sepia and darken the photo")
        table_order = [rule.operation.kind for rule in NORMAL_RULES]
        kinds = _kinds(result)

        assert kinds == sorted(kinds, key=table_order.index)
        assert set(kinds) == {'invert', 'flip', 'sepia', 'darken'}

    def test_idempotent(self):
        instruction = "make it brighter, more vivid and rotate 30"
        assert resolve(instruction) == resolve(instruction)

    def test_case_and_whitespace_insensitive(self):
        assert resolve("  MAKE IT\tBLURRY ").plan == (Blur(),)

    def test_rule_fires_once_for_repeated_phrases(self):
        assert resolve("blur, blur and blur again").plan == (Blur(),)

    def test_saturate_vs_desaturate(self):
        assert _kinds(resolve("desaturate the colors")) == ['desaturate']
        assert _kinds(resolve("saturate the colors")) == ['saturate']

    @pytest.mark.parametrize("instruction,kind", [
        ("make it black and white", 'grayscale'),
        ("give it a vintage look", 'sepia'),
        ("lighten it up", 'brighten'),
        ("make it a bit darker", 'darken'),
        ("more vibrant please", 'saturate'),
        ("colors look muted", 'desaturate'),
        ("mirror the picture", 'flip'),
        ("make the edges crisper", 'sharpen'),
        ("turn it into a negative", 'invert'),
        ("shrink it", 'resize'),
        ("auto contrast", 'normalize'),
    ])
    def test_synonyms(self, instruction, kind):
        assert _kinds(resolve(instruction)) == [kind]


class TestRotateAngle:
    """Tests for rotate angle extraction."""

    def test_explicit_angle(self):
        assert resolve("rotate 45 degrees").plan == (Rotate(angle=45),)

    def test_no_angle_defaults(self):
        assert resolve("rotate").plan == (Rotate(angle=90),)

    def test_non_numeric_defaults(self):
        assert resolve("rotate abc").plan == (Rotate(angle=90),)

    def test_by_keyword(self):
        assert extract_rotate_angle("rotate the image by 180 degrees") == 180

    def test_negative_angle(self):
        assert extract_rotate_angle("rotate by -30") == -30

    def test_angle_reduced_modulo_360(self):
        assert extract_rotate_angle("rotate 450") == 90
        assert extract_rotate_angle("rotate -450") == -90

    def test_rotation_noun(self):
        assert extract_rotate_angle("apply a rotation of 15") == 15

    def test_number_before_keyword_ignored(self):
        assert extract_rotate_angle("in 2 steps, rotate it") == DEFAULT_ROTATE_ANGLE

    def test_no_keyword(self):
        assert extract_rotate_angle("45 degrees") == DEFAULT_ROTATE_ANGLE

    def test_number_from_other_clause_ignored(self):
        result = resolve("rotate and resize to 800 pixels")
        assert result.describe_plan() == ['resize(800x600)', 'rotate(90)']

    def test_count_from_other_clause_ignored(self):
        result = resolve("rotate it and blur 3 times")
        assert result.describe_plan() == ['rotate(90)', 'blur']

    @pytest.mark.parametrize("text, expected", [
        ("rotate clockwise 45 degrees", 45),
        ("rotate slightly, about 10 deg", 10),
        ("rotate 30°", 30),
        ("rotate it 120.", 120),
    ])
    def test_marked_or_adjacent_angles(self, text, expected):
        assert extract_rotate_angle(text) == expected


class TestResolveBlocked:
    """Tests for blocked outcomes."""

    def test_remove_background(self):
        result = resolve("remove background")

        assert result.is_blocked
        assert result.plan == ()
        assert 'background removal' in result.blocked.reason.lower()
        assert 'not supported' in result.blocked.reason.lower()
        assert result.blocked.rule_id == 'background-removal'
        assert result.blocked.suggestions

    def test_blocking_wins_over_normal_phrases(self):
        """Blocking short-circuits even with valid keywords present."""
        result = resolve("blur it, make it grayscale and remove the background")

        assert result.is_blocked
        assert result.plan == ()
        assert result.rule_ids == ('background-removal',)

    def test_subject_isolation(self):
        result = resolve("cut out the dog and sharpen")

        assert result.is_blocked
        assert result.blocked.rule_id == 'subject-isolation'
        assert result.plan == ()

    def test_unrecognized(self):
        result = resolve("make it purple sparkly")

        assert result.is_blocked
        assert result.plan == ()
        assert result.blocked.reason == UNRECOGNIZED_REASON
        assert result.blocked.rule_id is None
        assert list(result.blocked.suggestions) == supported_keywords()

    @pytest.mark.parametrize("instruction", ["", "   ", None])
    def test_empty_never_raises(self, instruction):
        result = resolve(instruction)
        assert result.is_blocked
        assert result.blocked.reason == UNRECOGNIZED_REASON

    def test_custom_tables(self):
        """Alternative tables can be passed in without touching the defaults."""
        result = resolve("anything", blocking_rules=(), normal_rules=())
        assert result.is_blocked
        assert result.blocked.suggestions == ()


class TestDescribePlan:
    """Tests for plan descriptions."""

    def test_describe(self):
        result = resolve("resize and rotate 30")
        assert result.describe_plan() == ['resize(800x600)', 'rotate(30)']

    def test_blocked_describes_nothing(self):
        assert resolve("remove background").describe_plan() == []
