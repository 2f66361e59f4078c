import pytest
from pydantic import ValidationError

from game.logic.enums import Difficulty, GameKind
from game.logic.scoring import DEFAULT_RULES, ScoreRules, SpeedBracket, rules_for


class TestComboForStreak:
    @pytest.mark.parametrize(
        ("streak", "expected"),
        [(0, 1.0), (4, 1.0), (5, 1.5), (9, 1.5), (10, 2.0), (20, 3.0), (100, 3.0)],
    )
    def test_steps_every_k_and_caps(self, streak, expected):
        assert ScoreRules().combo_for_streak(streak) == expected

    def test_negative_streak_raises(self):
        with pytest.raises(ValueError, match="non-negative"):
            ScoreRules().combo_for_streak(-1)

    def test_combo_max_below_base_is_invalid(self):
        with pytest.raises(ValidationError):
            ScoreRules(combo_base=2.0, combo_max=1.5)


class TestNextStreak:
    def test_success_increments(self):
        assert ScoreRules.next_streak(3, success=True) == 4

    def test_failure_resets(self):
        assert ScoreRules.next_streak(3, success=False) == 0


class TestPointsForCorrectAnswer:
    def test_base_points_without_bonuses(self):
        assert ScoreRules().points_for_correct_answer(0, 1.0, 10_000, False) == 10

    def test_perfect_bonus_added(self):
        assert ScoreRules().points_for_correct_answer(0, 1.0, 10_000, True) == 15

    def test_scaled_part_is_truncated(self):
        rules = ScoreRules(base_points=3, combo_every=1)
        # (3 + 0) * 1.5 = 4.5
        assert rules.points_for_correct_answer(0, 1.5, 10_000, False) == 4

    def test_speed_bracket_uses_fastest_match(self):
        rules = ScoreRules(
            base_points=2,
            speed_brackets=(SpeedBracket(max_elapsed_ms=5000, bonus=1), SpeedBracket(max_elapsed_ms=3000, bonus=2)),
        )
        assert rules.speed_bonus(1000) == 2
        assert rules.speed_bonus(4000) == 1
        assert rules.speed_bonus(6000) == 0

    def test_combo_below_base_raises(self):
        with pytest.raises(ValueError, match="below base"):
            ScoreRules().points_for_correct_answer(0, 0.5, 0, False)

    def test_negative_streak_raises(self):
        with pytest.raises(ValueError, match="non-negative"):
            ScoreRules().points_for_correct_answer(-1, 1.0, 0, False)


class TestApplyOutcome:
    def test_success_scores_with_new_streak_and_combo(self):
        outcome = ScoreRules().apply_success(4, 0)

        assert outcome.streak == 5
        assert outcome.combo_multiplier == 1.5
        assert outcome.is_perfect is True
        # (10 + 5) * 1.5 + perfect 5
        assert outcome.points == 27

    def test_explicit_perfect_flag_overrides_window(self):
        outcome = ScoreRules().apply_success(0, 0, is_perfect=False)
        assert outcome.is_perfect is False
        assert outcome.points == 11

    def test_failure_resets_to_base(self):
        rules = ScoreRules(combo_base=1.0)
        outcome = rules.apply_failure()
        assert outcome.points == 0
        assert outcome.streak == 0
        assert outcome.combo_multiplier == rules.combo_base


class TestMonotonicity:
    @pytest.mark.parametrize("key", list(DEFAULT_RULES))
    def test_points_strictly_increase_with_streak(self, key):
        rules = DEFAULT_RULES[key]
        previous = -1
        for streak in range(60):
            points = rules.points_for_correct_answer(streak, rules.combo_for_streak(streak), 10_000, False)
            assert points > previous
            previous = points

    @pytest.mark.parametrize("key", list(DEFAULT_RULES))
    def test_points_strictly_increase_with_combo(self, key):
        rules = DEFAULT_RULES[key]
        ladder = sorted({rules.combo_for_streak(s) for s in range(200)})
        for streak in range(30):
            points = [rules.points_for_correct_answer(streak, c, 10_000, False) for c in ladder]
            assert points == sorted(set(points))

    @pytest.mark.parametrize("key", list(DEFAULT_RULES))
    def test_combo_never_decreases_with_streak(self, key):
        rules = DEFAULT_RULES[key]
        combos = [rules.combo_for_streak(s) for s in range(100)]
        assert combos == sorted(combos)
        assert combos[0] == rules.combo_base
        assert max(combos) <= rules.combo_max


class TestRulesFor:
    def test_known_pair(self):
        assert rules_for(GameKind.WORDFALL, Difficulty.HARD).base_points == 8

    def test_unknown_pair_raises(self):
        with pytest.raises(KeyError):
            rules_for(GameKind.WORDFALL, Difficulty.MEDIUM)
