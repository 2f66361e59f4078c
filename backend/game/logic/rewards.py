"""
Reward calculation for a finished session.

Turns a session's performance metric and score into XP and gold, and maps
accumulated XP to a player level. All functions are pure.
"""

from pydantic import BaseModel, Field

from game.logic.enums import Difficulty, GameKind

XP_PER_LEVEL = 200

# (min_metric, gold) tiers for games that pay gold by milestone instead of ratio
GOLD_TIERS: tuple[tuple[int, int], ...] = ((60, 3), (30, 2), (10, 1))
GOLD_TIER_EXTRA_STEP = 20


class Rewards(BaseModel, frozen=True):
    xp_earned: int = 0
    gold_earned: int = 0


class RewardRule(BaseModel, frozen=True):
    """
    Reward formula for one game.

    xp = metric * xp_per_unit[bucket] + score // score_bonus_divisor
         + global_best_bonus (when the session set a new global best)

    Gold is xp // gold_ratio, or milestone tiers on the metric when gold_ratio is None.
    A score_bonus_divisor of 0 disables the score bonus.
    """

    xp_per_unit: dict[Difficulty, int]
    score_bonus_divisor: int = Field(default=10, ge=0)
    global_best_bonus: int = Field(default=50, ge=0)
    bonus_requires_progress: bool = False
    gold_ratio: int | None = Field(default=5, ge=1)


REWARD_RULES: dict[GameKind, RewardRule] = {
    GameKind.WORDFALL: RewardRule(
        xp_per_unit={Difficulty.EASY: 2, Difficulty.HARD: 3},
        score_bonus_divisor=10,
        global_best_bonus=50,
        gold_ratio=5,
    ),
    GameKind.SPEED_VERB: RewardRule(
        xp_per_unit={Difficulty.EASY: 1, Difficulty.MEDIUM: 2, Difficulty.HARD: 3},
        score_bonus_divisor=0,
        global_best_bonus=80,
        bonus_requires_progress=True,
        gold_ratio=None,
    ),
    GameKind.ENIGMA_SCROLL: RewardRule(
        xp_per_unit={Difficulty.EASY: 1, Difficulty.MEDIUM: 2, Difficulty.HARD: 3},
        score_bonus_divisor=0,
        global_best_bonus=80,
        bonus_requires_progress=True,
        gold_ratio=None,
    ),
}


def tiered_gold(metric: int) -> int:
    """Milestone gold: 10 -> 1, 30 -> 2, 60 -> 3, then +1 for every further 20."""
    for threshold, gold in GOLD_TIERS:
        if metric >= threshold:
            if threshold == GOLD_TIERS[0][0]:
                return gold + (metric - threshold) // GOLD_TIER_EXTRA_STEP
            return gold
    return 0


def compute_rewards(
    game: GameKind,
    bucket: Difficulty,
    performance_metric: int,
    score: int,
    is_new_global_best: bool,  # noqa: FBT001
    rules: dict[GameKind, RewardRule] | None = None,
) -> Rewards:
    """
    Compute XP and gold for one finished session.

    Raises KeyError for a bucket the game has no weight for.
    A negative metric earns nothing.
    """
    rule = (rules or REWARD_RULES)[game]
    weight = rule.xp_per_unit[bucket]
    if performance_metric < 0:
        return Rewards()

    xp = performance_metric * weight
    if rule.score_bonus_divisor:
        xp += max(score, 0) // rule.score_bonus_divisor
    if is_new_global_best and (performance_metric > 0 or not rule.bonus_requires_progress):
        xp += rule.global_best_bonus

    gold = xp // rule.gold_ratio if rule.gold_ratio is not None else tiered_gold(performance_metric)
    return Rewards(xp_earned=xp, gold_earned=gold)


def calculate_level_from_xp(xp: int) -> int:
    """Level 1 at 0 XP, one level per XP_PER_LEVEL. Negative XP counts as 0."""
    return 1 + max(xp, 0) // XP_PER_LEVEL
