"""Build the round engine for a game from the loaded content."""

from __future__ import annotations

from typing import TYPE_CHECKING

from game.logic.enigma_scroll import EnigmaScrollEngine
from game.logic.enums import GameKind
from game.logic.verb_challenge import VerbChallengeEngine
from game.logic.wordfall import WordfallEngine

if TYPE_CHECKING:
    import random

    from game.logic.content import GameContent
    from game.logic.engine import RoundEngine
    from game.logic.scoring import ScoreRules


def create_engine(
    game: GameKind | str,
    content: GameContent,
    *,
    rng: random.Random | None = None,
    rules: ScoreRules | None = None,
) -> RoundEngine:
    """Return a fresh engine for the game. Raises ValueError for an unknown game slug."""
    kind = GameKind(game)
    if kind == GameKind.WORDFALL:
        return WordfallEngine(content.wordfall, rng=rng, rules=rules)
    if kind == GameKind.SPEED_VERB:
        return VerbChallengeEngine(content.verbs, rng=rng, rules=rules)
    return EnigmaScrollEngine(content.enigma, rng=rng, rules=rules)
