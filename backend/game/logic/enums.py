"""Enumerations shared by the round engines and the settlement pipeline."""

from enum import StrEnum


class GameKind(StrEnum):
    """Playable mini-games. Values are the public game slugs."""

    WORDFALL = "wordfall"
    SPEED_VERB = "speed-verb-challenge"
    ENIGMA_SCROLL = "enigma-scroll"


class Difficulty(StrEnum):
    """Leaderboard bucket within a game."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class SessionStatus(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    ENDED = "ended"


class EndReason(StrEnum):
    OUT_OF_LIVES = "out_of_lives"
    OUT_OF_TIME = "out_of_time"
    OUT_OF_PROMPTS = "out_of_prompts"


class InputOutcome(StrEnum):
    """Result category of a submitted answer."""

    ACCEPTED = "accepted"
    WRONG = "wrong"
    PARTIAL = "partial"  # word-guessing: valid guess, attempt consumed, puzzle still open
    REJECTED = "rejected"  # malformed, incomplete or duplicate input; session unchanged
    IGNORED = "ignored"  # session not running


class LetterStatus(StrEnum):
    CORRECT = "correct"
    PRESENT = "present"
    ABSENT = "absent"


class AnswerField(StrEnum):
    """Sub-fields a prompt may require."""

    WORD = "word"
    PAST_SIMPLE = "past_simple"
    PAST_PARTICIPLE = "past_participle"
    TRANSLATION = "translation"


# Buckets each game keeps separate best scores and leaderboards for.
GAME_BUCKETS: dict[GameKind, tuple[Difficulty, ...]] = {
    GameKind.WORDFALL: (Difficulty.EASY, Difficulty.HARD),
    GameKind.SPEED_VERB: (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD),
    GameKind.ENIGMA_SCROLL: (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD),
}


def is_known_bucket(game: str, bucket: str) -> bool:
    """Check a (game, bucket) pair against the catalog using raw slugs."""
    try:
        kind = GameKind(game)
        difficulty = Difficulty(bucket)
    except ValueError:
        return False
    return difficulty in GAME_BUCKETS[kind]
