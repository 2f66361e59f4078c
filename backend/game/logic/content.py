"""
Static word and verb datasets consumed by the round engines.

Content is loaded once from JSON files and handed to each engine as an
immutable value. Nothing here is mutated after construction.
"""

import re
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

logger = structlog.get_logger()

DEFAULT_CONTENT_DIR = Path(__file__).resolve().parent.parent / "data"

WORDFALL_FILE = "wordfall.json"
VERBS_FILE = "verbs.json"
ENIGMA_FILE = "enigma.json"

_PARENTHESES_RE = re.compile(r"\([^()]*\)")
_WHITESPACE_RE = re.compile(r"\s+")


def clean_translation(translation: str) -> str:
    """
    Reduce a dictionary translation to the short form players type.

    Drops parenthesised notes (one nesting level), keeps the part before the
    first "/" and then before the first ",", and collapses whitespace.
    """
    cleaned = translation.strip()
    for _ in range(2):
        cleaned = _PARENTHESES_RE.sub("", cleaned)
    cleaned = cleaned.split("/", 1)[0]
    cleaned = cleaned.split(",", 1)[0]
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def _upper_words(words: Any) -> set[str]:
    return {w.strip().upper() for w in words if w.strip()}


class WordfallContent(BaseModel, frozen=True):
    """
    Falling-word dataset.

    translations maps an uppercase English word to its cleaned translation;
    these are the words exact mode drops. dictionary is the wider set free
    mode accepts. Every single-word translated entry is part of the dictionary.
    """

    translations: dict[str, str] = Field(default_factory=dict)
    dictionary: frozenset[str] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        translations: dict[str, str] = {}
        for word, translation in (data.get("translations") or {}).items():
            key = word.strip().upper()
            cleaned = clean_translation(translation)
            if key and cleaned:
                translations[key] = cleaned
        dictionary = _upper_words(data.get("dictionary") or ())
        dictionary |= {w for w in translations if " " not in w}
        return {"translations": translations, "dictionary": frozenset(dictionary)}

    @property
    def exact_words(self) -> tuple[str, ...]:
        return tuple(sorted(self.translations))


class VerbEntry(BaseModel, frozen=True):
    """One irregular verb with every accepted form."""

    base: str
    past_simple: tuple[str, ...]
    past_participle: tuple[str, ...]
    translations: tuple[str, ...]

    @field_validator("past_simple", "past_participle", "translations")
    @classmethod
    def _require_forms(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("at least one accepted form is required")
        return value


class EnigmaContent(BaseModel, frozen=True):
    """
    Word-guessing dataset keyed by word length.

    target_words are the secret words, valid_guesses the wider list a guess
    must belong to. Targets are always valid guesses.
    """

    target_words: dict[int, tuple[str, ...]] = Field(default_factory=dict)
    valid_guesses: dict[int, frozenset[str]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        targets: dict[int, tuple[str, ...]] = {}
        for length, words in (data.get("target_words") or {}).items():
            size = int(length)
            normalized = sorted(_upper_words(words))
            bad = [w for w in normalized if len(w) != size]
            if bad:
                raise ValueError(f"target words of wrong length for {size}: {bad[:3]}")
            targets[size] = tuple(normalized)
        guesses: dict[int, frozenset[str]] = {}
        for length, words in (data.get("valid_guesses") or {}).items():
            size = int(length)
            guesses[size] = frozenset(w for w in _upper_words(words) if len(w) == size)
        for size, words in targets.items():
            guesses[size] = guesses.get(size, frozenset()) | frozenset(words)
        return {"target_words": targets, "valid_guesses": guesses}


_VERB_LIST = TypeAdapter(tuple[VerbEntry, ...])


class GameContent(BaseModel, frozen=True):
    """All static datasets, loaded once at startup."""

    wordfall: WordfallContent = WordfallContent()
    verbs: tuple[VerbEntry, ...] = ()
    enigma: EnigmaContent = EnigmaContent()


def load_content(content_dir: Path | None = None) -> GameContent:
    """
    Load every dataset from a content directory.

    Missing files yield empty datasets; malformed files raise pydantic's
    ValidationError so a broken deployment fails at startup.
    """
    directory = content_dir or DEFAULT_CONTENT_DIR
    wordfall = WordfallContent()
    verbs: tuple[VerbEntry, ...] = ()
    enigma = EnigmaContent()

    wordfall_path = directory / WORDFALL_FILE
    if wordfall_path.exists():
        wordfall = WordfallContent.model_validate_json(wordfall_path.read_text(encoding="utf-8"))
    verbs_path = directory / VERBS_FILE
    if verbs_path.exists():
        verbs = _VERB_LIST.validate_json(verbs_path.read_text(encoding="utf-8"))
    enigma_path = directory / ENIGMA_FILE
    if enigma_path.exists():
        enigma = EnigmaContent.model_validate_json(enigma_path.read_text(encoding="utf-8"))

    logger.info(
        "content loaded",
        content_dir=str(directory),
        wordfall_words=len(wordfall.translations),
        dictionary_words=len(wordfall.dictionary),
        verbs=len(verbs),
        enigma_targets=sum(len(w) for w in enigma.target_words.values()),
    )
    return GameContent(wordfall=wordfall, verbs=verbs, enigma=enigma)
