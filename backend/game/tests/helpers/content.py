"""Small, fully known datasets for engine tests."""

from game.logic.content import EnigmaContent, GameContent, VerbEntry, WordfallContent

WORDFALL_TRANSLATIONS = {
    "house": "maison",
    "tower": "tour (bâtiment)",
    "road": "route, chemin",
}
WORDFALL_DICTIONARY = ["apple", "ant", "bear", "book", "cat", "car"]

VERBS = (
    VerbEntry(base="go", past_simple=("went",), past_participle=("gone",), translations=("aller",)),
    VerbEntry(base="be", past_simple=("was", "were"), past_participle=("been",), translations=("être",)),
    VerbEntry(base="take", past_simple=("took",), past_participle=("taken",), translations=("prendre",)),
)
VERBS_BY_BASE = {v.base: v for v in VERBS}

ENIGMA_TARGETS = {4: ["BOOK"], 5: ["HOUSE"], 6: ["GARDEN"]}
ENIGMA_GUESSES = {4: ["BOOT", "BOLT", "FOOL", "POOL", "LOOP"], 5: ["MOUSE"], 6: ["BARREN"]}


def wordfall_content() -> WordfallContent:
    return WordfallContent.model_validate(
        {"translations": WORDFALL_TRANSLATIONS, "dictionary": WORDFALL_DICTIONARY},
    )


def enigma_content() -> EnigmaContent:
    return EnigmaContent.model_validate({"target_words": ENIGMA_TARGETS, "valid_guesses": ENIGMA_GUESSES})


def game_content() -> GameContent:
    return GameContent(wordfall=wordfall_content(), verbs=VERBS, enigma=enigma_content())


def verb_answer(base: str, *fields: str) -> dict[str, str]:
    """Correct answer for a verb prompt covering the given fields."""
    verb = VERBS_BY_BASE[base]
    forms = {
        "past_simple": verb.past_simple[0],
        "past_participle": verb.past_participle[0],
        "translation": verb.translations[0],
    }
    return {field: forms[field] for field in fields}


def free_word_for(letter: str, *, exclude: frozenset[str] = frozenset()) -> str:
    """A dictionary word starting with letter, not in exclude."""
    words = sorted({w.upper() for w in WORDFALL_DICTIONARY} | {w.upper() for w in WORDFALL_TRANSLATIONS})
    return next(w for w in words if w.startswith(letter) and w not in exclude)
