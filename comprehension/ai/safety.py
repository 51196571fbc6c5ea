"""Output sanitization: keeps model refusals away from the pupil.

The correction prompt forbids the model from saying it cannot evaluate or
that the text is missing, but it sometimes does anyway, most often inside
``correctAnswer``. This module detects those hedging phrases and blanks
them out before anything reaches the Question Engine.

Matching is case- and accent-insensitive and tolerant of typographic
apostrophes, so "Je ne peux pas répondre" and "je ne peux pas repondre"
are both caught.
"""

import logging
import unicodedata

logger = logging.getLogger("comprehension.ai.safety")

DEFAULT_FEEDBACK = "Continue tes efforts, tu progresses !"

# Normalized (lower-case, no accents, straight apostrophes) substrings.
HEDGING_PHRASES: tuple[str, ...] = (
    "je ne peux pas repondre",
    "je ne peux pas evaluer",
    "je ne peux pas corriger",
    "je ne suis pas en mesure",
    "impossible de repondre",
    "impossible d'evaluer",
    "je n'ai pas acces",
    "le texte n'a pas ete fourni",
    "le texte n'est pas fourni",
    "texte non fourni",
    "la question n'a pas ete fournie",
    "la question n'est pas fournie",
    "question non fournie",
    "aucun texte n'a ete fourni",
    "aucun texte n'est fourni",
    "aucun texte fourni",
    "pas de texte fourni",
    "pourrais-tu preciser",
    "peux-tu preciser",
    "pourriez-vous preciser",
    "i cannot",
    "i can't",
    "not provided",
)


def _normalize(text: str) -> str:
    """Lower-cases, strips accents and straightens apostrophes."""
    text = text.replace("’", "'").replace("‘", "'").lower()
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def contains_hedging(text: str | None) -> bool:
    """Returns True if ``text`` contains any refusal/hedging phrase."""
    if not text:
        return False
    normalized = _normalize(text)
    return any(phrase in normalized for phrase in HEDGING_PHRASES)


def sanitize_correct_answer(text: str | None) -> str:
    """Returns the stripped answer, or "" if it is empty or hedges."""
    if not isinstance(text, str):
        return ""
    if contains_hedging(text):
        logger.warning("Blanked hedging correctAnswer from model output")
        return ""
    return text.strip()


def sanitize_feedback(text: str | None) -> str:
    """Returns the stripped feedback, or DEFAULT_FEEDBACK if unusable."""
    if not isinstance(text, str) or not text.strip():
        return DEFAULT_FEEDBACK
    if contains_hedging(text):
        logger.warning("Replaced hedging feedback from model output")
        return DEFAULT_FEEDBACK
    return text.strip()
