"""Heuristic name/gender extraction from the user's free-text introduction."""

from __future__ import annotations

import re
from dataclasses import dataclass

from focus_tracker.models.schemas import Gender

FEMALE_INDICATORS: tuple[str, ...] = ("נקבה", "נקבית", "בנקבה", "female", "feminine")

_GENDER_WORDS = re.compile(
    r"\b(?:נקבית|בנקבה|נקבה|בזכר|זכר|female|feminine|masculine|male)\b",
    re.IGNORECASE,
)
# Whole words only, so names such as שמעון or זכריה survive.
_NAME_FILLERS = re.compile(
    r"\b(?:קוראים לי|שמי|אני|שם|my name is|call me|i'm|i am)\b",
    re.IGNORECASE,
)
_TOKEN_SPLIT = re.compile(r"[\s,،.!?;:\-–]+")


@dataclass(frozen=True)
class Personalization:
    name: str
    gender: Gender


def detect_gender(text: str) -> Gender:
    lower = text.lower()
    if any(indicator in lower for indicator in FEMALE_INDICATORS):
        return "female"
    return "male"


def parse_personalization(text: str) -> Personalization | None:
    """
    Return the first name-like token and the preferred grammatical gender.

    Gender defaults to male when no female indicator appears. ``None`` means
    nothing usable survived filler stripping and the user should be asked again.
    """
    if not text or not text.strip():
        return None

    gender = detect_gender(text)

    cleaned = _GENDER_WORDS.sub(" ", text)
    cleaned = _NAME_FILLERS.sub(" ", cleaned).strip()

    words = [word for word in _TOKEN_SPLIT.split(cleaned) if len(word) > 1]
    if not words:
        return None
    return Personalization(name=words[0], gender=gender)
