"""Heuristic extraction of mood, city, duration and trip constraints.

Everything here is keyword and regex matching over free text (English and
Russian). Nothing raises: a missing signal is None or an empty list.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence, Tuple

from moodroute.knowledge import is_known_alias
from moodroute.models import ConversationTurn, MoodKey


DEFAULT_MOOD: MoodKey = "cozy"

# Checked in order, first hit wins.
MOOD_SIGNALS: Tuple[Tuple[MoodKey, Tuple[str, ...]], ...] = (
    ("quiet", ("quiet", "calm", "peaceful", "silent", "тихий", "спокойн", "медленн")),
    ("gothic", ("gothic", "dark", "moody", "мрачн", "готик")),
    ("energetic", ("energetic", "active", "hype", "fast", "бодр", "энерг")),
    ("weird", ("weird", "quirky", "odd", "strange", "странн", "необыч")),
)

WEATHER_TERMS: Tuple[str, ...] = (
    "sunny", "rain", "rainy", "cloud", "cloudy", "snow", "wind", "weather",
    "дожд", "снег", "ветер", "погод", "солнеч", "пасмур",
)

CROWD_TERMS: Tuple[str, ...] = (
    "crowd", "crowds", "busy", "quiet street", "low crowd",
    "толп", "людно", "безлюд", "мало людей", "тихо",
)

BUDGET_TERMS: Tuple[str, ...] = (
    "budget", "usd", "cheap", "free", "expensive",
    "дорог", "бюджет", "дешев", "бесплат", "недорог",
)

ROUTE_INTENT_TERMS: Tuple[str, ...] = (
    "route", "walk", "city", "place", "trip", "mood",
    "маршрут", "прогул", "город", "места", "вайб",
)

CLARIFICATION_FIELDS: Tuple[str, ...] = (
    "city",
    "time available",
    "weather preference",
    "crowd tolerance",
    "budget",
)

_LETTER = r"[^\W\d_]"
_NAME = rf"({_LETTER}(?:{_LETTER}|[\s'.-]){{1,40}})"

_LEADING_CITY = re.compile(rf"^{_NAME}\s*,")
_LABELED_CITY = re.compile(rf"\b(?:city|город)\s*[:=-]\s*{_NAME}", re.IGNORECASE)
_LATIN_CITY = re.compile(rf"\b(?:in|around|near)\s+{_NAME}", re.IGNORECASE)
_CYRILLIC_CITY = re.compile(rf"(?:^|[\s,])(?:в|по|около|рядом с)\s+{_NAME}", re.IGNORECASE)
_CITY_PATTERNS = (_LEADING_CITY, _LABELED_CITY, _LATIN_CITY, _CYRILLIC_CITY)

_DURATION = re.compile(
    r"\b(\d{1,2})\s*(min|mins|minute|minutes|hour|hours|hr|hrs"
    r"|ч|час|часа|часов|мин|минута|минуты|минут)\b",
    re.IGNORECASE,
)

_CURRENCY_AMOUNT = re.compile(r"\$\s*\d+|\d+\s*\$")
_BUDGET_CAP = re.compile(r"\b(?:under|up to|до)\s*\$?\s*\d+\b", re.IGNORECASE)


def contains_any(text: str, terms: Iterable[str]) -> bool:
    return any(term in text for term in terms)


def detect_mood(message: Optional[str]) -> MoodKey:
    text = (message or "").lower()
    for mood, keywords in MOOD_SIGNALS:
        if contains_any(text, keywords):
            return mood
    return DEFAULT_MOOD


def _clean_city(value: str) -> str:
    cleaned = value.strip().strip(", \t\r\n")
    return re.sub(r"\s{2,}", " ", cleaned)


def extract_city(message: Optional[str]) -> Optional[str]:
    """Pull a city name out of the message, or None.

    Tries a leading "Name," first, then "city: Name", then "in/around/near
    Name", then the Russian prepositions. A message that is nothing but a
    known city alias counts as that city.
    """
    text = message or ""
    for pattern in _CITY_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1):
            city = _clean_city(match.group(1))
            if city:
                return city

    bare = _clean_city(text)
    if bare and is_known_alias(bare):
        return bare
    return None


def extract_city_from_history(history: Sequence[ConversationTurn]) -> Optional[str]:
    """City from the most recent user turn that mentions one."""
    for turn in reversed(list(history or [])):
        if turn.role != "user":
            continue
        city = extract_city(turn.content.strip())
        if city:
            return city
    return None


def extract_duration(message: Optional[str]) -> Optional[str]:
    match = _DURATION.search(message or "")
    if not match:
        return None
    return f"{match.group(1)} {match.group(2)}"


def has_weather_preference(text: str) -> bool:
    return contains_any(text.lower(), WEATHER_TERMS)


def has_crowd_preference(text: str) -> bool:
    return contains_any(text.lower(), CROWD_TERMS)


def has_budget_preference(text: str) -> bool:
    lowered = text.lower()
    return (
        contains_any(lowered, BUDGET_TERMS)
        or bool(_CURRENCY_AMOUNT.search(lowered))
        or bool(_BUDGET_CAP.search(lowered))
    )


def needs_clarification(message: Optional[str]) -> List[str]:
    """Constraint labels that could not be read from the message, in fixed order."""
    text = message or ""
    present = {
        "city": extract_city(text) is not None,
        "time available": extract_duration(text) is not None,
        "weather preference": has_weather_preference(text),
        "crowd tolerance": has_crowd_preference(text),
        "budget": has_budget_preference(text),
    }
    return [label for label in CLARIFICATION_FIELDS if not present[label]]


def is_likely_route_intent(message: Optional[str]) -> bool:
    text = message or ""
    return (
        extract_city(text) is not None
        or extract_duration(text) is not None
        or contains_any(text.lower(), ROUTE_INTENT_TERMS)
    )
