from __future__ import annotations

from typing import Any, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


MoodKey = Literal["quiet", "gothic", "energetic", "cozy", "weird"]
ReplyMode = Literal["openai", "mock", "mock-fallback"]

MAX_VISITED_PLACES = 120
MAX_VISITED_PLACE_LENGTH = 120


class PlaceRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    kind: str


class CityRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    city: str
    county: str
    aliases: Tuple[str, ...]
    places: Tuple[PlaceRecord, ...]


class RouteTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    duration: str
    tags: Tuple[str, ...]
    summary: str = Field(..., description="Narrative with one or more literal {city} placeholders")
    bonus: str

    @field_validator("summary")
    @classmethod
    def _require_city_placeholder(cls, value: str) -> str:
        if "{city}" not in value:
            raise ValueError("route summary must contain a {city} placeholder")
        return value

    def summary_for(self, city: str) -> str:
        return self.summary.replace("{city}", city)


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatAttachment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    file_name: str = Field("uploaded-image", alias="fileName")


def _clean_text(value: Any, limit: int) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()[:limit]


def normalize_visited_places(value: Any) -> List[str]:
    """Trim, cap and dedupe visited place names, preserving first-seen order."""
    if isinstance(value, (list, tuple)):
        source = list(value)
    elif isinstance(value, str):
        source = value.splitlines()
    else:
        source = []

    cleaned: List[str] = []
    seen = set()
    for item in source:
        text = str(item if item is not None else "").strip()
        if not text:
            continue
        if len(text) > MAX_VISITED_PLACE_LENGTH:
            text = text[:MAX_VISITED_PLACE_LENGTH] + "..."
        if text in seen:
            continue
        seen.add(text)
        cleaned.append(text)
    return cleaned[:MAX_VISITED_PLACES]


_PROFILE_LIMITS = {
    "default_city": 80,
    "default_vibe": 50,
    "default_budget": 50,
    "crowd_tolerance": 50,
    "weather_preference": 60,
    "default_duration": 60,
    "notes": 800,
}

_CAMEL_ALIASES = {
    "defaultCity": "default_city",
    "defaultVibe": "default_vibe",
    "defaultBudget": "default_budget",
    "crowdTolerance": "crowd_tolerance",
    "weatherPreference": "weather_preference",
    "defaultDuration": "default_duration",
    "visitedPlaces": "visited_places",
}


class UserProfile(BaseModel):
    """Saved defaults for a user. Read-only input to reply generation."""

    default_city: str = ""
    default_vibe: str = ""
    default_budget: str = ""
    crowd_tolerance: str = ""
    weather_preference: str = ""
    default_duration: str = ""
    notes: str = ""
    visited_places: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, values):
        if not isinstance(values, dict):
            return values
        data = {}
        for key, value in values.items():
            target = _CAMEL_ALIASES.get(key, key)
            # snake_case wins when both spellings are sent
            if target in data and key != target:
                continue
            data[target] = value
        for key, limit in _PROFILE_LIMITS.items():
            data[key] = _clean_text(data.get(key), limit)
        data["visited_places"] = normalize_visited_places(data.get("visited_places"))
        return data


class MapsSuggestion(BaseModel):
    title: str
    place_url: str
    route_url: str


class AssistantReply(BaseModel):
    mode: ReplyMode
    reply: str


class Conversation(BaseModel):
    id: int
    client_id: str
    title: str
    created_at: str
    updated_at: str
    last_message: str = ""


class StoredMessage(BaseModel):
    id: int
    conversation_id: int
    role: Literal["user", "assistant"]
    content: str
    created_at: str


__all__ = [
    "AssistantReply",
    "ChatAttachment",
    "CityRecord",
    "Conversation",
    "ConversationTurn",
    "MapsSuggestion",
    "MoodKey",
    "PlaceRecord",
    "ReplyMode",
    "RouteTemplate",
    "StoredMessage",
    "UserProfile",
    "normalize_visited_places",
]
