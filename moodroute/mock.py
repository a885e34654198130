"""Deterministic offline replies used when no live model is available."""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from moodroute.core.prompt import FOLLOW_UP_LINE
from moodroute.models import ChatAttachment, CityRecord, UserProfile
from moodroute.picking import pick_city_anchors, pick_three_routes, string_hash
from moodroute.routes import routes_for_mood
from moodroute.signals import (
    contains_any,
    detect_mood,
    extract_city,
    extract_duration,
    is_likely_route_intent,
    needs_clarification,
)


FALLBACK_CITY = "your city"

# (keywords, canned answer); first match wins
GENERAL_TOPICS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("hello", "hi", "привет", "здравств"),
     "Hi. I can chat on general topics and keep it short and useful."),
    (("how are you", "как дела"),
     "I am ready to help and currently focused on practical, fast answers."),
    (("thanks", "thank you", "спасибо"),
     "You are welcome."),
    (("weather", "погод"),
     "For precise weather I recommend checking a live weather service for your city and time window."),
    (("movie", "film", "book", "music", "фильм", "книга", "музык"),
     "I can suggest options based on your mood if you tell me genre and energy level."),
)

GENERAL_DEFLECTION = (
    "I can answer non-city questions briefly, and then switch back to route planning whenever you want."
)

CLARIFICATION_EXAMPLE = (
    'Reply in one line, for example: "Seattle, 2 hours, light rain okay, low crowds, under $20, cozy vibe."'
)
CLARIFICATION_PHOTO_NOTE = (
    "I see an attached photo. In mock mode I cannot inspect pixels deeply, "
    "but I can still use your description."
)
OPTIONS_PHOTO_NOTE = (
    "Photo note: in mock mode image analysis is limited. "
    "With live OpenAI mode I can analyze the photo directly."
)
REFINE_INVITATION = (
    "Tell me weather + budget, and I will optimize one option into a precise step-by-step route."
)


def append_follow_up(text: str) -> str:
    return f"{text}\n\n{FOLLOW_UP_LINE}"


def build_general_answer(message: str) -> str:
    text = (message or "").lower()
    for keywords, answer in GENERAL_TOPICS:
        if contains_any(text, keywords):
            return answer
    return GENERAL_DEFLECTION


def _profile_city(profile: Optional[UserProfile]) -> str:
    return (profile.default_city if profile else "").strip()


def _clarification(message: str, profile: Optional[UserProfile], has_attachment: bool) -> str:
    known_city = extract_city(message) or _profile_city(profile) or "not provided"
    known_duration = extract_duration(message) or "not provided"
    lines = [
        "Before I lock the route, I need a few details:",
        f"1) City (currently: {known_city})",
        f"2) Time available (currently: {known_duration})",
        "3) Weather preference (sun/rain/indoor-friendly)",
        "4) Crowd tolerance (quiet / medium / lively)",
        "5) Budget (free / low / flexible)",
        "",
        CLARIFICATION_EXAMPLE,
    ]
    if has_attachment:
        lines.extend(["", CLARIFICATION_PHOTO_NOTE])
    return "\n".join(lines)


def build_mock_reply(
    message: str,
    city_knowledge: Optional[CityRecord] = None,
    user_profile: Optional[UserProfile] = None,
    attachments: Optional[Sequence[ChatAttachment]] = None,
) -> str:
    """Compose a canned answer, a clarification request or three route options.

    Pure function of its inputs: the same arguments always produce the same
    text. Every branch ends with the follow-up invitation line.
    """
    message = message or ""
    profile_city = _profile_city(user_profile)
    city = (
        (city_knowledge.city if city_knowledge else None)
        or extract_city(message)
        or profile_city
        or FALLBACK_CITY
    )
    has_attachment = bool(attachments)

    if not (is_likely_route_intent(message) or has_attachment):
        return append_follow_up(build_general_answer(message))

    missing = [
        item for item in needs_clarification(message)
        if not (item == "city" and profile_city)
    ]
    if len(missing) >= 2:
        return append_follow_up(_clarification(message, user_profile, has_attachment))

    mood = detect_mood(message)
    duration_hint = extract_duration(message)
    seed = string_hash(f"{message.lower()}|{city}|{mood}")
    options = pick_three_routes(routes_for_mood(mood), seed)
    anchors = pick_city_anchors(city_knowledge, seed)

    lines: List[str] = [f"MoodRoute draft for {city} ({mood} vibe):", ""]
    for index, option in enumerate(options):
        duration = f"{duration_hint} target" if duration_hint and index == 0 else option.duration
        lines.append(f"Option {index + 1}: {option.title}")
        lines.append(f"- Duration: {duration}")
        lines.append(f"- Vibe tags: {', '.join(option.tags)}")
        lines.append(f"- Route summary: {option.summary_for(city)}")
        if index < len(anchors):
            anchor = anchors[index]
            lines.append(f"- Suggested local anchor: {anchor.name} ({anchor.kind})")
        lines.append(f"- Bonus tip: {option.bonus}")
        lines.append("")

    if len(missing) == 1:
        lines.append(
            f'Assumption used: missing "{missing[0]}". '
            "Tell me that detail and I will refine all 3 options."
        )
    else:
        lines.append(REFINE_INVITATION)

    if has_attachment:
        lines.append(OPTIONS_PHOTO_NOTE)

    return append_follow_up("\n".join(lines))
