from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from config.settings import Settings, get_settings
from moodroute.core.prompt import DEVELOPER_PROMPT, SYSTEM_PROMPT
from moodroute.mock import build_mock_reply
from moodroute.models import AssistantReply, ChatAttachment, CityRecord, ConversationTurn, UserProfile
from moodroute.uploads import MAX_CHAT_ATTACHMENTS, convert_upload_to_data_url


logger = logging.getLogger("moodroute.agent")

MAX_GROUNDING_PLACES = 8
MAX_PROFILE_VISITED = 20


def build_chat_model(settings: Optional[Settings] = None) -> ChatOpenAI:
    settings = settings or get_settings()
    if not settings.openai_api_key:
        raise RuntimeError(
            "OPENAI_API_KEY not set. Please configure it in environment or .env"
        )

    return ChatOpenAI(
        model=settings.openai_model,
        api_key=settings.openai_api_key,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
    )


def sanitize_history(messages: Any, max_message_length: int, max_turns: int) -> List[ConversationTurn]:
    """Keep the last ``max_turns`` user/assistant turns with non-empty, capped content."""
    if not isinstance(messages, (list, tuple)):
        return []
    turns: List[ConversationTurn] = []
    for item in messages:
        if isinstance(item, ConversationTurn):
            role, content = item.role, item.content
        elif isinstance(item, dict):
            role, content = item.get("role"), item.get("content")
        else:
            continue
        if role not in ("user", "assistant"):
            continue
        text = content.strip()[:max_message_length] if isinstance(content, str) else ""
        if text:
            turns.append(ConversationTurn(role=role, content=text))
    return turns[-max_turns:] if max_turns > 0 else []


def to_lc_messages(history: Sequence[ConversationTurn]) -> List[BaseMessage]:
    messages: List[BaseMessage] = []
    for turn in history or []:
        if not turn.content:
            continue
        if turn.role == "assistant":
            messages.append(AIMessage(content=turn.content))
        else:
            messages.append(HumanMessage(content=turn.content))
    return messages


def format_city_knowledge_for_prompt(city_knowledge: Optional[CityRecord]) -> str:
    if city_knowledge is None:
        return ""
    place_lines = [
        f"- {place.name} ({place.kind})" for place in city_knowledge.places[:MAX_GROUNDING_PLACES]
    ]
    return "\n".join(
        [
            "City grounding context (use this as factual POI anchor):",
            f"City: {city_knowledge.city}, Norway ({city_knowledge.county})",
            "Known places:",
            *place_lines,
            "Instruction: when giving 3 options, reference these places where relevant "
            "and prefer them over invented addresses.",
        ]
    )


_PROFILE_LINES = (
    ("default_city", "Default city"),
    ("default_vibe", "Preferred vibe"),
    ("default_budget", "Typical budget"),
    ("crowd_tolerance", "Crowd tolerance"),
    ("weather_preference", "Weather preference"),
    ("default_duration", "Typical duration"),
    ("notes", "User notes"),
)


def format_user_profile_for_prompt(profile: Optional[UserProfile]) -> str:
    if profile is None:
        return ""
    lines = [f"- {label}: {getattr(profile, field)}" for field, label in _PROFILE_LINES if getattr(profile, field)]
    visited = profile.visited_places[:MAX_PROFILE_VISITED]
    if visited:
        lines.append(f"- Places already visited: {', '.join(visited)}")
    if not lines:
        return ""
    return "\n".join(
        [
            "User profile context (apply when useful):",
            *lines,
            "Instruction: avoid repeating already visited places unless user explicitly asks.",
        ]
    )


async def build_image_parts(
    attachments: Sequence[ChatAttachment], uploads_dir: Path, max_bytes: int
) -> List[Dict[str, Any]]:
    """OpenAI image_url content parts for up to two stored uploads, one at a time."""
    parts: List[Dict[str, Any]] = []
    for item in list(attachments or [])[:MAX_CHAT_ATTACHMENTS]:
        try:
            data_url = await convert_upload_to_data_url(item.url, uploads_dir, max_bytes)
        except OSError as exc:
            logger.warning("Could not inline image %s: %s", item.url, exc)
            continue
        if data_url:
            parts.append({"type": "image_url", "image_url": {"url": data_url, "detail": "auto"}})
    return parts


def build_prompt_messages(
    message: str,
    history: Sequence[ConversationTurn],
    city_knowledge: Optional[CityRecord] = None,
    user_profile: Optional[UserProfile] = None,
    image_parts: Optional[List[Dict[str, Any]]] = None,
) -> List[BaseMessage]:
    """Persona, style, grounding and profile blocks, then history and the new turn."""
    messages: List[BaseMessage] = [
        SystemMessage(content=SYSTEM_PROMPT),
        SystemMessage(content=DEVELOPER_PROMPT),
    ]
    city_prompt = format_city_knowledge_for_prompt(city_knowledge)
    if city_prompt:
        messages.append(SystemMessage(content=city_prompt))
    profile_prompt = format_user_profile_for_prompt(user_profile)
    if profile_prompt:
        messages.append(SystemMessage(content=profile_prompt))
    messages.extend(to_lc_messages(history))

    if image_parts:
        messages.append(HumanMessage(content=[{"type": "text", "text": message}, *image_parts]))
    else:
        messages.append(HumanMessage(content=message))
    return messages


def _reply_text(result: Any) -> str:
    content = getattr(result, "content", None)
    if isinstance(content, list):
        content = "".join(
            part.get("text", "") if isinstance(part, dict) else str(part) for part in content
        )
    if not isinstance(content, str) or not content.strip():
        raise ValueError("Model response did not include text content.")
    return content.strip()


async def fetch_live_reply(
    chat_model: BaseChatModel,
    message: str,
    history: Sequence[ConversationTurn],
    city_knowledge: Optional[CityRecord] = None,
    user_profile: Optional[UserProfile] = None,
    attachments: Sequence[ChatAttachment] = (),
    settings: Optional[Settings] = None,
) -> str:
    settings = settings or get_settings()
    image_parts = await build_image_parts(attachments, settings.uploads_dir, settings.max_image_upload_bytes)
    messages = build_prompt_messages(message, history, city_knowledge, user_profile, image_parts)
    logger.info(
        "Calling model=%s messages=%s images=%s",
        settings.openai_model,
        len(messages),
        len(image_parts),
    )
    result = await chat_model.ainvoke(messages)
    return _reply_text(result)


async def create_assistant_reply(
    message: str,
    history: Sequence[ConversationTurn],
    city_knowledge: Optional[CityRecord] = None,
    user_profile: Optional[UserProfile] = None,
    attachments: Sequence[ChatAttachment] = (),
    settings: Optional[Settings] = None,
    chat_model: Optional[BaseChatModel] = None,
) -> AssistantReply:
    """Live model reply when configured, the mock generator otherwise.

    Any failure of the live call is logged and answered by the mock
    generator with mode ``mock-fallback``.
    """
    settings = settings or get_settings()
    if chat_model is None and not settings.live_api_configured:
        return AssistantReply(
            mode="mock",
            reply=build_mock_reply(message, city_knowledge, user_profile, attachments),
        )

    try:
        model = chat_model or build_chat_model(settings)
        reply = await fetch_live_reply(
            model, message, history, city_knowledge, user_profile, attachments, settings
        )
        return AssistantReply(mode="openai", reply=reply)
    except Exception as exc:
        logger.warning("Live model failed, falling back to mock mode: %s", exc)
        return AssistantReply(
            mode="mock-fallback",
            reply=build_mock_reply(message, city_knowledge, user_profile, attachments),
        )
