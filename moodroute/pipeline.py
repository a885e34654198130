from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from langchain_core.language_models import BaseChatModel

from config.settings import Settings, get_settings
from moodroute.agent import create_assistant_reply, sanitize_history
from moodroute.knowledge import find_city_knowledge
from moodroute.models import AssistantReply, ChatAttachment, CityRecord, ConversationTurn, UserProfile
from moodroute.signals import extract_city, extract_city_from_history
from moodroute.tools.maps import append_maps_links, build_maps_suggestions, strip_raw_urls_from_reply


logger = logging.getLogger("moodroute.pipeline")


def resolve_city_knowledge(
    message: str,
    history: Sequence[ConversationTurn],
    user_profile: Optional[UserProfile] = None,
) -> Optional[CityRecord]:
    """Knowledge for the city in the message, else the latest one in history, else the profile default."""
    candidate = extract_city(message) or extract_city_from_history(history)
    record = find_city_knowledge(candidate) if candidate else None
    if record is None and user_profile is not None:
        record = find_city_knowledge(user_profile.default_city)
    return record


async def generate_chat_reply(
    message: str,
    history: Sequence[Any] = (),
    user_profile: Optional[UserProfile] = None,
    attachments: Sequence[ChatAttachment] = (),
    settings: Optional[Settings] = None,
    chat_model: Optional[BaseChatModel] = None,
) -> AssistantReply:
    settings = settings or get_settings()
    clean_history = sanitize_history(
        list(history or []), settings.max_message_length, settings.max_context_messages
    )
    city_knowledge = resolve_city_knowledge(message, clean_history, user_profile)

    assistant = await create_assistant_reply(
        message,
        clean_history,
        city_knowledge=city_knowledge,
        user_profile=user_profile,
        attachments=attachments,
        settings=settings,
        chat_model=chat_model,
    )

    cleaned = strip_raw_urls_from_reply(assistant.reply)
    suggestions = build_maps_suggestions(message, cleaned, city_knowledge, user_profile)
    reply = append_maps_links(cleaned, suggestions, settings.max_message_length)
    logger.info(
        "Reply ready: mode=%s city=%s links=%s chars=%s",
        assistant.mode,
        city_knowledge.city if city_knowledge else None,
        len(suggestions),
        len(reply),
    )
    return AssistantReply(mode=assistant.mode, reply=reply)
