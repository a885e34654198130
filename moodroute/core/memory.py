"""Conversation and profile persistence.

Reply generation only sees the abstract ``ConversationStore``; which backend
sits behind it (process memory or a SQL database) is a deployment choice.
"""
from __future__ import annotations

import abc
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

from moodroute.models import Conversation, ConversationTurn, StoredMessage, UserProfile
from moodroute.uploads import compact_message_preview


DEFAULT_CONVERSATION_TITLE = "New MoodRoute Chat"
MAX_TITLE_LENGTH = 80
PREVIEW_LENGTH = 160
MAX_CLIENT_ID_LENGTH = 128


class ConversationNotFound(LookupError):
    """No conversation with that id belongs to the client."""


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def clean_title(raw: Optional[str]) -> str:
    title = (raw or "").strip()[:MAX_TITLE_LENGTH]
    return title or DEFAULT_CONVERSATION_TITLE


def message_preview(text: str) -> str:
    return compact_message_preview(text)[:PREVIEW_LENGTH]


def make_conversation_title(text: str) -> str:
    compact = compact_message_preview(text)
    if not compact:
        return DEFAULT_CONVERSATION_TITLE
    return f"{compact[:56]}..." if len(compact) > 56 else compact


class ConversationStore(abc.ABC):
    @abc.abstractmethod
    def get_profile(self, client_id: str) -> UserProfile:
        """Saved profile, or an empty one for a new client."""

    @abc.abstractmethod
    def save_profile(self, client_id: str, profile: UserProfile) -> UserProfile:
        ...

    @abc.abstractmethod
    def list_conversations(self, client_id: str) -> List[Conversation]:
        """Newest first, each with a short preview of its last message."""

    @abc.abstractmethod
    def create_conversation(self, client_id: str, title: Optional[str] = None) -> Conversation:
        ...

    @abc.abstractmethod
    def get_conversation(self, client_id: str, conversation_id: int) -> Conversation:
        """Raises ConversationNotFound for unknown or foreign ids."""

    @abc.abstractmethod
    def list_messages(self, client_id: str, conversation_id: int) -> List[StoredMessage]:
        ...

    @abc.abstractmethod
    def append_exchange(
        self, client_id: str, conversation_id: int, user_text: str, assistant_text: str
    ) -> List[StoredMessage]:
        """Store one user/assistant pair; the first pair also retitles the conversation."""

    @abc.abstractmethod
    def clear_conversation(self, client_id: str, conversation_id: int) -> None:
        ...

    @abc.abstractmethod
    def delete_conversation(self, client_id: str, conversation_id: int) -> None:
        ...

    def recent_history(self, client_id: str, conversation_id: int, limit: int) -> List[ConversationTurn]:
        messages = self.list_messages(client_id, conversation_id)
        recent = messages[-limit:] if limit > 0 else []
        return [ConversationTurn(role=item.role, content=item.content) for item in recent]


class InMemoryConversationStore(ConversationStore):
    """Process-local store; contents are lost on restart."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._profiles: Dict[str, UserProfile] = {}
        self._conversations: Dict[int, Conversation] = {}
        self._messages: Dict[int, List[StoredMessage]] = {}
        self._next_conversation_id = 1
        self._next_message_id = 1

    def get_profile(self, client_id: str) -> UserProfile:
        with self._lock:
            return self._profiles.get(client_id, UserProfile()).model_copy(deep=True)

    def save_profile(self, client_id: str, profile: UserProfile) -> UserProfile:
        with self._lock:
            self._profiles[client_id] = profile.model_copy(deep=True)
            return profile

    def list_conversations(self, client_id: str) -> List[Conversation]:
        with self._lock:
            owned = [c for c in self._conversations.values() if c.client_id == client_id]
            result = []
            for conversation in owned:
                messages = self._messages.get(conversation.id) or []
                preview = message_preview(messages[-1].content) if messages else ""
                result.append(conversation.model_copy(update={"last_message": preview}))
        result.sort(key=lambda c: (c.updated_at, c.id), reverse=True)
        return result

    def create_conversation(self, client_id: str, title: Optional[str] = None) -> Conversation:
        with self._lock:
            stamp = now_iso()
            conversation = Conversation(
                id=self._next_conversation_id,
                client_id=client_id,
                title=clean_title(title),
                created_at=stamp,
                updated_at=stamp,
            )
            self._next_conversation_id += 1
            self._conversations[conversation.id] = conversation
            self._messages[conversation.id] = []
            return conversation

    def _owned(self, client_id: str, conversation_id: int) -> Conversation:
        conversation = self._conversations.get(conversation_id)
        if conversation is None or conversation.client_id != client_id:
            raise ConversationNotFound(conversation_id)
        return conversation

    def get_conversation(self, client_id: str, conversation_id: int) -> Conversation:
        with self._lock:
            return self._owned(client_id, conversation_id)

    def list_messages(self, client_id: str, conversation_id: int) -> List[StoredMessage]:
        with self._lock:
            self._owned(client_id, conversation_id)
            return list(self._messages[conversation_id])

    def append_exchange(
        self, client_id: str, conversation_id: int, user_text: str, assistant_text: str
    ) -> List[StoredMessage]:
        with self._lock:
            conversation = self._owned(client_id, conversation_id)
            messages = self._messages[conversation_id]
            first_exchange = not messages
            stamp = now_iso()
            saved = []
            for role, content in (("user", user_text), ("assistant", assistant_text)):
                message = StoredMessage(
                    id=self._next_message_id,
                    conversation_id=conversation_id,
                    role=role,
                    content=content,
                    created_at=stamp,
                )
                self._next_message_id += 1
                messages.append(message)
                saved.append(message)

            update = {"updated_at": stamp}
            if first_exchange:
                update["title"] = make_conversation_title(user_text)
            self._conversations[conversation_id] = conversation.model_copy(update=update)
            return saved

    def clear_conversation(self, client_id: str, conversation_id: int) -> None:
        with self._lock:
            conversation = self._owned(client_id, conversation_id)
            self._messages[conversation_id] = []
            self._conversations[conversation_id] = conversation.model_copy(update={"updated_at": now_iso()})

    def delete_conversation(self, client_id: str, conversation_id: int) -> None:
        with self._lock:
            self._owned(client_id, conversation_id)
            del self._conversations[conversation_id]
            del self._messages[conversation_id]
