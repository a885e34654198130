"""SQLAlchemy-backed ConversationStore.

Works against an embedded SQLite file or a managed database URL; tables are
created on first use.
"""
from __future__ import annotations

import json
from typing import List, Optional

from sqlalchemy import ForeignKey, Integer, String, Text, create_engine, delete, func, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from moodroute.core.memory import (
    MAX_CLIENT_ID_LENGTH,
    ConversationNotFound,
    ConversationStore,
    clean_title,
    make_conversation_title,
    message_preview,
    now_iso,
)
from moodroute.models import Conversation, StoredMessage, UserProfile


class Base(DeclarativeBase):
    pass


class ProfileRow(Base):
    __tablename__ = "user_profiles"

    client_id: Mapped[str] = mapped_column(String(MAX_CLIENT_ID_LENGTH), primary_key=True)
    default_city: Mapped[str] = mapped_column(String(80), default="")
    default_vibe: Mapped[str] = mapped_column(String(50), default="")
    default_budget: Mapped[str] = mapped_column(String(50), default="")
    crowd_tolerance: Mapped[str] = mapped_column(String(50), default="")
    weather_preference: Mapped[str] = mapped_column(String(60), default="")
    default_duration: Mapped[str] = mapped_column(String(60), default="")
    notes: Mapped[str] = mapped_column(Text, default="")
    visited_places_json: Mapped[str] = mapped_column(Text, default="[]")
    created_at: Mapped[str] = mapped_column(String(32), default=now_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=now_iso)


class ConversationRow(Base):
    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[str] = mapped_column(String(MAX_CLIENT_ID_LENGTH), index=True)
    title: Mapped[str] = mapped_column(String(80))
    created_at: Mapped[str] = mapped_column(String(32), default=now_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=now_iso)


class MessageRow(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[int] = mapped_column(
        ForeignKey("conversations.id", ondelete="CASCADE"), index=True
    )
    role: Mapped[str] = mapped_column(String(16))
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[str] = mapped_column(String(32), default=now_iso)


_PROFILE_FIELDS = (
    "default_city",
    "default_vibe",
    "default_budget",
    "crowd_tolerance",
    "weather_preference",
    "default_duration",
    "notes",
)


def _to_conversation(row: ConversationRow, last_message: str = "") -> Conversation:
    return Conversation(
        id=row.id,
        client_id=row.client_id,
        title=row.title,
        created_at=row.created_at,
        updated_at=row.updated_at,
        last_message=last_message,
    )


def _to_message(row: MessageRow) -> StoredMessage:
    return StoredMessage(
        id=row.id,
        conversation_id=row.conversation_id,
        role=row.role,
        content=row.content,
        created_at=row.created_at,
    )


def _profile_from_row(row: Optional[ProfileRow]) -> UserProfile:
    if row is None:
        return UserProfile()
    try:
        visited = json.loads(row.visited_places_json or "[]")
    except json.JSONDecodeError:
        visited = []
    data = {name: getattr(row, name) or "" for name in _PROFILE_FIELDS}
    data["visited_places"] = visited
    return UserProfile(**data)


class SqlConversationStore(ConversationStore):
    def __init__(self, database_url: str, **engine_kwargs) -> None:
        self.engine = create_engine(database_url, future=True, **engine_kwargs)
        Base.metadata.create_all(self.engine)
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)

    def _owned(self, session: Session, client_id: str, conversation_id: int) -> ConversationRow:
        row = session.get(ConversationRow, conversation_id)
        if row is None or row.client_id != client_id:
            raise ConversationNotFound(conversation_id)
        return row

    def get_profile(self, client_id: str) -> UserProfile:
        with self._sessions() as session:
            return _profile_from_row(session.get(ProfileRow, client_id))

    def save_profile(self, client_id: str, profile: UserProfile) -> UserProfile:
        with self._sessions.begin() as session:
            row = session.get(ProfileRow, client_id)
            if row is None:
                row = ProfileRow(client_id=client_id)
                session.add(row)
            for name in _PROFILE_FIELDS:
                setattr(row, name, getattr(profile, name))
            row.visited_places_json = json.dumps(profile.visited_places, ensure_ascii=False)
            row.updated_at = now_iso()
        return profile

    def list_conversations(self, client_id: str) -> List[Conversation]:
        latest = (
            select(MessageRow.conversation_id, func.max(MessageRow.id).label("last_id"))
            .group_by(MessageRow.conversation_id)
            .subquery()
        )
        stmt = (
            select(ConversationRow, MessageRow.content)
            .outerjoin(latest, latest.c.conversation_id == ConversationRow.id)
            .outerjoin(MessageRow, MessageRow.id == latest.c.last_id)
            .where(ConversationRow.client_id == client_id)
            .order_by(ConversationRow.updated_at.desc(), ConversationRow.id.desc())
        )
        with self._sessions() as session:
            return [
                _to_conversation(row, message_preview(content or ""))
                for row, content in session.execute(stmt).all()
            ]

    def create_conversation(self, client_id: str, title: Optional[str] = None) -> Conversation:
        with self._sessions.begin() as session:
            stamp = now_iso()
            row = ConversationRow(client_id=client_id, title=clean_title(title), created_at=stamp, updated_at=stamp)
            session.add(row)
            session.flush()
            return _to_conversation(row)

    def get_conversation(self, client_id: str, conversation_id: int) -> Conversation:
        with self._sessions() as session:
            return _to_conversation(self._owned(session, client_id, conversation_id))

    def list_messages(self, client_id: str, conversation_id: int) -> List[StoredMessage]:
        with self._sessions() as session:
            self._owned(session, client_id, conversation_id)
            rows = session.scalars(
                select(MessageRow)
                .where(MessageRow.conversation_id == conversation_id)
                .order_by(MessageRow.id.asc())
            )
            return [_to_message(row) for row in rows]

    def append_exchange(
        self, client_id: str, conversation_id: int, user_text: str, assistant_text: str
    ) -> List[StoredMessage]:
        with self._sessions.begin() as session:
            conversation = self._owned(session, client_id, conversation_id)
            existing = session.scalar(
                select(func.count(MessageRow.id)).where(MessageRow.conversation_id == conversation_id)
            )
            stamp = now_iso()
            rows = [
                MessageRow(conversation_id=conversation_id, role="user", content=user_text, created_at=stamp),
                MessageRow(conversation_id=conversation_id, role="assistant", content=assistant_text, created_at=stamp),
            ]
            session.add_all(rows)
            if not existing:
                conversation.title = make_conversation_title(user_text)
            conversation.updated_at = stamp
            session.flush()
            return [_to_message(row) for row in rows]

    def clear_conversation(self, client_id: str, conversation_id: int) -> None:
        with self._sessions.begin() as session:
            conversation = self._owned(session, client_id, conversation_id)
            session.execute(delete(MessageRow).where(MessageRow.conversation_id == conversation_id))
            conversation.updated_at = now_iso()

    def delete_conversation(self, client_id: str, conversation_id: int) -> None:
        with self._sessions.begin() as session:
            conversation = self._owned(session, client_id, conversation_id)
            session.execute(delete(MessageRow).where(MessageRow.conversation_id == conversation_id))
            session.delete(conversation)
