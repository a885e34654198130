import pytest

from moodroute.core.memory import (
    DEFAULT_CONVERSATION_TITLE,
    ConversationNotFound,
    InMemoryConversationStore,
    clean_title,
    make_conversation_title,
)
from moodroute.core.sql_memory import SqlConversationStore
from moodroute.models import UserProfile


@pytest.fixture(params=["memory", "sql"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryConversationStore()
    return SqlConversationStore(f"sqlite:///{tmp_path / 'db.sqlite'}")


def test_make_conversation_title():
    assert make_conversation_title("  Oslo,\n  90 minutes ") == "Oslo, 90 minutes"
    assert make_conversation_title("") == DEFAULT_CONVERSATION_TITLE
    long_title = make_conversation_title("w" * 100)
    assert long_title == "w" * 56 + "..."


def test_clean_title():
    assert clean_title("   ") == DEFAULT_CONVERSATION_TITLE
    assert clean_title(None) == DEFAULT_CONVERSATION_TITLE
    assert len(clean_title("t" * 200)) == 80


def test_profile_defaults_and_save(store):
    assert store.get_profile("alice") == UserProfile()
    profile = UserProfile(default_city="Bergen", visited_places=["Bryggen", "Floyen"])
    store.save_profile("alice", profile)
    assert store.get_profile("alice") == profile
    assert store.get_profile("bob") == UserProfile()


def test_save_profile_overwrites(store):
    store.save_profile("alice", UserProfile(default_city="Bergen", notes="x"))
    store.save_profile("alice", UserProfile(default_city="Oslo"))
    assert store.get_profile("alice") == UserProfile(default_city="Oslo")


def test_create_and_list_conversations(store):
    first = store.create_conversation("alice")
    second = store.create_conversation("alice", "  Weekend plans ")
    store.create_conversation("bob")

    assert first.title == DEFAULT_CONVERSATION_TITLE
    assert second.title == "Weekend plans"
    listed = store.list_conversations("alice")
    assert [c.id for c in listed] == [second.id, first.id]
    assert all(c.last_message == "" for c in listed)


def test_first_exchange_sets_title_and_preview(store):
    conversation = store.create_conversation("alice")
    saved = store.append_exchange("alice", conversation.id, "Oslo, 90 minutes", "Here are 3 options")

    assert [m.role for m in saved] == ["user", "assistant"]
    assert saved[0].id < saved[1].id
    assert store.get_conversation("alice", conversation.id).title == "Oslo, 90 minutes"

    store.append_exchange("alice", conversation.id, "Bergen instead", "x" * 300)
    assert store.get_conversation("alice", conversation.id).title == "Oslo, 90 minutes"
    listed = store.list_conversations("alice")
    assert listed[0].last_message == "x" * 160


def test_updated_conversation_moves_to_top(store, monkeypatch):
    ticks = iter(f"2026-01-01T00:00:{n:02d}.000Z" for n in range(60))
    monkeypatch.setattr("moodroute.core.memory.now_iso", lambda: next(ticks))
    monkeypatch.setattr("moodroute.core.sql_memory.now_iso", lambda: next(ticks))

    older = store.create_conversation("alice")
    store.create_conversation("alice")
    store.append_exchange("alice", older.id, "hi", "hello")
    assert store.list_conversations("alice")[0].id == older.id


def test_messages_and_recent_history(store):
    conversation = store.create_conversation("alice")
    for n in range(3):
        store.append_exchange("alice", conversation.id, f"q{n}", f"a{n}")

    messages = store.list_messages("alice", conversation.id)
    assert [m.content for m in messages] == ["q0", "a0", "q1", "a1", "q2", "a2"]
    history = store.recent_history("alice", conversation.id, 4)
    assert [(t.role, t.content) for t in history] == [
        ("user", "q1"), ("assistant", "a1"), ("user", "q2"), ("assistant", "a2"),
    ]
    assert store.recent_history("alice", conversation.id, 0) == []


def test_clear_keeps_conversation(store):
    conversation = store.create_conversation("alice")
    store.append_exchange("alice", conversation.id, "hi", "hello")
    store.clear_conversation("alice", conversation.id)
    assert store.list_messages("alice", conversation.id) == []
    assert store.get_conversation("alice", conversation.id).id == conversation.id


def test_delete_conversation(store):
    conversation = store.create_conversation("alice")
    store.append_exchange("alice", conversation.id, "hi", "hello")
    store.delete_conversation("alice", conversation.id)
    assert store.list_conversations("alice") == []
    with pytest.raises(ConversationNotFound):
        store.get_conversation("alice", conversation.id)


@pytest.mark.parametrize(
    "operation",
    [
        lambda s, cid: s.get_conversation("mallory", cid),
        lambda s, cid: s.list_messages("mallory", cid),
        lambda s, cid: s.append_exchange("mallory", cid, "q", "a"),
        lambda s, cid: s.clear_conversation("mallory", cid),
        lambda s, cid: s.delete_conversation("mallory", cid),
    ],
)
def test_foreign_client_cannot_touch_conversation(store, operation):
    conversation = store.create_conversation("alice")
    with pytest.raises(ConversationNotFound):
        operation(store, conversation.id)
    assert store.get_conversation("alice", conversation.id).id == conversation.id


def test_unknown_conversation(store):
    with pytest.raises(ConversationNotFound):
        store.list_messages("alice", 999)


def test_sql_store_persists_across_instances(tmp_path):
    url = f"sqlite:///{tmp_path / 'db.sqlite'}"
    first = SqlConversationStore(url)
    conversation = first.create_conversation("alice")
    first.append_exchange("alice", conversation.id, "Tromsø at night", "Northern lights loop")
    first.save_profile("alice", UserProfile(visited_places=["Fjellheisen"]))

    second = SqlConversationStore(url)
    assert [m.content for m in second.list_messages("alice", conversation.id)] == [
        "Tromsø at night", "Northern lights loop",
    ]
    assert second.get_profile("alice").visited_places == ["Fjellheisen"]


def test_photo_markers_are_compacted_in_title_and_preview(store):
    conversation = store.create_conversation("alice")
    user_text = "Oslo\n[[image:/uploads/1700000000000-abc123.png|harbor.png]]"
    store.append_exchange("alice", conversation.id, user_text, "Look:\n[[image:/uploads/2-b.png|b.png]]")

    listed = store.list_conversations("alice")[0]
    assert listed.title == "Oslo [Photo]"
    assert listed.last_message == "Look: [Photo]"
    assert store.list_messages("alice", conversation.id)[0].content == user_text
