"""Test suite for the conversation store."""

import pytest

from chat_history.domain.models import DEFAULT_TITLE, Role


def test_create_conversation(store, events):
    """A new conversation is empty, titled and active."""
    conversation_id = store.create_conversation()

    assert conversation_id == "C-1"
    assert conversation_id in store
    assert store.active_conversation_id == conversation_id

    conversation = store.get_conversation(conversation_id)
    assert conversation.title == DEFAULT_TITLE
    assert conversation.messages == []
    assert conversation.created_at == conversation.updated_at
    assert len(events) == 1


def test_create_conversation_returns_fresh_ids(store):
    """Every created conversation gets an unused id and becomes active."""
    seen = set()
    for _ in range(10):
        conversation_id = store.create_conversation()
        assert conversation_id not in seen
        assert store.active_conversation_id == conversation_id
        seen.add(conversation_id)
    assert len(store) == 10


def test_create_conversation_skips_ids_already_in_use(store_kwargs):
    """A generator that repeats itself cannot overwrite an existing conversation."""
    from chat_history.services.conversation_store import ConversationStore

    class Repeating:
        def __init__(self):
            self.values = iter(["dup", "dup", "fresh"])

        def next(self):
            return next(self.values)

    store_kwargs["conversation_ids"] = Repeating()
    store = ConversationStore(**store_kwargs)
    assert store.create_conversation() == "dup"
    assert store.create_conversation() == "fresh"
    assert len(store) == 2


def test_append_messages_in_order(store, clock):
    """Messages land in call order and updated_at never goes backwards."""
    conversation_id = store.create_conversation()
    previous = store.get_conversation(conversation_id).updated_at

    contents = ["one", "two", "three", "four"]
    for i, content in enumerate(contents):
        clock.advance()
        role = Role.USER if i % 2 == 0 else Role.ASSISTANT
        message = store.append_message(conversation_id, content, role)
        assert message.content == content
        assert message.role is role

        conversation = store.get_conversation(conversation_id)
        assert len(conversation.messages) == i + 1
        assert conversation.updated_at >= previous
        previous = conversation.updated_at

    conversation = store.get_conversation(conversation_id)
    assert [m.content for m in conversation.messages] == contents
    assert len({m.id for m in conversation.messages}) == len(contents)
    assert conversation.updated_at >= conversation.created_at


def test_append_accepts_role_strings(store):
    conversation_id = store.create_conversation()
    message = store.append_message(conversation_id, "hi", "assistant")
    assert message.role is Role.ASSISTANT


def test_append_rejects_unknown_role(store):
    conversation_id = store.create_conversation()
    with pytest.raises(ValueError):
        store.append_message(conversation_id, "hi", "system")
    assert store.get_conversation(conversation_id).messages == []


@pytest.mark.parametrize("content", ["", "   ", "\n\t  "])
def test_append_blank_content_is_noop(store, events, clock, content):
    """Blank messages change neither the messages nor updated_at."""
    conversation_id = store.create_conversation()
    before = store.get_conversation(conversation_id)
    clock.advance()

    assert store.append_message(conversation_id, content, Role.USER) is None

    after = store.get_conversation(conversation_id)
    assert after.messages == []
    assert after.updated_at == before.updated_at
    assert after.title == DEFAULT_TITLE
    assert len(events) == 1


def test_append_to_missing_conversation_is_noop(store, events):
    """Appending to an unknown id neither raises nor changes anything."""
    conversation_id = store.create_conversation()
    before = store.snapshot()

    assert store.append_message("missing", "hello", Role.ASSISTANT) is None

    assert store.snapshot() == before
    assert store.active_conversation_id == conversation_id
    assert len(events) == 1


def test_first_user_message_sets_title(store):
    conversation_id = store.create_conversation()
    store.append_message(
        conversation_id,
        "Explain quantum physics in simple terms that a beginner can understand please",
        Role.USER,
    )
    assert store.get_conversation(conversation_id).title == "Explain quantum physics in simple terms"


def test_title_derived_only_once(store):
    conversation_id = store.create_conversation()
    store.append_message(conversation_id, "First question", Role.USER)
    store.append_message(conversation_id, "An answer", Role.ASSISTANT)
    store.append_message(conversation_id, "Second question", Role.USER)
    assert store.get_conversation(conversation_id).title == "First question"


def test_first_assistant_message_does_not_set_title(store):
    conversation_id = store.create_conversation()
    store.append_message(conversation_id, "Welcome! Ask me anything.", Role.ASSISTANT)
    store.append_message(conversation_id, "What is a monad?", Role.USER)
    assert store.get_conversation(conversation_id).title == DEFAULT_TITLE


def test_long_first_message_title_is_truncated(store):
    conversation_id = store.create_conversation()
    store.append_message(
        conversation_id,
        "Supercalifragilistic expialidocious antidisestablishmentarianism "
        "floccinaucinihilipilification pneumonoultramicroscopic hippopotomonstrosesquippedaliophobia",
        Role.USER,
    )
    title = store.get_conversation(conversation_id).title
    assert len(title) == 50
    assert title.endswith("...")


def test_rename_conversation(store, events, clock):
    conversation_id = store.create_conversation()
    created = store.get_conversation(conversation_id)
    clock.advance(5)

    store.rename_conversation(conversation_id, "  Trip planning  ")

    renamed = store.get_conversation(conversation_id)
    assert renamed.title == "Trip planning"
    assert renamed.updated_at > created.updated_at
    assert len(events) == 2


@pytest.mark.parametrize("title", ["", "   ", DEFAULT_TITLE, f"  {DEFAULT_TITLE} "])
def test_rename_blank_or_unchanged_is_noop(store, events, clock, title):
    conversation_id = store.create_conversation()
    before = store.get_conversation(conversation_id)
    clock.advance()

    store.rename_conversation(conversation_id, title)

    after = store.get_conversation(conversation_id)
    assert after.title == before.title
    assert after.updated_at == before.updated_at
    assert len(events) == 1


def test_rename_missing_conversation_is_noop(store, events):
    store.rename_conversation("missing", "Title")
    assert len(store) == 0
    assert events == []


def test_rename_keeps_title_after_later_messages(store):
    conversation_id = store.create_conversation()
    store.rename_conversation(conversation_id, "Custom")
    store.append_message(conversation_id, "Hello there", Role.ASSISTANT)
    store.append_message(conversation_id, "Hello back", Role.USER)
    assert store.get_conversation(conversation_id).title == "Custom"


def test_delete_active_conversation_clears_active(store):
    first = store.create_conversation()
    second = store.create_conversation()
    assert store.active_conversation_id == second

    store.delete_conversation(second)

    assert second not in store
    assert first in store
    assert store.active_conversation_id is None
    assert store.active_conversation is None


def test_delete_inactive_conversation_keeps_active(store):
    first = store.create_conversation()
    second = store.create_conversation()

    store.delete_conversation(first)

    assert first not in store
    assert store.active_conversation_id == second


def test_delete_missing_conversation_is_noop(store, events):
    conversation_id = store.create_conversation()
    store.delete_conversation("missing")
    assert conversation_id in store
    assert store.active_conversation_id == conversation_id
    assert len(events) == 1


def test_set_active(store, events):
    first = store.create_conversation()
    store.create_conversation()

    store.set_active(first)

    assert store.active_conversation_id == first
    assert store.active_conversation.id == first
    assert len(events) == 3


def test_set_active_unknown_id_is_ignored(store, events):
    conversation_id = store.create_conversation()
    store.set_active("missing")
    assert store.active_conversation_id == conversation_id
    assert len(events) == 1


def test_clear_all(store, events):
    for _ in range(3):
        store.create_conversation()

    store.clear_all()

    assert len(store) == 0
    assert store.active_conversation_id is None
    assert events[-1].conversations == {}
    assert events[-1].active_conversation_id is None


def test_list_conversations_newest_first(store, clock):
    first = store.create_conversation()
    clock.advance()
    second = store.create_conversation()
    clock.advance()
    third = store.create_conversation()
    clock.advance()
    store.append_message(first, "bump", Role.USER)

    ids = [c.id for c in store.list_conversations()]
    assert ids == [first, third, second]

    assert [c.id for c in store.list_conversations(limit=1, offset=1)] == [third]
    assert store.list_conversations(offset=5) == []


def test_reads_return_copies(store):
    """Mutating returned objects never reaches the store's own state."""
    conversation_id = store.create_conversation()
    store.append_message(conversation_id, "original", Role.USER)

    copy = store.get_conversation(conversation_id)
    copy.title = "tampered"
    copy.messages.clear()
    store.snapshot().conversations.clear()
    store.list_conversations()[0].messages.clear()

    conversation = store.get_conversation(conversation_id)
    assert conversation.title == "original"
    assert len(conversation.messages) == 1


def test_each_mutation_emits_one_state(store, events):
    """N state changes produce N notifications carrying the new state."""
    conversation_id = store.create_conversation()
    store.append_message(conversation_id, "Hello there", Role.USER)
    store.append_message(conversation_id, "   ", Role.USER)
    store.rename_conversation(conversation_id, "Greetings")
    store.delete_conversation("missing")
    store.delete_conversation(conversation_id)

    assert len(events) == 4
    assert list(events[0].conversations) == [conversation_id]
    assert len(events[1].conversations[conversation_id].messages) == 1
    assert events[2].conversations[conversation_id].title == "Greetings"
    assert events[3].conversations == {}
    assert events[3].active_conversation_id is None


def test_unsubscribe_stops_notifications(store):
    received = []
    unsubscribe = store.subscribe(received.append)
    store.create_conversation()
    unsubscribe()
    unsubscribe()
    store.create_conversation()
    assert len(received) == 1


def test_full_exchange_scenario(store):
    """Create, talk, delete: the store ends up empty."""
    assert len(store) == 0 and store.active_conversation_id is None

    c1 = store.create_conversation()
    assert store.active_conversation_id == c1

    store.append_message(c1, "Hello there", Role.USER)
    conversation = store.get_conversation(c1)
    assert len(conversation.messages) == 1
    assert conversation.title == "Hello there"

    store.append_message(c1, "Hi! How can I help?", Role.ASSISTANT)
    conversation = store.get_conversation(c1)
    assert [(m.content, m.role) for m in conversation.messages] == [
        ("Hello there", Role.USER),
        ("Hi! How can I help?", Role.ASSISTANT),
    ]
    assert conversation.title == "Hello there"

    store.delete_conversation(c1)
    assert len(store) == 0
    assert store.active_conversation_id is None


def test_clock_stepping_back_keeps_updated_at(store, clock):
    """A clock that jumps backwards never moves updated_at behind created_at."""
    conversation_id = store.create_conversation()
    created = store.get_conversation(conversation_id).created_at

    clock.advance(-10)
    store.append_message(conversation_id, "from the past", Role.USER)
    conversation = store.get_conversation(conversation_id)
    assert conversation.updated_at == created
    assert conversation.updated_at >= conversation.created_at

    clock.advance(-10)
    store.rename_conversation(conversation_id, "Renamed")
    conversation = store.get_conversation(conversation_id)
    assert conversation.title == "Renamed"
    assert conversation.updated_at >= conversation.created_at


def test_clear_all_on_empty_store_is_noop(store, events):
    store.clear_all()
    assert events == []


def test_set_active_to_current_is_noop(store, events):
    conversation_id = store.create_conversation()
    store.set_active(conversation_id)
    assert store.active_conversation_id == conversation_id
    assert len(events) == 1
