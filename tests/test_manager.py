from __future__ import annotations

import asyncio

import pytest
from langchain_core.messages import AIMessage, SystemMessage

from conftest import FailingChat, SpyChat
from forum.errors import NotFoundError, StoreError
from forum.manager import BASE_SYSTEM_PROMPT


def test_create_conversation_builds_agents_and_seed(make_manager):
    manager = make_manager()
    conv = manager.create_conversation("The future of tea", 3)
    assert [a.name for a in conv.agents] == ["User A", "User B", "User C"]
    assert all(a.system_prompt == BASE_SYSTEM_PROMPT for a in conv.agents)
    assert len(conv.messages) == 1
    seed = conv.messages[0]
    assert seed.agent_id is None and seed.agent_name is None
    assert seed.content == "Let's discuss the following topic: The future of tea"
    assert conv.created_at == conv.updated_at == seed.timestamp


def test_agent_names_follow_column_sequence(make_manager):
    conv = make_manager(name_prefix="").create_conversation("tea", 53)
    names = [a.name for a in conv.agents]
    assert len(set(names)) == 53
    assert names[25] == "Z"
    assert names[26] == "AA"
    assert names[51] == "AZ"
    assert names[52] == "BA"


def test_create_conversation_rejects_zero_agents(make_manager):
    with pytest.raises(ValueError):
        make_manager().create_conversation("tea", 0)


def test_load_round_trip(make_manager):
    manager = make_manager()
    conv = manager.create_conversation("tea", 2)
    loaded = manager.load_conversation(conv.id)
    assert loaded.topic == conv.topic
    assert [(a.id, a.name, a.system_prompt) for a in loaded.agents] == [
        (a.id, a.name, a.system_prompt) for a in conv.agents
    ]
    assert [m.content for m in loaded.messages] == [conv.messages[0].content]


def test_load_unknown_conversation(make_manager):
    assert make_manager().load_conversation("nope") is None


def test_run_conversation_appends_in_turn_order(make_manager, store):
    manager = make_manager()
    conv = manager.create_conversation("tea", 2)
    asyncio.run(manager.run_conversation(conv, 3))

    public = conv.messages[1:]
    assert len(public) == 6
    assert [m.agent_name for m in public] == ["User A", "User B"] * 3
    assert [m.content for m in public] == [f"reply {i}" for i in range(1, 7)]
    assert [len(a.private_thoughts) for a in conv.agents] == [3, 3]
    assert [t.content for t in conv.agents[1].private_thoughts] == ["thought 2", "thought 4", "thought 6"]

    stored = store.load_conversation(conv.id)
    assert [m.id for m in stored.messages] == [m.id for m in conv.messages]
    assert [t.id for t in stored.agents[0].private_thoughts] == [t.id for t in conv.agents[0].private_thoughts]
    assert stored.updated_at == conv.updated_at > conv.created_at


def test_later_agent_sees_earlier_reply_in_same_turn(make_manager):
    chat = SpyChat()
    manager = make_manager(chat)
    conv = manager.create_conversation("tea", 2)
    asyncio.run(manager.run_conversation(conv, 2))

    second_call = chat.calls[1]
    assert isinstance(second_call[-1], AIMessage)
    assert second_call[-1].content == "User A: reply 1"
    # Agent A's next turn carries its own earlier private thought, not B's.
    third_call = chat.calls[2]
    assert isinstance(third_call[1], SystemMessage)
    assert "- thought 1" in third_call[1].content
    assert "thought 2" not in third_call[1].content


def test_public_and_private_share_timestamp(make_manager):
    manager = make_manager()
    conv = manager.create_conversation("tea", 1)
    asyncio.run(manager.generate_agent_response(conv, 0))
    assert conv.messages[-1].timestamp == conv.agents[0].private_thoughts[-1].timestamp
    assert conv.updated_at == conv.messages[-1].timestamp


def test_backend_failure_does_not_abort_turn(make_manager):
    manager = make_manager(FailingChat())
    conv = manager.create_conversation("tea", 2)
    asyncio.run(manager.run_conversation(conv, 1))
    assert len(conv.messages) == 3
    first = conv.messages[1]
    assert "User A" in first.content and "unavailable" in first.content
    assert conv.agents[0].private_thoughts[0].content.startswith("Error generating response")


@pytest.mark.parametrize("index", [2, -1])
def test_agent_index_out_of_range(make_manager, index):
    manager = make_manager()
    conv = manager.create_conversation("tea", 2)
    with pytest.raises(NotFoundError):
        asyncio.run(manager.generate_agent_response(conv, index))


def test_store_failure_propagates_and_keeps_prior_writes(make_manager, store, monkeypatch):
    manager = make_manager()
    conv = manager.create_conversation("tea", 2)

    real_create_message = store.create_message
    writes = {"n": 0}

    def flaky_create_message(*args, **kwargs):
        writes["n"] += 1
        if writes["n"] == 3:
            raise StoreError("disk full")
        return real_create_message(*args, **kwargs)

    monkeypatch.setattr(store, "create_message", flaky_create_message)
    with pytest.raises(StoreError):
        asyncio.run(manager.run_conversation(conv, 2))

    stored = store.load_conversation(conv.id)
    assert [m.agent_name for m in stored.messages] == [None, "User A"]
    assert len(stored.agents[0].private_thoughts) == 1
