from __future__ import annotations

import time

import streamlit as st
from loguru import logger

from forum.cli import build_manager
from forum.config import ForumConfig
from forum.errors import ForumError
from forum.helpers import format_timestamp
from forum.store import ConversationStore
from forum.stream_runner import run_conversation_stream


AVATARS = ["🟦", "🟩", "🟧", "🟪", "🟥", "🟨"]


def avatar_for(name: str | None, names: list[str]) -> str:
    if name is None or name not in names:
        return "🗣️"
    return AVATARS[names.index(name) % len(AVATARS)]


@st.cache_resource
def get_store(db_path: str) -> ConversationStore:
    # Shared by every rerun; Streamlit runs scripts on worker threads.
    return ConversationStore(db_path, check_same_thread=False)


st.set_page_config(page_title="Agent Forum", page_icon="🤖", layout="wide")

config = ForumConfig.from_env()
store = get_store(config.database_path)

st.sidebar.title("Agent Forum – Controls")
mode = st.sidebar.radio("Conversation", ["New", "Existing"], index=0)

conversation = None
if mode == "New":
    topic = st.sidebar.text_input("Topic", placeholder="The benefits and risks of artificial intelligence")
    agent_count = st.sidebar.number_input("Agents", min_value=1, max_value=12, value=3, step=1)
else:
    existing = store.list_conversations()
    if not existing:
        st.sidebar.info("No stored conversations yet. Start a new one.")
    else:
        labels = {f"{c.topic[:60]} · {format_timestamp(c.updated_at)}": c.id for c in existing}
        picked = st.sidebar.selectbox("Stored conversations", list(labels.keys()))
        conversation = store.load_conversation(labels[picked])

turns = st.sidebar.slider("Turns", min_value=1, max_value=10, value=2, step=1)
show_private = st.sidebar.checkbox("Show private thoughts", value=False)
run_btn = st.sidebar.button("Run", type="primary")

st.title("Live Agent Round-Table")
chat_area = st.container()
status_text = st.empty()

if conversation is not None:
    names = [a.name for a in conversation.agents]
    with chat_area:
        st.caption(f"Conversation {conversation.id}")
        for msg in conversation.messages:
            with st.chat_message("assistant" if msg.agent_name else "user", avatar=avatar_for(msg.agent_name, names)):
                st.markdown(f"**{msg.agent_name or 'Topic'}** · {format_timestamp(msg.timestamp)}\n\n{msg.content}")
        if show_private:
            for agent in conversation.agents:
                with st.expander(f"Private thoughts of {agent.name}"):
                    for thought in agent.private_thoughts:
                        st.markdown(f"- {thought.content}")

if run_btn:
    try:
        manager = build_manager(config.validate(), store)
        if mode == "New":
            if not topic.strip():
                st.sidebar.error("Enter a topic first")
                st.stop()
            conversation = manager.create_conversation(topic, int(agent_count))
        elif conversation is None:
            st.sidebar.error("Select a stored conversation")
            st.stop()
    except ForumError as e:
        logger.error(f"ui_setup_failed | {e}")
        st.sidebar.error(str(e))
        st.stop()

    names = [a.name for a in conversation.agents]
    total = turns * len(names)
    done = 0
    t0 = time.perf_counter()
    with chat_area:
        for event in run_conversation_stream(manager, conversation, turns):
            if event["type"] == "start":
                st.write(f"Topic: {event['data']['topic']} · agents: {', '.join(event['data']['agents'])}")
            elif event["type"] == "turn":
                d = event["data"]
                done += 1
                with st.chat_message("assistant", avatar=avatar_for(d["agent"], names)):
                    st.markdown(f"**{d['agent']}** · turn {d['turn']}\n\n{d['message']}")
                    if show_private and d["private_thoughts"]:
                        st.caption(d["private_thoughts"])
                status_text.info(f"{done} / {total} replies")
            elif event["type"] == "end":
                t1 = time.perf_counter()
                status_text.success(f"Completed in {t1 - t0:.1f}s | conversation: {conversation.id}")
else:
    st.info("Pick a topic or a stored conversation and click Run")
