from __future__ import annotations

import asyncio
from typing import Any, Dict, Generator

from loguru import logger

from .manager import ConversationManager
from .states import Conversation


def run_conversation_stream(
    manager: ConversationManager,
    conversation: Conversation,
    num_turns: int,
) -> Generator[Dict[str, Any], None, None]:
    """Synchronous streaming runner for UI. Yields events as the conversation progresses.

    Yields dicts of shape:
      - {type: 'start', data: {conversation_id, topic, agents, turns}}
      - {type: 'turn', data: {turn, agent, message, private_thoughts, timestamp}}
      - {type: 'end', data: {conversation_id, messages}}
    """
    agents = [a.name for a in conversation.agents]
    logger.info(f"ui_conversation_start | id={conversation.id} agents={len(agents)} turns={num_turns}")
    yield {
        "type": "start",
        "data": {"conversation_id": conversation.id, "topic": conversation.topic, "agents": agents, "turns": num_turns},
    }

    for turn in range(num_turns):
        for agent_index, agent in enumerate(conversation.agents):
            # Produce a turn synchronously (await inside)
            asyncio.run(manager.generate_agent_response(conversation, agent_index))
            public = conversation.messages[-1]
            yield {
                "type": "turn",
                "data": {
                    "turn": turn + 1,
                    "agent": agent.name,
                    "message": public.content,
                    "private_thoughts": agent.private_thoughts[-1].content,
                    "timestamp": public.timestamp,
                },
            }

    yield {"type": "end", "data": {"conversation_id": conversation.id, "messages": len(conversation.messages)}}
