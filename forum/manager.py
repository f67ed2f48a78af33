from __future__ import annotations

import uuid
from typing import Callable, Optional

from loguru import logger

from .agents import AgentBackend
from .errors import NotFoundError
from .helpers import agent_label, now_ms, truncate
from .states import Agent, Conversation, Message
from .store import ConversationStore


BASE_SYSTEM_PROMPT = (
    "You are an intelligent agent participating in a round-table discussion with other agents.\n"
    "Your goal is to engage in thoughtful conversation, share insights, and respond to other participants.\n"
    "Be respectful, insightful, and contribute meaningfully to the discussion."
)

SEED_TEMPLATE = "Let's discuss the following topic: {topic}"


def _new_id() -> str:
    return str(uuid.uuid4())


class ConversationManager:
    """Creates conversations and drives the round-robin turn loop.

    The store and backend are injected. A Conversation passed to
    `run_conversation` or `generate_agent_response` is owned by this
    manager for the duration of the call and is mutated in place; every
    mutation is also written to the store.
    """

    def __init__(
        self,
        store: ConversationStore,
        backend: AgentBackend,
        system_prompt: str = BASE_SYSTEM_PROMPT,
        name_prefix: str = "User ",
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self.store = store
        self.backend = backend
        self.system_prompt = system_prompt
        self.name_prefix = name_prefix
        self._clock = clock
        self._new_id = id_factory

    def agent_name(self, index: int) -> str:
        return f"{self.name_prefix}{agent_label(index)}"

    def create_conversation(self, topic: str, agent_count: int) -> Conversation:
        if agent_count < 1:
            raise ValueError(f"agent_count must be >= 1, got {agent_count}")
        if not topic or not topic.strip():
            raise ValueError("topic must be non-empty")

        now = self._clock()
        conversation = Conversation(id=self._new_id(), topic=topic, created_at=now, updated_at=now)
        seed = Message(
            id=self._new_id(),
            conversation_id=conversation.id,
            agent_id=None,
            agent_name=None,
            content=SEED_TEMPLATE.format(topic=topic),
            is_private=False,
            timestamp=now,
        )
        with self.store.transaction():
            self.store.create_conversation(conversation.id, topic, now, now)
            for i in range(agent_count):
                agent = Agent(id=self._new_id(), name=self.agent_name(i), system_prompt=self.system_prompt)
                self.store.create_agent(agent.id, conversation.id, agent.name, agent.system_prompt)
                conversation.agents.append(agent)
            self._save_message(seed)
        conversation.messages.append(seed)
        logger.info(f"conversation_created | id={conversation.id} agents={agent_count} topic='{truncate(topic, 80)}'")
        return conversation

    def load_conversation(self, conversation_id: str) -> Optional[Conversation]:
        conversation = self.store.load_conversation(conversation_id)
        if conversation is None:
            logger.warning(f"conversation_not_found | id={conversation_id}")
        return conversation

    async def generate_agent_response(self, conversation: Conversation, agent_index: int) -> Conversation:
        if not 0 <= agent_index < len(conversation.agents):
            raise NotFoundError(f"Agent at index {agent_index} not found")
        agent = conversation.agents[agent_index]

        public_history = self.store.get_public_messages(conversation.id)
        private_history = self.store.get_private_messages(agent.id)
        response = await self.backend.generate(agent.name, agent.system_prompt, public_history, private_history)

        now = self._clock()
        public_msg = self._agent_message(conversation, agent, response.public_response, False, now)
        private_msg = self._agent_message(conversation, agent, response.private_thoughts, True, now)
        self._save_message(public_msg)
        self._save_message(private_msg)

        conversation.messages.append(public_msg)
        agent.private_thoughts.append(private_msg)
        conversation.updated_at = max(conversation.updated_at, now)
        self.store.update_conversation_timestamp(conversation.id, conversation.updated_at)
        return conversation

    async def run_conversation(self, conversation: Conversation, num_turns: int) -> Conversation:
        """Run `num_turns` rounds; every agent speaks once per round, in order."""
        logger.info(
            f"conversation_start | id={conversation.id} agents={len(conversation.agents)} turns={num_turns} "
            f"topic='{truncate(conversation.topic, 80)}'"
        )
        for turn in range(num_turns):
            logger.info(f"turn_start | turn={turn + 1}/{num_turns}")
            for agent_index in range(len(conversation.agents)):
                await self.generate_agent_response(conversation, agent_index)
                self._log_turn(turn + 1, conversation.messages[-1])
        logger.info(f"conversation_done | id={conversation.id} messages={len(conversation.messages)}")
        return conversation

    def _agent_message(self, conversation: Conversation, agent: Agent, content: str, is_private: bool, ts: int) -> Message:
        return Message(
            id=self._new_id(),
            conversation_id=conversation.id,
            agent_id=agent.id,
            agent_name=agent.name,
            content=content,
            is_private=is_private,
            timestamp=ts,
        )

    def _save_message(self, msg: Message) -> None:
        self.store.create_message(
            msg.id,
            msg.conversation_id,
            msg.agent_id,
            msg.agent_name,
            msg.content,
            msg.is_private,
            msg.timestamp,
        )

    def _log_turn(self, turn: int, msg: Message) -> None:
        # Single line so it always prints visibly
        one_line = " ".join(truncate(msg.content or "", 400).split())
        logger.info(f"agent_turn | t={turn} spk={msg.agent_name} | msg='{one_line}'")
