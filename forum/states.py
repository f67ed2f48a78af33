from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from .helpers import format_timestamp


class ModelProvider(Enum):
    OPENAI = "openai"
    GROQ = "groq"


@dataclass(frozen=True)
class Message:
    """One immutable transcript entry; agent_id None means the system/user wrote it."""

    id: str
    conversation_id: str
    agent_id: Optional[str]
    agent_name: Optional[str]
    content: str
    is_private: bool
    timestamp: int


@dataclass
class Agent:
    id: str
    name: str
    system_prompt: str
    private_thoughts: List[Message] = field(default_factory=list)


@dataclass
class Conversation:
    """In-memory aggregate of one conversation.

    `messages` holds public messages only, in turn order; private thoughts
    live on their owning Agent. While a run is in progress the instance is
    owned by the ConversationManager driving it and is mutated in place.
    """

    id: str
    topic: str
    messages: List[Message] = field(default_factory=list)
    agents: List[Agent] = field(default_factory=list)
    created_at: int = 0
    updated_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AgentResponse:
    public_response: str
    private_thoughts: str


def format_transcript(conversation: Conversation, include_private: bool = False) -> str:
    lines = [f"Topic: {conversation.topic}", f"Conversation: {conversation.id}", ""]
    for msg in conversation.messages:
        speaker = msg.agent_name or "Moderator"
        lines.append(f"[{format_timestamp(msg.timestamp)}] {speaker}: {msg.content}")
    if include_private:
        for agent in conversation.agents:
            lines.append("")
            lines.append(f"Private thoughts of {agent.name}:")
            if not agent.private_thoughts:
                lines.append("  (none)")
            for thought in agent.private_thoughts:
                lines.append(f"  [{format_timestamp(thought.timestamp)}] {thought.content}")
    return "\n".join(lines)
