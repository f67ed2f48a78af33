from __future__ import annotations

import time
from typing import Any, List, Optional, Sequence

from loguru import logger
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from .errors import EmptyResponseError
from .parser import parse_agent_response
from .ratelimit import RateLimiter
from .states import AgentResponse, Message


RESPONSE_FORMAT_INSTRUCTION = (
    "Your name is {name}. You are participating in a round-table discussion with other agents.\n\n"
    "Your response should be in the following format:\n\n"
    "PUBLIC RESPONSE:\n[Your message that will be shared with all participants]\n\n"
    "PRIVATE THOUGHTS:\n[Your private thoughts that only you will see]"
)


def build_messages(
    agent_name: str,
    system_prompt: str,
    public_history: Sequence[Message],
    private_thoughts: Sequence[Message],
) -> List[BaseMessage]:
    messages: List[BaseMessage] = [
        SystemMessage(content=f"{system_prompt}\n\n{RESPONSE_FORMAT_INSTRUCTION.format(name=agent_name)}")
    ]
    if private_thoughts:
        listed = "\n\n".join(f"- {t.content}" for t in private_thoughts)
        messages.append(SystemMessage(content=f"Your previous private thoughts (only visible to you):\n\n{listed}"))
    for msg in public_history:
        if msg.agent_name:
            messages.append(AIMessage(content=f"{msg.agent_name}: {msg.content}"))
        else:
            messages.append(HumanMessage(content=msg.content))
    return messages


def fallback_response(agent_name: str, error: BaseException) -> AgentResponse:
    return AgentResponse(
        public_response=f"{agent_name} is unavailable and unable to respond at the moment.",
        private_thoughts=f"Error generating response: {error}",
    )


class AgentBackend:
    """Generates one agent's dual-channel reply through a chat model.

    `chat` is any LangChain chat model (anything with `ainvoke`); which
    provider sits behind it is decided by whoever builds it. Failures are
    never raised: the caller always gets an AgentResponse.
    """

    def __init__(self, chat: Any, rate_limiter: RateLimiter, provider_label: str = "") -> None:
        self.chat = chat
        self.rate_limiter = rate_limiter
        self.provider_label = provider_label or type(chat).__name__

    async def generate(
        self,
        agent_name: str,
        system_prompt: str,
        public_history: Sequence[Message],
        private_thoughts: Sequence[Message],
    ) -> AgentResponse:
        if not agent_name:
            raise ValueError("agent_name must be non-empty")
        await self.rate_limiter.acquire()
        messages = build_messages(agent_name, system_prompt, public_history, private_thoughts)
        names = {agent_name} | {m.agent_name for m in public_history if m.agent_name}
        try:
            t0 = time.perf_counter()
            result = await self.chat.ainvoke(messages)
            self.rate_limiter.record()
            dt = time.perf_counter() - t0
            text = _content_text(result).strip()
            logger.info(f"llm_call | provider={self.provider_label} agent={agent_name} dt={dt:.2f}s chars={len(text)}")
            if not text:
                raise EmptyResponseError(f"empty response from {self.provider_label}")
            return parse_agent_response(text, names=names)
        except Exception as e:
            logger.error(f"llm_call_failed | provider={self.provider_label} agent={agent_name} | {e!r}")
            return fallback_response(agent_name, e)


def _content_text(result: Any) -> str:
    content: Optional[Any] = getattr(result, "content", result)
    if isinstance(content, list):
        # Some providers return content blocks instead of a plain string.
        parts = [b.get("text", "") if isinstance(b, dict) else str(b) for b in content]
        return "".join(parts)
    return content or ""
