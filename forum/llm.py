from __future__ import annotations

from typing import Any, Dict, Optional, Union

from loguru import logger
from langchain_openai import ChatOpenAI

from .errors import ConfigError
from .states import ModelProvider


# Fixed sampling parameters, identical for every provider.
GENERATION_PARAMS: Dict[str, Any] = {
    "temperature": 0.7,
    "top_p": 1,
    "frequency_penalty": 0,
    "presence_penalty": 0,
    "max_tokens": 1000,
}

# Groq serves an OpenAI-compatible chat completions endpoint, so both
# providers share one client class and one request shape.
PROVIDERS: Dict[ModelProvider, Dict[str, Optional[str]]] = {
    ModelProvider.OPENAI: {"base_url": None, "key_env": "OPENAI_API_KEY"},
    ModelProvider.GROQ: {"base_url": "https://api.groq.com/openai/v1", "key_env": "GROQ_API_KEY"},
}


def get_chat_model(
    provider: Union[ModelProvider, str],
    model: str,
    api_key: str,
) -> ChatOpenAI:
    """Build a LangChain chat client for the configured provider."""
    try:
        provider = ModelProvider(provider)
    except ValueError:
        raise ConfigError(f"Unsupported model provider: {provider}") from None
    if not api_key:
        raise ConfigError(f"{PROVIDERS[provider]['key_env']} is required for provider {provider.value}")

    kwargs: Dict[str, Any] = {"model": model, "api_key": api_key, **GENERATION_PARAMS}
    base_url = PROVIDERS[provider]["base_url"]
    if base_url:
        kwargs["base_url"] = base_url
    logger.debug(f"Initializing chat model provider={provider.value} model={model}")
    return ChatOpenAI(**kwargs)
