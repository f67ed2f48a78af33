from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigError
from .states import ModelProvider


def load_env() -> None:
    """Load the first .env found (project root, then CWD) without overriding the process env."""
    here = Path(__file__).resolve().parents[1]
    for env_path in (here / ".env", Path.cwd() / ".env"):
        if env_path.is_file():
            load_dotenv(dotenv_path=str(env_path), override=False)
            break


@dataclass
class ForumConfig:
    model_provider: str = ModelProvider.OPENAI.value
    llm_model: str = "gpt-4-turbo"
    openai_api_key: str = ""
    groq_api_key: str = ""
    database_path: str = "./data/agent_forum.db"
    rate_limit: int = 60
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ForumConfig":
        if env is None:
            load_env()
            env = os.environ
        try:
            rate_limit = int(env.get("RATE_LIMIT", "60"))
        except ValueError:
            raise ConfigError(f"RATE_LIMIT must be an integer, got {env.get('RATE_LIMIT')!r}") from None
        return cls(
            model_provider=env.get("MODEL_PROVIDER", "openai").strip().lower(),
            llm_model=env.get("LLM_MODEL", "gpt-4-turbo"),
            openai_api_key=env.get("OPENAI_API_KEY", ""),
            groq_api_key=env.get("GROQ_API_KEY", ""),
            database_path=env.get("DATABASE_PATH", "./data/agent_forum.db"),
            rate_limit=rate_limit,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def provider(self) -> ModelProvider:
        try:
            return ModelProvider(self.model_provider)
        except ValueError:
            raise ConfigError(f"Unsupported model provider: {self.model_provider}") from None

    @property
    def api_key(self) -> str:
        return self.groq_api_key if self.provider is ModelProvider.GROQ else self.openai_api_key

    def validate(self) -> "ForumConfig":
        provider = self.provider
        if not self.api_key:
            key_name = "GROQ_API_KEY" if provider is ModelProvider.GROQ else "OPENAI_API_KEY"
            raise ConfigError(f"{key_name} is required in .env file when using the {provider.value} provider")
        if self.rate_limit < 1:
            raise ConfigError(f"RATE_LIMIT must be >= 1, got {self.rate_limit}")
        db_dir = Path(self.database_path).parent
        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Error creating database directory {db_dir}: {e}") from e
        return self
