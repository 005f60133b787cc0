'''
 Environment configuration.
 This module must not import other class_schema modules that configure logging.
'''
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "openai"

# Model, API key and endpoint settings per chat provider
PROVIDERS: Dict[str, Dict[str, Optional[str]]] = {
    "openai": {
        "model_env": "OPENAI_MODEL",
        "default_model": "gpt-4o-mini-2024-07-18",
        "api_key_env": "OPENAI_API_KEY",
        "base_url_env": "OPENAI_BASE_URL",
        "default_base_url": None,
    },
    "gemini": {
        "model_env": "GEMINI_MODEL",
        "default_model": "gemini-2.0-flash",
        "api_key_env": "GEMINI_API_KEY",
        "base_url_env": "GEMINI_BASE_URL",
        "default_base_url": "https://generativelanguage.googleapis.com/v1beta/openai/",
    },
    "openrouter": {
        "model_env": "OPENROUTER_MODEL",
        "default_model": "openai/gpt-4o-mini",
        "api_key_env": "OPENROUTER_API_KEY",
        "base_url_env": "OPENROUTER_BASE_URL",
        "default_base_url": "https://openrouter.ai/api/v1",
    },
}


class SchemaEnv:
    __env_loaded = False

    @staticmethod
    def load_env(env_file: Optional[str] = None, force: bool = False) -> bool:
        """Load environment variables from env_file (default: $ENV_FILE or ./.env) once.

        A missing file is not an error: the process environment is used as is.
        Returns True if a file was loaded by this call.
        """
        if SchemaEnv.__env_loaded and not force:
            return False
        if not env_file:
            env_file = os.getenv("ENV_FILE", "./.env")
        SchemaEnv.__env_loaded = True
        if not os.path.isfile(env_file):
            logger.debug("No %s file found, using process environment", env_file)
            return False
        logger.debug("Loading environment variables from %s", env_file)
        return load_dotenv(env_file)

    @staticmethod
    def is_loaded() -> bool:
        return SchemaEnv.__env_loaded


def load_env(env_file: Optional[str] = None, force: bool = False) -> bool:
    return SchemaEnv.load_env(env_file, force)


@dataclass(frozen=True)
class ChatSettings:
    provider: str = DEFAULT_PROVIDER
    model: str = PROVIDERS[DEFAULT_PROVIDER]["default_model"]
    temperature: float = 0.2
    max_completion_tokens: int = 4096
    api_key: Optional[str] = None
    base_url: Optional[str] = None

    @classmethod
    def from_env(cls, provider: Optional[str] = None) -> "ChatSettings":
        SchemaEnv.load_env()
        provider = (provider or os.getenv("CHAT_PROVIDER", DEFAULT_PROVIDER)).lower()
        if provider not in PROVIDERS:
            raise ValueError(f"Unknown chat provider '{provider}'. Expected one of: {', '.join(PROVIDERS)}")
        defaults = PROVIDERS[provider]
        return cls(
            provider=provider,
            model=os.getenv(defaults["model_env"], defaults["default_model"]),
            temperature=float(os.getenv("OPENAI_TEMPERATURE", 0.2)),
            max_completion_tokens=int(os.getenv("OPENAI_MAX_COMPLETION_TOKENS", 4096)),
            api_key=os.getenv(defaults["api_key_env"]),
            base_url=os.getenv(defaults["base_url_env"], defaults["default_base_url"]),
        )
