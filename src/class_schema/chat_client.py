"""
Chat-completion client over the openai SDK.

OpenAI, Gemini (through its OpenAI-compatible endpoint) and OpenRouter are
reached with the same client by switching the base URL. The client returns
the raw text of the first choice; turning it into objects is the job of
SchemaLibrary.instantiate.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from openai import AsyncOpenAI, OpenAI

from .config import PROVIDERS, ChatSettings

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are an expert filling json objects according to the provided json schema."

CompletionCallback = Callable[[str], Union[None, Awaitable[None]]]


class ChatCompletionError(Exception):
    """The provider returned no usable completion."""

    def __init__(self, message: str, finish_reason: Optional[str] = None) -> None:
        super().__init__(message)
        self.finish_reason = finish_reason


def build_messages(user_prompt: str, system_prompt: Optional[str] = None) -> List[Dict[str, str]]:
    if not user_prompt:
        raise ValueError("user_prompt is required")
    return [
        {"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


class ChatCompletionClient:

    def __init__(
        self,
        provider: str = "openai",
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: Optional[float] = None,
        max_completion_tokens: Optional[int] = None,
        settings: Optional[ChatSettings] = None,
    ) -> None:
        provider = provider.lower()
        if provider not in PROVIDERS:
            raise ValueError(f"Unknown chat provider '{provider}'. Expected one of: {', '.join(PROVIDERS)}")
        if settings is None or settings.provider != provider:
            settings = ChatSettings.from_env(provider)

        self.__provider = provider
        self.__model = model or settings.model
        self.__temperature = temperature if temperature is not None else settings.temperature
        self.__max_completion_tokens = max_completion_tokens or settings.max_completion_tokens
        self.__api_key = api_key or settings.api_key
        self.__base_url = base_url or settings.base_url
        self.__client: Optional[OpenAI] = None
        self.__async_client: Optional[AsyncOpenAI] = None

    @classmethod
    def from_settings(cls, settings: ChatSettings) -> "ChatCompletionClient":
        return cls(settings.provider, settings=settings)

    @property
    def provider(self) -> str:
        return self.__provider

    @property
    def model(self) -> str:
        return self.__model

    def _client(self) -> OpenAI:
        if self.__client is None:
            self.__client = OpenAI(api_key=self.__api_key, base_url=self.__base_url)
        return self.__client

    def _async_client(self) -> AsyncOpenAI:
        if self.__async_client is None:
            self.__async_client = AsyncOpenAI(api_key=self.__api_key, base_url=self.__base_url)
        return self.__async_client

    def _request_args(self, messages: List[Dict[str, str]], response_format: Union[Dict[str, Any], str, None]) -> Dict[str, Any]:
        if not messages:
            raise ValueError("messages are required")
        if isinstance(response_format, str):
            response_format = {"type": response_format}

        args: Dict[str, Any] = {
            "model": self.__model,
            "messages": messages,
            "temperature": self.__temperature,
        }
        # Gemini's compatible endpoint expects max_tokens
        if self.__provider == "gemini":
            args["max_tokens"] = self.__max_completion_tokens
        else:
            args["max_completion_tokens"] = self.__max_completion_tokens
        if response_format is not None:
            args["response_format"] = response_format

        logger.info(
            f"Calling {self.__provider} model '{self.__model}', temperature '{self.__temperature}', "
            f"max_completion_tokens '{self.__max_completion_tokens}'"
        )
        logger.debug(f"Messages: {messages}")
        logger.debug(f"Response format: {response_format}")
        return args

    def _first_choice_text(self, response: Any) -> str:
        if not response.choices:
            raise ChatCompletionError(f"{self.__provider} response has no choices")
        choice = response.choices[0]
        if choice.finish_reason != "stop":
            logger.error(f"{self.__provider} response finished with finish_reason: {choice.finish_reason}")
            raise ChatCompletionError(
                f"{self.__provider} response finished with finish_reason: {choice.finish_reason}",
                finish_reason=choice.finish_reason,
            )
        content = (choice.message.content or "").strip()
        logger.info(f"{self.__provider} done")
        logger.debug(f"Response content: {content}")
        return content

    def complete(self, messages: List[Dict[str, str]], response_format: Union[Dict[str, Any], str, None] = None) -> str:
        """Send one chat completion request and return the text of the first choice.

        Raises:
            ChatCompletionError: the first choice did not finish with "stop".
        """
        response = self._client().chat.completions.create(**self._request_args(messages, response_format))
        return self._first_choice_text(response)

    async def acomplete(
        self,
        messages: List[Dict[str, str]],
        response_format: Union[Dict[str, Any], str, None] = None,
        callback: Optional[CompletionCallback] = None,
    ) -> str:
        """Async variant of complete; callback, if given, receives the text (and may be a coroutine function)."""
        response = await self._async_client().chat.completions.create(**self._request_args(messages, response_format))
        text = self._first_choice_text(response)
        if callback is not None:
            result = callback(text)
            if inspect.isawaitable(result):
                await result
        return text
