"""
Chat completion client wrapper.

Sends a message list to an OpenAI-compatible chat endpoint and returns the
reply text with its exact token usage. Transient failures are retried with
exponential backoff; everything else fails loudly.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import openai
from openai import OpenAI

from ..core.errors import ChatClientError
from ..core.pricing import DEFAULT_MODEL_NAME
from ..core.token_counter import TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_TIMEOUT_SECONDS = 60.0
NETWORK_RETRY_DELAY_SECONDS = 2.0


@dataclass(frozen=True)
class ChatResponse:
    """Normalized reply from the chat API."""
    content: str
    usage: TokenUsage
    model: str
    id: Optional[str] = None


class ChatClient:
    """OpenAI SDK wrapper with bounded exponential backoff.

    The SDK's own retries are disabled so that the retry policy lives in
    one place.
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL_NAME,
        max_tokens: int = 1024,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[Any] = None,
    ):
        """Initialize the chat client.

        Args:
            model: Model name (required)
            max_tokens: Default completion token limit
            max_retries: Total attempts for retryable failures
            base_url: Optional OpenAI-compatible endpoint
            api_key: API key; the SDK reads OPENAI_API_KEY when omitted
            timeout: Request timeout in seconds
            client: Pre-built SDK client, mainly for tests

        Raises:
            ValueError: If model is missing/empty or limits are not positive
        """
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")
        if max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")

        self.model = model
        self.max_tokens = max_tokens
        self.max_retries = max_retries
        self.base_url = base_url

        if client is None:
            client_kwargs: Dict[str, Any] = {"timeout": timeout, "max_retries": 0}
            if api_key:
                client_kwargs["api_key"] = api_key
            if base_url:
                client_kwargs["base_url"] = base_url
                logger.info("Using custom API endpoint: %s", base_url)
            try:
                client = OpenAI(**client_kwargs)
            except openai.OpenAIError as e:
                # raised when no API key is configured
                raise ChatClientError(
                    "API key not found, set OPENAI_API_KEY",
                    code=ChatClientError.INVALID_API_KEY,
                    details={"original_error": str(e)},
                )
        self.client = client

        logger.info("Chat client initialized with model %s", self.model)

    def send_message(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> ChatResponse:
        """Send a chat completion request.

        Args:
            messages: Message dicts, system prompt first when present
            model: Override the default model
            max_tokens: Override the default completion limit
            temperature: Sampling temperature (optional)

        Returns:
            ChatResponse with reply text and token usage

        Raises:
            ValueError: If messages is empty
            ChatClientError: When the call fails after any retries
        """
        if not messages:
            raise ValueError("messages is required and cannot be empty")

        params: Dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "max_tokens": max_tokens or self.max_tokens,
        }
        if temperature is not None:
            params["temperature"] = temperature

        return self._request_with_retry(params)

    def set_model(self, model: str) -> None:
        self.model = model
        logger.info("Model switched to %s", model)

    def set_max_tokens(self, max_tokens: int) -> None:
        self.max_tokens = max_tokens
        logger.info("Max tokens set to %d", max_tokens)

    def _request_with_retry(self, params: Dict[str, Any]) -> ChatResponse:
        attempt = 1
        while True:
            if attempt > 1:
                logger.info("Calling chat API (retry %d/%d)", attempt, self.max_retries)
            else:
                logger.debug("Calling chat API")

            try:
                response = self.client.chat.completions.create(**params)
            except openai.RateLimitError as e:
                if attempt >= self.max_retries:
                    raise ChatClientError(
                        "Too many requests, please try again later",
                        code=ChatClientError.RATE_LIMIT,
                        details={"original_error": str(e)},
                    )
                delay = 2 ** attempt
                logger.warning("Rate limited, retrying in %d seconds", delay)
                time.sleep(delay)
            except openai.AuthenticationError as e:
                raise ChatClientError(
                    "Invalid API key, please check your configuration",
                    code=ChatClientError.INVALID_API_KEY,
                    details={"original_error": str(e)},
                )
            except openai.BadRequestError as e:
                raise ChatClientError(
                    "Invalid request parameters",
                    code=ChatClientError.INVALID_REQUEST,
                    details={"original_error": str(e)},
                )
            except openai.APIConnectionError as e:
                # APITimeoutError is a subclass
                if attempt >= self.max_retries:
                    raise ChatClientError(
                        "Network connection failed, please check your network",
                        code=ChatClientError.NETWORK_ERROR,
                        details={"original_error": str(e)},
                    )
                logger.warning("Network error, retrying in %.0f seconds",
                               NETWORK_RETRY_DELAY_SECONDS)
                time.sleep(NETWORK_RETRY_DELAY_SECONDS)
            except openai.APIError as e:
                raise ChatClientError(
                    str(e) or "Unknown API error",
                    code=ChatClientError.UNKNOWN_ERROR,
                    details={"original_error": str(e),
                             "status": getattr(e, "status_code", None)},
                )
            else:
                return self._normalize(response)

            attempt += 1

    @staticmethod
    def _normalize(response: Any) -> ChatResponse:
        usage = response.usage
        if not usage:
            raise ChatClientError(
                "Chat response missing usage information",
                code=ChatClientError.UNKNOWN_ERROR,
            )

        return ChatResponse(
            content=response.choices[0].message.content or "",
            usage=TokenUsage(
                input_tokens=usage.prompt_tokens,
                output_tokens=usage.completion_tokens,
            ),
            model=response.model,
            id=response.id,
        )
