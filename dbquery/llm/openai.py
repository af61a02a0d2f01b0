"""
OpenAI LLM Provider

BaseLLMProvider implementation for any OpenAI-compatible chat completions
endpoint (OpenAI itself, or a gateway reachable at a custom base URL).
"""

import logging

import openai
from openai import AsyncOpenAI

from dbquery.llm.base import BaseLLMProvider
from dbquery.llm.models import LLMRequest, LLMResponse, LLMUsage

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAIProvider(BaseLLMProvider):
    """
    OpenAI-compatible provider using the official async SDK.

    Requests are never retried: a failed call surfaces immediately.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = DEFAULT_BASE_URL,
        temperature: float = 0.0,
        max_tokens: int = 500,
        timeout: float = 30,
    ):
        super().__init__(
            provider_name="openai",
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )

        self.model = model
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url,
            timeout=float(timeout),
            max_retries=0,
        )

        logger.info(f"OpenAI provider initialized with model: {model} ({self.base_url})")

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Generate a completion.

        Raises:
            openai.APIError: On API errors
            openai.APITimeoutError: On timeout
        """
        request = self._apply_defaults(request)
        self._log_request(request)

        try:
            messages = [{"role": msg.role, "content": msg.content} for msg in request.messages]

            response = await self.client.chat.completions.create(
                model=request.model or self.model,
                messages=messages,
                temperature=request.temperature,
                max_tokens=request.max_tokens,
            )
        except openai.APITimeoutError as e:
            logger.error(f"OpenAI API timeout: {e}")
            raise
        except openai.APIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise

        if not response.choices:
            raise ValueError("LLM response has no choices")

        usage = LLMUsage()
        if response.usage is not None:
            usage = LLMUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        choice = response.choices[0]
        llm_response = LLMResponse(
            content=choice.message.content or "",
            model=response.model or request.model or self.model,
            usage=usage,
            finish_reason=self._map_finish_reason(choice.finish_reason),
            provider="openai",
            metadata={"id": response.id},
        )

        self._log_response(llm_response)
        return llm_response

    def _map_finish_reason(self, reason: str | None) -> str:
        """Map OpenAI finish reason to our standard format."""
        if reason in ("stop", "length", "content_filter"):
            return reason
        return "stop"
