"""Thin wrapper around the OpenAI-compatible chat completion endpoint.

Every extraction, search and selection step goes through ``LLMClient.complete``
so that timeouts, transient-error retries and logging live in one place.
"""

import asyncio
from typing import Any, Dict, Optional

from openai import OpenAI, APIConnectionError, APITimeoutError, RateLimitError

from ..core.config import settings
from ..core.exceptions import ExtractionError
from ..core.logging import logger
from ..utils.retry import retry_async


def _is_transient(exc: BaseException) -> bool:
    # A timeout fails the job on the first occurrence
    if isinstance(exc, APITimeoutError):
        return False
    return isinstance(exc, (APIConnectionError, RateLimitError))


class LLMClient:
    """Chat-completion client configured from settings."""

    def __init__(
        self,
        base_url: str = None,
        api_key: str = None,
        model: str = None,
        timeout: float = None,
        client: Optional[OpenAI] = None,
    ):
        self.model = model or settings.LLM_MODEL_NAME
        self.timeout = timeout or settings.LLM_TIMEOUT
        self.client = client or OpenAI(
            base_url=base_url or settings.LLM_BASE_URL,
            api_key=api_key or settings.LLM_API_KEY,
            timeout=self.timeout,
            max_retries=0,
        )
        logger.info(f"LLMClient initialized with model: {self.model}")

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = None,
        temperature: float = None,
        json_mode: bool = False,
        web_search: bool = False,
    ) -> str:
        """
        Run one chat completion and return the reply text.

        Args:
            system_prompt: Instruction message
            user_prompt: Bounded user content
            max_tokens: Completion budget
            temperature: Sampling temperature
            json_mode: Request ``response_format={"type": "json_object"}``
            web_search: Ask providers that support it to ground on web search

        Returns:
            The ``content`` of the first choice ("" when missing)

        Raises:
            ExtractionError: on timeout or any API failure after retries
        """
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": settings.LLM_TEMPERATURE if temperature is None else temperature,
            "max_tokens": max_tokens or settings.LLM_MAX_TOKENS,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if web_search and settings.LLM_WEB_SEARCH:
            kwargs["extra_body"] = {"web_search": True}

        try:
            response = await self._create(**kwargs)
        except APITimeoutError as e:
            logger.error(f"LLM call timed out after {self.timeout}s")
            raise ExtractionError(f"LLM request timed out after {self.timeout}s") from e
        except Exception as e:
            logger.error(f"LLM call failed: {e}")
            raise ExtractionError(f"LLM request failed: {e}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    @retry_async(max_attempts=3, min_wait=1.0, max_wait=10.0, should_retry=_is_transient)
    async def _create(self, **kwargs):
        # The OpenAI client is synchronous; keep the event loop free
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: self.client.chat.completions.create(**kwargs),
        )


# Singleton instance
_llm_instance: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get or create the singleton LLMClient instance."""
    global _llm_instance
    if _llm_instance is None:
        _llm_instance = LLMClient()
    return _llm_instance
