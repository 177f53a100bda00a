"""OpenAI LLM client wrapper for the drafting stage.

This module encapsulates all interaction with the OpenAI API:
- Client initialization and configuration
- Chat completion requests in JSON mode
- Retry logic for transient failures and unparseable output
- Response parsing and validation into DocsDraft

All LLM calls go through this module so the provider can be swapped
without touching the pipeline.
"""

from __future__ import annotations

import json

from openai import APIError, AsyncOpenAI
from pydantic import BaseModel
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from docs_sync.logging_config import get_logger
from docs_sync.schemas import DocsDraft

logger = get_logger(__name__)


class LLMConfig(BaseModel):
    """Configuration for the LLM client.

    Attributes:
        model: OpenAI model identifier (e.g., "gpt-4o-mini")
        temperature: Sampling temperature
        max_tokens: Maximum tokens in the response
        api_key: OpenAI API key (loaded from env if not provided)
        max_attempts: Attempts per draft before the error is raised
        retry_min_wait: Lower bound (seconds) of the exponential backoff
        retry_max_wait: Upper bound (seconds) of the exponential backoff
        timeout: Request timeout in seconds
    """

    model: str = "gpt-4o-mini"
    temperature: float = 0.2
    max_tokens: int = 8192
    api_key: str | None = None
    max_attempts: int = 3
    retry_min_wait: float = 2.0
    retry_max_wait: float = 30.0
    timeout: float = 120.0


class LLMClient:
    """Async wrapper around the OpenAI API for structured docs drafts.

    Usage:
        client = LLMClient(config=LLMConfig())
        draft = await client.draft_docs(system_prompt, user_prompt)
    """

    def __init__(self, config: LLMConfig | None = None) -> None:
        self.config = config or LLMConfig()
        # If api_key is None the SDK reads OPENAI_API_KEY itself
        self._client = AsyncOpenAI(
            api_key=self.config.api_key,
            timeout=self.config.timeout,
        )

    async def draft_docs(self, system_prompt: str, user_prompt: str) -> DocsDraft:
        """Ask the LLM for a docs draft, retrying per the configured policy.

        Raises:
            ValueError: If every attempt returned output that isn't a valid DocsDraft
            openai.APIError: If the OpenAI API call keeps failing
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self.config.retry_min_wait,
                max=self.config.retry_max_wait,
            ),
            retry=retry_if_exception_type((ValueError, APIError)),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                n = attempt.retry_state.attempt_number
                if n > 1:
                    logger.warning("draft_retry", attempt=n, model=self.config.model)
                return await self._complete(system_prompt, user_prompt)
        raise AssertionError("unreachable")  # pragma: no cover

    async def _complete(self, system_prompt: str, user_prompt: str) -> DocsDraft:
        response = await self._client.chat.completions.create(
            model=self.config.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content or ""
        return parse_draft(content)


def parse_draft(content: str) -> DocsDraft:
    """Parse raw LLM output into a DocsDraft.

    Raises:
        ValueError: If the content is not JSON or doesn't match the schema
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ValueError(f"LLM returned invalid JSON: {exc}. Raw: {content[:500]}") from exc

    try:
        return DocsDraft.model_validate(data)
    except Exception as exc:
        raise ValueError(f"LLM output failed validation: {exc}") from exc
