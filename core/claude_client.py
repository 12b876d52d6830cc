"""
Claude Client Wrapper - Clean abstraction over the Anthropic SDK
Handles message assembly, streaming and text extraction
"""

import logging
import os
from typing import AsyncIterator, Optional

import anthropic


logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class ClaudeClient:
    """
    Wrapper around the async Anthropic client that provides a clean interface.

    `query` returns the whole response, `stream` yields text deltas as they
    arrive. Both accept an optional system prompt.
    """

    def __init__(
        self,
        debug: bool = False,
        model: str = DEFAULT_MODEL,
        api_key: Optional[str] = None,
        max_tokens: int = 4096
    ):
        self.debug = debug
        self.model = model
        self.max_tokens = max_tokens
        self._api_key = api_key
        self._client: Optional[anthropic.AsyncAnthropic] = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            api_key = self._api_key or os.getenv("ANTHROPIC_API_KEY")
            if not api_key:
                raise ValueError(
                    "ANTHROPIC_API_KEY environment variable not set. "
                    "For runs without API keys, use --mock"
                )
            self._client = anthropic.AsyncAnthropic(api_key=api_key)
        return self._client

    def _request(self, prompt: str, system_prompt: Optional[str], temperature: float) -> dict:
        request = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            request["system"] = system_prompt
        return request

    async def query(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7
    ) -> str:
        """
        Send a query to Claude and get back clean text response

        Args:
            prompt: The user prompt
            system_prompt: Optional system prompt
            temperature: Sampling temperature

        Returns:
            Clean text response from Claude
        """
        if self.debug:
            logger.debug("Sending prompt (%d chars)", len(prompt))

        response = await self._get_client().messages.create(
            **self._request(prompt, system_prompt, temperature)
        )
        response_text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

        if self.debug:
            logger.debug("Received response (%d chars): %s", len(response_text), response_text[:500])

        return response_text.strip()

    async def stream(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.8
    ) -> AsyncIterator[str]:
        """Yield response text chunks as they are generated."""
        if self.debug:
            logger.debug("Streaming prompt (%d chars)", len(prompt))

        async with self._get_client().messages.stream(
            **self._request(prompt, system_prompt, temperature)
        ) as stream:
            async for text in stream.text_stream:
                if text:
                    yield text
