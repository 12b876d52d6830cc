"""Mock Claude client for testing"""

import asyncio
from typing import Dict, List, Optional


class MockClaudeClient:
    """
    Mock ClaudeClient that returns canned outline/script responses without
    hitting the API. Queued responses take precedence for `query`; `stream`
    yields the configured script in fixed-size chunks.
    """

    DEFAULT_OUTLINE = "[Background] A classic.\n[Core theme] Change.\n[Key ideas] Habits.\n[Value] Insight."

    def __init__(self, script: str = "", chunk_size: int = 20, debug: bool = False):
        self.debug = debug
        self.script = script
        self.chunk_size = chunk_size
        self.calls: List[Dict] = []  # Track calls for test assertions
        self.responses: List[str] = []  # Queue of responses to return
        self.response_index: int = 0  # Current response index

    def add_response(self, response: str):
        """Add a response to the queue"""
        self.responses.append(response)

    async def query(self, prompt: str, system_prompt: Optional[str] = None, temperature: float = 0.7) -> str:
        self.calls.append({"method": "query", "prompt": prompt, "system_prompt": system_prompt})

        if self.responses and self.response_index < len(self.responses):
            response = self.responses[self.response_index]
            self.response_index += 1
            return response

        if "expand" in prompt.lower():
            return prompt.split("Script: ", 1)[-1] * 2
        return self.DEFAULT_OUTLINE

    async def stream(self, prompt: str, system_prompt: Optional[str] = None, temperature: float = 0.8):
        self.calls.append({"method": "stream", "prompt": prompt, "system_prompt": system_prompt})
        for start in range(0, len(self.script), self.chunk_size):
            await asyncio.sleep(0)
            yield self.script[start:start + self.chunk_size]

    def get_call_count(self) -> int:
        return len(self.calls)

    def reset(self):
        """Reset mock state"""
        self.calls.clear()
        self.responses.clear()
        self.response_index = 0
