"""Unit tests for ScriptWriter"""

import pytest

from core.script_writer import (
    EXPAND_SYSTEM_PROMPT,
    OUTLINE_SYSTEM_PROMPT,
    ScriptWriter,
)
from tests.mocks.claude_client import MockClaudeClient


class TestScriptWriter:
    """Outline, streamed script and expansion"""

    @pytest.mark.asyncio
    async def test_outline(self, mock_claude_client):
        writer = ScriptWriter(mock_claude_client)
        outline = await writer.write_outline("Atomic Habits")

        assert outline == MockClaudeClient.DEFAULT_OUTLINE
        call = mock_claude_client.calls[0]
        assert '"Atomic Habits"' in call["prompt"]
        assert call["system_prompt"] == OUTLINE_SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_stream_script_yields_chunks(self):
        client = MockClaudeClient(script="a" * 45, chunk_size=20)
        writer = ScriptWriter(client)

        chunks = [c async for c in writer.stream_script("Dune", "[Background] Arrakis")]

        assert [len(c) for c in chunks] == [20, 20, 5]
        assert "[Background] Arrakis" in client.calls[0]["system_prompt"]

    def test_needs_expansion(self):
        writer = ScriptWriter(MockClaudeClient(), min_chars=10)
        assert writer.needs_expansion("short")
        assert not writer.needs_expansion("long enough script")

    @pytest.mark.asyncio
    async def test_expand(self, mock_claude_client):
        writer = ScriptWriter(mock_claude_client)
        expanded = await writer.expand_script("Tiny script.")
        assert expanded == "Tiny script.Tiny script."
        assert mock_claude_client.calls[0]["system_prompt"] == EXPAND_SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_empty_expansion_keeps_original(self, mock_claude_client):
        mock_claude_client.add_response("   ")
        writer = ScriptWriter(mock_claude_client)
        assert await writer.expand_script("Tiny script.") == "Tiny script."
