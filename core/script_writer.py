"""
ScriptWriter - Outline and narration script for a book explainer

Two passes against the text generator: a structured outline, then a spoken
narration script streamed chunk by chunk. Scripts that come back too short
are sent once more for expansion.
"""

from typing import AsyncIterator, Optional, Protocol


MIN_SCRIPT_CHARS = 400


class TextGenerator(Protocol):
    """What ScriptWriter needs from a text generator (ClaudeClient or a mock)"""

    async def query(self, prompt: str, system_prompt: Optional[str] = None, temperature: float = 0.7) -> str:
        ...

    def stream(self, prompt: str, system_prompt: Optional[str] = None, temperature: float = 0.8) -> AsyncIterator[str]:
        ...


OUTLINE_SYSTEM_PROMPT = """You are an experienced book reviewer. Produce a detailed outline of the book the user names.

Requirements:
1. Write in the language of the book title.
2. Cover these parts:
   - Background: author, publication date, historical context
   - Core theme: what the book is mainly about
   - Key ideas: the 3-5 most valuable points
   - Characters / story: main characters or storyline
   - Value: what the reader takes away
3. Mark each part with brackets, e.g. [Background] ...
4. Be accurate; avoid made-up facts."""

SCRIPT_SYSTEM_PROMPT = """You are a popular-science creator who shares books in a light, witty voice.

Requirements:
1. Tone: casual and conversational, like talking to a friend, with everyday examples.
2. Opening: hook the listener with a question, a counter-intuitive claim or a familiar pain point.
3. Body: introduce the book, explain its 3-5 most valuable ideas with vivid examples, share what it made you think.
4. Ending: a strong summary or an open question inviting comments.
5. Length: 500-800 characters, about 3-5 minutes of speech.
6. Output only the spoken text: no headings, no brackets, no section labels.
7. Use exclamation and question marks naturally; the text will be read aloud.
8. Write in the language of the book title.

Outline for reference:
{outline}"""

EXPAND_SYSTEM_PROMPT = (
    "You are an editor who expands copy. Keep the original style, tone and structure; "
    "add details and examples to make it richer."
)


class ScriptWriter:
    """
    Writes the outline and narration script for one book.

    Args:
        client: Text generator exposing `query` and `stream`
        min_chars: Scripts shorter than this are expanded once
    """

    def __init__(self, client: TextGenerator, min_chars: int = MIN_SCRIPT_CHARS):
        self.client = client
        self.min_chars = min_chars

    async def write_outline(self, book_name: str) -> str:
        return await self.client.query(
            f"Write a detailed outline of the book \"{book_name}\".",
            system_prompt=OUTLINE_SYSTEM_PROMPT,
            temperature=0.7
        )

    async def stream_script(self, book_name: str, outline: str) -> AsyncIterator[str]:
        """Yield the narration script in chunks as the generator produces it."""
        prompt = (
            f"Write the narration script sharing the book \"{book_name}\". "
            "Output only the text to be spoken, with natural changes of tone."
        )
        async for chunk in self.client.stream(
            prompt,
            system_prompt=SCRIPT_SYSTEM_PROMPT.format(outline=outline),
            temperature=0.8
        ):
            yield chunk

    def needs_expansion(self, script: str) -> bool:
        return len(script) < self.min_chars

    async def expand_script(self, script: str) -> str:
        expanded = await self.client.query(
            f"This script is a bit short, please expand it to 500-800 characters "
            f"keeping its style and structure. Script: {script}",
            system_prompt=EXPAND_SYSTEM_PROMPT,
            temperature=0.8
        )
        return expanded.strip() or script
