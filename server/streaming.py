"""
Server-Sent Events plumbing for pipeline runs.

The run executes as its own task and writes into a ProgressChannel; the
response body drains the channel. A disconnected client cancels the channel,
which the run observes before its next external call.
"""

import asyncio
import logging
from typing import AsyncGenerator, Awaitable, Set

from fastapi import Request
from fastapi.responses import StreamingResponse

from core.events import ProgressChannel


logger = logging.getLogger(__name__)

DISCONNECT_POLL_INTERVAL = 0.5

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

# Runs keep going after their listener leaves, until they observe cancellation
_active_runs: Set[asyncio.Task] = set()


async def event_generator(
    request: Request,
    channel: ProgressChannel,
    run: Awaitable
) -> AsyncGenerator[str, None]:
    """Yield SSE frames until the terminal event or a client disconnect."""
    task = asyncio.ensure_future(run)
    _active_runs.add(task)
    task.add_done_callback(_active_runs.discard)

    try:
        while True:
            if await request.is_disconnected():
                logger.info("Client disconnected from run %s", channel.run_id)
                channel.cancel()
                break
            try:
                event = await channel.get(timeout=DISCONNECT_POLL_INTERVAL)
            except asyncio.TimeoutError:
                continue
            if event is None:
                break
            yield event.to_sse()
    finally:
        if not channel.closed:
            channel.cancel()


def sse_response(request: Request, channel: ProgressChannel, run: Awaitable) -> StreamingResponse:
    return StreamingResponse(
        event_generator(request, channel, run),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
