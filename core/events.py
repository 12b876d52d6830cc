"""
Progress event channel.

One writer (the pipeline), one reader (the caller). Emission never blocks and
never raises: once the channel is closed every emit is a silent no-op. The
channel closes exactly once, either through a terminal event (complete/error)
or through caller cancellation.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from core.errors import PipelineError
from core.models.events import EventType, ProgressEvent


logger = logging.getLogger(__name__)

_CLOSED = None


class RunCancelled(Exception):
    """Raised inside the pipeline once caller cancellation has been observed."""
    pass


class ProgressChannel:
    """
    Ordered, push-style channel from the pipeline to one listener.

    Progress values are clamped so they never regress within a run.
    """

    def __init__(self, run_id: Optional[str] = None):
        self.run_id = run_id
        self._queue: "asyncio.Queue[Optional[ProgressEvent]]" = asyncio.Queue()
        self._closed = False
        self._cancelled = False
        self._last_progress = 0.0
        self._terminal: Optional[ProgressEvent] = None
        self.history: List[ProgressEvent] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def last_progress(self) -> float:
        return self._last_progress

    @property
    def terminal_event(self) -> Optional[ProgressEvent]:
        return self._terminal

    def emit(
        self,
        type: EventType,
        step: str,
        message: str,
        progress: float,
        data: Optional[Dict[str, Any]] = None
    ) -> Optional[ProgressEvent]:
        """
        Push an event. Fire-and-forget.

        Returns:
            The event as delivered (with clamped progress), or None when the
            channel was already closed
        """
        if self._closed:
            logger.debug("Channel closed, dropping %s event: %s", type.value, message)
            return None

        progress = max(float(progress), self._last_progress)
        event = ProgressEvent(type=type, step=step, message=message, progress=progress, data=data)
        self._last_progress = progress
        self.history.append(event)
        self._queue.put_nowait(event)

        if type.is_terminal:
            self._terminal = event
            self.close()
        return event

    def progress(self, step: str, message: str, progress: float, data: Optional[Dict[str, Any]] = None):
        return self.emit(EventType.PROGRESS, step, message, progress, data)

    def complete(self, message: str, data: Optional[Dict[str, Any]] = None, step: str = "Done"):
        return self.emit(EventType.COMPLETE, step, message, 100, data)

    def error(self, message: str, step: str = "Error", data: Optional[Dict[str, Any]] = None):
        return self.emit(EventType.ERROR, step, message, self._last_progress, data)

    def fail(self, exc: PipelineError, step: Optional[str] = None):
        """Terminal error event built from a pipeline error"""
        return self.error(exc.message, step=exc.step or step or "Error", data=exc.to_event_data())

    def close(self) -> None:
        """Idempotent close. Wakes the reader."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def cancel(self) -> None:
        """Caller went away. No further events are delivered."""
        if self._cancelled:
            return
        logger.info("Run %s cancelled by caller", self.run_id or "")
        self._cancelled = True
        self.close()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RunCancelled(self.run_id or "")

    async def get(self, timeout: Optional[float] = None) -> Optional[ProgressEvent]:
        """
        Next event, or None when the channel has closed and drained.

        Raises:
            asyncio.TimeoutError: No event arrived within timeout
        """
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout=timeout)

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        while True:
            event = await self._queue.get()
            if event is _CLOSED:
                return
            yield event
