"""Progress event models for the streaming protocol"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class EventType(Enum):
    """Closed set of progress event types"""
    PROGRESS = "progress"
    OUTLINE = "outline"
    SCRIPT = "script"
    IMAGE = "image"
    VIDEO_SEGMENT = "video_segment"
    VIDEO_FINAL = "video_final"
    ERROR = "error"
    COMPLETE = "complete"

    @property
    def is_terminal(self) -> bool:
        return self in (EventType.ERROR, EventType.COMPLETE)


@dataclass(frozen=True)
class ProgressEvent:
    """
    One immutable record on the progress stream.

    Attributes:
        type: Event type
        step: Short name of the pipeline step
        message: Human-readable status
        progress: 0-100, non-decreasing within a run
        data: Optional structured payload
    """
    type: EventType
    step: str
    message: str
    progress: float
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.type.value,
            "step": self.step,
            "message": self.message,
            "progress": self.progress,
        }
        if self.data is not None:
            payload["data"] = self.data
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def to_sse(self) -> str:
        """Format as a server-sent event frame."""
        return f"data: {self.to_json()}\n\n"

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ProgressEvent":
        return cls(
            type=EventType(payload["type"]),
            step=payload.get("step", ""),
            message=payload.get("message", ""),
            progress=payload.get("progress", 0),
            data=payload.get("data"),
        )
