"""Rich rendering of pipeline progress events"""

from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn, TimeElapsedColumn
from rich.table import Table

from cli.theme import get_theme
from core.events import ProgressChannel
from core.models.events import EventType, ProgressEvent


console = Console()

SCRIPT_PREVIEW_CHARS = 400


def make_progress() -> Progress:
    t = get_theme()
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(complete_style=t.progress_complete, pulse_style=t.progress_active),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
        transient=False,
    )


def print_segment(event: ProgressEvent, progress: Optional[Progress] = None):
    """One line per resolved segment"""
    t = get_theme()
    data = event.data or {}
    index = data.get("index", 0)
    total = data.get("total", "?")
    sentence = data.get("sentence", "")
    if len(sentence) > 40:
        sentence = sentence[:40] + "..."

    if event.type == EventType.VIDEO_SEGMENT:
        label = t.segment_markup("video")
    elif data.get("imageUrl") or data.get("audioUrl"):
        label = t.segment_markup("image+audio")
    else:
        label = t.segment_markup("failed")

    target = progress.console if progress is not None else console
    target.print(f"   {index + 1}/{total} {label} [{t.dimmed}]{data.get('duration', 0):.1f}s[/{t.dimmed}] {sentence}")


def print_script(content: str, title: str = "Script"):
    t = get_theme()
    preview = content if len(content) <= SCRIPT_PREVIEW_CHARS else content[:SCRIPT_PREVIEW_CHARS] + "..."
    console.print(Panel(preview, title=title, border_style=t.script_border, box=box.ROUNDED))


def print_final(data: dict):
    """Summary table for the video_final payload"""
    t = get_theme()
    table = Table(title="Result", box=box.ROUNDED)
    table.add_column("Key", style=t.label)
    table.add_column("Value", style=t.value)

    segments = data.get("segments", [])
    table.add_row("Segments", str(len(segments)))
    table.add_row("Video segments", str(sum(1 for s in segments if s.get("videoUrl"))))
    table.add_row("Slideshow mode", "yes" if data.get("fallbackMode") else "no")
    table.add_row("Can concat", "yes" if data.get("canConcat") else "no")
    table.add_row("Encoder", "available" if data.get("encoderAvailable") else "missing")
    table.add_row("Workspace", data.get("workspacePath", "-"))
    if data.get("videoUrl"):
        table.add_row("Video", data["videoUrl"])
    console.print(table)


async def follow_channel(channel: ProgressChannel, description: str = "Working") -> Optional[ProgressEvent]:
    """
    Render events until the channel closes.

    Returns:
        The terminal event, or None if the run was cancelled
    """
    t = get_theme()
    with make_progress() as progress:
        task: TaskID = progress.add_task(description, total=100)
        async for event in channel:
            progress.update(task, completed=event.progress, description=f"{event.step}: {event.message}"[:60])

            if event.type in (EventType.VIDEO_SEGMENT, EventType.IMAGE):
                print_segment(event, progress)
            elif event.type == EventType.OUTLINE:
                progress.console.print(f"   [{t.label}]Outline ready[/{t.label}]")
            elif event.type == EventType.ERROR:
                progress.console.print(f"[{t.error}]Error:[/{t.error}] {event.message}")

    return channel.terminal_event
