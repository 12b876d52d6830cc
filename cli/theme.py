"""Color themes for pipeline output"""

import os
from dataclasses import dataclass
from typing import List


@dataclass
class Theme:
    """Rich styles used by the explainer CLI"""

    header: str = "bold blue"
    success: str = "bold green"
    warning: str = "yellow"
    error: str = "bold red"
    label: str = "cyan"
    value: str = "white"
    dimmed: str = "dim"

    script_border: str = "cyan"
    progress_complete: str = "green"
    progress_active: str = "cyan"

    # segment outcomes: generated clip, image+narration slide, nothing usable
    segment_video: str = "bold green"
    segment_fallback: str = "yellow"
    segment_failed: str = "bold red"

    def segment_markup(self, outcome: str) -> str:
        style = {
            "video": self.segment_video,
            "image+audio": self.segment_fallback,
        }.get(outcome, self.segment_failed)
        return f"[{style}]{outcome}[/{style}]"


THEMES = {
    "default": Theme(),
    "paper": Theme(
        header="bold magenta",
        label="magenta",
        value="default",
        script_border="magenta",
        progress_complete="magenta",
        progress_active="bright_magenta",
        segment_video="bold magenta",
    ),
    "mono": Theme(
        header="bold",
        success="bold",
        warning="default",
        error="bold reverse",
        label="default",
        value="default",
        script_border="default",
        progress_complete="white",
        progress_active="dim white",
        segment_video="bold",
        segment_fallback="default",
        segment_failed="dim",
    ),
}

_current_theme: Theme = THEMES["default"]


def get_theme() -> Theme:
    return _current_theme


def set_theme(name: str) -> None:
    global _current_theme
    if name not in THEMES:
        raise ValueError(f"Unknown theme: {name}. Available: {list(THEMES)}")
    _current_theme = THEMES[name]


def list_themes() -> List[str]:
    return list(THEMES)


def get_default_theme_name() -> str:
    """Theme from EXPLAINER_THEME, else 'default'"""
    return os.getenv("EXPLAINER_THEME", "default")
