"""System status command"""

import asyncio
import json
import os

import click
from rich import box
from rich.panel import Panel
from rich.table import Table

from cli.display import console
from core.client_assembler import embedded_encoder_path
from core.errors import EncoderUnavailable
from core.providers import PROVIDER_REGISTRY
from core.renderer import FFmpegRenderer


CONFIG_KEYS = [
    ("ANTHROPIC_API_KEY", "Outline and script (live)"),
    ("GENERATOR_BASE_URL", "Video/image/narration gateway (live)"),
    ("GENERATOR_API_KEY", "Gateway credentials"),
    ("UPLOAD_URL", "Final video upload endpoint"),
    ("FFMPEG_PATH", "Encoder binary override"),
]


def check_config() -> dict:
    """Which environment keys are set"""
    return {key: bool(os.getenv(key)) for key, _ in CONFIG_KEYS}


def check_encoders() -> dict:
    system = asyncio.run(FFmpegRenderer(ffmpeg_path=os.getenv("FFMPEG_PATH")).check_ffmpeg_installed())
    try:
        embedded = {"installed": True, "path": embedded_encoder_path()}
    except EncoderUnavailable as e:
        embedded = {"installed": False, "error": e.message}
    return {"system": system, "embedded": embedded}


def get_status_dict() -> dict:
    return {
        "encoders": check_encoders(),
        "providers": {category: {k: v for k, v in info.items() if k != "features"}
                      for category, info in PROVIDER_REGISTRY.items()},
        "config": check_config(),
    }


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def status_cmd(as_json: bool):
    """Show encoder, provider and configuration status"""

    if as_json:
        click.echo(json.dumps(get_status_dict(), indent=2))
        return

    console.print(Panel.fit(
        "[bold blue]Explainer Video Pipeline[/bold blue]\n"
        "Book explainers from script to video",
        border_style="blue"
    ))

    encoders = check_encoders()
    encoder_table = Table(title="Encoders", box=box.ROUNDED)
    encoder_table.add_column("Encoder", style="cyan")
    encoder_table.add_column("Status")
    encoder_table.add_column("Detail", style="dim")
    for name, info in encoders.items():
        ok = info.get("installed")
        detail = info.get("version") or info.get("path") or info.get("error") or ""
        encoder_table.add_row(
            name.title(),
            "[green]available[/green]" if ok else "[red]missing[/red]",
            detail[:60]
        )
    console.print(encoder_table)

    provider_table = Table(title="Providers", box=box.ROUNDED)
    provider_table.add_column("Category", style="cyan")
    provider_table.add_column("Backends", style="green")
    provider_table.add_column("Features", style="dim")
    for category, info in PROVIDER_REGISTRY.items():
        backends = ", ".join(v for k, v in info.items() if k != "features")
        provider_table.add_row(category.title(), backends, ", ".join(info.get("features", [])))
    console.print(provider_table)

    config = check_config()
    config_table = Table(title="Configuration", box=box.ROUNDED)
    config_table.add_column("Key", style="cyan")
    config_table.add_column("Status")
    config_table.add_column("Used for", style="dim")
    for key, purpose in CONFIG_KEYS:
        config_table.add_row(key, "[green]set[/green]" if config[key] else "[yellow]not set[/yellow]", purpose)
    console.print(config_table)
