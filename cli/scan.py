"""Scan command - reconcile a workspace directory"""

import json
import sys
import tempfile

import click
from rich import box
from rich.table import Table

from cli.display import console
from cli.theme import get_theme
from core.errors import WorkspaceInvalid
from core.reconciler import scan_directory


@click.command()
@click.argument("directory")
@click.option("--sandbox", default=tempfile.gettempdir(), show_default=True, help="Directories must live under this root")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def scan_cmd(directory: str, sandbox: str, as_json: bool):
    """Pair image_{i} / audio_{i} files in DIRECTORY"""
    t = get_theme()
    try:
        result = scan_directory(directory, sandbox_root=sandbox)
    except WorkspaceInvalid as e:
        console.print(f"[{t.error}]{e.message}[/{t.error}]")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return

    table = Table(title=f"{result.dir_path}", box=box.ROUNDED)
    table.add_column("#", style=t.label, justify="right")
    table.add_column("Image")
    table.add_column("Audio")
    table.add_column("Duration", justify="right")
    for match in result.matches:
        table.add_row(
            str(match.index),
            match.image_path.rsplit("/", 1)[-1] if match.image_path else f"[{t.dimmed}]-[/{t.dimmed}]",
            match.audio_path.rsplit("/", 1)[-1] if match.audio_path else f"[{t.dimmed}]-[/{t.dimmed}]",
            f"{match.duration:.1f}s",
        )
    console.print(table)
    console.print(
        f"{result.total_files} files, {result.image_count} images, {result.audio_count} audio, "
        f"{len(result.full_matches)} complete pairs"
    )
    if result.can_concat:
        console.print(f"[{t.success}]Ready to assemble[/{t.success}]: explainer assemble {result.dir_path}")
