"""Explainer video pipeline CLI"""

import logging

import click
from dotenv import load_dotenv
from rich.logging import RichHandler

from .assemble import assemble_cmd
from .display import console
from .generate import generate_cmd
from .scan import scan_cmd
from .status import status_cmd
from .theme import get_default_theme_name, list_themes, set_theme

# Load .env file at CLI startup
load_dotenv()


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.option("--theme", type=click.Choice(list_themes()), default=None, help="Color theme")
def main(verbose: bool, theme: str):
    """Explainer - book explainer videos from a title

    \b
    Quick Start:
      explainer generate "Sapiens" --mock
      explainer generate "Sapiens" --live --mode image

    \b
    Commands:
      generate   Outline, script and per-segment media for a book
      scan       Pair image/audio files of a workspace directory
      assemble   Build a slideshow video from a workspace directory
      status     Show encoder, provider and configuration status
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
        force=True,
    )
    theme = theme or get_default_theme_name()
    if theme in list_themes():
        set_theme(theme)


main.add_command(generate_cmd, name="generate")
main.add_command(scan_cmd, name="scan")
main.add_command(assemble_cmd, name="assemble")
main.add_command(status_cmd, name="status")


if __name__ == "__main__":
    main()
