"""CLI entry point for prreminder.

Meant to be run by a scheduler with no arguments: it reads the config file,
collects the open pull requests of the configured Bitbucket projects and
posts a reminder digest to Slack.
"""

from __future__ import annotations

import importlib.metadata
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler

from prreminder_core.config import DEFAULT_CONFIG_PATH
from prreminder_core.errors import ReminderError

console = Console()
logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # urllib3 is chatty at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _print_digest(blocks) -> None:
    console.print("\n[bold]Shadow run: digest not posted[/bold]\n")
    for block in blocks:
        data = block.to_dict()
        if data["type"] == "divider":
            console.rule(style="dim")
        else:
            console.print(data["text"]["text"], markup=False, highlight=False)


@click.command()
@click.version_option(
    version=importlib.metadata.version("prreminder"),
    prog_name="prreminder",
)
@click.option(
    "--config",
    "config_path",
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to the configuration file.",
    envvar="REMINDER_CONFIG",
)
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: print the digest without posting to Slack.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(config_path: str, shadow: bool, verbose: bool):
    """Remind reviewers about open Bitbucket pull requests on Slack.

    \b
    Environment variables (override the config file):
      REMINDER_BITBUCKET_HOST       Bitbucket Server host
      REMINDER_BITBUCKET_USER       Bitbucket user name
      REMINDER_BITBUCKET_PASSWORD   Bitbucket password or access token
      REMINDER_SLACK_URL            Slack incoming webhook URL
      REMINDER_FILTERREVIEWERS      Comma-separated reviewers to leave out
    """
    from prreminder_core.config import load_config
    from prreminder_core.pipeline import run_reminder

    _setup_logging(verbose)

    try:
        config = load_config(config_path)
        summary = run_reminder(config, shadow=shadow)
    except ReminderError as e:
        logger.error("%s", e)
        sys.exit(1)

    if shadow:
        _print_digest(summary.blocks)

    for project in summary.projects:
        console.print(f"Project : {project.id} - {project.key}", markup=False, highlight=False)
