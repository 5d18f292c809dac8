"""
git-task CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands. Installed
as `git-task`, it is also reachable as `git task ...`.
"""

import logging
import sys

import typer
from rich.console import Console

from gittask import __version__
from gittask.cli import comment, config, label, sync, task
from gittask.core.config import load_layered_env

# Help panel names for command grouping
PANEL_TASKS = "Work with Tasks"
PANEL_SYNC = "Sync with Remote Trackers"
PANEL_SETUP = "Configuration"

app = typer.Typer(
    name="git-task",
    help="Local-first task manager that stores tasks in the git repository",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for all commands.

    Args:
        debug: If True, enable DEBUG level logging (git commands, HTTP calls)
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    git-task - tasks stored as git objects.

    Tasks live under a dedicated ref (refs/tasks/tasks by default), so they
    travel with the repository and every change is a commit.

    Quick Start:
        git task create "Fix login"      # Create a task
        git task list                    # List tasks
        git task status 1 c              # Close it
        git task push 1                  # Create it on GitHub/GitLab
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()
    setup_logging(debug)
    ctx.obj = {"debug": debug}


# =============================================================================
# Work with Tasks
# =============================================================================

app.command(name="list", rich_help_panel=PANEL_TASKS)(task.list_tasks)
app.command(name="show", rich_help_panel=PANEL_TASKS)(task.show)
app.command(name="create", rich_help_panel=PANEL_TASKS)(task.create)
app.command(name="status", rich_help_panel=PANEL_TASKS)(task.status)
app.command(name="get", rich_help_panel=PANEL_TASKS)(task.get)
app.command(name="set", rich_help_panel=PANEL_TASKS)(task.set_property)
app.command(name="unset", rich_help_panel=PANEL_TASKS)(task.unset)
app.command(name="delete", rich_help_panel=PANEL_TASKS)(task.delete)
app.command(name="clear", rich_help_panel=PANEL_TASKS)(task.clear)
app.command(name="history", rich_help_panel=PANEL_TASKS)(task.history)
app.command(name="export", rich_help_panel=PANEL_TASKS)(task.export)
app.command(name="import", rich_help_panel=PANEL_TASKS)(task.import_tasks)
app.add_typer(comment.app, name="comment", rich_help_panel=PANEL_TASKS)
app.add_typer(label.app, name="label", rich_help_panel=PANEL_TASKS)

# =============================================================================
# Sync with Remote Trackers
# =============================================================================

app.command(name="push", rich_help_panel=PANEL_SYNC)(sync.push)
app.command(name="pull", rich_help_panel=PANEL_SYNC)(sync.pull)

# =============================================================================
# Configuration
# =============================================================================

app.add_typer(config.app, name="config", rich_help_panel=PANEL_SETUP)


@app.command(rich_help_panel=PANEL_SETUP)
def version() -> None:
    """Show git-task version and exit."""
    console.print(f"git-task version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
