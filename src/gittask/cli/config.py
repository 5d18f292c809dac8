"""
git-task CLI - Configuration commands.

Read and change the `task.*` keys in the repository's git config.
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from gittask.cli.common import open_store
from gittask.cli.errors import ExitCode, print_error, print_invalid_option_error
from gittask.core.config import CONFIG_KEYS, get_config_value, save_config, set_config_value
from gittask.core.gitstore import GitError

console = Console()
app = typer.Typer(help="Show or change git-task configuration", no_args_is_help=True)


def _check_key(key: str) -> None:
    if key not in CONFIG_KEYS:
        print_invalid_option_error(key, list(CONFIG_KEYS))
        raise typer.Exit(ExitCode.USER_ERROR)


@app.command("get")
def get(key: str = typer.Argument(..., help="Config key, e.g. task.ref")) -> None:
    """Print the effective value of a config key."""
    _check_key(key)
    store = open_store()
    typer.echo(get_config_value(store.config, key))


@app.command("set")
def set_value(
    key: str = typer.Argument(..., help="Config key, e.g. task.ref"),
    value: str = typer.Argument(..., help="New value"),
    move_ref: bool = typer.Option(
        False,
        "--move-ref",
        help="With task.ref: move the existing task history to the new ref",
    ),
) -> None:
    """
    Change a config key.

    Examples:
        git task config set task.ref tasks/main --move-ref
        git task config set task.list.columns "id, status, name"
        git task config set task.gitlab.url https://git.example.com
    """
    _check_key(key)
    store = open_store()

    try:
        if key == "task.ref":
            ref_path = store.set_ref_path(value, move=move_ref)
            console.print(f"task.ref set to {ref_path}", highlight=False)
            return

        config = set_config_value(store.config, key, value)
        save_config(store.git, config)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.USER_ERROR)
    except GitError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"{key} updated", highlight=False)


@app.command("list")
def list_values() -> None:
    """Show every config key with its effective value."""
    store = open_store()

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Key")
    table.add_column("Value", overflow="fold")
    for key in CONFIG_KEYS:
        table.add_row(key, get_config_value(store.config, key))
    console.print(table)
