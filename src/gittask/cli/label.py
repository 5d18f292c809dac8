"""
git-task CLI - Label commands.
"""

from __future__ import annotations

import typer
from pydantic import ValidationError
from rich.console import Console

from gittask.cli.common import open_store, open_sync
from gittask.cli.errors import ExitCode, print_error
from gittask.cli.task import load_task, report_remote_error, save_task
from gittask.core.connectors import ConnectorError

console = Console()
app = typer.Typer(help="Manage task labels", no_args_is_help=True)


@app.command("add")
def add(
    task_id: str = typer.Argument(..., help="Task ID"),
    name: str = typer.Argument(..., help="Label name"),
    color: str = typer.Option("", "--color", help="Color name or hex RGB, e.g. d73a4a"),
    description: str | None = typer.Option(None, "--description", help="Label description"),
    push: bool = typer.Option(False, "--push", help="Also add the label remotely"),
    remote: str | None = typer.Option(None, "--remote", "-r", help="Git remote to push to"),
    connector: str | None = typer.Option(None, "--connector", help="Connector type"),
) -> None:
    """
    Add a label to a task, replacing a label with the same name.

    Examples:
        git task label add 4 bug --color d73a4a
        git task label add 4 "needs review" --push
    """
    store = open_store()
    task = load_task(store, task_id)

    try:
        label = task.add_label(name, color=color, description=description)
    except ValidationError:
        print_error("Label name is empty")
        raise typer.Exit(ExitCode.USER_ERROR)
    save_task(store, task)
    console.print(f"Label '{name}' added to task ID {task_id}", highlight=False)

    if push:
        try:
            open_sync(store, remote, connector).push_label_added(task_id, label)
        except ConnectorError as e:
            report_remote_error(e)
            raise typer.Exit(ExitCode.GENERAL_ERROR)


@app.command("delete")
def delete(
    task_id: str = typer.Argument(..., help="Task ID"),
    name: str = typer.Argument(..., help="Label name"),
    push: bool = typer.Option(False, "--push", help="Also remove the label remotely"),
    remote: str | None = typer.Option(None, "--remote", "-r", help="Git remote to push to"),
    connector: str | None = typer.Option(None, "--connector", help="Connector type"),
) -> None:
    """Remove a label from a task."""
    store = open_store()
    task = load_task(store, task_id)

    try:
        task.delete_label(name)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.USER_ERROR)
    save_task(store, task)
    console.print(f"Label '{name}' removed from task ID {task_id}", highlight=False)

    if push:
        try:
            open_sync(store, remote, connector).push_label_deleted(task_id, name)
        except ConnectorError as e:
            report_remote_error(e)
            raise typer.Exit(ExitCode.GENERAL_ERROR)
