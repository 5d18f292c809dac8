"""
git-task CLI - Comment commands.
"""

from __future__ import annotations

import typer
from rich.console import Console

from gittask.cli.common import open_store, open_sync
from gittask.cli.errors import ExitCode, print_comment_not_found_error, print_error
from gittask.cli.task import load_task, report_remote_error, save_task
from gittask.core.connectors import ConnectorError

console = Console()
app = typer.Typer(help="Manage task comments", no_args_is_help=True)


@app.command("add")
def add(
    task_id: str = typer.Argument(..., help="Task ID"),
    text: str = typer.Argument(..., help="Comment text"),
    push: bool = typer.Option(False, "--push", help="Also create the comment remotely"),
    remote: str | None = typer.Option(None, "--remote", "-r", help="Git remote to push to"),
    connector: str | None = typer.Option(None, "--connector", help="Connector type"),
) -> None:
    """
    Add a comment to a task.

    Examples:
        git task comment add 4 "Reproduced on main"
        git task comment add 4 "Fixed in 1a2b3c" --push
    """
    store = open_store()
    task = load_task(store, task_id)

    comment = task.add_comment(text, props=store.comment_props())
    save_task(store, task)
    console.print(f"Comment ID {comment.id} added to task ID {task_id}")

    if push:
        try:
            remote_id = open_sync(store, remote, connector).push_comment_added(task_id, comment)
        except ConnectorError as e:
            report_remote_error(e)
            raise typer.Exit(ExitCode.GENERAL_ERROR)
        if remote_id != comment.id:
            console.print(f"Comment ID {comment.id} -> {remote_id} updated")


@app.command("edit")
def edit(
    task_id: str = typer.Argument(..., help="Task ID"),
    comment_id: str = typer.Argument(..., help="Comment ID"),
    text: str = typer.Argument(..., help="New comment text"),
    push: bool = typer.Option(False, "--push", help="Also update the remote comment"),
    remote: str | None = typer.Option(None, "--remote", "-r", help="Git remote to push to"),
    connector: str | None = typer.Option(None, "--connector", help="Connector type"),
) -> None:
    """Replace the text of a comment."""
    store = open_store()
    task = load_task(store, task_id)

    comment = task.find_comment(comment_id)
    if comment is None:
        print_comment_not_found_error(task_id, comment_id)
        raise typer.Exit(ExitCode.USER_ERROR)
    comment.text = text
    save_task(store, task)
    console.print(f"Comment ID {comment_id} updated")

    if push:
        try:
            open_sync(store, remote, connector).push_comment_updated(task_id, comment_id, text)
        except ConnectorError as e:
            report_remote_error(e)
            raise typer.Exit(ExitCode.GENERAL_ERROR)


@app.command("delete")
def delete(
    task_id: str = typer.Argument(..., help="Task ID"),
    comment_id: str = typer.Argument(..., help="Comment ID"),
    push: bool = typer.Option(False, "--push", help="Also delete the remote comment"),
    remote: str | None = typer.Option(None, "--remote", "-r", help="Git remote to push to"),
    connector: str | None = typer.Option(None, "--connector", help="Connector type"),
) -> None:
    """Delete a comment."""
    store = open_store()
    task = load_task(store, task_id)

    try:
        task.delete_comment(comment_id)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.USER_ERROR)
    save_task(store, task)
    console.print(f"Comment ID {comment_id} deleted")

    if push:
        try:
            open_sync(store, remote, connector).push_comment_deleted(task_id, comment_id)
        except ConnectorError as e:
            report_remote_error(e)
            raise typer.Exit(ExitCode.GENERAL_ERROR)
