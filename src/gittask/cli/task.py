"""
git-task CLI - Local task commands.

Create, inspect, edit, delete, export and import tasks in the repository's
task store. Commands that change a task can forward the change to the
matching remote with --push.
"""

from __future__ import annotations

import json
import sys
from functools import partial
from pathlib import Path
from typing import cast

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from gittask.cli.common import (
    format_timestamp,
    open_store,
    open_sync,
    parse_ids_or_exit,
    resolve_status,
    status_text,
)
from gittask.cli.errors import (
    ExitCode,
    print_error,
    print_missing_token_error,
    print_task_not_found_error,
)
from gittask.core.connectors import ConnectorError, MissingTokenError
from gittask.core.gitstore import GitError
from gittask.core.tasks import NAME, STATUS, Task, TaskStore, TaskStoreError
from gittask.core.tasks.models import AUTHOR, CREATED, DESCRIPTION

console = Console()


def _sort_key(task: Task, column: str) -> tuple[int, int | str]:
    if column == "id":
        value = task.id or ""
    else:
        value = task.get_property(column) or ""
    # Numeric values sort numerically and before text
    if value.isdigit():
        return (0, int(value))
    return (1, value.lower())


def sort_tasks(tasks: list[Task], sort_spec: list[str]) -> list[Task]:
    """
    Sort tasks by a list of "<column> [asc|desc]" entries.

    The first entry is the primary key.
    """
    result = list(tasks)
    for entry in reversed(sort_spec):
        parts = entry.split()
        if not parts:
            continue
        column = parts[0]
        descending = len(parts) > 1 and parts[1].lower() == "desc"
        result.sort(key=partial(_sort_key, column=column), reverse=descending)
    return result


def load_task(store: TaskStore, task_id: str) -> Task:
    try:
        task = store.find(task_id)
    except TaskStoreError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    if task is None:
        print_task_not_found_error(task_id)
        raise typer.Exit(ExitCode.USER_ERROR)
    return task


def save_task(store: TaskStore, task: Task) -> None:
    try:
        store.update(task)
    except (GitError, TaskStoreError) as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)


def report_remote_error(e: ConnectorError) -> None:
    if isinstance(e, MissingTokenError):
        print_missing_token_error(str(e))
    else:
        print_error(f"Remote: {e}")


def list_tasks(
    status: list[str] | None = typer.Option(
        None,
        "--status",
        "-s",
        help="Only show tasks with this status (name or shortcut); repeatable",
    ),
    keyword: str | None = typer.Option(
        None,
        "--keyword",
        "-k",
        help="Only show tasks whose name or description contains this text",
    ),
    author: str | None = typer.Option(None, "--author", help="Only show tasks by this author"),
    columns: str | None = typer.Option(
        None,
        "--columns",
        "-c",
        help="Comma-separated columns (default from task.list.columns)",
    ),
    sort: str | None = typer.Option(
        None,
        "--sort",
        help='Comma-separated sort keys, e.g. "status, id desc"',
    ),
    limit: int | None = typer.Option(None, "--limit", "-l", help="Show at most N tasks"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """
    List tasks.

    Examples:
        git task list
        git task list -s o -s i           # Open and in-progress tasks
        git task list -k login --sort "created desc"
    """
    store = open_store()
    config = store.config

    try:
        tasks = store.list()
    except GitError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if status:
        wanted = {resolve_status(config, s) for s in status}
        tasks = [t for t in tasks if t.status in wanted]
    if keyword:
        needle = keyword.lower()
        tasks = [
            t for t in tasks if needle in t.name.lower() or needle in t.description.lower()
        ]
    if author:
        tasks = [t for t in tasks if t.get_property(AUTHOR) == author]

    sort_spec = [s.strip() for s in sort.split(",")] if sort else config.list_sort
    tasks = sort_tasks(tasks, sort_spec)
    if limit is not None:
        tasks = tasks[:limit]

    if json_output:
        data = [t.model_dump(mode="json", exclude_none=True) for t in tasks]
        typer.echo(json.dumps(data, indent=2))
        return

    if not tasks:
        console.print("[dim]No tasks found[/dim]")
        return

    column_names = [c.strip() for c in columns.split(",")] if columns else config.list_columns

    table = Table(show_header=True, header_style="bold cyan")
    for column in column_names:
        header = column.upper() if column == "id" else column.capitalize()
        table.add_column(header, overflow="fold")

    for task in tasks:
        row = []
        for column in column_names:
            if column == "id":
                row.append(task.id or "")
            elif column == STATUS:
                row.append(status_text(config, task.status))
            elif column == CREATED:
                row.append(format_timestamp(task.get_property(CREATED)))
            else:
                row.append(task.get_property(column) or "")
        table.add_row(*row)

    console.print(table)


def show(
    task_id: str = typer.Argument(..., help="Task ID to display"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """
    Show a task with its properties, labels and comments.

    Examples:
        git task show 12
        git task show 12 --json
    """
    store = open_store()
    task = load_task(store, task_id)

    if json_output:
        typer.echo(json.dumps(task.model_dump(mode="json", exclude_none=True), indent=2))
        return

    config = store.config
    console.print(f"[bold cyan]Task ID {task.id}[/bold cyan] - {task.name}", highlight=False)
    console.print("[dim]Status:[/dim] ", status_text(config, task.status))
    if task.get_property(CREATED):
        console.print(f"[dim]Created:[/dim] {format_timestamp(task.get_property(CREATED))}")
    if task.get_property(AUTHOR):
        console.print(f"[dim]Author:[/dim] {task.get_property(AUTHOR)}", highlight=False)

    for prop, value in sorted(task.props.items()):
        if prop in (NAME, STATUS, CREATED, AUTHOR, DESCRIPTION):
            continue
        console.print(f"[dim]{prop}:[/dim] {value}", highlight=False)

    if task.labels:
        console.print(f"[dim]Labels:[/dim] {', '.join(label.name for label in task.labels)}")

    if task.description:
        console.print(f"\n[bold]Description:[/bold]\n{task.description}", highlight=False)

    for comment in task.comments or []:
        header = f"Comment ID {comment.id}"
        if comment.get_property(AUTHOR):
            header += f" by {comment.get_property(AUTHOR)}"
        if comment.get_property(CREATED):
            header += f" at {format_timestamp(comment.get_property(CREATED))}"
        console.print(f"\n[bold]{header}[/bold]", highlight=False)
        console.print(comment.text, highlight=False, markup=False)


def create(
    name: str = typer.Argument(..., help="Task name"),
    description: str = typer.Argument("", help="Task description"),
    status: str | None = typer.Option(
        None,
        "--status",
        "-s",
        help="Initial status (default: the first configured status)",
    ),
    push: bool = typer.Option(False, "--push", help="Also create the task remotely"),
    remote: str | None = typer.Option(None, "--remote", "-r", help="Git remote to push to"),
    connector: str | None = typer.Option(None, "--connector", help="Connector type"),
) -> None:
    """
    Create a task.

    Examples:
        git task create "Fix login" "Users cannot log in with SSO"
        git task create "Release 1.2" --status i --push
    """
    store = open_store()
    config = store.config
    initial = resolve_status(config, status) if status else config.starting_status

    try:
        task = store.create(Task.new(name, status=initial, description=description))
    except ValidationError:
        print_error("Name or status is empty")
        raise typer.Exit(ExitCode.USER_ERROR)
    except GitError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"[green]Task ID {task.id} created[/green]")

    if push:
        report = open_sync(store, remote, connector).push([cast(str, task.id)])
        for result in report.results:
            console.print(result.describe(), highlight=False)
        if not report.success:
            raise typer.Exit(ExitCode.GENERAL_ERROR)


def status(
    ids: str = typer.Argument(..., help="Task IDs, e.g. 1,3..5"),
    new_status: str = typer.Argument(..., metavar="STATUS", help="Status name or shortcut"),
) -> None:
    """
    Set the status of one or more tasks.

    Examples:
        git task status 3 c
        git task status 1..4 IN_PROGRESS
    """
    store = open_store()
    full = resolve_status(store.config, new_status)
    exit_code = ExitCode.SUCCESS

    for task_id in parse_ids_or_exit([ids]):
        try:
            task = store.find(task_id)
        except TaskStoreError as e:
            print_error(str(e))
            exit_code = ExitCode.GENERAL_ERROR
            continue
        if task is None:
            print_task_not_found_error(task_id)
            exit_code = exit_code or ExitCode.USER_ERROR
            continue
        old = task.status
        task.set_property(STATUS, full)
        save_task(store, task)
        console.print(
            f"Task ID {task_id}: ",
            status_text(store.config, old),
            " -> ",
            status_text(store.config, full),
            sep="",
        )

    if exit_code != ExitCode.SUCCESS:
        raise typer.Exit(exit_code)


def get(
    task_id: str = typer.Argument(..., help="Task ID"),
    prop: str = typer.Argument(..., help="Property name"),
) -> None:
    """Print one property of a task."""
    store = open_store()
    task = load_task(store, task_id)
    value = task.get_property(prop)
    if value is None:
        print_error(f"Task property {prop} not found")
        raise typer.Exit(ExitCode.USER_ERROR)
    typer.echo(value)


def set_property(
    task_id: str = typer.Argument(..., help="Task ID"),
    prop: str = typer.Argument(..., help="Property name"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """
    Set one property of a task.

    Examples:
        git task set 4 name "Better name"
        git task set 4 priority high
    """
    store = open_store()
    task = load_task(store, task_id)

    if prop == STATUS:
        value = resolve_status(store.config, value)
    try:
        task.set_property(prop, value)
    except ValidationError:
        print_error("Name or status is empty")
        raise typer.Exit(ExitCode.USER_ERROR)

    save_task(store, task)
    console.print(f"Task ID {task_id} updated")


def unset(
    task_id: str = typer.Argument(..., help="Task ID"),
    prop: str = typer.Argument(..., help="Property name"),
) -> None:
    """Delete one property of a task. Name and status cannot be removed."""
    store = open_store()
    task = load_task(store, task_id)

    try:
        removed = task.delete_property(prop)
    except ValidationError:
        print_error(f"Property {prop} cannot be removed")
        raise typer.Exit(ExitCode.USER_ERROR)
    if not removed:
        print_error(f"Task property {prop} not found")
        raise typer.Exit(ExitCode.USER_ERROR)

    save_task(store, task)
    console.print(f"Task ID {task_id} updated")


def delete(
    ids: list[str] | None = typer.Argument(None, help="Task IDs, e.g. 1,3..5"),
    status: list[str] | None = typer.Option(
        None,
        "--status",
        "-s",
        help="Delete all tasks with this status; repeatable",
    ),
    push: bool = typer.Option(False, "--push", help="Also delete the remote tasks"),
    remote: str | None = typer.Option(None, "--remote", "-r", help="Git remote to push to"),
    connector: str | None = typer.Option(None, "--connector", help="Connector type"),
) -> None:
    """
    Delete tasks.

    Examples:
        git task delete 3
        git task delete 1..5,9
        git task delete --status c
    """
    store = open_store()
    task_ids = parse_ids_or_exit(ids)

    if status:
        wanted = {resolve_status(store.config, s) for s in status}
        task_ids += [t.id for t in store.list() if t.status in wanted and t.id is not None]

    if not task_ids:
        print_error("No task IDs given", solution="git task delete 1,3..5  # or --status")
        raise typer.Exit(ExitCode.USER_ERROR)

    try:
        removed = store.delete(task_ids)
    except GitError as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    for task_id in removed:
        console.print(f"Task ID {task_id} deleted")
    for task_id in dict.fromkeys(task_ids):
        if task_id not in removed:
            print_task_not_found_error(task_id)

    if push and removed:
        sync = open_sync(store, remote, connector)
        for task_id in removed:
            try:
                sync.push_task_deleted(task_id)
                console.print(f"Remote task ID {task_id} deleted")
            except ConnectorError as e:
                report_remote_error(e)

    if len(removed) < len(set(task_ids)):
        raise typer.Exit(ExitCode.USER_ERROR)


def clear(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
) -> None:
    """
    Delete all tasks.

    The tasks stay in the ref's history; only the current tree is emptied.
    """
    store = open_store()
    if not force and not typer.confirm("Delete all tasks?", default=False):
        console.print("[yellow]Cancelled.[/yellow]")
        raise typer.Exit(ExitCode.SUCCESS)

    count = store.clear()
    console.print(f"{count} task(s) deleted")


def history(
    task_id: str = typer.Argument(..., help="Task ID"),
) -> None:
    """Show the commits that changed a task."""
    store = open_store()
    commits = store.history(task_id)
    if not commits:
        print_task_not_found_error(task_id)
        raise typer.Exit(ExitCode.USER_ERROR)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Commit", style="dim")
    table.add_column("Date")
    table.add_column("Author")
    table.add_column("Message")
    for commit in commits:
        table.add_row(
            commit.sha[:8],
            format_timestamp(str(commit.timestamp)),
            commit.author.name,
            commit.message,
        )
    console.print(table)


def export(
    ids: list[str] | None = typer.Argument(None, help="Task IDs (default: all)"),
    pretty: bool = typer.Option(False, "--pretty", help="Indent the JSON output"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write to a file"),
) -> None:
    """
    Export tasks as a JSON array.

    Examples:
        git task export > tasks.json
        git task export 1..10 --pretty -o backlog.json
    """
    store = open_store()
    task_ids = parse_ids_or_exit(ids)

    tasks = store.list()
    if task_ids:
        wanted = set(task_ids)
        tasks = [t for t in tasks if t.id in wanted]
    tasks = sort_tasks(tasks, ["id"])

    data = json.dumps(
        [t.model_dump(mode="json", exclude_none=True) for t in tasks],
        indent=2 if pretty else None,
    )
    if output is not None:
        output.write_text(data + "\n", encoding="utf-8")
        console.print(f"{len(tasks)} task(s) exported to {output}")
    else:
        typer.echo(data)


def import_tasks(
    source: Path | None = typer.Argument(None, help="JSON file (default: stdin)"),
) -> None:
    """
    Import tasks from a JSON array, e.g. one produced by export.

    Tasks keep their ids; tasks without an id get new ones.
    """
    store = open_store()
    raw = source.read_text(encoding="utf-8") if source is not None else sys.stdin.read()

    try:
        data = json.loads(raw)
        if isinstance(data, dict):
            data = [data]
        tasks = [Task.model_validate(item) for item in data]
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        print_error(f"Invalid task JSON: {e}")
        raise typer.Exit(ExitCode.USER_ERROR)

    try:
        imported = store.import_tasks(tasks)
    except (GitError, TaskStoreError) as e:
        print_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"{len(imported)} task(s) imported")
