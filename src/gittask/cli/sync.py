"""
git-task CLI - Push and pull commands.

Reconcile the local task store with the issue tracker behind the
repository's remote (GitHub or GitLab).
"""

from __future__ import annotations

import typer
from rich.console import Console

from gittask.cli.common import open_store, open_sync, parse_ids_or_exit, resolve_status
from gittask.cli.errors import ExitCode, print_error, print_missing_token_error
from gittask.core.connectors import ConnectorError, MissingTokenError
from gittask.core.sync import SyncOutcome, SyncReport

console = Console()

_OUTCOME_STYLES = {
    SyncOutcome.CREATED: "green",
    SyncOutcome.UPDATED: "green",
    SyncOutcome.COMMENTS_SYNCED: "green",
    SyncOutcome.NOTHING_TO_SYNC: "dim",
    SyncOutcome.LOCAL_NOT_FOUND: "red",
    SyncOutcome.REMOTE_NOT_FOUND: "yellow",
    SyncOutcome.FAILED: "red",
}


def _print_report(report: SyncReport) -> None:
    for result in report.results:
        style = _OUTCOME_STYLES[result.outcome]
        console.print(f"[{style}]{result.describe()}[/{style}]", highlight=False)
    console.print(f"[dim]{report.summary()}[/dim]")


def push(
    ids: list[str] = typer.Argument(..., help="Task IDs, e.g. 1,3..5"),
    remote: str | None = typer.Option(None, "--remote", "-r", help="Git remote to push to"),
    connector: str | None = typer.Option(
        None, "--connector", help="Connector type (github, gitlab)"
    ),
    no_comments: bool = typer.Option(False, "--no-comments", help="Do not push comments"),
    no_labels: bool = typer.Option(False, "--no-labels", help="Do not push labels"),
) -> None:
    """
    Push local tasks to the remote tracker.

    Tasks missing remotely are created and take over the remote id. When the
    local status differs from the remote one, the remote task is updated.
    Local comments the remote does not have are created.

    Examples:
        git task push 1,3..5
        git task push 7 --remote upstream --no-comments
    """
    store = open_store()
    task_ids = parse_ids_or_exit(ids)
    sync = open_sync(store, remote, connector)

    console.print(f"Pushing tasks to {sync.remote_label}...", highlight=False)
    report = sync.push(task_ids, no_comments=no_comments, no_labels=no_labels)
    _print_report(report)

    if not report.success:
        raise typer.Exit(ExitCode.GENERAL_ERROR)


def pull(
    ids: list[str] | None = typer.Argument(None, help="Remote task IDs (default: list)"),
    limit: int | None = typer.Option(None, "--limit", "-l", help="Pull at most N tasks"),
    status: str | None = typer.Option(
        None,
        "--status",
        "-s",
        help="Only pull open tasks, or closed ones for a done status",
    ),
    remote: str | None = typer.Option(None, "--remote", "-r", help="Git remote to pull from"),
    connector: str | None = typer.Option(
        None, "--connector", help="Connector type (github, gitlab)"
    ),
    no_comments: bool = typer.Option(False, "--no-comments", help="Do not pull comments"),
    no_labels: bool = typer.Option(False, "--no-labels", help="Do not pull labels"),
) -> None:
    """
    Pull tasks from the remote tracker.

    Remote tasks missing locally are created; existing ones are updated
    when they differ and skipped otherwise.

    Examples:
        git task pull
        git task pull --status o --limit 20
        git task pull 12,15
    """
    store = open_store()
    task_ids = parse_ids_or_exit(ids) if ids else None
    if status is not None:
        status = resolve_status(store.config, status)
    sync = open_sync(store, remote, connector)

    console.print(f"Pulling tasks from {sync.remote_label}...", highlight=False)
    try:
        report = sync.pull(
            task_ids,
            limit=limit,
            status=status,
            no_comments=no_comments,
            no_labels=no_labels,
        )
    except MissingTokenError as e:
        print_missing_token_error(str(e))
        raise typer.Exit(ExitCode.USER_ERROR)
    except ConnectorError as e:
        print_error(f"Remote: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if not report.results:
        console.print("No tasks found")
        return
    _print_report(report)

    if not report.success:
        raise typer.Exit(ExitCode.GENERAL_ERROR)
