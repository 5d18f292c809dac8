"""
Exit codes and error output for the git-task CLI.

Every command reports failures through `print_error`, which writes a short
problem line plus optional context and a suggested next command to stderr.
"""

from enum import IntEnum

from rich.console import Console

# stderr keeps `export` and `--json` output on stdout parseable
console = Console(stderr=True)


class ExitCode(IntEnum):
    """Process exit codes used by git-task commands."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    """A git or remote call failed, or a sync left tasks behind."""

    USER_ERROR = 2
    """Bad arguments, unknown ids, or a repository/remote that does not fit."""

    SIGINT = 130


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Report an error on stderr.

    Example:
        >>> print_error("Task ID 7 not found", solution="git task list")
        Error: Task ID 7 not found
        → Try: git task list
    """
    lines = [f"[red]Error:[/red] {problem}"]
    if reason:
        lines.append(f"[dim]{reason}[/dim]")
    if solution:
        lines.append(f"[cyan]→ Try:[/cyan] {solution}")
    console.print("\n".join(lines), highlight=False)


def print_not_git_repo_error() -> None:
    print_error(
        "Not a git repository",
        reason="Tasks are stored as objects inside a git repository",
        solution="git init  # or cd into a repository",
    )


def print_task_not_found_error(task_id: str) -> None:
    print_error(f"Task ID {task_id} not found", solution="git task list")


def print_comment_not_found_error(task_id: str, comment_id: str) -> None:
    print_error(
        f"Comment ID {comment_id} not found in task ID {task_id}",
        solution=f"git task show {task_id}",
    )


def print_missing_token_error(message: str) -> None:
    """Remote writes need an API token; reads work without one."""
    print_error(
        message,
        reason="Creating or changing remote issues requires an API token",
        solution="export GITHUB_TOKEN=... or GITLAB_TOKEN=...  # or add it to .env",
    )


def print_invalid_option_error(option: str, valid_options: list[str]) -> None:
    print_error(f"Invalid option: {option}", reason="Expected one of: " + ", ".join(valid_options))
