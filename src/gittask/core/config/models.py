"""
Configuration data models for git-task.

These models describe the `task.*` keys stored in the repository's own git
configuration, with validation and type safety via Pydantic.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_REF_PATH = "refs/tasks/tasks"
DEFAULT_LIST_COLUMNS = ["id", "created", "status", "name"]
DEFAULT_LIST_SORT = ["id desc"]


class StatusDefinition(BaseModel):
    """
    One entry of the status schema.

    Stored as part of the JSON list in `task.statuses`.
    """

    name: str = Field(..., min_length=1, description="Full status name, e.g. OPEN")
    shortcut: str = Field(..., min_length=1, description="Short alias, e.g. o")
    color: str = Field(default="Default", description="Display color")
    style: str | None = Field(default=None, description="Comma-separated text styles")
    is_done: bool = Field(default=False, description="Whether the status closes a task")


def default_statuses() -> list[StatusDefinition]:
    return [
        StatusDefinition(name="OPEN", shortcut="o", color="Red"),
        StatusDefinition(name="IN_PROGRESS", shortcut="i", color="Yellow"),
        StatusDefinition(name="CLOSED", shortcut="c", color="Green", is_done=True),
    ]


class TaskConfig(BaseModel):
    """
    Repository-level configuration for git-task.

    Loaded once per invocation and passed explicitly to the task store and
    the sync service.

    Example:
        >>> config = TaskConfig()
        >>> config.ref_path
        'refs/tasks/tasks'
        >>> config.full_status_name("c")
        'CLOSED'
    """

    ref_path: str = Field(default=DEFAULT_REF_PATH, description="Ref holding the task tree")
    statuses: list[StatusDefinition] = Field(
        default_factory=default_statuses,
        description="Status schema; the first entry is the starting status",
    )
    properties: list[dict[str, Any]] | None = Field(
        default=None, description="Property rendering schema (opaque to the core)"
    )
    list_columns: list[str] = Field(default_factory=lambda: list(DEFAULT_LIST_COLUMNS))
    list_sort: list[str] = Field(default_factory=lambda: list(DEFAULT_LIST_SORT))
    gitlab_url: str | None = Field(default=None, description="Self-hosted GitLab base URL")
    # Reserved for Jira and Redmine connectors; stored but not read by any bundled connector
    jira_url: str | None = Field(default=None, description="Jira base URL (reserved)")
    redmine_url: str | None = Field(default=None, description="Redmine base URL (reserved)")
    redmine_api_key: str | None = Field(default=None, description="Redmine API key (reserved)")

    model_config = ConfigDict(validate_assignment=True)

    @field_validator("statuses")
    @classmethod
    def validate_statuses(cls, v: list[StatusDefinition]) -> list[StatusDefinition]:
        """At least one status is needed and names must be unique."""
        if not v:
            raise ValueError("At least one status must be defined")
        names = [status.name for status in v]
        if len(names) != len(set(names)):
            raise ValueError("Status names must be unique")
        return v

    @property
    def starting_status(self) -> str:
        """Status given to newly created tasks."""
        return self.statuses[0].name

    @property
    def final_status(self) -> str:
        """First done status, or the last status if none is marked done."""
        for status in self.statuses:
            if status.is_done:
                return status.name
        return self.statuses[-1].name

    def get_status(self, name: str) -> StatusDefinition | None:
        for status in self.statuses:
            if status.name == name:
                return status
        return None

    def full_status_name(self, status: str) -> str:
        """Expand a shortcut to the full status name; other values pass through."""
        for definition in self.statuses:
            if definition.shortcut == status:
                return definition.name
        return status

    def is_done(self, status: str) -> bool:
        definition = self.get_status(self.full_status_name(status))
        return definition is not None and definition.is_done

    def remote_statuses(self) -> tuple[str, str]:
        """Local status names that remote open and closed states map to."""
        return self.starting_status, self.final_status
