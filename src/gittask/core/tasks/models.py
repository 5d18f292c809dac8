"""
Task data models for git-task.

Defines the Task, Comment and Label records that are serialized, one task per
blob, into the task ref's tree. Tasks carry an open-ended property map; only
`name` and `status` are mandatory.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

NAME = "name"
STATUS = "status"
DESCRIPTION = "description"
CREATED = "created"
AUTHOR = "author"


class Label(BaseModel):
    """A label attached to a task. Names are unique within a task."""

    name: str = Field(..., min_length=1, description="Label name")
    color: str = Field(default="", description="Color name or hex RGB")
    description: str | None = Field(default=None, description="Optional description")


class Comment(BaseModel):
    """
    A comment on a task.

    The id is a local sequence number until the comment is pushed, after
    which it holds the id the remote tracker assigned.
    """

    id: str | None = Field(default=None, description="Local or remote comment id")
    props: dict[str, str] = Field(
        default_factory=dict, description="Comment properties (created, author)"
    )
    text: str = Field(..., description="Comment body")

    def get_property(self, prop: str) -> str | None:
        return self.props.get(prop)


class Task(BaseModel):
    """
    A task in the git-task store.

    Example:
        >>> task = Task.new("Fix bug", status="OPEN")
        >>> task.get_property("name")
        'Fix bug'
        >>> comment = task.add_comment("Looking into it")
        >>> comment.id
        '1'
    """

    id: str | None = Field(default=None, description="Task id, equal to its tree entry name")
    props: dict[str, str] = Field(default_factory=dict, description="Task properties")
    comments: list[Comment] | None = Field(default=None, description="Ordered comments")
    labels: list[Label] | None = Field(default=None, description="Labels")

    model_config = ConfigDict(validate_assignment=True)

    @field_validator("props")
    @classmethod
    def validate_required_props(cls, v: dict[str, str]) -> dict[str, str]:
        """Name and status must be present and non-empty."""
        if not v.get(NAME) or not v.get(STATUS):
            raise ValueError("Name or status is empty")
        return v

    @classmethod
    def new(
        cls,
        name: str,
        status: str,
        description: str = "",
        task_id: str | None = None,
    ) -> Task:
        """Create a task from the standard properties."""
        return cls(
            id=task_id,
            props={NAME: name, DESCRIPTION: description, STATUS: status},
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.props[NAME]

    @property
    def status(self) -> str:
        return self.props[STATUS]

    @property
    def description(self) -> str:
        return self.props.get(DESCRIPTION, "")

    def get_property(self, prop: str) -> str | None:
        return self.props.get(prop)

    def set_property(self, prop: str, value: str) -> None:
        # Reassign so validate_assignment re-checks required props
        self.props = {**self.props, prop: value}

    def delete_property(self, prop: str) -> bool:
        """
        Remove a property.

        Returns:
            True if the property existed.

        Raises:
            ValidationError: If prop is name or status.
        """
        if prop not in self.props:
            return False
        self.props = {k: v for k, v in self.props.items() if k != prop}
        return True

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def next_comment_id(self) -> str:
        """
        Next local comment id.

        Sequential (`count + 1`), bumped past the largest numeric id still
        present so ids stay unique after deletions.
        """
        comments = self.comments or []
        highest = len(comments)
        for comment in comments:
            if comment.id is not None and comment.id.isdigit():
                highest = max(highest, int(comment.id))
        return str(highest + 1)

    def add_comment(
        self,
        text: str,
        props: dict[str, str] | None = None,
        comment_id: str | None = None,
    ) -> Comment:
        """Append a comment, assigning the next local id if none is given."""
        comment = Comment(
            id=comment_id or self.next_comment_id(),
            props=dict(props or {}),
            text=text,
        )
        self.comments = [*(self.comments or []), comment]
        return comment

    def find_comment(self, comment_id: str) -> Comment | None:
        for comment in self.comments or []:
            if comment.id == comment_id:
                return comment
        return None

    def delete_comment(self, comment_id: str) -> Comment:
        """
        Remove a comment by id.

        Raises:
            ValueError: If the task has no such comment.
        """
        comment = self.find_comment(comment_id)
        if comment is None:
            raise ValueError(f"Comment ID {comment_id} not found")
        self.comments = [c for c in self.comments or [] if c.id != comment_id]
        return comment

    def set_comment_id(self, old_id: str, new_id: str) -> None:
        """
        Rename a comment id, e.g. after the remote assigned one.

        Raises:
            ValueError: If old_id is unknown or new_id is already used.
        """
        comment = self.find_comment(old_id)
        if comment is None:
            raise ValueError(f"Comment ID {old_id} not found")
        if old_id != new_id and self.find_comment(new_id) is not None:
            raise ValueError(f"Comment ID {new_id} already exists")
        comment.id = new_id

    @property
    def comment_ids(self) -> list[str]:
        return [c.id for c in self.comments or [] if c.id is not None]

    # ------------------------------------------------------------------
    # Labels
    # ------------------------------------------------------------------

    def find_label(self, name: str) -> Label | None:
        for label in self.labels or []:
            if label.name == name:
                return label
        return None

    def add_label(self, name: str, color: str = "", description: str | None = None) -> Label:
        """Add a label, replacing any existing label with the same name."""
        label = Label(name=name, color=color, description=description)
        others = [lbl for lbl in self.labels or [] if lbl.name != name]
        self.labels = [*others, label]
        return label

    def delete_label(self, name: str) -> Label:
        """
        Remove a label by name.

        Raises:
            ValueError: If the task has no such label.
        """
        label = self.find_label(name)
        if label is None:
            raise ValueError(f"Label '{name}' not found")
        self.labels = [lbl for lbl in self.labels or [] if lbl.name != name]
        return label

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_blob(self) -> bytes:
        """Serialize to the UTF-8 JSON document stored in the tree."""
        return self.model_dump_json(exclude_none=True).encode("utf-8")

    @classmethod
    def from_blob(cls, entry_name: str, content: bytes) -> Task:
        """
        Decode a stored record.

        The entry name is authoritative for the id; the id inside the
        document is only a redundant copy.
        """
        task = cls.model_validate_json(content)
        if task.id != entry_name:
            task.id = entry_name
        return task
