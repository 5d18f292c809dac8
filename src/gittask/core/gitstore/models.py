"""
Data models for the git object store adapter.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class TreeEntry(BaseModel):
    """One entry of a git tree object."""

    name: str = Field(..., description="Entry name (task id)")
    mode: str = Field(default="100644", description="Git file mode")
    type: str = Field(default="blob", description="Object type (blob or tree)")
    sha: str = Field(..., description="Object SHA")


class Identity(BaseModel):
    """Author or committer identity."""

    name: str
    email: str = ""


class CommitInfo(BaseModel):
    """A commit in the task ref's history."""

    sha: str
    author: Identity
    timestamp: int = Field(description="Author time in epoch seconds")
    message: str = ""
