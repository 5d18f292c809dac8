"""
git-task - Local-first task manager backed by git objects.

Tasks are stored as blobs under a dedicated ref in the repository's object
database and can be pushed to and pulled from GitHub or GitLab issues.
"""

__version__ = "0.9.0"

# Re-export core models for convenience
from gittask.core.config.models import TaskConfig
from gittask.core.tasks.models import Comment, Label, Task

__all__ = ["TaskConfig", "Task", "Comment", "Label", "__version__"]
