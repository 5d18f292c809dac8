"""Utility modules for git-task."""

from .ids import parse_id_args, parse_ids

__all__ = [
    "parse_id_args",
    "parse_ids",
]
