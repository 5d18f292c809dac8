"""
Task id list parsing.

Commands that take several task ids accept a comma-separated list in which
`a..b` stands for every id from a to b inclusive, e.g. `1,3..5,7`.
"""

from __future__ import annotations

RANGE_SEPARATOR = ".."


def parse_ids(value: str) -> list[str]:
    """
    Expand a comma-separated id list.

    Args:
        value: Id list such as "1,3..5,7".

    Returns:
        Ids in the given order, ranges expanded, duplicates kept.

    Raises:
        ValueError: If a range bound is not a non-negative integer or the
                    range runs backwards.

    Example:
        >>> parse_ids("1,3..5,7")
        ['1', '3', '4', '5', '7']
    """
    ids: list[str] = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if RANGE_SEPARATOR not in part:
            ids.append(part)
            continue

        start, _, end = part.partition(RANGE_SEPARATOR)
        if not (start.strip().isdigit() and end.strip().isdigit()):
            raise ValueError(f"Invalid id range: {part}")
        first, last = int(start), int(end)
        if first > last:
            raise ValueError(f"Invalid id range: {part}")
        ids.extend(str(n) for n in range(first, last + 1))
    return ids


def parse_id_args(values: list[str] | None) -> list[str]:
    """Expand several id list arguments, e.g. from a variadic CLI argument."""
    ids: list[str] = []
    for value in values or []:
        ids.extend(parse_ids(value))
    return ids
