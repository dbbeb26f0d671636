from __future__ import annotations

import random
import string
from math import ceil
from typing import TypeVar

T = TypeVar("T")


def dedupe_preserving_order(list_of_items: list[T]) -> list[T]:
    return list(dict.fromkeys(list_of_items))


def ascii_uid(len: int) -> str:
    # lowercase only, so the uid is safe in unquoted table names
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=len))


def sql_string_literal(value: str) -> str:
    escaped = str(value).replace("'", "''")
    return f"'{escaped}'"


def parse_duration(duration: float) -> str:
    """Human readable run time, e.g. '2.31 seconds' or '1 hour, 4 minutes'."""
    if duration < 60:
        return f"{duration:.2f} seconds"

    minutes, seconds = divmod(int(ceil(duration)), 60)
    hours, minutes = divmod(minutes, 60)
    parts = [
        f"{count} {unit}" + ("s" if count > 1 else "")
        for count, unit in [(hours, "hour"), (minutes, "minute"), (seconds, "second")]
        if count
    ]
    return ", ".join(parts)
