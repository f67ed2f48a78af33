from __future__ import annotations

import time
from datetime import datetime


def agent_label(index: int) -> str:
    """Spreadsheet-style column label for a zero-based index.

    0 -> "A", 25 -> "Z", 26 -> "AA", 51 -> "AZ", 52 -> "BA", ...
    """
    if index < 0:
        raise ValueError(f"agent index must be >= 0, got {index}")
    label = ""
    n = index + 1
    while n:
        n, rem = divmod(n - 1, 26)
        label = chr(ord("A") + rem) + label
    return label


def now_ms() -> int:
    return int(time.time() * 1000)


def format_timestamp(ts_ms: int) -> str:
    return datetime.fromtimestamp(ts_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max(0, max_length - 3)] + "..."
