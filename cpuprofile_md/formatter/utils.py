"""Shared helpers for Markdown rendering."""

from __future__ import annotations

import re

_MARKDOWN_SPECIAL = re.compile(r"([|`*_\[\]])")
_ALIGNMENTS = {"left": ":---", "right": "---:", "center": ":---:"}
GC_TOKENS = ("gc", "garbage", "scavenge", "mark", "sweep")


def format_duration(microseconds: float) -> str:
    """Human readable duration from microseconds, up to minutes."""
    if microseconds < 1000:
        return f"{microseconds:.0f}µs"
    milliseconds = microseconds / 1000
    if milliseconds < 1000:
        return f"{milliseconds:.2f}ms"
    seconds = milliseconds / 1000
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {seconds % 60:.2f}s"


def format_time(microseconds: float) -> str:
    if microseconds < 1000:
        return f"{microseconds:.0f}µs"
    milliseconds = microseconds / 1000
    if milliseconds < 1000:
        return f"{milliseconds:.2f}ms"
    return f"{milliseconds / 1000:.3f}s"


def format_location(url: str, line: int) -> str:
    """Shorten a frame location to ``filename:line`` with a one-based line."""
    display_line = line + 1
    if not url:
        return f"(unknown):{display_line}"
    filename = url.rstrip("/").split("/")[-1] or url
    return f"{filename}:{display_line}"


def format_percent(percent: float, decimals: int = 2) -> str:
    return f"{percent:.{decimals}f}%"


def escape_markdown(text: str) -> str:
    return _MARKDOWN_SPECIAL.sub(r"\\\1", text)


def anchor_id(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def key_name(key: str) -> str:
    """Function name part of an identity key."""
    return key.split("@")[0]


def is_gc_function(name: str, tokens: tuple[str, ...] = GC_TOKENS) -> bool:
    lower_name = name.lower()
    return any(token in lower_name for token in tokens)


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def table_row(cells: list[str]) -> str:
    return "| " + " | ".join(cells) + " |"


def table_separator(column_count: int, alignments: list[str] | None = None) -> str:
    separators = ["---"] * column_count
    for index, alignment in enumerate((alignments or [])[:column_count]):
        separators[index] = _ALIGNMENTS.get(alignment, "---")
    return "| " + " | ".join(separators) + " |"
