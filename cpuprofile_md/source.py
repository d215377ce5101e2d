"""Source snippet lookup for hotspot locations."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

import requests

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_LINES = 3
FETCH_TIMEOUT_SECONDS = 10
MAX_SEARCH_DEPTH = 10
SKIPPED_DIRECTORIES = {"node_modules", ".git"}


@dataclass(frozen=True)
class SourceContext:
    found: bool
    lines: tuple[str, ...] = ()
    hot_line_index: int = -1


NOT_FOUND = SourceContext(found=False)


def extract_filename(url: str) -> str | None:
    """Basename of a script url with scheme, query and fragment removed."""
    if not url:
        return None
    path = re.sub(r"^(file|https?)://", "", url)
    path = path.split("?")[0].split("#")[0]
    name = path.replace("\\", "/").rstrip("/").split("/")[-1]
    return name or None


def find_file(filename: str, source_dir: str) -> Path | None:
    root = Path(source_dir).resolve()
    direct = root / filename
    if direct.is_file():
        return direct

    stack = [(root, 0)]
    while stack:
        directory, depth = stack.pop()
        if depth > MAX_SEARCH_DEPTH:
            continue
        try:
            entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
        except OSError as exc:
            logger.debug("Skipping unreadable directory %s: %s", directory, exc)
            continue
        subdirectories = []
        for entry in entries:
            if entry.name in SKIPPED_DIRECTORIES:
                continue
            if entry.is_file() and entry.name == filename:
                return Path(entry.path)
            if entry.is_dir(follow_symlinks=False):
                subdirectories.append((Path(entry.path), depth + 1))
        stack.extend(reversed(subdirectories))
    return None


def fetch_remote_source(url: str, timeout: float = FETCH_TIMEOUT_SECONDS) -> str | None:
    """Download an http(s) script; None when the request fails."""
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Could not fetch source for %s: %s", url, exc)
        return None
    return resp.text


def _snippet(content: str, line: int, context_lines: int) -> SourceContext:
    all_lines = content.split("\n")
    if line < 0 or line >= len(all_lines):
        return NOT_FOUND

    start = max(0, line - context_lines)
    end = min(len(all_lines) - 1, line + context_lines)
    lines = []
    for index in range(start, end + 1):
        text = f"{index + 1:>4} | {all_lines[index]}"
        if index == line:
            text += " // ← HOT"
        lines.append(text)
    return SourceContext(found=True, lines=tuple(lines), hot_line_index=line - start)


def resolve_source(
    url: str,
    line: int,
    source_dir: str | None = None,
    context_lines: int = DEFAULT_CONTEXT_LINES,
    fetch_remote: bool = False,
    timeout: float = FETCH_TIMEOUT_SECONDS
) -> SourceContext:
    """
    Resolve the source lines around a profile location.

    Args:
        url: Script url or path from the call frame
        line: Zero-based line number, as V8 reports it
        source_dir: Directory searched for a file with the url's basename
        context_lines: Lines shown before and after the hot line
        fetch_remote: Download http(s) scripts not found locally

    Returns:
        SourceContext; ``found`` is False when nothing could be read
    """
    if not url:
        return NOT_FOUND

    content = None
    filename = extract_filename(url)
    if source_dir and filename:
        path = find_file(filename, source_dir)
        if path is not None:
            try:
                content = path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                logger.warning("Could not read %s: %s", path, exc)

    if content is None and fetch_remote and url.startswith(("http://", "https://")):
        content = fetch_remote_source(url, timeout)

    if content is None:
        return NOT_FOUND
    return _snippet(content, line, context_lines)
