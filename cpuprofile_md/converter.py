"""One-call pipeline: normalize, analyze, render."""

from __future__ import annotations

from typing import Any

from cpuprofile_md.analyzer import analyze
from cpuprofile_md.formatter import format_result
from cpuprofile_md.models import ConvertOptions
from cpuprofile_md.parser import normalize


def convert(raw: Any, options: ConvertOptions | None = None) -> str:
    """
    Convert a CPU profile (bytes, JSON text or parsed JSON) to Markdown.
    """
    options = options or ConvertOptions()
    profile = normalize(raw)
    result = analyze(profile, options.analyze)
    return format_result(result, options.level, options.output)
