"""Markdown renderers for analysis results."""

from cpuprofile_md.formatter.adaptive import format_adaptive
from cpuprofile_md.formatter.detailed import format_detailed
from cpuprofile_md.formatter.summary import format_summary
from cpuprofile_md.models import AnalysisResult, FormatOptions

FORMAT_LEVELS = {
    "summary": format_summary,
    "detailed": format_detailed,
    "adaptive": format_adaptive
}


def format_result(
    result: AnalysisResult,
    level: str = "adaptive",
    options: FormatOptions | None = None
) -> str:
    formatter = FORMAT_LEVELS.get(level)
    if formatter is None:
        raise ValueError(f"Unknown format level: {level}")
    return formatter(result, options)


__all__ = [
    "FORMAT_LEVELS",
    "format_adaptive",
    "format_detailed",
    "format_result",
    "format_summary"
]
