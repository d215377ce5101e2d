"""Convert V8 CPU profiles into statistics and Markdown reports."""

from cpuprofile_md.analyzer import analyze
from cpuprofile_md.converter import convert
from cpuprofile_md.errors import InvalidEncoding, MalformedProfile, ProfileError
from cpuprofile_md.formatter import format_result
from cpuprofile_md.models import (
    AnalysisResult,
    AnalyzeOptions,
    CanonicalProfile,
    ConvertOptions,
    FormatOptions
)
from cpuprofile_md.parser import normalize
from cpuprofile_md.source import resolve_source

__all__ = [
    "AnalysisResult",
    "AnalyzeOptions",
    "CanonicalProfile",
    "ConvertOptions",
    "FormatOptions",
    "InvalidEncoding",
    "MalformedProfile",
    "ProfileError",
    "analyze",
    "convert",
    "format_result",
    "normalize",
    "resolve_source"
]
