"""Compact Markdown summary: metadata, hotspot table, paths, observations."""

from __future__ import annotations

from cpuprofile_md.formatter.utils import (
    escape_markdown,
    format_duration,
    format_location,
    format_percent,
    format_time,
    is_gc_function,
    table_row,
    table_separator,
    truncate
)
from cpuprofile_md.models import AnalysisResult, FormatOptions

MAX_NAME_LENGTH = 60


def _share(value: float, total: float) -> float:
    return value / total * 100 if total > 0 else 0.0


def format_summary(result: AnalysisResult, options: FormatOptions | None = None) -> str:
    options = options or FormatOptions()
    lines = []
    lines.append(f"# {options.profile_name} - Performance Summary")
    lines.append("")

    lines.append("## Profile Metadata")
    lines.append("")
    lines.append(f"- **Duration**: {format_duration(result.total_time)}")
    lines.append(f"- **Samples**: {result.total_samples}")
    lines.append(f"- **Average Sample Interval**: {format_time(result.sample_interval)}")
    lines.append("")

    if result.hotspots:
        lines.append("## Top Hotspots")
        lines.append("")
        lines.append(table_row(["Rank", "Function", "Self%", "Total%", "Self Time", "Location"]))
        lines.append(table_separator(6, ["right", "left", "right", "right", "right", "left"]))
        for index, hotspot in enumerate(result.hotspots, start=1):
            lines.append(
                table_row(
                    [
                        str(index),
                        escape_markdown(truncate(hotspot.name or "(anonymous)", MAX_NAME_LENGTH)),
                        format_percent(hotspot.self_percent),
                        format_percent(hotspot.total_percent),
                        format_time(hotspot.self_time),
                        escape_markdown(format_location(hotspot.url, hotspot.line))
                    ]
                )
            )
        lines.append("")

    if result.critical_paths:
        lines.append("## Critical Paths")
        lines.append("")
        for index, path in enumerate(result.critical_paths, start=1):
            lines.append(f"### Path {index} ({format_percent(path.cumulative_percent)} cumulative)")
            lines.append("")
            for depth, node in enumerate(path.nodes):
                arrow = "→ " if depth > 0 else ""
                lines.append(
                    f"{'  ' * depth}{arrow}**{escape_markdown(node.name)}** "
                    f"(self: {format_percent(node.self_percent)}, total: {format_percent(node.total_percent)})"
                )
            lines.append("")

    lines.append("## Key Observations")
    lines.append("")
    for observation in generate_observations(result):
        lines.append(f"- {observation}")
    lines.append("")

    return "\n".join(lines)


def generate_observations(result: AnalysisResult) -> list[str]:
    if not result.hotspots:
        return ["No significant hotspots detected (all functions below threshold)."]

    observations = []
    top = result.hotspots[0]
    observations.append(
        f"**Primary bottleneck**: `{top.name}` accounts for "
        f"{format_percent(top.self_percent)} of total execution time."
    )

    native_time = sum(h.self_time for h in result.hotspots if h.type == "native")
    app_time = sum(h.self_time for h in result.hotspots if h.type == "app")
    native_percent = _share(native_time, result.total_time)
    app_percent = _share(app_time, result.total_time)
    if native_percent > 50:
        observations.append(
            f"**Native code dominance**: {format_percent(native_percent)} of time spent in native/built-in "
            "functions, suggesting limited optimization opportunities in application code."
        )
    elif app_percent > 50:
        observations.append(
            f"**Application code focus**: {format_percent(app_percent)} of time spent in application code, "
            "suggesting optimization opportunities exist."
        )

    gc_hotspots = [h for h in result.hotspots if is_gc_function(h.name)]
    if gc_hotspots:
        gc_percent = _share(sum(h.self_time for h in gc_hotspots), result.total_time)
        observations.append(
            f"**GC pressure detected**: Garbage collection functions account for {format_percent(gc_percent)} "
            "of execution time, indicating potential memory allocation issues."
        )

    top_three = sum(h.self_percent for h in result.hotspots[:3])
    if top_three > 50:
        observations.append(
            f"**High optimization potential**: Top 3 functions account for {format_percent(top_three)} of "
            "execution time, suggesting focused optimization could yield significant improvements."
        )
    else:
        observations.append(
            f"**Distributed workload**: Top 3 functions account for only {format_percent(top_three)} of "
            "execution time, suggesting workload is well-distributed across multiple functions."
        )
    return observations
