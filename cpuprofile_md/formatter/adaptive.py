"""Default report: executive summary plus per-hotspot drill-down sections."""

from __future__ import annotations

from cpuprofile_md.formatter.utils import (
    anchor_id,
    escape_markdown,
    format_duration,
    format_location,
    format_percent,
    format_time,
    is_gc_function,
    key_name,
    table_row,
    table_separator,
    truncate
)
from cpuprofile_md.models import AnalysisResult, FormatOptions, Hotspot
from cpuprofile_md.source import resolve_source

MAX_NAME_LENGTH = 60
MAX_CONTEXT_RELATIONS = 3
EXECUTIVE_TOP_N = 5


def _hotspot_anchor(index: int, hotspot: Hotspot) -> str:
    return anchor_id(f"hotspot-{index}-{hotspot.name}")


def generate_executive_summary(result: AnalysisResult) -> str:
    if not result.hotspots:
        return "No significant performance hotspots detected in this profile."

    parts = []
    primary = result.hotspots[0]
    parts.append(
        f"**Primary bottleneck**: `{primary.name}` accounts for "
        f"**{format_percent(primary.self_percent)}** of execution time."
    )
    if len(result.hotspots) > 1:
        secondary = result.hotspots[1]
        parts.append(
            f"**Secondary bottleneck**: `{secondary.name}` accounts for "
            f"**{format_percent(secondary.self_percent)}** of execution time."
        )

    top = result.hotspots[:EXECUTIVE_TOP_N]
    top_percent = sum(h.self_percent for h in top)
    if top_percent > 70:
        parts.append(
            f"\n**Optimization potential**: High - top {len(top)} functions account for "
            f"{format_percent(top_percent)} of execution time."
        )
    elif top_percent > 40:
        parts.append(
            f"\n**Optimization potential**: Moderate - top {len(top)} functions account for "
            f"{format_percent(top_percent)} of execution time."
        )
    else:
        parts.append(
            "\n**Optimization potential**: Low - execution time is distributed across many functions "
            f"(top {len(top)}: {format_percent(top_percent)})."
        )
    return " ".join(parts)


def generate_hotspot_insights(hotspot: Hotspot) -> list[str]:
    insights = []
    if hotspot.total_percent > 0 and hotspot.self_percent / hotspot.total_percent > 0.8 and hotspot.self_percent > 5:
        insights.append(
            "This function spends most of its time in self-execution rather than calling other functions. "
            "Focus optimization efforts here."
        )
    if len(hotspot.callers) > 10:
        insights.append(
            f"Called from {len(hotspot.callers)} different locations - this is a hot utility function. "
            "Optimizing it will have broad impact."
        )
    if is_gc_function(hotspot.name, ("gc", "garbage", "scavenge", "mark")):
        insights.append(
            "This is a garbage collection function. Consider reducing object allocations or adjusting heap size."
        )
    if hotspot.type == "native":
        insights.append(
            "This is a native/built-in function. Optimization opportunities are limited - "
            "focus on reducing calls to it."
        )
    return insights


def _call_context(title: str, keys: list[str]) -> list[str]:
    lines = ["", f"*{title}*:"]
    for key in keys[:MAX_CONTEXT_RELATIONS]:
        lines.append(f"- `{escape_markdown(key_name(key))}`")
    if len(keys) > MAX_CONTEXT_RELATIONS:
        lines.append(f"- *(and {len(keys) - MAX_CONTEXT_RELATIONS} more)*")
    return lines


def format_adaptive(result: AnalysisResult, options: FormatOptions | None = None) -> str:
    options = options or FormatOptions()
    lines = []
    lines.append(f"# {options.profile_name} - Performance Analysis")
    lines.append("")

    lines.append("## Executive Summary")
    lines.append("")
    lines.append(generate_executive_summary(result))
    lines.append("")

    lines.append("## Profile Overview")
    lines.append("")
    lines.append(f"- **Duration**: {format_duration(result.total_time)}")
    lines.append(f"- **Samples**: {result.total_samples}")
    lines.append(f"- **Sample Interval**: {format_time(result.sample_interval)}")
    lines.append("")

    if result.hotspots:
        lines.append("## Top Hotspots")
        lines.append("")
        lines.append(table_row(["Rank", "Function", "Self%", "Total%", "Type", "Details"]))
        lines.append(table_separator(6, ["right", "left", "right", "right", "left", "center"]))
        for index, hotspot in enumerate(result.hotspots, start=1):
            lines.append(
                table_row(
                    [
                        str(index),
                        escape_markdown(truncate(hotspot.name or "(anonymous)", MAX_NAME_LENGTH)),
                        format_percent(hotspot.self_percent),
                        format_percent(hotspot.total_percent),
                        hotspot.type,
                        f"[→ Details](#{_hotspot_anchor(index, hotspot)})"
                    ]
                )
            )
        lines.append("")

    if result.critical_paths:
        lines.append("## Critical Execution Paths")
        lines.append("")
        lines.append("The heaviest call paths from root to leaf:")
        lines.append("")
        for index, path in enumerate(result.critical_paths, start=1):
            lines.append(f"### Path {index}")
            lines.append("")
            lines.append(f"**Cumulative Impact**: {format_percent(path.cumulative_percent)}")
            lines.append("")
            for depth, node in enumerate(path.nodes):
                indent = "  " * depth
                arrow = "→ " if depth > 0 else ""
                lines.append(f"{indent}{arrow}`{escape_markdown(node.name)}`")
                lines.append(
                    f"{indent}  *(self: {format_percent(node.self_percent)}, "
                    f"total: {format_percent(node.total_percent)})*"
                )
            lines.append("")

    lines.append("---")
    lines.append("")
    lines.append("## Detailed Analysis")
    lines.append("")

    for index, hotspot in enumerate(result.hotspots, start=1):
        lines.append(f'<a id="{_hotspot_anchor(index, hotspot)}"></a>')
        lines.append("")
        lines.append(f"### {index}. {escape_markdown(hotspot.name or '(anonymous)')}")
        lines.append("")

        lines.append("**Metadata**:")
        lines.append(f"- Location: `{escape_markdown(format_location(hotspot.url, hotspot.line))}`")
        lines.append(f"- Type: {hotspot.type}")
        lines.append(f"- Self Time: {format_time(hotspot.self_time)} ({format_percent(hotspot.self_percent)})")
        lines.append(f"- Total Time: {format_time(hotspot.total_time)} ({format_percent(hotspot.total_percent)})")
        lines.append(f"- Samples: {hotspot.hit_count}")
        lines.append("")

        if hotspot.callers or hotspot.callees:
            lines.append("**Call Context**:")
            if hotspot.callers:
                lines.extend(_call_context("Called by", hotspot.callers))
            if hotspot.callees:
                lines.extend(_call_context("Calls", hotspot.callees))
            lines.append("")

        if options.include_source and (options.source_dir or options.fetch_remote):
            context = resolve_source(
                hotspot.url,
                hotspot.line,
                options.source_dir,
                fetch_remote=options.fetch_remote,
                timeout=options.fetch_timeout
            )
            if context.found:
                lines.append("**Source Code**:")
                lines.append("")
                lines.append("```")
                lines.extend(context.lines)
                lines.append("```")
                lines.append("")

        insights = generate_hotspot_insights(hotspot)
        if insights:
            lines.append("**Insights**:")
            for insight in insights:
                lines.append(f"- {insight}")
            lines.append("")

        lines.append("---")
        lines.append("")

    return "\n".join(lines)
