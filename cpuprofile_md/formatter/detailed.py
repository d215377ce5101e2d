"""Detailed Markdown report with the full call tree and function list."""

from __future__ import annotations

from cpuprofile_md.formatter.utils import (
    escape_markdown,
    format_duration,
    format_location,
    format_percent,
    format_time,
    key_name
)
from cpuprofile_md.models import AnalysisResult, CallTreeNode, FormatOptions

MAX_TREE_CHILDREN = 10
MAX_RELATIONS = 5
MAX_FUNCTIONS = 50


def render_call_tree(root: CallTreeNode, hotspot_keys: set[str]) -> list[str]:
    """
    Render the tree as indented text, at most ten children per node.
    """
    lines = []
    stack: list[tuple[CallTreeNode | None, int, bool, int]] = [(root, 0, True, 0)]
    while stack:
        node, depth, is_last, hidden = stack.pop()
        indent = "  " * depth
        if node is None:
            lines.append(f"{indent}└── *({hidden} more children...)*")
            continue

        prefix = ("└── " if is_last else "├── ") if depth > 0 else ""
        marker = " ◀ HOTSPOT" if node.key in hotspot_keys else ""
        location = format_location(node.url, node.line)
        lines.append(
            f"{indent}{prefix}[{format_percent(node.self_percent, 1)} | {format_percent(node.total_percent, 1)}] "
            f"{escape_markdown(node.name)} @ {escape_markdown(location)}{marker}"
        )

        shown = node.children[:MAX_TREE_CHILDREN]
        overflow = len(node.children) - len(shown)
        if overflow > 0:
            stack.append((None, depth + 1, True, overflow))
        for index in range(len(shown) - 1, -1, -1):
            child_is_last = index == len(shown) - 1 and overflow == 0
            stack.append((shown[index], depth + 1, child_is_last, 0))
    return lines


def _relation_lines(title: str, keys: list[str]) -> list[str]:
    lines = [f"**{title}**:"]
    for key in keys[:MAX_RELATIONS]:
        lines.append(f"- {escape_markdown(key_name(key))}")
    if len(keys) > MAX_RELATIONS:
        lines.append(f"- *({len(keys) - MAX_RELATIONS} more...)*")
    lines.append("")
    return lines


def format_detailed(result: AnalysisResult, options: FormatOptions | None = None) -> str:
    options = options or FormatOptions()
    lines = []
    lines.append(f"# {options.profile_name} - Detailed Analysis")
    lines.append("")

    lines.append("## Profile Metadata")
    lines.append("")
    lines.append(f"- **Duration**: {format_duration(result.total_time)}")
    lines.append(f"- **Total Samples**: {result.total_samples}")
    lines.append(f"- **Average Sample Interval**: {format_time(result.sample_interval)}")
    lines.append(f"- **Start Time**: {result.start_time}µs")
    lines.append(f"- **End Time**: {result.end_time}µs")
    lines.append("")

    lines.append("## Call Tree")
    lines.append("")
    lines.append("Text-based flame graph (indented by call depth):")
    lines.append("")
    lines.extend(render_call_tree(result.call_tree, {hotspot.key for hotspot in result.hotspots}))
    lines.append("")

    if result.hotspots:
        lines.append("## Hotspot Analysis")
        lines.append("")
        for index, hotspot in enumerate(result.hotspots, start=1):
            lines.append(f"### {index}. {escape_markdown(hotspot.name or '(anonymous)')}")
            lines.append("")
            lines.append(f"- **Location**: {escape_markdown(format_location(hotspot.url, hotspot.line))}")
            lines.append(f"- **Type**: {hotspot.type}")
            lines.append(f"- **Self Time**: {format_time(hotspot.self_time)} ({format_percent(hotspot.self_percent)})")
            lines.append(
                f"- **Total Time**: {format_time(hotspot.total_time)} ({format_percent(hotspot.total_percent)})"
            )
            lines.append(f"- **Hit Count**: {hotspot.hit_count} samples")
            lines.append("")
            if hotspot.callers:
                lines.extend(_relation_lines("Called by", hotspot.callers))
            if hotspot.callees:
                lines.extend(_relation_lines("Calls", hotspot.callees))

    lines.append("## All Functions")
    lines.append("")
    lines.append("Complete function statistics:")
    lines.append("")
    ranked = sorted(result.function_stats.values(), key=lambda stats: stats.self_time, reverse=True)
    for stats in ranked[:MAX_FUNCTIONS]:
        lines.append(
            f"- **{escape_markdown(stats.name)}** @ {escape_markdown(format_location(stats.url, stats.line))}: "
            f"{format_percent(stats.self_percent)} self, {format_percent(stats.total_percent)} total"
        )
    if len(ranked) > MAX_FUNCTIONS:
        lines.append(f"- *({len(ranked) - MAX_FUNCTIONS} more functions...)*")
    lines.append("")

    return "\n".join(lines)
