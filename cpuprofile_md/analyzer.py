"""Time attribution, aggregation and ranking for normalized CPU profiles."""

from __future__ import annotations

import logging

from cpuprofile_md.models import (
    AnalysisResult,
    AnalyzeOptions,
    CallTreeNode,
    CanonicalProfile,
    CriticalPath,
    FunctionStats,
    Hotspot,
    ProfileNode
)

logger = logging.getLogger(__name__)

NATIVE_URL_TOKENS = ["(native)", "node_modules", "internal/"]
APP_URL_SCHEMES = ("http://", "https://", "file://")


def _percent(value: float, total_time: float) -> float:
    return (value / total_time) * 100 if total_time > 0 else 0.0


def compute_self_time(
    profile: CanonicalProfile,
    node_map: dict[int, ProfileNode]
) -> tuple[dict[int, float], dict[int, int]]:
    """
    Sum the time delta of every sample into the node it names.

    Returns:
        Tuple of (self time by node id, sample count by node id)
    """
    self_time: dict[int, float] = {}
    hit_count: dict[int, int] = {}
    unknown = 0
    for node_id, delta in zip(profile.samples, profile.time_deltas):
        if node_id not in node_map:
            unknown += 1
            continue
        self_time[node_id] = self_time.get(node_id, 0) + delta
        hit_count[node_id] = hit_count.get(node_id, 0) + 1
    if unknown:
        logger.warning("Ignored %d samples naming nodes missing from the node table", unknown)
    return self_time, hit_count


def compute_total_time(
    nodes: tuple[ProfileNode, ...],
    node_map: dict[int, ProfileNode],
    self_time: dict[int, float]
) -> dict[int, float]:
    """
    Compute self plus descendant time for every node, each node exactly once.

    The walk is an explicit post-order stack started from every node in the
    table. A child that is still on the stack (a cycle) contributes zero.
    """
    total_time: dict[int, float] = {}
    visiting: set[int] = set()

    for start in nodes:
        if start.id in total_time:
            continue
        stack: list[tuple[int, bool]] = [(start.id, False)]
        while stack:
            node_id, expanded = stack.pop()
            node = node_map[node_id]
            if expanded:
                total = self_time.get(node_id, 0)
                for child_id in node.children:
                    total += total_time.get(child_id, 0)
                total_time[node_id] = total
                visiting.discard(node_id)
                continue
            if node_id in total_time or node_id in visiting:
                continue
            visiting.add(node_id)
            stack.append((node_id, True))
            for child_id in reversed(node.children):
                if child_id in node_map and child_id not in total_time and child_id not in visiting:
                    stack.append((child_id, False))

    return total_time


def aggregate_function_stats(
    nodes: tuple[ProfileNode, ...],
    node_map: dict[int, ProfileNode],
    self_time: dict[int, float],
    total_time: dict[int, float],
    hit_count: dict[int, int],
    profile_total: float
) -> dict[str, FunctionStats]:
    """
    Merge every node sharing a function identity into one record.

    Total time is the sum over call sites and may exceed the profile total.
    """
    groups: dict[str, dict] = {}
    for node in nodes:
        key = node.call_frame.key
        group = groups.get(key)
        if group is None:
            group = groups[key] = {
                "frame": node.call_frame,
                "self_time": 0,
                "total_time": 0,
                "hit_count": 0,
                "callers": {},
                "callees": {}
            }
        group["self_time"] += self_time.get(node.id, 0)
        group["total_time"] += total_time.get(node.id, 0)
        group["hit_count"] += hit_count.get(node.id, 0)

        if node.parent is not None and node.parent in node_map:
            group["callers"][node_map[node.parent].call_frame.key] = None
        for child_id in node.children:
            if child_id in node_map:
                group["callees"][node_map[child_id].call_frame.key] = None

    stats_by_key: dict[str, FunctionStats] = {}
    for key, group in groups.items():
        frame = group["frame"]
        stats_by_key[key] = FunctionStats(
            key=key,
            name=frame.function_name,
            url=frame.url,
            line=frame.line_number,
            column=frame.column_number,
            self_time=group["self_time"],
            total_time=group["total_time"],
            self_percent=_percent(group["self_time"], profile_total),
            total_percent=_percent(group["total_time"], profile_total),
            hit_count=group["hit_count"],
            callers=tuple(group["callers"]),
            callees=tuple(group["callees"])
        )
    return stats_by_key


def classify_url(url: str) -> str:
    """
    Classify a function's source url into native/app/unknown.

    Native markers are checked first, so node_modules paths count as native.
    """
    if not url or url.startswith("native "):
        return "native"
    if any(token in url for token in NATIVE_URL_TOKENS):
        return "native"
    if url.startswith(APP_URL_SCHEMES):
        return "app"
    if "/" in url or "\\" in url:
        return "app"
    return "unknown"


def extract_hotspots(
    function_stats: dict[str, FunctionStats],
    threshold: float,
    max_count: int
) -> list[Hotspot]:
    selected = [stats for stats in function_stats.values() if stats.self_percent >= threshold]
    # sorted() is stable, ties keep node-table order
    selected = sorted(selected, key=lambda stats: stats.self_time, reverse=True)[:max(max_count, 0)]
    return [
        Hotspot(
            key=stats.key,
            name=stats.name,
            url=stats.url,
            line=stats.line,
            column=stats.column,
            self_time=stats.self_time,
            total_time=stats.total_time,
            self_percent=stats.self_percent,
            total_percent=stats.total_percent,
            hit_count=stats.hit_count,
            callers=list(stats.callers),
            callees=list(stats.callees),
            type=classify_url(stats.url)
        )
        for stats in selected
    ]


def _tree_node(node: ProfileNode, self_time: float, total_time: float, profile_total: float) -> CallTreeNode:
    frame = node.call_frame
    return CallTreeNode(
        key=frame.key,
        name=frame.function_name,
        url=frame.url,
        line=frame.line_number,
        column=frame.column_number,
        self_time=self_time,
        total_time=total_time,
        self_percent=_percent(self_time, profile_total),
        total_percent=_percent(total_time, profile_total)
    )


def build_call_tree(
    root_id: int,
    node_map: dict[int, ProfileNode],
    self_time: dict[int, float],
    total_time: dict[int, float],
    profile_total: float
) -> CallTreeNode:
    """
    Materialize the call tree from the root, children by descending total time.

    Built top-down from an explicit stack; every node id is placed at most
    once so shared or cyclic child ids cannot repeat a subtree.
    """

    def make(node_id: int) -> CallTreeNode:
        return _tree_node(
            node_map[node_id],
            self_time.get(node_id, 0),
            total_time.get(node_id, 0),
            profile_total
        )

    root = make(root_id)
    placed = {root_id}
    stack = [(root_id, root)]
    while stack:
        node_id, tree_node = stack.pop()
        child_ids = [
            child_id
            for child_id in node_map[node_id].children
            if child_id in node_map and child_id not in placed
        ]
        placed.update(child_ids)
        children = [(child_id, make(child_id)) for child_id in child_ids]
        children.sort(key=lambda item: item[1].total_time, reverse=True)
        tree_node.children = [child for _, child in children]
        stack.extend(children)
    return root


def find_critical_paths(call_tree: CallTreeNode, max_paths: int) -> list[CriticalPath]:
    """
    Rank every root-to-leaf path by the summed self% of the nodes on it.
    """
    # Each visited node is stored once as (node, parent index, running score),
    # and node tuples are rebuilt only for the paths that are returned.
    arena: list[tuple[CallTreeNode, int, float]] = []
    leaves: list[int] = []
    stack: list[tuple[CallTreeNode, int, float]] = [(call_tree, -1, 0.0)]
    while stack:
        node, parent_index, prefix_score = stack.pop()
        index = len(arena)
        score = prefix_score + node.self_percent
        arena.append((node, parent_index, score))
        if not node.children:
            leaves.append(index)
            continue
        for child in reversed(node.children):
            stack.append((child, index, score))

    leaves.sort(key=lambda leaf: arena[leaf][2], reverse=True)
    paths = []
    for leaf in leaves[:max(max_paths, 0)]:
        nodes = []
        index = leaf
        while index != -1:
            node, index, _ = arena[index]
            nodes.append(node)
        nodes.reverse()
        paths.append(CriticalPath(nodes=tuple(nodes), cumulative_percent=arena[leaf][2]))
    return paths


def analyze(profile: CanonicalProfile, options: AnalyzeOptions | None = None) -> AnalysisResult:
    """
    Analyze a normalized profile.

    Args:
        profile: Output of ``normalize``
        options: Hotspot threshold and list bounds; defaults when omitted

    Returns:
        AnalysisResult with per-function stats, call tree, hotspots and paths
    """
    options = options or AnalyzeOptions()
    node_map = {node.id: node for node in profile.nodes}

    self_time, hit_count = compute_self_time(profile, node_map)
    total = sum(profile.time_deltas)
    total_samples = len(profile.samples)
    sample_interval = total / total_samples if total_samples else 0.0

    total_time = compute_total_time(profile.nodes, node_map, self_time)
    function_stats = aggregate_function_stats(
        profile.nodes,
        node_map,
        self_time,
        total_time,
        hit_count,
        total
    )
    call_tree = build_call_tree(profile.root_id, node_map, self_time, total_time, total)
    hotspots = extract_hotspots(function_stats, options.hotspot_threshold, options.max_hotspots)
    critical_paths = find_critical_paths(call_tree, options.max_paths)

    logger.debug(
        "Analyzed %d functions: %d hotspots, %d critical paths",
        len(function_stats),
        len(hotspots),
        len(critical_paths)
    )
    return AnalysisResult(
        total_time=total,
        total_samples=total_samples,
        sample_interval=sample_interval,
        function_stats=function_stats,
        call_tree=call_tree,
        hotspots=hotspots,
        critical_paths=critical_paths,
        start_time=profile.start_time,
        end_time=profile.end_time
    )
