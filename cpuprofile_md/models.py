"""Data model for normalized profiles and their analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CallFrame:
    function_name: str
    script_id: str
    url: str
    line_number: int
    column_number: int

    @property
    def key(self) -> str:
        """Identity of the function: name, url, line and column."""
        return f"{self.function_name}@{self.url}:{self.line_number}:{self.column_number}"


@dataclass(frozen=True)
class ProfileNode:
    id: int
    call_frame: CallFrame
    parent: int | None = None
    children: tuple[int, ...] = ()
    hit_count: int = 0


@dataclass(frozen=True)
class CanonicalProfile:
    """Flat node table plus the sample sequence it was captured with."""

    nodes: tuple[ProfileNode, ...]
    samples: tuple[int, ...]
    time_deltas: tuple[float, ...]
    start_time: float = 0
    end_time: float = 0

    @property
    def root_id(self) -> int:
        for node in self.nodes:
            if node.parent is None:
                return node.id
        return self.nodes[0].id


@dataclass(frozen=True)
class FunctionStats:
    key: str
    name: str
    url: str
    line: int
    column: int
    self_time: float
    total_time: float
    self_percent: float
    total_percent: float
    hit_count: int
    callers: tuple[str, ...] = ()
    callees: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "url": self.url,
            "line": self.line,
            "column": self.column,
            "self_time": self.self_time,
            "total_time": self.total_time,
            "self_percent": self.self_percent,
            "total_percent": self.total_percent,
            "hit_count": self.hit_count,
            "callers": list(self.callers),
            "callees": list(self.callees)
        }


@dataclass(frozen=True)
class Hotspot:
    key: str
    name: str
    url: str
    line: int
    column: int
    self_time: float
    total_time: float
    self_percent: float
    total_percent: float
    hit_count: int
    callers: list[str]
    callees: list[str]
    type: str

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "url": self.url,
            "line": self.line,
            "column": self.column,
            "self_time": self.self_time,
            "total_time": self.total_time,
            "self_percent": self.self_percent,
            "total_percent": self.total_percent,
            "hit_count": self.hit_count,
            "callers": list(self.callers),
            "callees": list(self.callees),
            "type": self.type
        }


@dataclass
class CallTreeNode:
    key: str
    name: str
    url: str
    line: int
    column: int
    self_time: float
    total_time: float
    self_percent: float
    total_percent: float
    children: list[CallTreeNode] = field(default_factory=list)

    def summary(self) -> dict:
        """Node fields without the subtree."""
        return {
            "key": self.key,
            "name": self.name,
            "url": self.url,
            "line": self.line,
            "column": self.column,
            "self_time": self.self_time,
            "total_time": self.total_time,
            "self_percent": self.self_percent,
            "total_percent": self.total_percent
        }

    def to_dict(self) -> dict:
        # Iterative so deep trees do not exhaust the recursion limit.
        root = self.summary()
        stack: list[tuple[CallTreeNode, dict]] = [(self, root)]
        while stack:
            node, payload = stack.pop()
            payload["children"] = []
            for child in node.children:
                child_payload = child.summary()
                payload["children"].append(child_payload)
                stack.append((child, child_payload))
        return root


@dataclass(frozen=True)
class CriticalPath:
    nodes: tuple[CallTreeNode, ...]
    cumulative_percent: float

    def to_dict(self) -> dict:
        return {
            "path": [
                {
                    "name": node.name,
                    "key": node.key,
                    "self_percent": node.self_percent,
                    "total_percent": node.total_percent
                }
                for node in self.nodes
            ],
            "cumulative_percent": self.cumulative_percent
        }


@dataclass(frozen=True)
class AnalyzeOptions:
    hotspot_threshold: float = 1.0
    max_hotspots: int = 20
    max_paths: int = 5


@dataclass(frozen=True)
class FormatOptions:
    profile_name: str = "CPU Profile"
    source_dir: str | None = None
    include_source: bool = False
    fetch_remote: bool = False
    fetch_timeout: float = 10.0


@dataclass(frozen=True)
class ConvertOptions:
    level: str = "adaptive"
    analyze: AnalyzeOptions = field(default_factory=AnalyzeOptions)
    output: FormatOptions = field(default_factory=FormatOptions)


@dataclass(frozen=True)
class AnalysisResult:
    total_time: float
    total_samples: int
    sample_interval: float
    function_stats: dict[str, FunctionStats]
    call_tree: CallTreeNode
    hotspots: list[Hotspot]
    critical_paths: list[CriticalPath]
    start_time: float = 0
    end_time: float = 0

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready view of the analysis."""
        return {
            "total_time": self.total_time,
            "total_samples": self.total_samples,
            "sample_interval": self.sample_interval,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "function_stats": [stats.to_dict() for stats in self.function_stats.values()],
            "call_tree": self.call_tree.to_dict(),
            "hotspots": [hotspot.to_dict() for hotspot in self.hotspots],
            "critical_paths": [path.to_dict() for path in self.critical_paths]
        }
