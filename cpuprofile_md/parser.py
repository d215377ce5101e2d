"""Normalize the serializations of a V8 CPU profile into one node table."""

from __future__ import annotations

import enum
import gzip
import json
import logging
import zlib
from typing import Any

from cpuprofile_md.errors import InvalidEncoding, MalformedProfile
from cpuprofile_md.models import CallFrame, CanonicalProfile, ProfileNode

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
UNKNOWN_FUNCTION_NAME = "(unknown)"
DEFAULT_SCRIPT_ID = "0"


class ProfileVariant(enum.Enum):
    """Shape of the node data once any trace-event wrapper is removed."""

    NODE_TABLE = "node_table"
    HEAD_TREE = "head_tree"


def _decode(raw: Any) -> Any:
    """Turn bytes or JSON text into parsed JSON; parsed objects pass through."""
    if isinstance(raw, (bytes, bytearray, memoryview)):
        data = bytes(raw)
        if data[:2] == GZIP_MAGIC:
            try:
                data = gzip.decompress(data)
            except (OSError, EOFError, zlib.error) as exc:
                raise InvalidEncoding(f"Invalid gzip stream in profile: {exc}") from exc
            logger.debug("Decompressed gzip profile to %d bytes", len(data))
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise InvalidEncoding(f"Profile is not UTF-8 text: {exc}") from exc
    elif isinstance(raw, str):
        text = raw
    else:
        return raw

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidEncoding(f"Invalid JSON in profile: {exc}") from exc


def _event_data(event: dict) -> dict:
    args = event.get("args")
    if not isinstance(args, dict):
        return {}
    data = args.get("data")
    return data if isinstance(data, dict) else {}


def _unwrap_trace_events(parsed: Any) -> Any:
    """
    Replace a Chromium trace-event container with its embedded CpuProfile.
    """
    if isinstance(parsed, list):
        events = parsed
    elif isinstance(parsed, dict) and isinstance(parsed.get("traceEvents"), list):
        events = parsed["traceEvents"]
    else:
        return parsed

    for event in events:
        if not isinstance(event, dict):
            continue
        data = _event_data(event)
        if event.get("name") == "CpuProfile" or data.get("cpuProfile"):
            profile = data.get("cpuProfile") or data
            # Chrome stores the deltas beside the embedded profile, not inside it.
            if "timeDeltas" not in profile and isinstance(data.get("timeDeltas"), list):
                profile = {**profile, "timeDeltas": data["timeDeltas"]}
            logger.debug("Using CpuProfile event from %d trace events", len(events))
            return profile

    logger.debug("No CpuProfile event found among %d trace events", len(events))
    return parsed


def detect_variant(profile: dict) -> ProfileVariant:
    if profile.get("head") and not profile.get("nodes"):
        return ProfileVariant.HEAD_TREE
    return ProfileVariant.NODE_TABLE


def _call_frame(record: dict, default_name: str) -> CallFrame:
    frame = record.get("callFrame")
    if not isinstance(frame, dict):
        # Older records carry the frame fields inline.
        frame = record
    name = frame.get("functionName")
    return CallFrame(
        # Anonymous functions keep their empty name.
        function_name=str(default_name if name is None else name),
        script_id=str(frame.get("scriptId") or DEFAULT_SCRIPT_ID),
        url=str(frame.get("url") or ""),
        line_number=int(frame.get("lineNumber") or 0),
        column_number=int(frame.get("columnNumber") or 0)
    )


def _read_node_table(profile: dict) -> tuple[list[dict], dict[int, int]]:
    nodes = profile.get("nodes")
    if not isinstance(nodes, list) or not nodes:
        raise MalformedProfile("nodes")

    records = []
    for raw in nodes:
        if not isinstance(raw, dict) or not isinstance(raw.get("id"), int):
            raise MalformedProfile("nodes")
        parent = raw.get("parent")
        children = raw.get("children")
        records.append(
            {
                "id": raw["id"],
                "call_frame": _call_frame(raw, ""),
                "parent": parent if isinstance(parent, int) else None,
                "children": [c for c in children if isinstance(c, int)] if isinstance(children, list) else [],
                "hit_count": int(raw.get("hitCount") or 0)
            }
        )
    return records, {}


def _flatten_head_tree(profile: dict) -> tuple[list[dict], dict[int, int]]:
    """
    Flatten a nested ``head`` tree into node records numbered in pre-order.

    Returns the records plus a map from any ids the nested records declared
    to the freshly assigned ones, so samples can be renumbered.
    """
    head = profile.get("head")
    if not isinstance(head, dict):
        raise MalformedProfile("nodes")

    records: list[dict] = []
    id_map: dict[int, int] = {}
    stack: list[tuple[Any, int | None]] = [(head, None)]
    while stack:
        raw, parent_id = stack.pop()
        if not isinstance(raw, dict):
            continue
        node_id = len(records) + 1
        if isinstance(raw.get("id"), int):
            id_map[raw["id"]] = node_id
        records.append(
            {
                "id": node_id,
                "call_frame": _call_frame(raw, UNKNOWN_FUNCTION_NAME),
                "parent": parent_id,
                "children": [],
                "hit_count": int(raw.get("hitCount") or 0)
            }
        )
        if parent_id is not None:
            records[parent_id - 1]["children"].append(node_id)
        children = raw.get("children")
        if isinstance(children, list):
            for child in reversed(children):
                stack.append((child, node_id))
    return records, id_map


_FLATTENERS = {
    ProfileVariant.NODE_TABLE: _read_node_table,
    ProfileVariant.HEAD_TREE: _flatten_head_tree
}


def _reconcile(records: list[dict]) -> tuple[ProfileNode, ...]:
    """
    Rebuild parent and children links so that they agree with each other.

    A node's children become the ids declaring it as parent followed by its
    own listed children, deduplicated. A node without a parent that is
    listed as someone's child takes that node as parent. References to ids
    outside the table are dropped.
    """
    by_id: dict[int, dict] = {}
    for record in records:
        if record["id"] in by_id:
            logger.warning("Duplicate node id %d ignored", record["id"])
            continue
        by_id[record["id"]] = record

    parents: dict[int, int | None] = {}
    for node_id, record in by_id.items():
        parent = record["parent"]
        if parent is not None and (parent not in by_id or parent == node_id):
            logger.warning("Node %d references unknown parent %d", node_id, parent)
            parent = None
        parents[node_id] = parent

    children: dict[int, list[int]] = {node_id: [] for node_id in by_id}
    for node_id, parent in parents.items():
        if parent is not None:
            children[parent].append(node_id)

    for node_id, record in by_id.items():
        for child in record["children"]:
            if child not in by_id or child == node_id:
                logger.warning("Node %d references unknown child %d", node_id, child)
                continue
            children[node_id].append(child)
            if parents[child] is None:
                parents[child] = node_id

    return tuple(
        ProfileNode(
            id=node_id,
            call_frame=record["call_frame"],
            parent=parents[node_id],
            children=tuple(dict.fromkeys(children[node_id])),
            hit_count=record["hit_count"]
        )
        for node_id, record in by_id.items()
    )


def _read_samples(profile: dict, id_map: dict[int, int]) -> tuple[tuple[int, ...], tuple[float, ...]]:
    samples = profile.get("samples")
    if not isinstance(samples, list):
        raise MalformedProfile("samples")
    deltas = profile.get("timeDeltas")
    if not isinstance(deltas, list):
        raise MalformedProfile("timeDeltas")

    try:
        sample_ids = [int(sample) for sample in samples]
    except (TypeError, ValueError) as exc:
        raise MalformedProfile("samples") from exc
    if not all(isinstance(delta, (int, float)) for delta in deltas):
        raise MalformedProfile("timeDeltas")

    if id_map:
        sample_ids = [id_map.get(sample, sample) for sample in sample_ids]

    if len(sample_ids) != len(deltas):
        logger.warning(
            "Profile has %d samples but %d time deltas; using the first %d",
            len(sample_ids),
            len(deltas),
            min(len(sample_ids), len(deltas))
        )
        length = min(len(sample_ids), len(deltas))
        sample_ids = sample_ids[:length]
        deltas = deltas[:length]

    negative = sum(1 for delta in deltas if delta < 0)
    if negative:
        logger.debug("Clamped %d negative time deltas to zero", negative)
        deltas = [max(delta, 0) for delta in deltas]

    return tuple(sample_ids), tuple(deltas)


def normalize(raw: Any) -> CanonicalProfile:
    """
    Parse a CPU profile from bytes, JSON text or an already parsed object.

    Handles gzip input, Chromium trace-event wrappers, the legacy nested
    ``head`` tree and node tables whose ``children`` disagree with ``parent``.

    Raises:
        InvalidEncoding: input is not gzip/UTF-8/JSON.
        MalformedProfile: nodes, samples or timeDeltas are missing.
    """
    parsed = _unwrap_trace_events(_decode(raw))
    if not isinstance(parsed, dict):
        raise MalformedProfile("nodes")

    variant = detect_variant(parsed)
    logger.debug("Detected profile variant: %s", variant.value)
    records, id_map = _FLATTENERS[variant](parsed)
    nodes = _reconcile(records)
    samples, deltas = _read_samples(parsed, id_map)

    logger.debug("Normalized profile: %d nodes, %d samples", len(nodes), len(samples))
    return CanonicalProfile(
        nodes=nodes,
        samples=samples,
        time_deltas=deltas,
        start_time=parsed.get("startTime") or 0,
        end_time=parsed.get("endTime") or 0
    )
