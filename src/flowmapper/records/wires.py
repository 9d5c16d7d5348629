"""Wire index builder: positional `wires` <-> per-port target lookups.

The consuming runtime reads array position as port identity, so every
adjacency produced here is dense: a port without connections is `[]`, never a
missing slot.
"""

from __future__ import annotations

from typing import Any, Collection, Dict, Iterable, List, Mapping

from .models import FIELD_WIRES, OutputAdjacency


def _clean_targets(entry: Any) -> List[str]:
    if not isinstance(entry, (list, tuple)):
        return []
    return [t for t in entry if isinstance(t, str) and t]


def build_adjacency(record: Any) -> Dict[int, List[str]]:
    """Decode a record's `wires` into `{port_index: [target_id, ...]}`.

    Every index from 0 to `len(wires) - 1` is present; malformed entries decode
    to an empty list.
    """
    if not isinstance(record, Mapping):
        return {}
    wires = record.get(FIELD_WIRES)
    if not isinstance(wires, (list, tuple)):
        return {}
    return {port: _clean_targets(entry) for port, entry in enumerate(wires)}


def targets_for(adjacency: Mapping[int, List[str]], port: int) -> List[str]:
    return list(adjacency.get(port) or [])


def adjacency_to_wires(adjacency: Mapping[int, Iterable[str]]) -> OutputAdjacency:
    """Encode `{port: targets}` as a dense `wires` array.

    Repeated targets are kept; each one is a separate connection.
    """
    ports = [p for p in adjacency.keys() if isinstance(p, int) and p >= 0]
    if not ports:
        return []
    out: OutputAdjacency = [[] for _ in range(max(ports) + 1)]
    for port in ports:
        out[port].extend(t for t in adjacency[port] or [] if isinstance(t, str) and t)
    return out


def synthesize_wires(source_id: str, edges: Iterable[Any]) -> OutputAdjacency:
    """Rebuild a node's `wires` from the edges leaving it.

    Edges are grouped by `source_port` in input order; the result has length
    `max(port) + 1` with `[]` at ports that have no edge.
    """
    by_port: Dict[int, List[str]] = {}
    for edge in edges:
        if getattr(edge, "source_id", None) != source_id:
            continue
        port = getattr(edge, "source_port", 0)
        if not isinstance(port, int) or isinstance(port, bool) or port < 0:
            port = 0
        target = getattr(edge, "target_id", None)
        if not isinstance(target, str) or not target:
            continue
        by_port.setdefault(port, []).append(target)
    return adjacency_to_wires(by_port)


def merge_wires(wires: OutputAdjacency, prior: Any, valid_ids: Collection[str]) -> OutputAdjacency:
    """Merge prior `wires` that still point at valid ids into `wires`.

    Targets coming from edges keep their position; prior targets are appended
    per port unless an edge already reaches them. Ports declared by `prior`
    are kept even when empty. The result is dense.
    """
    merged: Dict[int, List[str]] = {port: list(targets) for port, targets in enumerate(wires)}
    if isinstance(prior, (list, tuple)):
        for port, entry in enumerate(prior):
            bucket = merged.setdefault(port, [])
            from_edges = set(bucket)
            bucket.extend(t for t in _clean_targets(entry) if t in valid_ids and t not in from_edges)
    if not merged:
        return []
    return adjacency_to_wires(merged)


def pad_wires(wires: OutputAdjacency, port_count: int) -> OutputAdjacency:
    if not isinstance(port_count, int) or len(wires) >= port_count:
        return wires
    return list(wires) + [[] for _ in range(port_count - len(wires))]
