"""Stdlib-only models for the visual editor graph.

These are intentionally plain and renderer-agnostic:
- Nodes keep the full storage record in `payload["record"]` for passthrough.
- Ports are 0-based integers; handle strings such as "output-2" are accepted
  when parsing renderer JSON.

The transforms in `flowmapper.mapping` are responsible for interpreting records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class VisualGraphError(ValueError):
    """Raised when renderer JSON cannot be read as a visual graph."""


@dataclass(frozen=True)
class Position:
    x: float = 0
    y: float = 0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class Geometry:
    x: float = 0
    y: float = 0
    w: float = 0
    h: float = 0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}


@dataclass(frozen=True)
class VisualNode:
    id: str
    kind: str
    position: Position = field(default_factory=Position)
    port_count: int = 1
    input_count: int = 1
    container_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def record(self) -> Dict[str, Any]:
        """Last-known storage record carried by this node (may be empty)."""
        rec = self.payload.get("record") if isinstance(self.payload, dict) else None
        return rec if isinstance(rec, dict) else {}

    @property
    def scope(self) -> Optional[str]:
        """Effective scope: the record's `z`, else the `scope` display hint."""
        for value in (self.record.get("z"), self.payload.get("scope") if isinstance(self.payload, dict) else None):
            if isinstance(value, str) and value.strip():
                return value
        return None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "kind": self.kind,
            "position": self.position.to_dict(),
            "portCount": self.port_count,
            "inputCount": self.input_count,
            "payload": dict(self.payload),
        }
        if self.container_id is not None:
            out["containerId"] = self.container_id
        return out


@dataclass(frozen=True)
class VisualEdge:
    id: str
    source_id: str
    source_port: int
    target_id: str
    target_port: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sourceId": self.source_id,
            "sourcePort": self.source_port,
            "targetId": self.target_id,
            "targetPort": self.target_port,
        }


@dataclass(frozen=True)
class Group:
    id: str
    name: str = ""
    geometry: Geometry = field(default_factory=Geometry)
    member_ids: List[str] = field(default_factory=list)
    # Normalized storage record (type forced to "group", geometry defaulted).
    record: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "geometry": self.geometry.to_dict(),
            "memberIds": list(self.member_ids),
        }


@dataclass(frozen=True)
class VisualGraph:
    nodes: List[VisualNode] = field(default_factory=list)
    edges: List[VisualEdge] = field(default_factory=list)
    groups: List[Group] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "groups": [g.to_dict() for g in self.groups],
        }


def edge_id(
    source_id: str,
    source_port: int,
    target_id: str,
    target_port: int = 0,
    disambiguator: int = 0,
) -> str:
    return f"{source_id}-{source_port}-{target_id}-{target_port}-{disambiguator}"


def _coerce_kind(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, str):
        s = value.strip()
        # Enum members stringified as "RecordKind.GROUP".
        if s.startswith("RecordKind.") and "." in s:
            member = s.split(".", 1)[1].strip()
            if member:
                return member.lower()
        return s
    return str(value or "")


def _coerce_port(value: Any) -> int:
    """Accept 2, "2", "output-2", "input-1"; anything else is port 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if value >= 0 else 0
    if isinstance(value, float) and value.is_integer() and value >= 0:
        return int(value)
    if isinstance(value, str):
        s = value.strip()
        if "-" in s:
            s = s.rsplit("-", 1)[1]
        if s.isdigit():
            return int(s)
    return 0


def _coerce_number(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value == value:
        return value
    return 0


def _coerce_count(value: Any, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return default


def _first(d: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return None


def load_visual_node_json(raw: Any) -> Optional[VisualNode]:
    if not isinstance(raw, dict):
        return None
    nid = str(raw.get("id") or "").strip()
    if not nid:
        return None
    pos_raw = raw.get("position")
    pos = pos_raw if isinstance(pos_raw, dict) else {}
    payload_raw = _first(raw, "payload", "data")
    payload = dict(payload_raw) if isinstance(payload_raw, dict) else {}
    container = _first(raw, "containerId", "container_id", "parentId")
    container_id = container.strip() if isinstance(container, str) and container.strip() else None
    return VisualNode(
        id=nid,
        kind=_coerce_kind(_first(raw, "kind", "type")),
        position=Position(x=_coerce_number(pos.get("x")), y=_coerce_number(pos.get("y"))),
        port_count=_coerce_count(_first(raw, "portCount", "port_count"), 1),
        input_count=_coerce_count(_first(raw, "inputCount", "input_count"), 1),
        container_id=container_id,
        payload=payload,
    )


def load_visual_edge_json(raw: Any, disambiguator: int = 0) -> Optional[VisualEdge]:
    if not isinstance(raw, dict):
        return None
    src = str(_first(raw, "sourceId", "source_id", "source") or "").strip()
    tgt = str(_first(raw, "targetId", "target_id", "target") or "").strip()
    if not src or not tgt:
        return None
    sp = _coerce_port(_first(raw, "sourcePort", "source_port", "sourceHandle"))
    tp = _coerce_port(_first(raw, "targetPort", "target_port", "targetHandle"))
    eid = str(raw.get("id") or "").strip() or edge_id(src, sp, tgt, tp, disambiguator)
    return VisualEdge(id=eid, source_id=src, source_port=sp, target_id=tgt, target_port=tp)


def load_visual_graph_json(raw: Any) -> VisualGraph:
    """Parse renderer JSON (`{nodes, edges, groups?}`) into dataclasses.

    Malformed nodes/edges are skipped. Groups are not parsed back: they are
    re-derived from group nodes. Also accepts Pydantic-like models by calling
    `model_dump()`.
    """
    if hasattr(raw, "model_dump"):
        raw = raw.model_dump()  # type: ignore[assignment]

    if not isinstance(raw, dict):
        raise VisualGraphError("Visual graph must be a JSON object (dict)")

    nodes_raw = raw.get("nodes")
    edges_raw = raw.get("edges")
    if nodes_raw is not None and not isinstance(nodes_raw, list):
        raise VisualGraphError("Visual graph 'nodes' must be a list")
    if edges_raw is not None and not isinstance(edges_raw, list):
        raise VisualGraphError("Visual graph 'edges' must be a list")

    nodes: list[VisualNode] = []
    seen: set[str] = set()
    for n in nodes_raw or []:
        node = load_visual_node_json(n)
        if node is None or node.id in seen:
            continue
        seen.add(node.id)
        nodes.append(node)

    edges: list[VisualEdge] = []
    for i, e in enumerate(edges_raw or []):
        edge = load_visual_edge_json(e, disambiguator=i)
        if edge is not None:
            edges.append(edge)

    return VisualGraph(nodes=nodes, edges=edges)
