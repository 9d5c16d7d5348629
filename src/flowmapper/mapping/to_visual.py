"""Storage -> visual transform.

`to_visual` derives the editor graph of one scope (a container flow or a
template) from the flat record list. It is deterministic and keeps no state
between calls; input-port counters live in a `PortCounters` created per call.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..core.config import MapperConfig, resolve_config
from ..logging import get_logger
from ..records.classify import classify
from ..records.models import (
    FIELD_SCOPE,
    FIELD_WIRES,
    Record,
    RecordKind,
    copy_record,
    number_or,
    record_group,
    record_id,
    record_scope,
    record_type,
)
from ..records.wires import build_adjacency, targets_for
from ..visual.models import Position, VisualEdge, VisualGraph, VisualNode, edge_id
from .groups import extract_groups, group_to_visual_node
from .subflows import PortCounters, SubflowTemplate, collect_templates, input_count, output_count, resolve_template

logger = get_logger(__name__)

_SCOPE_KINDS = (RecordKind.CONTAINER, RecordKind.TEMPLATE)


def list_scopes(records: Iterable[Any], config: Optional[MapperConfig] = None) -> List[Record]:
    """Containers and templates in document order, one per id."""
    cfg = resolve_config(config)
    out: List[Record] = []
    seen: set[str] = set()
    for r in records:
        if not isinstance(r, Mapping) or classify(r, cfg) not in _SCOPE_KINDS:
            continue
        rid = record_id(r)
        if rid is None or rid in seen:
            continue
        seen.add(rid)
        out.append(copy_record(r))
    return out


def _source_records(
    items: List[Mapping[str, Any]],
    scope_id: str,
    templates: Mapping[str, SubflowTemplate],
    cfg: MapperConfig,
) -> List[Record]:
    if scope_id in templates:
        source: List[Record] = []
        for r in templates[scope_id].internal_records:
            rec = copy_record(r)
            if record_scope(rec) is None:
                rec[FIELD_SCOPE] = scope_id
            source.append(rec)
        # Groups are never stored in a template body; they live top-level.
        source.extend(
            copy_record(r)
            for r in items
            if record_scope(r) == scope_id and classify(r, cfg) is RecordKind.GROUP
        )
    else:
        source = [
            copy_record(r)
            for r in items
            if record_scope(r) == scope_id and classify(r, cfg) not in _SCOPE_KINDS
        ]

    unique: List[Record] = []
    seen: set[str] = set()
    for rec in source:
        rid = record_id(rec)
        if rid is None or rid in seen:
            continue
        seen.add(rid)
        unique.append(rec)
    return unique


def _label(record: Mapping[str, Any]) -> str:
    for key in ("name", "label"):
        value = record.get(key)
        if isinstance(value, str) and value:
            return value
    return record_type(record)


def _port_counts(
    record: Mapping[str, Any],
    kind: RecordKind,
    templates: Mapping[str, SubflowTemplate],
    cfg: MapperConfig,
) -> Tuple[int, int, Optional[str]]:
    wires = record.get(FIELD_WIRES)
    wired_ports = len(wires) if isinstance(wires, list) else None
    if kind is RecordKind.INSTANCE:
        template = resolve_template(record, templates, cfg)
        if template is not None:
            return max(output_count(template), wired_ports or 0), input_count(template), template.id
        return wired_ports or 0, 1, None
    return (1 if wired_ports is None else wired_ports), 1, None


def to_visual(records: Iterable[Any], scope_id: str, *, config: Optional[MapperConfig] = None) -> VisualGraph:
    """Build the visual graph of `scope_id`.

    Edges whose target is not a node of the produced graph are dropped and
    counted; nothing is raised for structural inconsistencies.
    """
    cfg = resolve_config(config)
    items = [r for r in records if isinstance(r, Mapping)]
    templates = collect_templates(items, cfg)
    source = _source_records(items, scope_id, templates, cfg)

    groups = extract_groups(source, cfg)
    group_ids = {g.id for g in groups}

    nodes: List[VisualNode] = [group_to_visual_node(g, scope_id) for g in groups]
    wired: List[Record] = []
    for rec in source:
        rid = record_id(rec)
        if rid is None or rid in group_ids:
            continue
        kind = classify(rec, cfg)
        port_count, inputs, template_id = _port_counts(rec, kind, templates, cfg)
        gid = record_group(rec)
        payload: Dict[str, Any] = {
            "record": rec,
            "type": record_type(rec),
            "label": _label(rec),
            "scope": scope_id,
        }
        if template_id is not None:
            payload["template"] = template_id
        nodes.append(
            VisualNode(
                id=rid,
                kind=kind.value,
                position=Position(x=number_or(rec.get("x"), 0), y=number_or(rec.get("y"), 0)),
                port_count=port_count,
                input_count=inputs,
                container_id=gid if gid in group_ids else None,
                payload=payload,
            )
        )
        wired.append(rec)

    by_id = {n.id: n for n in nodes}
    counters = PortCounters()
    edges: List[VisualEdge] = []
    dropped: List[str] = []
    for rec in wired:
        source_id = record_id(rec) or ""
        adjacency = build_adjacency(rec)
        for port in sorted(adjacency):
            seen: Dict[str, int] = {}
            for target in targets_for(adjacency, port):
                target_node = by_id.get(target)
                if target_node is None or target_node.kind == RecordKind.GROUP.value:
                    dropped.append(f"{source_id}:{port}->{target}")
                    continue
                target_port = 0
                if target_node.kind == RecordKind.INSTANCE.value and target_node.input_count > 1:
                    target_port = counters.assign(target, target_node.input_count)
                n = seen.get(target, 0)
                seen[target] = n + 1
                edges.append(
                    VisualEdge(
                        id=edge_id(source_id, port, target, target_port, n),
                        source_id=source_id,
                        source_port=port,
                        target_id=target,
                        target_port=target_port,
                    )
                )

    if dropped:
        logger.info("Dropped %s dangling edge(s) in scope %s: %s", len(dropped), scope_id, ", ".join(dropped))
    logger.info(
        "Built visual graph for scope %s: nodes=%s edges=%s groups=%s",
        scope_id,
        len(nodes),
        len(edges),
        len(groups),
    )
    return VisualGraph(nodes=nodes, edges=edges, groups=groups)
