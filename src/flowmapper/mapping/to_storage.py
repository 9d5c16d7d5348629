"""Visual -> storage transform.

`to_storage` turns the edited graph of one scope back into a complete
replacement document for the store. Fields the engine owns (identity, type,
position, scope, group membership, wiring, template body and port map) are
rewritten; everything else is copied from the last-known record.

Output order is part of the contract with the runtime's loader:
containers, template-internal scoped copies, template bodies, everything else.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..core.config import MapperConfig, resolve_config
from ..logging import get_logger
from ..records.classify import classify, template_id_for_instance
from ..records.models import (
    FIELD_GROUP,
    FIELD_ID,
    FIELD_SCOPE,
    FIELD_TEMPLATE_BODY,
    FIELD_TYPE,
    FIELD_WIRES,
    FIELD_X,
    FIELD_Y,
    TYPE_CONTAINER,
    Record,
    RecordKind,
    copy_record,
    index_by_id,
    number_or,
    record_group,
    record_id,
    record_scope,
)
from ..records.wires import merge_wires, pad_wires, synthesize_wires
from ..visual.models import VisualEdge, VisualNode, load_visual_edge_json, load_visual_node_json
from .groups import groups_to_records
from .ids import dedupe_records, generate_id
from .subflows import build_template_body, collect_templates, strip_scope

logger = get_logger(__name__)


def _coerce_nodes(nodes: Iterable[Any]) -> List[VisualNode]:
    out: List[VisualNode] = []
    for n in nodes:
        if isinstance(n, Mapping):
            n = load_visual_node_json(n)
        if isinstance(n, VisualNode):
            out.append(n)
    return out


def _coerce_edges(edges: Iterable[Any]) -> List[VisualEdge]:
    out: List[VisualEdge] = []
    for i, e in enumerate(edges):
        if isinstance(e, Mapping):
            e = load_visual_edge_json(e, disambiguator=i)
        if isinstance(e, VisualEdge):
            out.append(e)
    return out


def _is_group_node(node: VisualNode, cfg: MapperConfig) -> bool:
    if node.kind == RecordKind.GROUP.value or node.payload.get("type") == "group":
        return True
    return bool(node.record) and classify(node.record, cfg) is RecordKind.GROUP


def _new_container(scope_id: str, cfg: MapperConfig) -> Record:
    return {
        FIELD_ID: scope_id,
        FIELD_TYPE: TYPE_CONTAINER,
        "label": f"{cfg.new_flow_label_prefix}{scope_id[:8]}",
        "disabled": False,
        "info": "",
    }


def _node_type(node: VisualNode, prior: Mapping[str, Any], cfg: MapperConfig) -> str:
    hint = node.payload.get("type")
    if isinstance(hint, str) and hint.strip():
        return hint
    t = prior.get(FIELD_TYPE)
    if isinstance(t, str) and t.strip():
        return t
    return cfg.unknown_type


def to_storage(
    nodes: Iterable[Any],
    edges: Iterable[Any],
    scope_id: str,
    original_records: Iterable[Any],
    *,
    config: Optional[MapperConfig] = None,
) -> List[Record]:
    """Rebuild the full flows document after editing `scope_id`.

    `nodes` and `edges` may be dataclasses or renderer JSON dicts. Records that
    were in the edited scope but are no longer visual nodes are removed.
    """
    cfg = resolve_config(config)
    originals = [r for r in original_records if isinstance(r, Mapping)]
    originals_by_id = index_by_id(originals)
    templates = collect_templates(originals, cfg)
    template_ids = set(templates)
    editing_template = scope_id in template_ids

    visual_nodes = _coerce_nodes(nodes)
    visual_ids = {n.id for n in visual_nodes}
    known_ids = set(originals_by_id) | visual_ids

    # 1. Partition.
    group_nodes: List[VisualNode] = []
    ordinary: List[VisualNode] = []
    internal_nodes: Dict[str, List[VisualNode]] = {}
    for node in visual_nodes:
        if _is_group_node(node, cfg):
            group_nodes.append(node)
            continue
        effective = node.scope
        owner: Optional[str] = None
        if effective is not None and effective in template_ids:
            owner = effective
        elif editing_template and (effective is None or effective == scope_id):
            owner = scope_id
        if owner is None:
            ordinary.append(node)
        else:
            logger.debug("Template-internal node: id=%s template=%s", node.id, owner)
            internal_nodes.setdefault(owner, []).append(node)
    group_ids = {n.id for n in group_nodes}

    # Records outside the edited scope that survive this save unchanged.
    preserved: List[Record] = []
    removed: List[str] = []
    for rec in originals:
        rid = record_id(rec)
        kind = classify(rec, cfg)
        if kind in (RecordKind.CONTAINER, RecordKind.TEMPLATE) or rid in visual_ids:
            continue
        scope = record_scope(rec)
        if scope == scope_id:
            if rid is not None:
                removed.append(rid)
            continue
        if scope in template_ids and kind is not RecordKind.GROUP:
            # Re-emitted with the template's scoped copies.
            continue
        preserved.append(copy_record(rec))
    if removed:
        logger.info("Removed %s record(s) deleted from scope %s: %s", len(removed), scope_id, ", ".join(removed))

    # 2. Wiring. Prior wires survive only towards records that are not rendered.
    kept_edges: List[VisualEdge] = []
    dangling = 0
    for edge in _coerce_edges(edges):
        if edge.source_id in visual_ids and edge.target_id in visual_ids and edge.target_id not in group_ids:
            kept_edges.append(edge)
        else:
            dangling += 1
    if dangling:
        logger.info("Dropped %s dangling edge(s) on save of scope %s", dangling, scope_id)
    unrendered_ids = {rid for rid in (record_id(r) for r in preserved) if rid is not None}

    # 3. Records.
    def _assemble(node: VisualNode) -> Record:
        prior = node.record or originals_by_id.get(node.id) or {}
        rec = copy_record(prior)
        rec[FIELD_ID] = node.id or record_id(prior) or generate_id(existing=known_ids)
        rec[FIELD_TYPE] = _node_type(node, prior, cfg)
        rec[FIELD_X] = number_or(node.position.x, 0)
        rec[FIELD_Y] = number_or(node.position.y, 0)
        if node.container_id is not None and node.container_id in group_ids:
            rec[FIELD_GROUP] = node.container_id
        else:
            if node.container_id is not None:
                logger.debug("Dropped group reference to unknown group: id=%s group=%s", node.id, node.container_id)
            rec.pop(FIELD_GROUP, None)

        prior_wires = prior.get(FIELD_WIRES)
        wires = merge_wires(synthesize_wires(node.id, kept_edges), prior_wires, unrendered_ids)
        if FIELD_WIRES in prior or any(wires):
            rec[FIELD_WIRES] = pad_wires(wires, node.port_count)
        return rec

    scope_records: List[Record] = []
    for node in ordinary:
        rec = _assemble(node)
        rec[FIELD_SCOPE] = scope_id
        scope_records.append(rec)

    internal_records: Dict[str, List[Record]] = {}
    for tid, members in internal_nodes.items():
        internal_records[tid] = [strip_scope(_assemble(n)) for n in members]

    members_by_group: Dict[str, List[str]] = {gid: [] for gid in group_ids}
    for rec in scope_records + [r for recs in internal_records.values() for r in recs]:
        gid = record_group(rec)
        if gid in members_by_group:
            members_by_group[gid].append(rec[FIELD_ID])
    group_records = groups_to_records(
        group_nodes,
        scope_id,
        member_ids_by_group=members_by_group,
        template_ids=template_ids,
        originals_by_id=originals_by_id,
        existing_ids=known_ids,
        config=cfg,
    )

    # 4. Templates.
    touched = set(internal_records)
    if editing_template:
        touched.add(scope_id)
    for node in visual_nodes:
        ref = template_id_for_instance(node.record, cfg) or template_id_for_instance(
            {FIELD_TYPE: node.payload.get("type")}, cfg
        )
        if ref in template_ids:
            touched.add(ref)

    internal_copies: List[Record] = []
    template_bodies: List[Record] = []
    for tid, template in templates.items():
        if tid in touched:
            body_source = internal_records.get(tid)
            if body_source is None:
                body_source = [] if tid == scope_id else template.internal_records
            gone = template.internal_ids - {record_id(r) for r in body_source} - set(removed)
            if gone:
                logger.info(
                    "Template %s: removed %s internal record(s) not on the canvas: %s",
                    tid,
                    len(gone),
                    ", ".join(sorted(gone)),
                )
            built = build_template_body(template.record, body_source)
            if built.dropped_bindings:
                logger.warning(
                    "Template %s: dropped %s port binding(s) to missing internal records",
                    tid,
                    built.dropped_bindings,
                )
            internal_copies.extend(built.scoped_copies)
            template_bodies.append(built.template)
            continue
        rec = copy_record(template.record)
        body = rec.get(FIELD_TEMPLATE_BODY)
        if (not isinstance(body, list) or not body) and template.internal_records:
            rec[FIELD_TEMPLATE_BODY] = [copy_record(r) for r in template.internal_records]
        for internal in template.internal_records:
            scoped = copy_record(internal)
            scoped[FIELD_SCOPE] = tid
            scoped[FIELD_X] = number_or(internal.get(FIELD_X), 0)
            scoped[FIELD_Y] = number_or(internal.get(FIELD_Y), 0)
            internal_copies.append(scoped)
        template_bodies.append(rec)

    # 5. Containers.
    containers = [copy_record(r) for r in originals if classify(r, cfg) is RecordKind.CONTAINER]
    container_ids = {record_id(r) for r in containers}
    if scope_id not in container_ids and not editing_template:
        logger.info("Scope %s not found in document; creating container record", scope_id)
        containers.append(_new_container(scope_id, cfg))

    # 6. Order and dedupe.
    ordered = containers + internal_copies + template_bodies + scope_records + group_records + preserved
    result = dedupe_records(ordered)
    logger.info(
        "Built storage document for scope %s: records=%s templates=%s touched=%s",
        scope_id,
        len(result),
        len(template_bodies),
        len(touched),
    )
    return result
