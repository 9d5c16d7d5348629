"""Group resolver.

Membership is explicit: a record belongs to a group when its `g` field names
the group id. Geometric overlap is never used.
"""

from __future__ import annotations

from typing import Any, Collection, Dict, Iterable, List, Mapping, Optional

from ..core.config import MapperConfig, resolve_config
from ..logging import get_logger
from ..records.classify import is_group
from ..records.models import (
    FIELD_GROUP_MEMBERS,
    FIELD_HEIGHT,
    FIELD_ID,
    FIELD_SCOPE,
    FIELD_TYPE,
    FIELD_WIDTH,
    FIELD_X,
    FIELD_Y,
    TYPE_GROUP,
    Record,
    RecordKind,
    copy_record,
    is_number,
    number_or,
    record_group,
    record_id,
)
from ..visual.models import Geometry, Group, Position, VisualNode
from .ids import generate_id

logger = get_logger(__name__)


def _normalize_group_record(record: Mapping[str, Any], config: MapperConfig) -> Record:
    out = copy_record(record)
    out[FIELD_TYPE] = TYPE_GROUP
    # Zero-sized groups are treated like missing geometry.
    if not is_number(out.get(FIELD_WIDTH)) or not out.get(FIELD_WIDTH):
        out[FIELD_WIDTH] = config.default_group_width
    if not is_number(out.get(FIELD_HEIGHT)) or not out.get(FIELD_HEIGHT):
        out[FIELD_HEIGHT] = config.default_group_height
    out[FIELD_X] = number_or(out.get(FIELD_X), 0)
    out[FIELD_Y] = number_or(out.get(FIELD_Y), 0)
    return out


def _group_name(record: Mapping[str, Any]) -> str:
    for key in ("name", "label"):
        value = record.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def extract_groups(records: Iterable[Any], config: Optional[MapperConfig] = None) -> List[Group]:
    """Return every group among `records` with its explicit members."""
    cfg = resolve_config(config)
    items = [r for r in records if isinstance(r, Mapping)]

    groups: List[Group] = []
    group_ids: set[str] = set()
    for rec in items:
        if not is_group(rec, cfg):
            continue
        gid = record_id(rec)
        if gid is None or gid in group_ids:
            continue
        group_ids.add(gid)
        normalized = _normalize_group_record(rec, cfg)
        groups.append(
            Group(
                id=gid,
                name=_group_name(rec),
                geometry=Geometry(
                    x=normalized[FIELD_X],
                    y=normalized[FIELD_Y],
                    w=normalized[FIELD_WIDTH],
                    h=normalized[FIELD_HEIGHT],
                ),
                record=normalized,
            )
        )

    members: Dict[str, List[str]] = {gid: [] for gid in group_ids}
    for rec in items:
        if is_group(rec, cfg):
            continue
        gid = record_group(rec)
        rid = record_id(rec)
        if gid in members and rid is not None:
            members[gid].append(rid)

    for group in groups:
        group.member_ids.extend(members[group.id])
    return groups


def group_to_visual_node(group: Group, scope_id: Optional[str], members_count: Optional[int] = None) -> VisualNode:
    count = len(group.member_ids) if members_count is None else members_count
    return VisualNode(
        id=group.id,
        kind=RecordKind.GROUP.value,
        position=Position(x=group.geometry.x, y=group.geometry.y),
        port_count=0,
        input_count=0,
        container_id=None,
        payload={
            "record": dict(group.record),
            "type": TYPE_GROUP,
            "label": group.name or "Group",
            "scope": scope_id,
            "nodesCount": count,
            "geometry": group.geometry.to_dict(),
        },
    )


def _geometry_value(node: VisualNode, key: str, prior: Mapping[str, Any], default: float) -> float:
    geometry = node.payload.get("geometry") if isinstance(node.payload, dict) else None
    if isinstance(geometry, Mapping) and is_number(geometry.get(key)) and geometry.get(key):
        return geometry[key]
    value = prior.get(key)
    if is_number(value) and value:
        return value
    return default


def groups_to_records(
    group_nodes: Iterable[VisualNode],
    scope_id: str,
    *,
    member_ids_by_group: Optional[Mapping[str, List[str]]] = None,
    template_ids: Collection[str] = (),
    originals_by_id: Optional[Mapping[str, Record]] = None,
    existing_ids: Optional[Collection[str]] = None,
    config: Optional[MapperConfig] = None,
) -> List[Record]:
    """Re-assemble group records from group VisualNodes.

    Groups whose effective scope is a template keep `z = <templateId>` and are
    returned here as top-level records; they never go into a template body.
    """
    cfg = resolve_config(config)
    originals = originals_by_id or {}
    members = member_ids_by_group or {}

    out: List[Record] = []
    for node in group_nodes:
        prior = node.record or originals.get(node.id) or {}
        rec = copy_record(prior)
        gid = node.id or record_id(prior) or generate_id(cfg.group_id_prefix, existing=existing_ids)
        rec[FIELD_ID] = gid
        rec[FIELD_TYPE] = TYPE_GROUP
        rec[FIELD_X] = number_or(node.position.x, 0)
        rec[FIELD_Y] = number_or(node.position.y, 0)
        rec[FIELD_WIDTH] = _geometry_value(node, "w", prior, cfg.default_group_width)
        rec[FIELD_HEIGHT] = _geometry_value(node, "h", prior, cfg.default_group_height)

        scope = node.scope
        if scope is not None and scope in template_ids:
            rec[FIELD_SCOPE] = scope
            logger.debug("Group kept top-level for template scope: group=%s template=%s", gid, scope)
        else:
            rec[FIELD_SCOPE] = scope_id

        if FIELD_GROUP_MEMBERS in rec:
            rec[FIELD_GROUP_MEMBERS] = list(members.get(gid, []))
        out.append(rec)
    return out
