"""Identity helpers: fresh ids for new entities and duplicate-id resolution."""

from __future__ import annotations

import time
import uuid
from typing import Any, Collection, Dict, List, Optional, Tuple

from ..core.config import MapperConfig, resolve_config
from ..logging import get_logger
from ..records.models import (
    FIELD_GROUP_MEMBERS,
    FIELD_HEIGHT,
    FIELD_ID,
    FIELD_SCOPE,
    FIELD_TEMPLATE_BODY,
    FIELD_TYPE,
    FIELD_WIDTH,
    FIELD_WIRES,
    FIELD_X,
    FIELD_Y,
    TYPE_GROUP,
    Record,
    RecordKind,
    record_id,
)
from ..visual.models import Geometry, Position, VisualNode
from .subflows import SubflowTemplate, input_count, output_count

logger = get_logger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(n: int) -> str:
    if n <= 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return "".join(reversed(out))


def generate_id(prefix: str = "", *, existing: Optional[Collection[str]] = None) -> str:
    """Return `<prefix><base36 ms timestamp>-<random>`, avoiding `existing` ids."""
    while True:
        stamp = _to_base36(int(time.time() * 1000))
        candidate = f"{prefix}{stamp}-{uuid.uuid4().hex[:9]}"
        if not existing or candidate not in existing:
            return candidate


def _information_score(record: Any) -> Tuple[int, int]:
    if not isinstance(record, dict):
        return (0, 0)
    body = record.get(FIELD_TEMPLATE_BODY)
    has_body = 1 if isinstance(body, list) and len(body) > 0 else 0
    return (has_body, len(record))


def dedupe_records(records: List[Record]) -> List[Record]:
    """Collapse records sharing an id, keeping the first slot.

    The surviving candidate is the one with a non-empty template body, else the
    one with more fields; ties keep the earlier record. Every collision is
    logged since it means an upstream producer emitted the same id twice.
    """
    out: List[Record] = []
    slot_by_id: Dict[str, int] = {}
    for rec in records:
        rid = record_id(rec)
        if rid is None:
            out.append(rec)
            continue
        slot = slot_by_id.get(rid)
        if slot is None:
            slot_by_id[rid] = len(out)
            out.append(rec)
            continue
        current = out[slot]
        cur_score = _information_score(current)
        new_score = _information_score(rec)
        keep_new = new_score > cur_score
        logger.warning(
            "Duplicate record id resolved: id=%s kept=%s (body=%s fields=%s) dropped=(body=%s fields=%s)",
            rid,
            "later" if keep_new else "earlier",
            *(new_score if keep_new else cur_score),
            *(cur_score if keep_new else new_score),
        )
        if keep_new:
            out[slot] = rec
    return out


def new_group_node(
    name: str,
    geometry: Geometry,
    scope_id: str,
    *,
    config: Optional[MapperConfig] = None,
    existing_ids: Optional[Collection[str]] = None,
) -> VisualNode:
    """VisualNode for a group created in the editor (fresh `group-` id)."""
    cfg = resolve_config(config)
    gid = generate_id(cfg.group_id_prefix, existing=existing_ids)
    w = geometry.w or cfg.default_group_width
    h = geometry.h or cfg.default_group_height
    record: Record = {
        FIELD_ID: gid,
        FIELD_TYPE: TYPE_GROUP,
        "name": name,
        FIELD_X: geometry.x,
        FIELD_Y: geometry.y,
        FIELD_WIDTH: w,
        FIELD_HEIGHT: h,
        FIELD_SCOPE: scope_id,
        FIELD_GROUP_MEMBERS: [],
    }
    return VisualNode(
        id=gid,
        kind=RecordKind.GROUP.value,
        position=Position(x=geometry.x, y=geometry.y),
        port_count=0,
        input_count=0,
        payload={
            "record": record,
            "type": TYPE_GROUP,
            "label": name or "Group",
            "scope": scope_id,
            "nodesCount": 0,
            "geometry": {"x": geometry.x, "y": geometry.y, "w": w, "h": h},
        },
    )


def new_instance_node(
    template: SubflowTemplate,
    position: Position,
    scope_id: str,
    *,
    config: Optional[MapperConfig] = None,
    existing_ids: Optional[Collection[str]] = None,
) -> VisualNode:
    """VisualNode for a new instance of `template` placed at `position`."""
    cfg = resolve_config(config)
    nid = generate_id(existing=existing_ids)
    outputs = output_count(template)
    record: Record = {
        FIELD_ID: nid,
        FIELD_TYPE: f"{cfg.instance_type_prefix}{template.id}",
        FIELD_X: position.x,
        FIELD_Y: position.y,
        FIELD_SCOPE: scope_id,
        FIELD_WIRES: [[] for _ in range(outputs)],
    }
    label = template.record.get("name")
    return VisualNode(
        id=nid,
        kind=RecordKind.INSTANCE.value,
        position=position,
        port_count=outputs,
        input_count=input_count(template),
        payload={
            "record": record,
            "type": record[FIELD_TYPE],
            "label": label if isinstance(label, str) and label else "Subflow",
            "scope": scope_id,
            "template": template.id,
        },
    )
