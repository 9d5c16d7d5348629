"""Subflow resolver: templates, instances and the template port map.

A template's internal records are stored twice on save: once inside the
template body (`flow`, without `z`) and once as top-level copies scoped to the
template (`z = <templateId>`). The runtime resolves internal ids through the
top-level copies, so both representations are always emitted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Collection, Dict, Iterable, List, Mapping, Optional

from ..core.config import MapperConfig, resolve_config
from ..logging import get_logger
from ..records.classify import classify, template_id_for_instance
from ..records.models import (
    FIELD_SCOPE,
    FIELD_TEMPLATE_BODY,
    FIELD_TEMPLATE_IN,
    FIELD_TEMPLATE_OUT,
    FIELD_TYPE,
    FIELD_X,
    FIELD_Y,
    TYPE_TEMPLATE,
    Record,
    RecordKind,
    copy_record,
    is_number,
    number_or,
    record_id,
    record_scope,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class PortWire:
    target_id: str
    port: Optional[Any] = None

    def to_dict(self, *, keep_port: bool = True) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.target_id}
        if keep_port and self.port is not None:
            out["port"] = self.port
        return out


@dataclass(frozen=True)
class PortBinding:
    internal_wires: List[PortWire] = field(default_factory=list)
    # Opaque descriptor fields (x, y, ...).
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self, *, keep_port: bool = True) -> Dict[str, Any]:
        out = dict(self.extra)
        out["wires"] = [w.to_dict(keep_port=keep_port) for w in self.internal_wires]
        return out


@dataclass(frozen=True)
class PortMap:
    inputs: List[PortBinding] = field(default_factory=list)
    outputs: List[PortBinding] = field(default_factory=list)


@dataclass(frozen=True)
class SubflowTemplate:
    id: str
    port_map: PortMap = field(default_factory=PortMap)
    internal_records: List[Record] = field(default_factory=list)
    record: Record = field(default_factory=dict)

    @property
    def internal_ids(self) -> set[str]:
        return {rid for rid in (record_id(r) for r in self.internal_records) if rid is not None}


@dataclass(frozen=True)
class TemplateBody:
    """Result of rebuilding one template for output."""

    template: Record
    scoped_copies: List[Record]
    dropped_bindings: int = 0


def strip_scope(record: Mapping[str, Any]) -> Record:
    out = copy_record(record)
    out.pop(FIELD_SCOPE, None)
    return out


def _parse_binding(raw: Any) -> Optional[PortBinding]:
    if not isinstance(raw, Mapping):
        return None
    wires: List[PortWire] = []
    raw_wires = raw.get("wires")
    for w in raw_wires if isinstance(raw_wires, list) else []:
        if not isinstance(w, Mapping):
            continue
        tid = w.get("id")
        if isinstance(tid, str) and tid.strip():
            wires.append(PortWire(target_id=tid, port=w.get("port")))
    extra = {k: v for k, v in raw.items() if k != "wires"}
    return PortBinding(internal_wires=wires, extra=extra)


def parse_port_map(template_record: Mapping[str, Any]) -> PortMap:
    """Read `in`/`out` descriptors; malformed descriptors and wires are skipped."""

    def _side(key: str) -> List[PortBinding]:
        raw = template_record.get(key)
        if not isinstance(raw, list):
            return []
        return [b for b in (_parse_binding(p) for p in raw) if b is not None]

    return PortMap(inputs=_side(FIELD_TEMPLATE_IN), outputs=_side(FIELD_TEMPLATE_OUT))


def _body_records(record: Mapping[str, Any]) -> List[Record]:
    body = record.get(FIELD_TEMPLATE_BODY)
    if not isinstance(body, list):
        return []
    return [strip_scope(r) for r in body if isinstance(r, Mapping)]


def scoped_records(records: Iterable[Any], template_id: str, config: Optional[MapperConfig] = None) -> List[Record]:
    """Top-level records scoped to `template_id`, excluding groups and scopes."""
    cfg = resolve_config(config)
    out: List[Record] = []
    for r in records:
        if not isinstance(r, Mapping) or record_scope(r) != template_id:
            continue
        if classify(r, cfg) in (RecordKind.GROUP, RecordKind.CONTAINER, RecordKind.TEMPLATE):
            continue
        out.append(copy_record(r))
    return out


def _merge_internal(body: List[Record], scoped: List[Record]) -> List[Record]:
    # Body records win; scoped records the body does not list are appended.
    out = list(body)
    seen = {record_id(r) for r in body}
    for r in scoped:
        rid = record_id(r)
        if rid is None or rid in seen:
            continue
        seen.add(rid)
        out.append(strip_scope(r))
    return out


def collect_templates(records: Iterable[Any], config: Optional[MapperConfig] = None) -> Dict[str, SubflowTemplate]:
    """Index templates by id.

    Internal records are the template body plus any top-level records scoped
    to the template that the body does not list (with `z` stripped). Body
    entries win on id collisions.
    """
    cfg = resolve_config(config)
    items = [r for r in records if isinstance(r, Mapping)]
    out: Dict[str, SubflowTemplate] = {}
    for rec in items:
        if classify(rec, cfg) is not RecordKind.TEMPLATE:
            continue
        tid = record_id(rec)
        if tid is None:
            continue
        body = _body_records(rec)
        if tid in out and (_body_records(out[tid].record) or not body):
            continue
        internal = _merge_internal(body, scoped_records(items, tid, cfg))
        if len(internal) > len(body):
            logger.debug(
                "Template internals supplemented from scoped records: template=%s added=%s",
                tid,
                len(internal) - len(body),
            )
        out[tid] = SubflowTemplate(
            id=tid,
            port_map=parse_port_map(rec),
            internal_records=internal,
            record=copy_record(rec),
        )
    return out


def resolve_template(
    instance_record: Any,
    templates: Mapping[str, SubflowTemplate],
    config: Optional[MapperConfig] = None,
) -> Optional[SubflowTemplate]:
    tid = template_id_for_instance(instance_record, config)
    if tid is None:
        return None
    return templates.get(tid)


def _declared_count(template: SubflowTemplate, port_key: str, count_key: str) -> int:
    if isinstance(template.record.get(port_key), list):
        side = template.port_map.inputs if port_key == FIELD_TEMPLATE_IN else template.port_map.outputs
        return len(side)
    value = template.record.get(count_key)
    if is_number(value) and value > 0:
        return int(value)
    return 0


def input_count(template: Optional[SubflowTemplate]) -> int:
    if template is None:
        return 0
    return _declared_count(template, FIELD_TEMPLATE_IN, "inputs")


def output_count(template: Optional[SubflowTemplate]) -> int:
    if template is None:
        return 0
    return _declared_count(template, FIELD_TEMPLATE_OUT, "outputs")


class PortCounters:
    """Sequential input-port assignment for multi-input targets.

    Each target hands out ports 0, 1, 2, ... in the order edges reach it; once
    the target's ports are exhausted every further edge gets the last port.
    Create one instance per transform call.
    """

    def __init__(self) -> None:
        self._next: Dict[str, int] = {}

    def assign(self, target_id: str, port_count: int) -> int:
        n = self._next.get(target_id, 0)
        self._next[target_id] = n + 1
        return min(n, max(port_count - 1, 0))


def _clean_side(
    raw: Any,
    internal_ids: Collection[str],
    *,
    keep_port: bool,
    template_id: str,
    side: str,
) -> tuple[list, int]:
    if not isinstance(raw, list):
        return raw, 0
    cleaned: List[Dict[str, Any]] = []
    dropped = 0
    for index, descriptor in enumerate(raw):
        if not isinstance(descriptor, Mapping):
            dropped += 1
            logger.warning("Dropped malformed port descriptor: template=%s side=%s index=%s", template_id, side, index)
            continue
        kept: List[PortWire] = []
        wires = descriptor.get("wires")
        for w in wires if isinstance(wires, list) else []:
            tid = w.get("id") if isinstance(w, Mapping) else None
            if isinstance(tid, str) and tid.strip() and tid in internal_ids:
                kept.append(PortWire(target_id=tid, port=w.get("port")))
                continue
            dropped += 1
            logger.warning(
                "Dropped port binding: template=%s side=%s index=%s target=%s",
                template_id,
                side,
                index,
                tid,
            )
        binding = PortBinding(internal_wires=kept, extra={k: v for k, v in descriptor.items() if k != "wires"})
        cleaned.append(binding.to_dict(keep_port=keep_port))
    return cleaned, dropped


def validate_port_map(template_record: Mapping[str, Any], internal_ids: Collection[str]) -> tuple[Record, int]:
    """Return a copy of `template_record` with `in`/`out` bindings checked.

    Bindings whose id is not an internal id (or that are malformed) are removed.
    `in` wires keep only `id`; `out` wires keep `id` and `port`. Returns the
    record and the number of dropped bindings.
    """
    rec = copy_record(template_record)
    tid = record_id(rec) or ""
    ids = set(internal_ids)
    dropped = 0
    if FIELD_TEMPLATE_IN in rec:
        rec[FIELD_TEMPLATE_IN], n = _clean_side(rec[FIELD_TEMPLATE_IN], ids, keep_port=False, template_id=tid, side="in")
        dropped += n
    if FIELD_TEMPLATE_OUT in rec:
        rec[FIELD_TEMPLATE_OUT], n = _clean_side(rec[FIELD_TEMPLATE_OUT], ids, keep_port=True, template_id=tid, side="out")
        dropped += n
    return rec, dropped


def build_template_body(template_record: Mapping[str, Any], internal_records: Iterable[Any]) -> TemplateBody:
    """Rebuild a template for output in both representations."""
    tid = record_id(template_record) or ""
    internal = [strip_scope(r) for r in internal_records if isinstance(r, Mapping)]

    rec = copy_record(template_record)
    rec[FIELD_TYPE] = TYPE_TEMPLATE
    rec[FIELD_TEMPLATE_BODY] = internal
    rec, dropped = validate_port_map(rec, {i for i in (record_id(r) for r in internal) if i is not None})

    scoped: List[Record] = []
    for r in internal:
        copy = dict(r)
        copy[FIELD_SCOPE] = tid
        copy[FIELD_X] = number_or(r.get(FIELD_X), 0)
        copy[FIELD_Y] = number_or(r.get(FIELD_Y), 0)
        scoped.append(copy)
    return TemplateBody(template=rec, scoped_copies=scoped, dropped_bindings=dropped)
