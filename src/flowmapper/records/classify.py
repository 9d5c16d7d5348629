"""Record classifier.

`classify` is total: every input yields exactly one RecordKind and nothing is
raised. Records that match no rule are ordinary nodes.

Precedence (first match wins):
1. instance   `type` starts with the instance prefix, or `subflowId` is set
2. group      `type == "group"`
3. container  `type == "tab"`; template `type == "subflow"`
4. group      id starts with the editor's group prefix
5. group      numeric `w` and `h` and no `wires` field
6. template   carries a `flow` list
7. node
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..core.config import MapperConfig, resolve_config
from ..logging import get_logger
from .models import (
    FIELD_HEIGHT,
    FIELD_INSTANCE_TEMPLATE,
    FIELD_TEMPLATE_BODY,
    FIELD_WIDTH,
    FIELD_WIRES,
    TYPE_CONTAINER,
    TYPE_GROUP,
    TYPE_TEMPLATE,
    RecordKind,
    is_number,
    record_id,
    record_type,
)

logger = get_logger(__name__)


def template_id_for_instance(record: Any, config: Optional[MapperConfig] = None) -> Optional[str]:
    """Return the template id referenced by an instance record (or None)."""
    if not isinstance(record, Mapping):
        return None
    cfg = resolve_config(config)
    t = record_type(record)
    prefix = cfg.instance_type_prefix
    if prefix and t.startswith(prefix):
        tid = t[len(prefix):].strip()
        if tid:
            return tid
    ref = record.get(FIELD_INSTANCE_TEMPLATE)
    if isinstance(ref, str) and ref.strip():
        return ref.strip()
    return None


def _group_tier(record: Mapping[str, Any], config: MapperConfig) -> int:
    """Return the detection tier (1..3) that marks `record` as a group, 0 if none."""
    if record_type(record) == TYPE_GROUP:
        return 1
    rid = record_id(record) or ""
    if config.group_id_prefix and rid.startswith(config.group_id_prefix):
        return 2
    if is_number(record.get(FIELD_WIDTH)) and is_number(record.get(FIELD_HEIGHT)) and FIELD_WIRES not in record:
        return 3
    return 0


def classify(record: Any, config: Optional[MapperConfig] = None) -> RecordKind:
    if not isinstance(record, Mapping):
        return RecordKind.NODE
    cfg = resolve_config(config)

    if template_id_for_instance(record, cfg) is not None:
        return RecordKind.INSTANCE

    t = record_type(record)
    if t == TYPE_GROUP:
        return RecordKind.GROUP
    if t == TYPE_CONTAINER:
        return RecordKind.CONTAINER
    if t == TYPE_TEMPLATE:
        return RecordKind.TEMPLATE

    tier = _group_tier(record, cfg)
    if tier:
        logger.debug("Group detected by fallback tier %s: id=%s type=%s", tier, record_id(record), t)
        return RecordKind.GROUP

    if isinstance(record.get(FIELD_TEMPLATE_BODY), list):
        return RecordKind.TEMPLATE
    return RecordKind.NODE


def is_group(record: Any, config: Optional[MapperConfig] = None) -> bool:
    return classify(record, config) is RecordKind.GROUP


def is_container(record: Any, config: Optional[MapperConfig] = None) -> bool:
    return classify(record, config) is RecordKind.CONTAINER


def is_template(record: Any, config: Optional[MapperConfig] = None) -> bool:
    return classify(record, config) is RecordKind.TEMPLATE


def is_instance(record: Any, config: Optional[MapperConfig] = None) -> bool:
    return classify(record, config) is RecordKind.INSTANCE
