"""Storage record model (Node-RED flows document).

Records are plain dicts so unknown fields survive untouched. The field names
below are the store's wire format and must not be renamed.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

Record = Dict[str, Any]
OutputAdjacency = List[List[str]]

FIELD_ID = "id"
FIELD_TYPE = "type"
FIELD_X = "x"
FIELD_Y = "y"
FIELD_SCOPE = "z"
FIELD_GROUP = "g"
FIELD_WIDTH = "w"
FIELD_HEIGHT = "h"
FIELD_WIRES = "wires"
FIELD_TEMPLATE_BODY = "flow"
FIELD_TEMPLATE_IN = "in"
FIELD_TEMPLATE_OUT = "out"
FIELD_GROUP_MEMBERS = "nodes"
FIELD_INSTANCE_TEMPLATE = "subflowId"

TYPE_GROUP = "group"
TYPE_CONTAINER = "tab"
TYPE_TEMPLATE = "subflow"


class RecordKind(str, Enum):
    NODE = "node"
    GROUP = "group"
    CONTAINER = "container"
    TEMPLATE = "template"
    INSTANCE = "instance"


def _str_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def record_id(record: Any) -> Optional[str]:
    if not isinstance(record, Mapping):
        return None
    return _str_or_none(record.get(FIELD_ID))


def record_type(record: Any) -> str:
    if not isinstance(record, Mapping):
        return ""
    t = record.get(FIELD_TYPE)
    return t if isinstance(t, str) else ""


def record_scope(record: Any) -> Optional[str]:
    if not isinstance(record, Mapping):
        return None
    return _str_or_none(record.get(FIELD_SCOPE))


def record_group(record: Any) -> Optional[str]:
    if not isinstance(record, Mapping):
        return None
    return _str_or_none(record.get(FIELD_GROUP))


def is_number(value: Any) -> bool:
    # bool is an int subclass; a `true` width is not geometry.
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def number_or(value: Any, default: float) -> float:
    return value if is_number(value) else default


def copy_record(record: Any) -> Record:
    """Shallow copy; nested values are shared with the source record."""
    return dict(record) if isinstance(record, Mapping) else {}


def index_by_id(records: List[Record]) -> Dict[str, Record]:
    """Map id -> record keeping the first occurrence of each id."""
    out: Dict[str, Record] = {}
    for r in records:
        rid = record_id(r)
        if rid is not None and rid not in out:
            out[rid] = r
    return out
