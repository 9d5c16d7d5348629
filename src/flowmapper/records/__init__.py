"""Storage-side records: field contract, classification and wire indexing."""

from .classify import (
    classify,
    is_container,
    is_group,
    is_instance,
    is_template,
    template_id_for_instance,
)
from .models import OutputAdjacency, Record, RecordKind
from .wires import (
    adjacency_to_wires,
    build_adjacency,
    merge_wires,
    pad_wires,
    synthesize_wires,
    targets_for,
)

__all__ = [
    "Record",
    "RecordKind",
    "OutputAdjacency",
    "classify",
    "is_container",
    "is_group",
    "is_instance",
    "is_template",
    "template_id_for_instance",
    "build_adjacency",
    "targets_for",
    "adjacency_to_wires",
    "synthesize_wires",
    "merge_wires",
    "pad_wires",
]
