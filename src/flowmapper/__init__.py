"""
flowmapper

Bidirectional mapping between a flat flows document (storage) and an editor
graph (visual).

This package provides:
- a total record classifier (nodes, groups, containers, templates, instances)
- storage -> visual and visual -> storage transforms for one scope at a time
- template (subflow) resolution with dual body / scoped-copy output
- pre-save validation and a thin client for the store's `/flows` endpoint

Rendering and runtime observability are expected to live in the editor.
"""

from .client import FlowsSnapshot, FlowStoreClient, FlowStoreError, StoreConfig
from .core.config import DEFAULT_CONFIG, MapperConfig
from .mapping import (
    PortCounters,
    SubflowTemplate,
    collect_templates,
    dedupe_records,
    extract_groups,
    generate_id,
    list_scopes,
    new_group_node,
    new_instance_node,
    to_storage,
    to_visual,
)
from .records import RecordKind, build_adjacency, classify, synthesize_wires
from .validation import (
    FlowValidationError,
    ValidationResult,
    ensure_valid,
    validate_flow,
    validate_flow_before_deploy,
)
from .visual import (
    Geometry,
    Group,
    Position,
    VisualEdge,
    VisualGraph,
    VisualGraphError,
    VisualNode,
    load_visual_graph_json,
)

__all__ = [
    # Config
    "MapperConfig",
    "DEFAULT_CONFIG",
    # Records
    "RecordKind",
    "classify",
    "build_adjacency",
    "synthesize_wires",
    # Visual model
    "Position",
    "Geometry",
    "Group",
    "VisualNode",
    "VisualEdge",
    "VisualGraph",
    "VisualGraphError",
    "load_visual_graph_json",
    # Transforms
    "to_visual",
    "to_storage",
    "list_scopes",
    "extract_groups",
    "collect_templates",
    "SubflowTemplate",
    "PortCounters",
    "generate_id",
    "dedupe_records",
    "new_group_node",
    "new_instance_node",
    # Validation
    "ValidationResult",
    "FlowValidationError",
    "validate_flow",
    "validate_flow_before_deploy",
    "ensure_valid",
    # Store
    "FlowStoreClient",
    "FlowStoreError",
    "FlowsSnapshot",
    "StoreConfig",
]
