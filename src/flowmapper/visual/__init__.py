"""Visual editor graph model (renderer-agnostic dataclasses)."""

from .models import (
    Geometry,
    Group,
    Position,
    VisualEdge,
    VisualGraph,
    VisualGraphError,
    VisualNode,
    edge_id,
    load_visual_graph_json,
)

__all__ = [
    "Geometry",
    "Group",
    "Position",
    "VisualEdge",
    "VisualGraph",
    "VisualGraphError",
    "VisualNode",
    "edge_id",
    "load_visual_graph_json",
]
