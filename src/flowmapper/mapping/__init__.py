"""Storage <-> visual transforms and their resolvers."""

from .groups import extract_groups, group_to_visual_node, groups_to_records
from .ids import dedupe_records, generate_id, new_group_node, new_instance_node
from .subflows import (
    PortBinding,
    PortCounters,
    PortMap,
    PortWire,
    SubflowTemplate,
    TemplateBody,
    build_template_body,
    collect_templates,
    input_count,
    output_count,
    parse_port_map,
    resolve_template,
    validate_port_map,
)
from .to_storage import to_storage
from .to_visual import list_scopes, to_visual

__all__ = [
    "to_visual",
    "to_storage",
    "list_scopes",
    "extract_groups",
    "group_to_visual_node",
    "groups_to_records",
    "PortWire",
    "PortBinding",
    "PortMap",
    "SubflowTemplate",
    "TemplateBody",
    "PortCounters",
    "collect_templates",
    "resolve_template",
    "input_count",
    "output_count",
    "parse_port_map",
    "validate_port_map",
    "build_template_body",
    "generate_id",
    "dedupe_records",
    "new_group_node",
    "new_instance_node",
]
