"""flowmapper.core.config

Mapper configuration for the storage <-> visual transforms.

This module provides a MapperConfig dataclass that centralizes the editor
conventions the transforms depend on (id prefixes, default group geometry,
fallback type names). Record *field names* are not configurable: they are the
external store's wire format (see `flowmapper.records.models`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

# Geometry used for groups that arrive without `w`/`h`.
DEFAULT_GROUP_SIZE: Tuple[int, int] = (200, 200)


@dataclass(frozen=True)
class MapperConfig:
    """Conventions shared by the classifier and both transform directions.

    Attributes:
        group_id_prefix: Prefix of ids the editor assigns to groups it creates.
            Records with this id prefix are groups even if the store altered
            their `type` (second tier of group detection).
        instance_type_prefix: `type` prefix of subflow instances
            (`"subflow:<templateId>"`).
        default_group_width: Width given to groups without `w`.
        default_group_height: Height given to groups without `h`.
        unknown_type: `type` written for records that lost their type.
        new_flow_label_prefix: Label prefix of container records synthesized
            for scopes that do not exist in the store yet.

    Example:
        >>> config = MapperConfig(default_group_width=320)
        >>> config.to_dict()["default_group_width"]
        320
    """

    group_id_prefix: str = "group-"
    instance_type_prefix: str = "subflow:"

    default_group_width: int = DEFAULT_GROUP_SIZE[0]
    default_group_height: int = DEFAULT_GROUP_SIZE[1]

    unknown_type: str = "unknown"
    new_flow_label_prefix: str = "Flow "

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id_prefix": self.group_id_prefix,
            "instance_type_prefix": self.instance_type_prefix,
            "default_group_width": self.default_group_width,
            "default_group_height": self.default_group_height,
            "unknown_type": self.unknown_type,
            "new_flow_label_prefix": self.new_flow_label_prefix,
        }


DEFAULT_CONFIG = MapperConfig()


def resolve_config(config: "MapperConfig | None") -> MapperConfig:
    return config if isinstance(config, MapperConfig) else DEFAULT_CONFIG
