"""Pre-save checks of a flows document.

These are structural checks only (ids, types, positions, scopes, wires); node
configuration is never inspected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from .core.config import MapperConfig, resolve_config
from .logging import get_logger
from .records.classify import classify
from .records.models import (
    FIELD_ID,
    FIELD_SCOPE,
    FIELD_TYPE,
    FIELD_WIRES,
    FIELD_X,
    FIELD_Y,
    RecordKind,
    is_number,
    record_id,
    record_scope,
)

logger = get_logger(__name__)


class FlowValidationError(ValueError):
    """Raised when a flows document fails pre-save validation."""

    def __init__(self, errors: List[str], warnings: Optional[List[str]] = None):
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        head = self.errors[0] if self.errors else "invalid flows document"
        more = f" (+{len(self.errors) - 1} more)" if len(self.errors) > 1 else ""
        super().__init__(f"Flow validation failed: {head}{more}")


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _label(index: int, record: Mapping[str, Any]) -> str:
    rid = record.get(FIELD_ID)
    return f"record {index} ({rid if _non_empty_str(rid) else 'no id'})"


def _validate_record(index: int, record: Any, cfg: MapperConfig) -> List[str]:
    if not isinstance(record, Mapping):
        return [f"record {index}: must be an object"]

    errors: List[str] = []
    where = _label(index, record)
    if not _non_empty_str(record.get(FIELD_ID)):
        errors.append(f"record {index}: 'id' is required and must be a non-empty string")
    if not _non_empty_str(record.get(FIELD_TYPE)):
        errors.append(f"{where}: 'type' is required and must be a non-empty string")

    kind = classify(record, cfg)
    scoped = FIELD_SCOPE in record
    # Containers, templates and global config records have no canvas position.
    if scoped and kind not in (RecordKind.CONTAINER, RecordKind.TEMPLATE):
        for key in (FIELD_X, FIELD_Y):
            if not is_number(record.get(key)):
                errors.append(f"{where}: '{key}' must be a number")

    needs_scope = kind is RecordKind.GROUP or FIELD_WIRES in record
    if needs_scope and kind not in (RecordKind.CONTAINER, RecordKind.TEMPLATE) and not _non_empty_str(record.get(FIELD_SCOPE)):
        errors.append(f"{where}: 'z' is required for groups and wired nodes")

    if FIELD_WIRES in record:
        wires = record[FIELD_WIRES]
        if not isinstance(wires, list):
            errors.append(f"{where}: 'wires' must be a list")
        else:
            for port, entry in enumerate(wires):
                if not isinstance(entry, list):
                    errors.append(f"{where}: wires[{port}] must be a list")
                    continue
                for i, target in enumerate(entry):
                    if not _non_empty_str(target):
                        errors.append(f"{where}: wires[{port}][{i}] must be a non-empty string")
    return errors


def validate_flow(records: Any, config: Optional[MapperConfig] = None) -> ValidationResult:
    cfg = resolve_config(config)
    if not isinstance(records, list):
        return ValidationResult(is_valid=False, errors=["flows document must be a list of records"])

    errors: List[str] = []
    warnings: List[str] = []
    if not records:
        warnings.append("flows document is empty")

    for index, record in enumerate(records):
        errors.extend(_validate_record(index, record, cfg))

    seen: set[str] = set()
    for record in records:
        rid = record_id(record)
        if rid is None:
            continue
        if rid in seen:
            errors.append(f"duplicate id '{rid}'")
        seen.add(rid)

    scope_owners = {
        record_id(r)
        for r in records
        if classify(r, cfg) in (RecordKind.CONTAINER, RecordKind.TEMPLATE)
    }
    missing_scopes: List[str] = []
    for record in records:
        scope = record_scope(record)
        if scope is not None and scope not in scope_owners and scope not in missing_scopes:
            missing_scopes.append(scope)
    for scope in missing_scopes:
        warnings.append(f"scope '{scope}' has no matching container or template record")

    for index, record in enumerate(records):
        if not isinstance(record, Mapping) or not isinstance(record.get(FIELD_WIRES), list):
            continue
        for port, entry in enumerate(record[FIELD_WIRES]):
            if not isinstance(entry, list):
                continue
            for i, target in enumerate(entry):
                if _non_empty_str(target) and target not in seen:
                    errors.append(
                        f"{_label(index, record)}: wires[{port}][{i}] points at unknown id '{target}'"
                    )

    if errors:
        logger.debug("Flow validation found %s error(s), %s warning(s)", len(errors), len(warnings))
    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def validate_flow_before_deploy(records: Any, config: Optional[MapperConfig] = None) -> ValidationResult:
    """Same checks as `validate_flow`; warnings never block a deploy."""
    return validate_flow(records, config)


def ensure_valid(records: Any, config: Optional[MapperConfig] = None) -> ValidationResult:
    result = validate_flow_before_deploy(records, config)
    if not result.is_valid:
        raise FlowValidationError(result.errors, result.warnings)
    for warning in result.warnings:
        logger.warning("Flow validation warning: %s", warning)
    return result
