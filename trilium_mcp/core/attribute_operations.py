"""Label and relation management on top of the ETAPI attribute endpoints.

The store has no multi-attribute transaction, so batches run as an ordered
sequence of independent calls. Every item is validated before the first
call is issued; once calls start, failures are reported per item and earlier
successes are never rolled back.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Any, Optional, Sequence, Union

from pydantic import ValidationError

from trilium_mcp.client import TriliumClient
from trilium_mcp.data_models import (
    AttributeBatchResult,
    AttributeItemResult,
    AttributeKind,
    AttributeRecord,
)
from trilium_mcp.exceptions import (
    AttributeNotFoundError,
    AttributeValidationError,
    ExternalStoreError,
)
from trilium_mcp.models.attribute_models import AttributeInput, AttributeSpec

logger = logging.getLogger(__name__)

AttributeItem = Union[AttributeSpec, AttributeInput, dict[str, Any]]

OPERATIONS = ("create", "batch_create", "read", "update", "delete")


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def _spec_fields(item: AttributeItem) -> dict[str, Any]:
    if isinstance(item, AttributeInput):
        return item.spec_fields()
    if isinstance(item, AttributeSpec):
        return item.model_dump()
    return dict(item)


def _error_entries(index: int, exc: ValidationError) -> list[dict[str, Any]]:
    entries = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "attribute"
        entries.append({"index": index, "field": field, "message": error["msg"]})
    return entries


def _owned(records: Sequence[AttributeRecord], note_id: str) -> list[AttributeRecord]:
    return [record for record in records if not record.note_id or record.note_id == note_id]


def _as_kind(kind: Union[AttributeKind, str]) -> AttributeKind:
    try:
        return AttributeKind(kind)
    except ValueError as exc:
        raise AttributeValidationError(
            f"Invalid attribute kind '{kind}'. Must be 'label' or 'relation'.",
            [{"field": "kind", "message": "must be 'label' or 'relation'"}],
        ) from exc


# ==============================================================================
# VALIDATION
# ==============================================================================


def validate_attribute_specs(items: Sequence[AttributeItem]) -> list[AttributeSpec]:
    """Validate every item of a batch before anything is sent to the store.

    Args:
        items: Attribute items in caller order.

    Returns:
        The items as :class:`AttributeSpec` objects, in the same order.

    Raises:
        AttributeValidationError: If any item is malformed. All problems in the
            batch are listed, not only the first one.
    """
    specs: list[AttributeSpec] = []
    errors: list[dict[str, Any]] = []
    for index, item in enumerate(items):
        try:
            specs.append(AttributeSpec.model_validate(_spec_fields(item)))
        except ValidationError as exc:
            errors.extend(_error_entries(index, exc))

    if errors:
        raise AttributeValidationError(
            f"{len(errors)} attribute validation error(s); no attributes were created.",
            errors,
        )
    return specs


# ==============================================================================
# CREATE
# ==============================================================================


def create_attribute(client: TriliumClient, note_id: str, spec: AttributeSpec) -> AttributeRecord:
    """Create a single, already validated attribute on ``note_id``."""
    response = client.create_attribute(spec.to_etapi(note_id))
    record = AttributeRecord.from_payload(response)
    logger.info(
        "Created %s '%s' (%s) on note '%s'",
        spec.kind.value,
        spec.name,
        record.attribute_id,
        note_id,
    )
    return record


def batch_create_attributes(
    client: TriliumClient,
    note_id: str,
    items: Sequence[AttributeItem],
    cancel_event: Optional[threading.Event] = None,
    operation: str = "batch_create",
) -> AttributeBatchResult:
    """Create attributes one after another in caller order.

    Args:
        client: ETAPI client.
        note_id: Owning note.
        items: Attributes to create.
        cancel_event: When set, no further calls are issued and the remaining
            items are reported as ``skipped``. Completed items are kept.
        operation: Operation name echoed in the result.

    Returns:
        An :class:`AttributeBatchResult` with one entry per item.

    Raises:
        AttributeValidationError: If any item is invalid (nothing is created).
    """
    specs = validate_attribute_specs(items)
    result = AttributeBatchResult(note_id=note_id, operation=operation)

    for index, spec in enumerate(specs):
        if cancel_event is not None and cancel_event.is_set():
            result.results.append(
                AttributeItemResult(index, spec.kind.value, spec.name, "skipped", error="cancelled")
            )
            continue
        try:
            record = create_attribute(client, note_id, spec)
        except ExternalStoreError as exc:
            logger.warning(
                "Failed to create %s '%s' on note '%s': %s",
                spec.kind.value,
                spec.name,
                note_id,
                exc,
            )
            result.results.append(
                AttributeItemResult(index, spec.kind.value, spec.name, "failed", error=str(exc))
            )
            continue
        result.results.append(
            AttributeItemResult(index, spec.kind.value, spec.name, "created", attribute=record)
        )

    logger.info(
        "Attribute batch on note '%s': %d created, %d failed, %d skipped",
        note_id,
        result.succeeded,
        result.failed,
        result.skipped,
    )
    return result


# ==============================================================================
# READ
# ==============================================================================


def read_attributes(
    client: TriliumClient,
    note_id: str,
    kind: Optional[Union[AttributeKind, str]] = None,
    name_pattern: Optional[str] = None,
) -> list[AttributeRecord]:
    """Return the note's own attributes, optionally filtered.

    Args:
        client: ETAPI client.
        note_id: Note whose attributes are listed.
        kind: Only return labels or only relations.
        name_pattern: Regular expression searched in attribute names.
    """
    records = _owned(client.get_note_meta(note_id).attributes, note_id)
    if kind is not None:
        wanted = _as_kind(kind)
        records = [record for record in records if record.kind is wanted]
    if name_pattern:
        pattern = re.compile(name_pattern)
        records = [record for record in records if pattern.search(record.name)]
    return sorted(records, key=lambda record: record.position)


# ==============================================================================
# RESOLVE / DELETE
# ==============================================================================


def resolve_attribute_id(
    client: TriliumClient,
    note_id: str,
    kind: Union[AttributeKind, str],
    name: str,
    value: Optional[str] = None,
) -> str:
    """Find the ID of the attribute ``kind``/``name`` on ``note_id``.

    ``value`` narrows the match when the note carries several attributes with
    the same name.

    Raises:
        AttributeNotFoundError: If nothing matches.
        AttributeValidationError: If several attributes match.
    """
    wanted = _as_kind(kind)
    records = read_attributes(client, note_id)
    matches = [
        record
        for record in records
        if record.kind is wanted and record.name == name and (value is None or record.value == value)
    ]
    if not matches:
        raise AttributeNotFoundError(
            note_id,
            kind=wanted.value,
            name=name,
            available=[record.label for record in records],
        )
    if len(matches) > 1:
        raise AttributeValidationError(
            f"{len(matches)} {wanted.value}s named '{name}' exist on note '{note_id}'. "
            "Pass attribute_id or value to pick one.",
            [{"field": "name", "message": "ambiguous; supply attribute_id or value"}],
        )
    return matches[0].attribute_id


def _fetch_owned_attribute(client: TriliumClient, note_id: str, attribute_id: str) -> AttributeRecord:
    try:
        record = AttributeRecord.from_payload(client.get_attribute(attribute_id))
    except ExternalStoreError as exc:
        if exc.status_code == 404:
            raise AttributeNotFoundError(note_id, attribute_id=attribute_id) from exc
        raise
    if record.note_id and record.note_id != note_id:
        raise AttributeValidationError(
            f"Attribute '{attribute_id}' belongs to note '{record.note_id}', not '{note_id}'. "
            "An attribute cannot be moved to another note.",
            [{"field": "attribute_id", "message": "owned by another note"}],
        )
    return record


def delete_attribute_by_id(client: TriliumClient, attribute_id: str) -> None:
    """Delete an attribute by its identifier."""
    client.delete_attribute(attribute_id)
    logger.info("Deleted attribute '%s'", attribute_id)


def delete_attribute(client: TriliumClient, note_id: str, item: AttributeInput) -> AttributeItemResult:
    """Delete one attribute, resolving its ID first when only kind/name is given.

    Resolution and deletion are two separate store calls; the attribute can
    change in between.
    """
    if item.attribute_id:
        record = _fetch_owned_attribute(client, note_id, item.attribute_id)
        attribute_id = record.attribute_id
        kind, name = record.kind.value, record.name
    else:
        attribute_id = resolve_attribute_id(client, note_id, item.kind, item.name, item.value)
        kind, name = _as_kind(item.kind).value, item.name
    delete_attribute_by_id(client, attribute_id)
    return AttributeItemResult(0, kind, name, "deleted")


# ==============================================================================
# UPDATE
# ==============================================================================


def _update_payload(target: AttributeRecord, item: AttributeInput) -> dict[str, Any]:
    """Work out the PATCH body, rejecting changes to immutable fields."""
    errors: list[dict[str, Any]] = []
    if item.kind is not None and item.kind is not target.kind:
        errors.append({"field": "kind", "message": f"cannot change kind of '{target.name}'"})
    if item.name is not None and item.name != target.name:
        errors.append({"field": "name", "message": "attribute names cannot be changed; delete and recreate"})
    if item.is_inheritable is not None and item.is_inheritable != target.is_inheritable:
        errors.append({"field": "is_inheritable", "message": "inheritability cannot be changed"})
    if (
        target.kind is AttributeKind.RELATION
        and item.value is not None
        and item.value != target.value
    ):
        errors.append({"field": "value", "message": "relation targets cannot be changed; only position"})
    if errors:
        raise AttributeValidationError(
            f"Cannot update {target.label}: only "
            + ("value and position" if target.kind is AttributeKind.LABEL else "position")
            + " are mutable.",
            errors,
        )

    payload: dict[str, Any] = {}
    if target.kind is AttributeKind.LABEL and item.value is not None:
        payload["value"] = item.value
    if item.position is not None:
        payload["position"] = item.position
    if not payload:
        raise AttributeValidationError(
            f"Nothing to update on {target.label}; supply a new value or position.",
            [{"field": "value", "message": "no mutable field supplied"}],
        )
    return payload


def update_attribute(client: TriliumClient, note_id: str, item: AttributeInput) -> AttributeItemResult:
    """Update the value (labels) or position (labels and relations) of one attribute."""
    if item.attribute_id:
        target = _fetch_owned_attribute(client, note_id, item.attribute_id)
    else:
        attribute_id = resolve_attribute_id(client, note_id, item.kind, item.name)
        target = _fetch_owned_attribute(client, note_id, attribute_id)

    payload = _update_payload(target, item)
    response = client.update_attribute(target.attribute_id, payload)
    record = AttributeRecord.from_payload(response)
    logger.info("Updated %s on note '%s': %s", target.label, note_id, sorted(payload))
    return AttributeItemResult(0, record.kind.value, record.name, "updated", attribute=record)


# ==============================================================================
# DISPATCH
# ==============================================================================


def manage_attributes(
    client: TriliumClient,
    note_id: str,
    operation: str,
    attributes: Optional[Sequence[AttributeItem]] = None,
    kind: Optional[Union[AttributeKind, str]] = None,
    name_pattern: Optional[str] = None,
    cancel_event: Optional[threading.Event] = None,
) -> dict[str, Any]:
    """Run one attribute operation and describe its per-item outcome.

    Raises:
        AttributeValidationError: For unknown operations or malformed items.
        AttributeNotFoundError: If an update/delete target does not exist.
    """
    items = list(attributes or [])

    if operation == "read":
        records = read_attributes(client, note_id, kind=kind, name_pattern=name_pattern)
        return {
            "note_id": note_id,
            "operation": operation,
            "count": len(records),
            "attributes": [record.as_payload() for record in records],
        }

    if operation not in OPERATIONS:
        raise AttributeValidationError(
            f"Unsupported operation '{operation}'. Supported: {', '.join(OPERATIONS)}.",
            [{"field": "operation", "message": "unsupported operation"}],
        )
    if not items:
        raise AttributeValidationError(
            f"Operation '{operation}' requires at least one attribute.",
            [{"field": "attributes", "message": "empty"}],
        )

    if operation in ("create", "batch_create"):
        if operation == "create" and len(items) != 1:
            raise AttributeValidationError(
                "Operation 'create' takes exactly one attribute; use batch_create for several.",
                [{"field": "attributes", "message": f"got {len(items)} items"}],
            )
        return batch_create_attributes(
            client, note_id, items, cancel_event=cancel_event, operation=operation
        ).as_payload()

    if len(items) != 1:
        raise AttributeValidationError(
            f"Operation '{operation}' takes exactly one attribute.",
            [{"field": "attributes", "message": f"got {len(items)} items"}],
        )
    item = items[0]
    if not isinstance(item, AttributeInput):
        try:
            item = AttributeInput.model_validate(_spec_fields(item))
        except ValidationError as exc:
            raise AttributeValidationError(
                "Invalid attribute reference.", _error_entries(0, exc)
            ) from exc

    if operation == "update":
        outcome = update_attribute(client, note_id, item)
    else:
        outcome = delete_attribute(client, note_id, item)
    batch = AttributeBatchResult(note_id=note_id, operation=operation, results=[outcome])
    return batch.as_payload()
