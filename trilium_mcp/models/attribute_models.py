"""Pydantic models for note attributes (labels and relations).

- AttributeSpec: strict shape of an attribute to create
- AttributeInput: loose per-item tool input, also used to address attributes
  for update and delete
- ManageAttributesInput: input of the manage_attributes tool
"""

from __future__ import annotations

import re
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from trilium_mcp.constants import ATTRIBUTE_NAME_PATTERN, DEFAULT_ATTRIBUTE_POSITION
from trilium_mcp.data_models import AttributeKind

from .base import BaseNoteInput

_NAME_RE = re.compile(ATTRIBUTE_NAME_PATTERN)

AttributeOperation = Literal["create", "batch_create", "read", "update", "delete"]


class AttributeSpec(BaseModel):
    """A label or relation to attach to a note.

    A relation without a value cannot be constructed.

    Examples:
        >>> AttributeSpec(kind="label", name="todo")
        >>> AttributeSpec(kind="relation", name="template", value="Board")
    """

    kind: AttributeKind
    name: str
    value: Optional[str] = None
    position: int = Field(default=DEFAULT_ATTRIBUTE_POSITION, ge=0)
    is_inheritable: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not _NAME_RE.fullmatch(v):
            raise ValueError(
                "Attribute name must be non-empty and contain no whitespace "
                f"(pattern {ATTRIBUTE_NAME_PATTERN}). Invalid name: '{v}'"
            )
        return v

    @model_validator(mode="after")
    def validate_relation_value(self) -> "AttributeSpec":
        if self.kind is AttributeKind.RELATION and (self.value is None or not self.value.strip()):
            raise ValueError(
                f"Relation '{self.name}' requires a value naming its target "
                "(e.g. value='Board' for ~template)."
            )
        return self

    def to_etapi(self, note_id: str) -> dict[str, Any]:
        """Payload for ``POST /attributes``."""
        return {
            "noteId": note_id,
            "type": self.kind.value,
            "name": self.name,
            "value": self.value or "",
            "position": self.position,
            "isInheritable": self.is_inheritable,
        }


class AttributeInput(BaseModel):
    """One attribute item as supplied to manage_attributes.

    For create operations the item is checked against :class:`AttributeSpec`.
    For update and delete it addresses an existing attribute either by
    ``attribute_id`` or by ``kind`` and ``name``.
    """

    kind: Optional[AttributeKind] = Field(
        None,
        description="'label' (#tag, value optional) or 'relation' (~link, value required)",
    )
    name: Optional[str] = Field(
        None,
        description="Attribute name without '#' or '~' and without whitespace",
        examples=["todo", "template", "iconClass"],
    )
    value: Optional[str] = Field(
        None,
        description="Label value or relation target. Required for relations.",
    )
    position: Optional[int] = Field(
        None,
        ge=0,
        description=f"Display order (default {DEFAULT_ATTRIBUTE_POSITION}); not unique",
    )
    is_inheritable: Optional[bool] = Field(
        None,
        description="Whether child notes inherit the attribute (default false)",
    )
    attribute_id: Optional[str] = Field(
        None,
        description="Existing attribute ID (update/delete only)",
    )

    @model_validator(mode="after")
    def validate_addressable(self) -> "AttributeInput":
        if not self.attribute_id and (self.kind is None or not self.name):
            raise ValueError(
                "Each attribute needs 'kind' and 'name', or an 'attribute_id' "
                "for update/delete."
            )
        return self

    def spec_fields(self) -> dict[str, Any]:
        """Fields to build an :class:`AttributeSpec` from, omitting unset ones."""
        return {
            key: value
            for key, value in {
                "kind": self.kind,
                "name": self.name,
                "value": self.value,
                "position": self.position,
                "is_inheritable": self.is_inheritable,
            }.items()
            if value is not None
        }


class ManageAttributesInput(BaseNoteInput):
    """Input model for manage_attributes tool.

    Examples:
        >>> ManageAttributesInput(note_id="abc", operation="read")
        >>> ManageAttributesInput(
        ...     note_id="abc",
        ...     operation="batch_create",
        ...     attributes=[{"kind": "label", "name": "todo"}],
        ... )
    """

    operation: AttributeOperation = Field(
        description=(
            "create (one attribute), batch_create (several, in order), "
            "read (list, optionally filtered), update (one), delete (one)"
        )
    )
    attributes: Optional[list[AttributeInput]] = Field(
        None,
        description="Attribute items; required for every operation except read",
    )
    kind: Optional[AttributeKind] = Field(
        None,
        description="read only: return only labels or only relations",
    )
    name_pattern: Optional[str] = Field(
        None,
        description="read only: regular expression matched against attribute names",
        examples=["^template$", "icon"],
    )

    @field_validator("name_pattern")
    @classmethod
    def validate_name_pattern(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            re.compile(v)
        except re.error as exc:
            raise ValueError(f"name_pattern is not a valid regular expression: {exc}") from exc
        return v

    @model_validator(mode="after")
    def validate_attribute_count(self) -> "ManageAttributesInput":
        items = self.attributes or []
        if self.operation == "read":
            return self
        if not items:
            raise ValueError(f"Operation '{self.operation}' requires at least one attribute.")
        if self.operation in ("create", "update", "delete") and len(items) != 1:
            raise ValueError(
                f"Operation '{self.operation}' takes exactly one attribute; "
                "use batch_create for several."
            )
        return self

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"note_id": "abc123", "operation": "read", "kind": "label"},
                {
                    "note_id": "abc123",
                    "operation": "batch_create",
                    "attributes": [
                        {"kind": "label", "name": "todo"},
                        {"kind": "relation", "name": "template", "value": "Board"},
                    ],
                },
                {
                    "note_id": "abc123",
                    "operation": "delete",
                    "attributes": [{"kind": "label", "name": "todo"}],
                },
            ]
        }
