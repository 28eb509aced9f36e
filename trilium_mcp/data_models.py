"""Data models for note metadata, content policies and operation results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class NoteType(str, Enum):
    """Closed set of TriliumNext note types."""

    TEXT = "text"
    CODE = "code"
    RENDER = "render"
    FILE = "file"
    IMAGE = "image"
    SEARCH = "search"
    RELATION_MAP = "relationMap"
    BOOK = "book"
    NOTE_MAP = "noteMap"
    MERMAID = "mermaid"
    WEB_VIEW = "webView"
    SHORTCUT = "shortcut"
    DOC = "doc"
    CONTENT_WIDGET = "contentWidget"
    LAUNCHER = "launcher"


class ContentFormat(str, Enum):
    """Classification of a raw content string."""

    HTML = "html"
    MARKDOWN = "markdown"
    PLAIN_TEXT = "plain_text"
    EMPTY = "empty"


class PolicyClass(str, Enum):
    """The content contracts a note can carry."""

    STRUCTURED = "structured"
    PLAIN_ONLY = "plain_only"
    FLEXIBLE = "flexible"
    CONTAINER = "container"


class AttributeKind(str, Enum):
    """Attribute kinds attachable to a note."""

    LABEL = "label"
    RELATION = "relation"


@dataclass(frozen=True)
class ContentPolicy:
    """Per-note-type content contract."""

    requires_structured_markup: bool
    allows_empty: bool
    rejects_markup_when_plain_required: bool
    description: str
    examples: tuple[str, ...]
    must_be_empty: bool = False

    @property
    def policy_class(self) -> PolicyClass:
        if self.must_be_empty:
            return PolicyClass.CONTAINER
        if self.requires_structured_markup:
            return PolicyClass.STRUCTURED
        if self.rejects_markup_when_plain_required:
            return PolicyClass.PLAIN_ONLY
        return PolicyClass.FLEXIBLE


@dataclass(frozen=True)
class ContentPayload:
    """Raw content paired with its detected format for a single request."""

    raw_content: str
    detected_format: ContentFormat


@dataclass(frozen=True)
class ValidationResult:
    """Accepted content, possibly rewritten into the note type's format."""

    final_content: str
    auto_corrected: bool
    detected_format: ContentFormat


@dataclass(frozen=True)
class AttributeRecord:
    """An attribute as persisted by the note store."""

    attribute_id: str
    note_id: str
    kind: AttributeKind
    name: str
    value: str
    position: int
    is_inheritable: bool

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AttributeRecord":
        """Build a record from an ETAPI attribute object."""
        return cls(
            attribute_id=payload["attributeId"],
            note_id=payload.get("noteId", ""),
            kind=AttributeKind(payload["type"]),
            name=payload["name"],
            value=payload.get("value") or "",
            position=int(payload.get("position", 0)),
            is_inheritable=bool(payload.get("isInheritable", False)),
        )

    @property
    def label(self) -> str:
        return f"{self.kind.value}:{self.name}"

    def as_payload(self) -> dict[str, Any]:
        """Return a serializable payload representation."""
        return {
            "attribute_id": self.attribute_id,
            "note_id": self.note_id,
            "kind": self.kind.value,
            "name": self.name,
            "value": self.value,
            "position": self.position,
            "is_inheritable": self.is_inheritable,
        }


@dataclass(frozen=True)
class NoteMeta:
    """Persisted note type, version token and attributes of a note."""

    note_id: str
    note_type: str
    version_token: str
    title: str = ""
    mime: str = ""
    attributes: tuple[AttributeRecord, ...] = ()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "NoteMeta":
        """Build metadata from an ETAPI note object.

        The store's ``blobId`` is the content fingerprint used as version token.
        """
        return cls(
            note_id=payload["noteId"],
            note_type=payload["type"],
            version_token=payload.get("blobId") or "",
            title=payload.get("title", ""),
            mime=payload.get("mime", ""),
            attributes=tuple(
                AttributeRecord.from_payload(item) for item in payload.get("attributes") or []
            ),
        )


@dataclass(frozen=True)
class UpdateRequest:
    """A caller's request to replace a note's content."""

    note_id: str
    declared_note_type: str
    new_content: str
    expected_version_token: Optional[str]
    create_revision: bool = False


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of a successful content update."""

    note_id: str
    auto_corrected: bool
    revision_created: bool
    version_token: str
    updated: bool = True

    def as_payload(self) -> dict[str, Any]:
        return {
            "note_id": self.note_id,
            "updated": self.updated,
            "auto_corrected": self.auto_corrected,
            "revision_created": self.revision_created,
            "version_token": self.version_token,
        }


@dataclass
class AttributeItemResult:
    """Outcome of one attribute sub-operation."""

    index: int
    kind: str
    name: str
    status: str
    attribute: Optional[AttributeRecord] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status in ("created", "updated", "deleted")

    def as_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "index": self.index,
            "kind": self.kind,
            "name": self.name,
            "status": self.status,
        }
        if self.attribute is not None:
            payload["attribute"] = self.attribute.as_payload()
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass
class AttributeBatchResult:
    """Ordered per-item results of an attribute operation."""

    note_id: str
    operation: str
    results: list[AttributeItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.results if item.succeeded)

    @property
    def failed(self) -> int:
        return sum(1 for item in self.results if item.status == "failed")

    @property
    def skipped(self) -> int:
        return sum(1 for item in self.results if item.status == "skipped")

    def as_payload(self) -> dict[str, Any]:
        return {
            "note_id": self.note_id,
            "operation": self.operation,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "results": [item.as_payload() for item in self.results],
        }


@dataclass(frozen=True)
class CreateResult:
    """Outcome of note creation, including any attribute batch."""

    note_id: str
    auto_corrected: bool
    version_token: str
    attributes: Optional[AttributeBatchResult] = None

    def as_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "note_id": self.note_id,
            "auto_corrected": self.auto_corrected,
            "version_token": self.version_token,
        }
        if self.attributes is not None:
            payload["attributes"] = self.attributes.as_payload()
        return payload


@dataclass(frozen=True)
class TriliumConfiguration:
    """Connection settings and permissions for the TriliumNext server."""

    api_url: str
    api_token: str
    permissions: frozenset[str] = frozenset({"READ"})
    verbose: bool = False
    timeout: float = 30.0

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def as_payload(self) -> dict[str, Any]:
        """Return serializable configuration payload without the token."""
        return {
            "api_url": self.api_url,
            "permissions": sorted(self.permissions),
            "verbose": self.verbose,
            "timeout": self.timeout,
        }
