"""Exception hierarchy for the TriliumNext MCP server.

Every error carries a machine-readable :class:`ErrorCode` and a ``details``
mapping so tool callers can tell recoverable conflicts apart from contract
violations. All validation errors are raised before any mutating call
reaches the note store; only :class:`ExternalStoreError` can be raised after
a write has happened.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Sequence


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note type / content errors (1xxx)
    UNKNOWN_NOTE_TYPE = 1001
    CONTENT_TYPE_MISMATCH = 1002
    TYPE_MISMATCH = 1003

    # Concurrency errors (2xxx)
    MISSING_VERSION_TOKEN = 2001
    CONFLICT = 2002

    # Attribute errors (3xxx)
    ATTRIBUTE_VALIDATION_FAILED = 3001
    ATTRIBUTE_NOT_FOUND = 3002

    # Store errors (4xxx)
    EXTERNAL_STORE_ERROR = 4001

    # Search errors (5xxx)
    INVALID_SEARCH = 5001

    # Server errors (6xxx)
    CONFIG_INVALID = 6001
    PERMISSION_DENIED = 6002


class TriliumMCPError(Exception):
    """Base exception for all errors raised by this package.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message}"


class UnknownNoteTypeError(TriliumMCPError):
    """Raised when a note type has no content policy."""

    def __init__(self, note_type: Any, valid_types: Sequence[str] = ()):
        message = f"Unknown note type '{note_type}'."
        if valid_types:
            message += f" Must be one of: {', '.join(valid_types)}."
        super().__init__(
            message,
            code=ErrorCode.UNKNOWN_NOTE_TYPE,
            details={"field": "type", "value": str(note_type)},
        )
        self.note_type = note_type


class MissingVersionTokenError(TriliumMCPError):
    """Raised when an update is attempted without an expected version token."""

    def __init__(self, note_id: str):
        super().__init__(
            "Missing required parameter 'expectedVersionToken'. Call get_note first "
            f"to read the current version token of note '{note_id}', then pass it "
            "unchanged to update_note.",
            code=ErrorCode.MISSING_VERSION_TOKEN,
            details={"field": "expectedVersionToken", "note_id": note_id},
        )
        self.note_id = note_id


class ConflictError(TriliumMCPError):
    """Raised when the note changed since the caller last read it."""

    def __init__(self, note_id: str, current: str, expected: str):
        super().__init__(
            f"Note '{note_id}' has been modified since it was read. "
            f"Current version token: {current}, expected: {expected}. "
            "Fetch the latest content with get_note and retry.",
            code=ErrorCode.CONFLICT,
            details={
                "field": "expectedVersionToken",
                "note_id": note_id,
                "current": current,
                "expected": expected,
            },
        )
        self.note_id = note_id
        self.current = current
        self.expected = expected


class ContentTypeMismatchError(TriliumMCPError):
    """Raised when content does not satisfy the note type's content policy."""

    def __init__(
        self,
        note_type: str,
        reason: str,
        contract: str,
        examples: Sequence[str],
    ):
        rendered = ", ".join(repr(example) for example in examples)
        super().__init__(
            f"{note_type} notes: {reason} Expected: {contract}. Examples: {rendered}",
            code=ErrorCode.CONTENT_TYPE_MISMATCH,
            details={
                "field": "content",
                "note_type": note_type,
                "expected": contract,
                "examples": list(examples),
            },
        )
        self.note_type = note_type
        self.examples = list(examples)


class TypeMismatchError(TriliumMCPError):
    """Raised when the declared note type differs from the persisted one."""

    def __init__(self, note_id: str, declared: str, persisted: str):
        super().__init__(
            f"Declared type '{declared}' does not match the type '{persisted}' of note "
            f"'{note_id}'. An update cannot change a note's type; pass type='{persisted}'.",
            code=ErrorCode.TYPE_MISMATCH,
            details={
                "field": "type",
                "note_id": note_id,
                "declared": declared,
                "persisted": persisted,
            },
        )
        self.note_id = note_id
        self.declared = declared
        self.persisted = persisted


class AttributeValidationError(TriliumMCPError):
    """Raised when one or more attribute specifications are malformed.

    ``errors`` holds one entry per problem, each with the item ``index`` (when
    the problem belongs to a batch item), the offending ``field`` and a
    ``message`` describing the expected shape.
    """

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None):
        self.errors = errors or []
        super().__init__(
            message,
            code=ErrorCode.ATTRIBUTE_VALIDATION_FAILED,
            details={"errors": self.errors},
        )

    def __str__(self) -> str:
        if not self.errors:
            return super().__str__()
        lines = [super().__str__()]
        for error in self.errors:
            prefix = f"attributes[{error['index']}]." if "index" in error else ""
            lines.append(f"  {prefix}{error.get('field', '')}: {error['message']}")
        return "\n".join(lines)


class AttributeNotFoundError(TriliumMCPError):
    """Raised when an attribute to resolve, update or delete does not exist."""

    def __init__(
        self,
        note_id: str,
        kind: Optional[str] = None,
        name: Optional[str] = None,
        attribute_id: Optional[str] = None,
        available: Sequence[str] = (),
    ):
        if attribute_id:
            message = f"Attribute '{attribute_id}' not found on note '{note_id}'."
        else:
            message = f"Attribute '{name}' of type '{kind}' not found on note '{note_id}'."
        message += f" Available attributes: {', '.join(available) or 'none'}"
        super().__init__(
            message,
            code=ErrorCode.ATTRIBUTE_NOT_FOUND,
            details={
                "note_id": note_id,
                "kind": kind,
                "name": name,
                "attribute_id": attribute_id,
            },
        )
        self.note_id = note_id
        self.kind = kind
        self.name = name
        self.attribute_id = attribute_id


class ExternalStoreError(TriliumMCPError):
    """Raised for failures reported by, or while talking to, the note store."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
        content_written: bool = False,
    ):
        details: dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if status_code is not None:
            details["status_code"] = status_code
        if original_error:
            details["original_error"] = str(original_error)[:200]
        if content_written:
            details["content_written"] = True

        super().__init__(message, code=ErrorCode.EXTERNAL_STORE_ERROR, details=details)
        self.operation = operation
        self.status_code = status_code
        self.original_error = original_error
        self.content_written = content_written


class InvalidSearchError(TriliumMCPError):
    """Raised when search parameters cannot be turned into a Trilium query."""

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None):
        self.errors = errors or []
        super().__init__(
            message,
            code=ErrorCode.INVALID_SEARCH,
            details={"errors": self.errors},
        )


class PermissionDeniedError(TriliumMCPError):
    """Raised when the configured permissions do not allow an operation."""

    def __init__(self, permission: str, action: str):
        super().__init__(
            f"Permission denied: not authorized to {action}. "
            f"Add '{permission}' to the PERMISSIONS setting.",
            code=ErrorCode.PERMISSION_DENIED,
            details={"permission": permission},
        )
        self.permission = permission


class ConfigurationError(TriliumMCPError):
    """Raised when the server configuration is missing or malformed."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(
            message,
            code=ErrorCode.CONFIG_INVALID,
            details={"key": key} if key else {},
        )
        self.key = key
