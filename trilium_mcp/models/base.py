"""Base Pydantic models for MCP tool input validation.

Base Models:
- BaseNoteInput: Common validation for operations addressing an existing note
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


def validate_note_id(value: str, field_name: str = "note_id") -> str:
    """Normalize a note identifier and make sure it is safe to put in a URL path.

    Args:
        value: The identifier to validate
        field_name: Field name used in error messages

    Returns:
        The stripped identifier

    Raises:
        ValueError: If the identifier is empty or contains path separators
    """
    cleaned = value.strip()

    if not cleaned:
        raise ValueError(
            f"{field_name} cannot be empty. "
            "Use search or get_note to find a valid note ID, or 'root' for the root note."
        )

    if "/" in cleaned or "?" in cleaned or "#" in cleaned:
        raise ValueError(
            f"{field_name} must be a plain note ID without '/', '?' or '#'. "
            f"Invalid value: '{cleaned}'"
        )

    return cleaned


class BaseNoteInput(BaseModel):
    """Base model for operations on an existing note.

    All note-addressing input models inherit from this class.
    """

    note_id: str = Field(
        min_length=1,
        description=(
            "ID of the note (e.g. 'abc123XYZ'). "
            "Use 'root' for the root note."
        ),
        examples=["root", "3bYvqfkVZD1P"],
    )

    @field_validator("note_id")
    @classmethod
    def check_note_id(cls, v: str) -> str:
        """Strip whitespace and reject identifiers that would alter the ETAPI URL."""
        return validate_note_id(v)
