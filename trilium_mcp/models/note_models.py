"""Pydantic input models for note operations.

This module defines input models for:
- Create a note (content validated per note type)
- Get a note with its version token and content requirements
- Update note content under optimistic concurrency control
- Append to note content under the same rules
- Delete a note
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from trilium_mcp.data_models import NoteType

from .attribute_models import AttributeInput
from .base import BaseNoteInput, validate_note_id


class CreateNoteInput(BaseModel):
    """Input model for create_note tool.

    Text notes accept HTML; Markdown and plain text are converted. Code and
    mermaid notes accept plain text only and are stored exactly as given.

    Examples:
        >>> CreateNoteInput(title="Ideas", type="text", content="# Ideas")
        >>> CreateNoteInput(parent_note_id="abc", title="fib.py", type="code",
        ...                 content="def fib(n): ...", mime="text/x-python")
    """

    parent_note_id: str = Field(
        "root",
        description="ID of the parent note ('root' for the top level)",
    )
    title: str = Field(min_length=1, description="Title of the new note")
    type: NoteType = Field(description="Note type; decides which content is accepted")
    content: str = Field(
        "",
        description=(
            "Note content. text/render/webView: HTML (Markdown and plain text are "
            "converted). code/mermaid: plain text, no HTML. Other types: optional."
        ),
    )
    mime: Optional[str] = Field(
        None,
        description="MIME type for code notes, e.g. 'text/x-python'",
    )
    attributes: Optional[list[AttributeInput]] = Field(
        None,
        description="Labels/relations created after the note, in the given order",
    )

    @field_validator("parent_note_id")
    @classmethod
    def validate_parent_note_id(cls, v: str) -> str:
        return validate_note_id(v, "parent_note_id")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("Title cannot be empty.")
        if len(cleaned) > 500:
            raise ValueError("Title is too long. Maximum length is 500 characters.")
        return cleaned

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"parent_note_id": "root", "title": "Meeting", "type": "text", "content": "# Agenda\n\n- item"},
                {"parent_note_id": "root", "title": "fib.py", "type": "code", "content": "def fib(n): ...", "mime": "text/x-python"},
            ]
        }


class GetNoteInput(BaseNoteInput):
    """Input model for get_note tool.

    Returns the note's content plus the version token that update_note needs.

    Examples:
        >>> GetNoteInput(note_id="abc123")
    """

    include_content: bool = Field(
        True,
        description="Return the note body together with its metadata",
    )

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"note_id": "abc123", "include_content": True}
            ]
        }


class UpdateNoteInput(BaseNoteInput):
    """Input model for update_note tool.

    Replaces the note's content only when ``expected_version_token`` still
    matches the stored content and ``type`` equals the note's type.

    Examples:
        >>> UpdateNoteInput(note_id="abc", type="text", content="<p>Hi</p>",
        ...                 expected_version_token="Bsq4jW0wiPOIiF3dJ6rh")
    """

    type: NoteType = Field(description="The note's current type; must match exactly")
    content: str = Field(description="Complete new content (replaces everything)")
    expected_version_token: Optional[str] = Field(
        None,
        description=(
            "Required. The version_token returned by get_note. "
            "The update is rejected if the note changed since."
        ),
    )
    revision: bool = Field(
        False,
        description="Save a revision of the current content before overwriting it",
    )

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {
                    "note_id": "abc123",
                    "type": "text",
                    "content": "<p>Updated</p>",
                    "expected_version_token": "Bsq4jW0wiPOIiF3dJ6rh",
                    "revision": True,
                }
            ]
        }


class AppendNoteInput(BaseNoteInput):
    """Input model for append_note tool.

    Adds content after the existing body. The chunk follows the same content
    rules as update_note for the note's type.

    Examples:
        >>> AppendNoteInput(note_id="abc", content="- one more item",
        ...                 expected_version_token="Bsq4jW0wiPOIiF3dJ6rh")
    """

    content: str = Field(description="Content to add at the end of the note")
    expected_version_token: Optional[str] = Field(
        None,
        description=(
            "Required. The version_token returned by get_note. "
            "The append is rejected if the note changed since."
        ),
    )
    revision: bool = Field(
        False,
        description="Save a revision of the current content before appending",
    )

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {
                    "note_id": "abc123",
                    "content": "<p>Follow-up</p>",
                    "expected_version_token": "Bsq4jW0wiPOIiF3dJ6rh",
                }
            ]
        }


class DeleteNoteInput(BaseNoteInput):
    """Input model for delete_note tool.

    Examples:
        >>> DeleteNoteInput(note_id="abc123")
    """

    @field_validator("note_id")
    @classmethod
    def refuse_root(cls, v: str) -> str:
        if v == "root":
            raise ValueError("The root note cannot be deleted.")
        return v

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"note_id": "abc123"}
            ]
        }
