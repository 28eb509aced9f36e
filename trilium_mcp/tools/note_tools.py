"""Note management MCP tools.

This module provides MCP tool wrappers for:
- Creating notes (content validated and auto-corrected per note type)
- Reading notes together with their version token
- Updating note content with optimistic concurrency control
- Appending to note content under the same rules
- Deleting notes

All tools delegate to core operations in trilium_mcp.core.note_operations.
"""
from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import Context

from trilium_mcp.core import note_operations
from trilium_mcp.data_models import UpdateRequest
from trilium_mcp.models import (
    AppendNoteInput,
    CreateNoteInput,
    DeleteNoteInput,
    GetNoteInput,
    UpdateNoteInput,
)
from trilium_mcp.server import mcp
from trilium_mcp.session import get_client, require_permission


# ==============================================================================
# READ OPERATIONS
# ==============================================================================

# Returns the note, its content and the version token that update_note requires.
@mcp.tool()
async def get_note(
    input: GetNoteInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Get a note with its content, version token and content requirements.

    Always call this before update_note: the returned ``version_token`` must
    be passed back as ``expected_version_token``.

    Args:
        input (GetNoteInput): Validated input containing:
            - note_id (str): ID of the note
            - include_content (bool): Return the body as well (default True)

    Returns:
        {
            "note": dict,                  # Trilium note metadata (type, title, mime, attributes...)
            "version_token": str,          # Pass to update_note unchanged
            "content_requirements": {      # What update_note accepts for this type
                "requires_html": bool,
                "allows_empty": bool,
                "must_be_empty": bool,     # Book notes using a container template (Board, Calendar...)
                "description": str,
                "examples": list[str]
            },
            "content": str                 # Only when include_content=True
        }

    Error Handling:
        - ValidationError: Empty note_id or note_id containing '/'
        - Note not found → EXTERNAL_STORE_ERROR with status_code 404
    """
    require_permission("READ", "read notes")
    return note_operations.get_note(get_client(), input.note_id, input.include_content)


# ==============================================================================
# CREATE OPERATIONS
# ==============================================================================

# Creates a note; attributes are added afterwards in the given order.
@mcp.tool()
async def create_note(
    input: CreateNoteInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Create a note whose content matches its type.

    Content rules per type:
        - text, render, webView: HTML. Markdown is converted, plain text is
          wrapped in <p> (reported as auto_corrected). Empty is rejected.
        - code, mermaid: plain text only, stored byte-for-byte. HTML is rejected.
        - book, search, relationMap, noteMap, shortcut, doc, contentWidget,
          launcher, file, image: anything, including empty.
        - book with a ~template relation to Board, Calendar, Grid View, List View,
          Table or Geo Map: must be empty; add content as child notes.

    Args:
        input (CreateNoteInput): Validated input containing:
            - parent_note_id (str): Parent note ID (default "root")
            - title (str): Note title
            - type (str): Note type
            - content (str): Note content
            - mime (str, optional): MIME type for code notes
            - attributes (list, optional): Labels/relations to add

    Returns:
        {
            "note_id": str,
            "auto_corrected": bool,
            "version_token": str,
            "attributes": {...}   # Per-attribute results when attributes were given
        }

    Error Handling:
        - CONTENT_TYPE_MISMATCH → fix the content shape; the message lists examples
        - ATTRIBUTE_VALIDATION_FAILED → nothing was created; fix the listed items
        - Failed attributes after creation are reported per item; the note stays
    """
    require_permission("WRITE", "create notes")
    result = note_operations.create_note(
        get_client(),
        input.parent_note_id,
        input.title,
        input.type,
        input.content,
        attributes=input.attributes,
        mime=input.mime,
    )
    return result.as_payload()


# ==============================================================================
# UPDATE OPERATIONS
# ==============================================================================

# Replaces the note body; rejected if the note changed since get_note.
@mcp.tool()
async def update_note(
    input: UpdateNoteInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Replace a note's content if nobody changed it since you read it.

    Workflow: get_note() → edit → update_note(expected_version_token=<version_token>).

    Args:
        input (UpdateNoteInput): Validated input containing:
            - note_id (str): ID of the note
            - type (str): The note's current type (cannot be changed here)
            - content (str): Complete new content
            - expected_version_token (str): version_token from get_note
            - revision (bool): Save a revision of the old content first (default False)

    Returns:
        {
            "note_id": str,
            "updated": True,
            "auto_corrected": bool,
            "revision_created": bool,
            "version_token": str   # New token for the next update
        }

    Error Handling:
        - MISSING_VERSION_TOKEN → call get_note first
        - CONFLICT → the note changed; call get_note again, merge, retry
        - TYPE_MISMATCH → pass the note's actual type
        - CONTENT_TYPE_MISMATCH → fix the content shape
    """
    require_permission("WRITE", "update notes")
    request = UpdateRequest(
        note_id=input.note_id,
        declared_note_type=input.type.value,
        new_content=input.content,
        expected_version_token=input.expected_version_token,
        create_revision=input.revision,
    )
    return note_operations.update_note(get_client(), request).as_payload()


# Adds content after the existing body; same token and content rules as update_note.
@mcp.tool()
async def append_note(
    input: AppendNoteInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Append content to the end of a note if nobody changed it since you read it.

    The chunk is validated for the note's type exactly like update_note: text
    notes get HTML (Markdown converted, plain text wrapped), code and mermaid
    notes get the chunk byte-for-byte. Container-template notes reject content.

    Args:
        input (AppendNoteInput): Validated input containing:
            - note_id (str): ID of the note
            - content (str): Content to append (non-empty)
            - expected_version_token (str): version_token from get_note
            - revision (bool): Save a revision of the old content first (default False)

    Returns:
        {
            "note_id": str,
            "updated": True,
            "auto_corrected": bool,
            "revision_created": bool,
            "version_token": str   # New token for the next write
        }

    Error Handling:
        - MISSING_VERSION_TOKEN → call get_note first
        - CONFLICT → the note changed; call get_note again and retry
        - CONTENT_TYPE_MISMATCH → fix the chunk's shape
    """
    require_permission("WRITE", "append to notes")
    result = note_operations.append_note(
        get_client(),
        input.note_id,
        input.content,
        input.expected_version_token,
        create_revision=input.revision,
    )
    return result.as_payload()


# ==============================================================================
# DELETE OPERATIONS
# ==============================================================================

@mcp.tool()
async def delete_note(
    input: DeleteNoteInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Delete a note permanently, including its attributes and branches.

    Args:
        input (DeleteNoteInput): Validated input containing:
            - note_id (str): ID of the note (not 'root')

    Returns:
        {"note_id": str, "deleted": True}

    Error Handling:
        - Note not found → EXTERNAL_STORE_ERROR with status_code 404
    """
    require_permission("WRITE", "delete notes")
    return note_operations.delete_note(get_client(), input.note_id)
