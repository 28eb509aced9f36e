"""Search and resolution MCP tools.

This module provides MCP tool wrappers for:
- Searching notes by full text and structured criteria
- Resolving a note title to its note ID

All tools delegate to core operations in trilium_mcp.core.search_operations.
"""
from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import Context

from trilium_mcp.core import search_operations
from trilium_mcp.models import ResolveNoteInput, SearchNotesInput
from trilium_mcp.server import mcp
from trilium_mcp.session import get_client, require_permission


# ==============================================================================
# SEARCH OPERATIONS
# ==============================================================================

# Compiles text and criteria into one Trilium query; archived notes included.
@mcp.tool()
async def search_notes(
    input: SearchNotesInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Search notes by keywords, labels, relations and note properties.

    Criteria:
        - label: {"property": "todo", "type": "label", "op": "exists"}
        - relation: {"property": "template.title", "type": "relation", "op": "=", "value": "Board"}
        - noteProperty: {"property": "type", "type": "noteProperty", "op": "=", "value": "code"}
        - hierarchy: {"property": "parents.noteId", "type": "noteProperty", "op": "=", "value": "abc"}

    ``logic`` ("AND" default, or "OR") joins a criterion with the next one,
    so "docker OR kubernetes" is two label/title criteria with logic "OR" on
    the first.

    Args:
        input (SearchNotesInput): Validated input containing:
            - text (str, optional): Full-text keywords
            - search_criteria (list, optional): Structured conditions
            - limit (int, optional): Maximum number of results

    Returns:
        {
            "query": str,        # Compiled Trilium search query
            "count": int,
            "results": [{"noteId", "title", "type", "mime", "isProtected",
                         "dateCreated", "dateModified", "attributes"}, ...]
        }

    Error Handling:
        - ValidationError: neither text nor criteria, or a malformed criterion
        - INVALID_SEARCH → a criterion value does not fit its property
    """
    require_permission("READ", "search notes")
    return search_operations.search_notes(
        get_client(),
        text=input.text,
        criteria=input.search_criteria,
        limit=input.limit,
    )


# Title lookup for callers that know a note by name only.
@mcp.tool()
async def resolve_note_id(
    input: ResolveNoteInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Find a note ID from its title.

    Ranking: exact title match first (case-insensitive), then book notes,
    then most recently modified.

    Args:
        input (ResolveNoteInput): Validated input containing:
            - note_name (str): Title or title fragment
            - exact_match (bool): Require the whole title (default False)
            - max_results (int): Candidates in top_matches (default 3)
            - auto_select (bool): Pick the best match when several match (default False)

    Returns:
        {
            "note_id": str | None,          # None when nothing matched or a choice is needed
            "title": str | None,
            "found": bool,
            "matches": int,
            "requires_user_choice": bool,   # Several matches and auto_select=False
            "top_matches": [{"note_id", "title", "type", "date_modified"}, ...],
            "next_steps": str               # Only when nothing matched
        }
    """
    require_permission("READ", "search notes")
    return search_operations.resolve_note_id(
        get_client(),
        input.note_name,
        exact_match=input.exact_match,
        max_results=input.max_results,
        auto_select=input.auto_select,
    )
