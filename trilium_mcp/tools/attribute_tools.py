"""Attribute management MCP tool.

Wraps trilium_mcp.core.attribute_operations for labels (#name=value) and
relations (~name=target).
"""
from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import Context

from trilium_mcp.core import attribute_operations
from trilium_mcp.models import ManageAttributesInput
from trilium_mcp.server import mcp
from trilium_mcp.session import get_client, require_permission


# Reads, creates (single or ordered batch), updates and deletes attributes.
@mcp.tool()
async def manage_attributes(
    input: ManageAttributesInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Read, create, update or delete labels and relations on a note.

    Operations:
        - read: list attributes, optionally filtered by ``kind`` and ``name_pattern``
        - create: add one attribute
        - batch_create: add several attributes in the given order. All items are
          validated first; one invalid item means nothing is created. Store
          failures are reported per item and earlier items are not undone.
        - update: change a label's value/position or a relation's position.
          Kind, name, inheritability and relation targets cannot change.
        - delete: remove one attribute by ``attribute_id``, or by kind + name
          (looked up first, then deleted)

    Args:
        input (ManageAttributesInput): Validated input containing:
            - note_id (str): Owning note
            - operation (str): read | create | batch_create | update | delete
            - attributes (list, optional): Items with kind, name, value,
              position, is_inheritable, attribute_id
            - kind (str, optional): read filter
            - name_pattern (str, optional): read filter (regular expression)

    Returns:
        read: {"note_id", "operation", "count", "attributes": [...]}
        others: {"note_id", "operation", "succeeded", "failed", "skipped",
                 "results": [{"index", "kind", "name", "status", "attribute"?, "error"?}]}

    Error Handling:
        - ATTRIBUTE_VALIDATION_FAILED → nothing was sent; fix the listed fields
        - ATTRIBUTE_NOT_FOUND → the message lists the note's attributes
    """
    if input.operation == "read":
        require_permission("READ", "read attributes")
    else:
        require_permission("WRITE", f"{input.operation.replace('_', ' ')} attributes")

    return attribute_operations.manage_attributes(
        get_client(),
        input.note_id,
        input.operation,
        attributes=input.attributes,
        kind=input.kind,
        name_pattern=input.name_pattern,
    )
