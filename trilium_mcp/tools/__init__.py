"""MCP tool definitions for TriliumNext operations.

This module imports all tool submodules to register them with the MCP server.
Each tool module uses the @mcp.tool() decorator to auto-register its tools.
"""

# Import all tool modules to register their @mcp.tool() decorated functions
from trilium_mcp.tools import note_tools
from trilium_mcp.tools import attribute_tools
from trilium_mcp.tools import search_tools

__all__ = [
    "note_tools",
    "attribute_tools",
    "search_tools",
]
