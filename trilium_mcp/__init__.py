"""TriliumNext MCP Server

Content validation and optimistic concurrency control for TriliumNext notes
via Model Context Protocol.
"""

from trilium_mcp.config import load_configuration, get_configuration
from trilium_mcp.data_models import NoteType, ContentFormat, TriliumConfiguration
from trilium_mcp.session import get_client, set_session, reset_session
from trilium_mcp.server import mcp, run_server

# Import tools to register them with the MCP server
from trilium_mcp import tools  # noqa: F401

__version__ = "0.1.0"
__all__ = [
    "load_configuration",
    "get_configuration",
    "NoteType",
    "ContentFormat",
    "TriliumConfiguration",
    "get_client",
    "set_session",
    "reset_session",
    "mcp",
    "run_server",
]
