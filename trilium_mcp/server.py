"""FastMCP server initialization and tool registration."""

import logging

from mcp.server.fastmcp import FastMCP

from trilium_mcp.constants import LOG_LEVEL, VERBOSE_LOG_LEVEL
from trilium_mcp.session import get_active_configuration

logger = logging.getLogger(__name__)

# Initialize FastMCP server
mcp = FastMCP("trilium_mcp")

# Tool modules are imported in __init__.py to register all @mcp.tool() decorators


def configure_logging(verbose: bool = False) -> None:
    """Log to stderr so the stdio transport stays clean."""
    logging.basicConfig(
        level=VERBOSE_LOG_LEVEL if verbose else LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_server():
    """Start the MCP server with stdio transport."""
    configuration = get_active_configuration()
    configure_logging(configuration.verbose)
    logger.info(
        "Starting TriliumNext MCP Server (%s, permissions: %s)",
        configuration.api_url,
        ";".join(sorted(configuration.permissions)),
    )
    mcp.run(transport="stdio")
