"""Run the server with ``python -m trilium_mcp``."""

from trilium_mcp import run_server

run_server()
