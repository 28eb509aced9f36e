"""Module-level constants for the TriliumNext MCP server."""

from pathlib import Path

# Configuration
CONFIG_PATH = Path(__file__).parent.parent / "trilium.yaml"
CONFIG_PATH_ENV = "TRILIUM_MCP_CONFIG"
DEFAULT_API_URL = "http://localhost:8080/etapi"
DEFAULT_TIMEOUT = 30.0
DEFAULT_PERMISSIONS = ("READ",)

# Attributes
TEMPLATE_RELATION = "template"
ATTRIBUTE_NAME_PATTERN = r"\A[^\s]+\Z"
DEFAULT_ATTRIBUTE_POSITION = 10

# Built-in templates that turn a book note into an empty container view,
# by title and by the note ID Trilium gives the built-in template
CONTAINER_TEMPLATES = {
    "Board": "_template_board",
    "Calendar": "_template_calendar",
    "Grid View": "_template_grid_view",
    "List View": "_template_list_view",
    "Table": "_template_table",
    "Geo Map": "_template_geo_map",
}

# Logging
LOG_LEVEL = "INFO"
VERBOSE_LOG_LEVEL = "DEBUG"

# Search
DEFAULT_RESOLVE_RESULTS = 3
MAX_RESOLVE_RESULTS = 10
MAX_SEARCH_LIMIT = 1000
SEARCH_RESULT_FIELDS = (
    "noteId",
    "title",
    "type",
    "mime",
    "isProtected",
    "dateCreated",
    "dateModified",
    "attributes",
)
