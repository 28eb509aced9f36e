"""Shared ETAPI client and permission checks for the MCP tools."""

from typing import Optional

from trilium_mcp.client import TriliumClient
from trilium_mcp.config import get_configuration
from trilium_mcp.data_models import TriliumConfiguration
from trilium_mcp.exceptions import PermissionDeniedError

# Session state storage
_CLIENT: Optional[TriliumClient] = None
_CONFIGURATION: Optional[TriliumConfiguration] = None


def get_active_configuration() -> TriliumConfiguration:
    """Return the configuration in use, loading it on first access."""
    global _CONFIGURATION
    if _CONFIGURATION is None:
        _CONFIGURATION = get_configuration()
    return _CONFIGURATION


def get_client() -> TriliumClient:
    """Return the process-wide ETAPI client, creating it on first use."""
    global _CLIENT
    if _CLIENT is None:
        _CLIENT = TriliumClient.from_configuration(get_active_configuration())
    return _CLIENT


def set_session(client: TriliumClient, configuration: TriliumConfiguration) -> None:
    """Install a client and configuration, replacing any previous ones.

    Used by tests and embedding applications that manage their own client.
    """
    global _CLIENT, _CONFIGURATION
    _CLIENT = client
    _CONFIGURATION = configuration


def reset_session() -> None:
    """Close the current client and forget the loaded configuration."""
    global _CLIENT, _CONFIGURATION
    if isinstance(_CLIENT, TriliumClient):
        _CLIENT.close()
    _CLIENT = None
    _CONFIGURATION = None


def require_permission(permission: str, action: str) -> None:
    """Raise unless the configured permissions include ``permission``.

    Args:
        permission: ``READ`` or ``WRITE``.
        action: Short description used in the error message, e.g. "update notes".

    Raises:
        PermissionDeniedError: If the permission is not granted.
    """
    if not get_active_configuration().has_permission(permission):
        raise PermissionDeniedError(permission, action)
