"""Configuration loading for the TriliumNext connection."""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from trilium_mcp.constants import (
    CONFIG_PATH,
    CONFIG_PATH_ENV,
    DEFAULT_API_URL,
    DEFAULT_PERMISSIONS,
    DEFAULT_TIMEOUT,
)
from trilium_mcp.data_models import TriliumConfiguration
from trilium_mcp.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

KNOWN_PERMISSIONS = frozenset({"READ", "WRITE"})


def _parse_permissions(raw: Any) -> frozenset[str]:
    """Accept ``"READ;WRITE"`` strings or YAML lists."""
    if isinstance(raw, str):
        items = [part.strip().upper() for part in raw.split(";")]
    elif isinstance(raw, (list, tuple)):
        items = [str(part).strip().upper() for part in raw]
    else:
        raise ConfigurationError("'permissions' must be a ';'-separated string or a list", key="permissions")

    permissions = frozenset(item for item in items if item)
    unknown = permissions - KNOWN_PERMISSIONS
    if unknown:
        raise ConfigurationError(
            f"Unknown permission(s): {', '.join(sorted(unknown))}. Use READ and/or WRITE.",
            key="permissions",
        )
    return permissions


def _parse_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in ("1", "true", "yes", "on")


def load_configuration(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> TriliumConfiguration:
    """Load the TriliumNext connection settings.

    Settings come from an optional YAML file and are overridden by the
    environment variables ``TRILIUM_API_URL``, ``TRILIUM_API_TOKEN``,
    ``PERMISSIONS`` (e.g. ``READ;WRITE``) and ``VERBOSE``.

    Args:
        config_path: YAML file to read. Defaults to ``$TRILIUM_MCP_CONFIG`` or
            ``trilium.yaml`` at the project root. A missing file is not an error.
        environ: Environment mapping, ``os.environ`` by default.

    Returns:
        A :class:`TriliumConfiguration`.

    Raises:
        ConfigurationError: If the API token is missing or a value is malformed.
    """
    env = os.environ if environ is None else environ
    if config_path is None:
        config_path = Path(env[CONFIG_PATH_ENV]) if env.get(CONFIG_PATH_ENV) else CONFIG_PATH

    raw_config: dict[str, Any] = {}
    if config_path.exists():
        loaded = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")
        raw_config = loaded
        logger.debug("Loaded configuration from %s", config_path)

    api_url = env.get("TRILIUM_API_URL") or raw_config.get("api_url") or DEFAULT_API_URL
    api_token = env.get("TRILIUM_API_TOKEN") or raw_config.get("api_token")
    if not isinstance(api_token, str) or not api_token.strip():
        raise ConfigurationError(
            "TRILIUM_API_TOKEN environment variable (or 'api_token' in the config file) is required",
            key="api_token",
        )

    raw_permissions = env.get("PERMISSIONS") or raw_config.get("permissions") or list(DEFAULT_PERMISSIONS)
    verbose = _parse_bool(env.get("VERBOSE", raw_config.get("verbose", False)))

    try:
        timeout = float(raw_config.get("timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError("'timeout' must be a number of seconds", key="timeout") from exc

    return TriliumConfiguration(
        api_url=str(api_url),
        api_token=api_token.strip(),
        permissions=_parse_permissions(raw_permissions),
        verbose=verbose,
        timeout=timeout,
    )


@lru_cache(maxsize=1)
def get_configuration() -> TriliumConfiguration:
    """Load the configuration once per process."""
    return load_configuration()
