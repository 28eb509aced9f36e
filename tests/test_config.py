"""Tests for configuration loading from YAML and the environment."""

import pytest

from trilium_mcp.config import load_configuration
from trilium_mcp.constants import DEFAULT_API_URL
from trilium_mcp.exceptions import ConfigurationError, ErrorCode


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "trilium.yaml"
    path.write_text(
        "api_url: http://notes.local:8080/etapi\n"
        "api_token: file-token\n"
        "permissions: [READ, WRITE]\n"
        "timeout: 5\n"
    )
    return path


def test_missing_file_uses_environment(tmp_path):
    config = load_configuration(tmp_path / "absent.yaml", environ={"TRILIUM_API_TOKEN": "tok"})
    assert config.api_url == DEFAULT_API_URL
    assert config.api_token == "tok"
    assert config.permissions == frozenset({"READ"})
    assert config.verbose is False


def test_values_from_file(config_file):
    config = load_configuration(config_file, environ={})
    assert config.api_url == "http://notes.local:8080/etapi"
    assert config.api_token == "file-token"
    assert config.permissions == frozenset({"READ", "WRITE"})
    assert config.timeout == 5.0


def test_environment_overrides_file(config_file):
    config = load_configuration(
        config_file,
        environ={
            "TRILIUM_API_URL": "http://other/etapi",
            "TRILIUM_API_TOKEN": "env-token",
            "PERMISSIONS": "READ",
            "VERBOSE": "true",
        },
    )
    assert config.api_url == "http://other/etapi"
    assert config.api_token == "env-token"
    assert config.permissions == frozenset({"READ"})
    assert config.verbose is True


def test_config_path_from_environment(config_file):
    config = load_configuration(environ={"TRILIUM_MCP_CONFIG": str(config_file)})
    assert config.api_token == "file-token"


def test_missing_token(tmp_path):
    with pytest.raises(ConfigurationError) as exc_info:
        load_configuration(tmp_path / "absent.yaml", environ={})
    assert exc_info.value.code is ErrorCode.CONFIG_INVALID
    assert exc_info.value.key == "api_token"


@pytest.mark.parametrize("raw", ["read;write", "READ; WRITE;"])
def test_permission_string_parsing(tmp_path, raw):
    config = load_configuration(
        tmp_path / "absent.yaml", environ={"TRILIUM_API_TOKEN": "t", "PERMISSIONS": raw}
    )
    assert config.permissions == frozenset({"READ", "WRITE"})


def test_unknown_permission(tmp_path):
    with pytest.raises(ConfigurationError) as exc_info:
        load_configuration(
            tmp_path / "absent.yaml", environ={"TRILIUM_API_TOKEN": "t", "PERMISSIONS": "READ;ADMIN"}
        )
    assert "ADMIN" in exc_info.value.message


def test_non_mapping_file(tmp_path):
    path = tmp_path / "trilium.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigurationError):
        load_configuration(path, environ={"TRILIUM_API_TOKEN": "t"})


def test_token_is_not_in_payload(config_file):
    payload = load_configuration(config_file, environ={}).as_payload()
    assert "api_token" not in payload
    assert payload["permissions"] == ["READ", "WRITE"]
