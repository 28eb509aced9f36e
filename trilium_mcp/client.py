"""HTTP client for the TriliumNext ETAPI.

Thin wrapper over :class:`httpx.Client`: one method per endpoint used by the
core, with transport and HTTP status failures converted into
:class:`ExternalStoreError`. Retries and backoff are not performed here.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from trilium_mcp.data_models import NoteMeta, TriliumConfiguration
from trilium_mcp.exceptions import ExternalStoreError

logger = logging.getLogger(__name__)


def _http_error_detail(exc: httpx.HTTPStatusError, max_len: int = 300) -> str:
    """Extract the error message ETAPI returned, falling back to the raw body."""
    response = exc.response
    try:
        body = response.json()
    except ValueError:
        return response.text[:max_len]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])[:max_len]
    return response.text[:max_len]


class TriliumClient:
    """Synchronous ETAPI client."""

    def __init__(
        self,
        api_url: str,
        api_token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=api_url.rstrip("/"),
            headers={"Authorization": api_token},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_configuration(cls, config: TriliumConfiguration) -> "TriliumClient":
        return cls(config.api_url, config.api_token, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "TriliumClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ==========================================================================
    # TRANSPORT
    # ==========================================================================

    def _request(self, method: str, url: str, operation: str, **kwargs: Any) -> httpx.Response:
        logger.debug("ETAPI %s %s", method, url)
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExternalStoreError(
                f"Trilium rejected {operation}: {_http_error_detail(exc)}",
                operation=operation,
                status_code=exc.response.status_code,
                original_error=exc,
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalStoreError(
                f"Could not reach Trilium during {operation}: {exc}",
                operation=operation,
                original_error=exc,
            ) from exc
        return response

    # ==========================================================================
    # NOTES
    # ==========================================================================

    def get_note(self, note_id: str) -> dict[str, Any]:
        return self._request("GET", f"/notes/{note_id}", "get_note").json()

    def get_note_meta(self, note_id: str) -> NoteMeta:
        """Return the note's persisted type, version token and attributes."""
        return NoteMeta.from_payload(self.get_note(note_id))

    def get_content(self, note_id: str) -> str:
        return self._request("GET", f"/notes/{note_id}/content", "get_content").text

    def write_content(self, note_id: str, content: str) -> str:
        """Replace the note's content and return the new version token.

        Raises:
            ExternalStoreError: If the write fails, or with
                ``content_written=True`` if the write succeeded but the new
                token could not be read back.
        """
        self._request(
            "PUT",
            f"/notes/{note_id}/content",
            "write_content",
            content=content.encode("utf-8"),
            headers={"Content-Type": "text/plain"},
        )
        try:
            return self.get_note_meta(note_id).version_token
        except ExternalStoreError as exc:
            logger.warning("Wrote note '%s' but could not read its new token: %s", note_id, exc)
            raise ExternalStoreError(
                f"Content of note '{note_id}' was written, but its new version token "
                "could not be read. Call get_note for the current token before retrying.",
                operation="write_content",
                status_code=exc.status_code,
                original_error=exc,
                content_written=True,
            ) from exc

    def create_note(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a note; ETAPI answers with ``{"note": ..., "branch": ...}``."""
        return self._request("POST", "/create-note", "create_note", json=payload).json()

    def create_revision(self, note_id: str) -> None:
        self._request("POST", f"/notes/{note_id}/revision", "create_revision")

    def delete_note(self, note_id: str) -> None:
        self._request("DELETE", f"/notes/{note_id}", "delete_note")

    def search_notes(
        self, query: str, fast_search: bool = False, include_archived: bool = True
    ) -> list[dict[str, Any]]:
        """Run a Trilium search query and return the matching note objects."""
        params = {
            "search": query,
            "fastSearch": "true" if fast_search else "false",
            "includeArchivedNotes": "true" if include_archived else "false",
        }
        response = self._request("GET", "/notes", "search_notes", params=params)
        return response.json().get("results", [])

    # ==========================================================================
    # ATTRIBUTES
    # ==========================================================================

    def create_attribute(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/attributes", "create_attribute", json=payload).json()

    def get_attribute(self, attribute_id: str) -> dict[str, Any]:
        return self._request("GET", f"/attributes/{attribute_id}", "get_attribute").json()

    def update_attribute(self, attribute_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request(
            "PATCH", f"/attributes/{attribute_id}", "update_attribute", json=payload
        ).json()

    def delete_attribute(self, attribute_id: str) -> None:
        self._request("DELETE", f"/attributes/{attribute_id}", "delete_attribute")
