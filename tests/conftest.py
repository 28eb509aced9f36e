"""Common fixtures and an in-memory stand-in for the ETAPI client.

FakeTriliumClient implements the TriliumClient methods the core uses:
- notes and their content live in dictionaries
- every content write issues a fresh ``blobId`` version token
- every call is recorded in ``calls`` so tests can assert ordering and
  that nothing was written after a rejected request
- ``failures`` maps a method name to an exception raised on the next calls
- ``search_results`` is returned by every search, whatever the query
"""

from __future__ import annotations

import copy
import itertools
from typing import Any, Callable, Optional

import pytest

from trilium_mcp.data_models import NoteMeta, TriliumConfiguration
from trilium_mcp.exceptions import ExternalStoreError
from trilium_mcp.session import reset_session, set_session

MUTATING_CALLS = frozenset(
    {
        "write_content",
        "create_note",
        "create_revision",
        "delete_note",
        "create_attribute",
        "update_attribute",
        "delete_attribute",
    }
)


class FakeTriliumClient:
    """Deterministic in-memory note store."""

    def __init__(self) -> None:
        self.notes: dict[str, dict[str, Any]] = {}
        self.contents: dict[str, str] = {}
        self.attributes: dict[str, dict[str, Any]] = {}
        self.revisions: dict[str, list[str]] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.failures: dict[str, Exception] = {}
        self.failing_attribute_names: set[str] = set()
        self.search_results: list[dict[str, Any]] = []
        self.after_create_attribute: Optional[Callable[[dict[str, Any]], None]] = None
        self._blob_ids = itertools.count(1)
        self._note_ids = itertools.count(1)
        self._attribute_ids = itertools.count(1)

    # -- helpers ---------------------------------------------------------------

    def add_note(
        self,
        note_id: str,
        note_type: str = "text",
        content: str = "",
        title: str = "Note",
        mime: str = "text/html",
    ) -> str:
        """Seed a note and return its version token."""
        self.notes[note_id] = {
            "noteId": note_id,
            "title": title,
            "type": note_type,
            "mime": mime,
            "blobId": self._next_blob(),
        }
        self.contents[note_id] = content
        return self.notes[note_id]["blobId"]

    def add_attribute(
        self,
        note_id: str,
        kind: str,
        name: str,
        value: str = "",
        position: int = 10,
        is_inheritable: bool = False,
    ) -> str:
        attribute_id = f"attr{next(self._attribute_ids)}"
        self.attributes[attribute_id] = {
            "attributeId": attribute_id,
            "noteId": note_id,
            "type": kind,
            "name": name,
            "value": value,
            "position": position,
            "isInheritable": is_inheritable,
        }
        return attribute_id

    def token(self, note_id: str) -> str:
        return self.notes[note_id]["blobId"]

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def mutating_calls(self) -> list[str]:
        return [name for name in self.call_names() if name in MUTATING_CALLS]

    def _next_blob(self) -> str:
        return f"blob{next(self._blob_ids)}"

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.failures:
            raise self.failures[name]

    def _require_note(self, note_id: str, operation: str) -> dict[str, Any]:
        if note_id not in self.notes:
            raise ExternalStoreError(
                f"Trilium rejected {operation}: Note '{note_id}' not found.",
                operation=operation,
                status_code=404,
            )
        return self.notes[note_id]

    # -- TriliumClient interface -----------------------------------------------

    def get_note(self, note_id: str) -> dict[str, Any]:
        self._record("get_note", note_id)
        note = copy.deepcopy(self._require_note(note_id, "get_note"))
        note["attributes"] = [
            copy.deepcopy(attribute)
            for attribute in self.attributes.values()
            if attribute["noteId"] == note_id
        ]
        return note

    def get_note_meta(self, note_id: str) -> NoteMeta:
        return NoteMeta.from_payload(self.get_note(note_id))

    def get_content(self, note_id: str) -> str:
        self._record("get_content", note_id)
        self._require_note(note_id, "get_content")
        return self.contents[note_id]

    def write_content(self, note_id: str, content: str) -> str:
        self._record("write_content", note_id, content)
        note = self._require_note(note_id, "write_content")
        self.contents[note_id] = content
        note["blobId"] = self._next_blob()
        return note["blobId"]

    def create_note(self, payload: dict[str, Any]) -> dict[str, Any]:
        self._record("create_note", payload)
        self._require_note(payload["parentNoteId"], "create_note")
        note_id = f"note{next(self._note_ids)}"
        self.add_note(
            note_id,
            note_type=payload["type"],
            content=payload["content"],
            title=payload["title"],
            mime=payload.get("mime", ""),
        )
        return {
            "note": copy.deepcopy(self.notes[note_id]),
            "branch": {"noteId": note_id, "parentNoteId": payload["parentNoteId"]},
        }

    def create_revision(self, note_id: str) -> None:
        self._record("create_revision", note_id)
        self._require_note(note_id, "create_revision")
        self.revisions.setdefault(note_id, []).append(self.contents[note_id])

    def delete_note(self, note_id: str) -> None:
        self._record("delete_note", note_id)
        self._require_note(note_id, "delete_note")
        del self.notes[note_id]
        del self.contents[note_id]
        for attribute_id in [
            key for key, attribute in self.attributes.items() if attribute["noteId"] == note_id
        ]:
            del self.attributes[attribute_id]

    def search_notes(
        self, query: str, fast_search: bool = False, include_archived: bool = True
    ) -> list[dict[str, Any]]:
        self._record("search_notes", query, fast_search)
        return copy.deepcopy(self.search_results)

    def create_attribute(self, payload: dict[str, Any]) -> dict[str, Any]:
        self._record("create_attribute", payload)
        if payload["name"] in self.failing_attribute_names:
            raise ExternalStoreError(
                f"Trilium rejected create_attribute: '{payload['name']}' refused",
                operation="create_attribute",
                status_code=400,
            )
        self._require_note(payload["noteId"], "create_attribute")
        attribute_id = self.add_attribute(
            payload["noteId"],
            payload["type"],
            payload["name"],
            value=payload["value"],
            position=payload["position"],
            is_inheritable=payload["isInheritable"],
        )
        created = copy.deepcopy(self.attributes[attribute_id])
        if self.after_create_attribute is not None:
            self.after_create_attribute(created)
        return created

    def get_attribute(self, attribute_id: str) -> dict[str, Any]:
        self._record("get_attribute", attribute_id)
        return copy.deepcopy(self._require_attribute(attribute_id, "get_attribute"))

    def update_attribute(self, attribute_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self._record("update_attribute", attribute_id, payload)
        attribute = self._require_attribute(attribute_id, "update_attribute")
        attribute.update(payload)
        return copy.deepcopy(attribute)

    def delete_attribute(self, attribute_id: str) -> None:
        self._record("delete_attribute", attribute_id)
        self._require_attribute(attribute_id, "delete_attribute")
        del self.attributes[attribute_id]

    def _require_attribute(self, attribute_id: str, operation: str) -> dict[str, Any]:
        if attribute_id not in self.attributes:
            raise ExternalStoreError(
                f"Trilium rejected {operation}: Attribute '{attribute_id}' not found.",
                operation=operation,
                status_code=404,
            )
        return self.attributes[attribute_id]


@pytest.fixture
def fake_client():
    """A fake store holding only the root note."""
    client = FakeTriliumClient()
    client.add_note("root", note_type="book", title="root")
    return client


@pytest.fixture
def read_write_configuration():
    return TriliumConfiguration(
        api_url="http://trilium.test/etapi",
        api_token="test-token",
        permissions=frozenset({"READ", "WRITE"}),
    )


@pytest.fixture
def session(fake_client, read_write_configuration):
    """Install the fake client as the process-wide session."""
    set_session(fake_client, read_write_configuration)
    yield fake_client
    reset_session()


@pytest.fixture(params=["asyncio"])
def anyio_backend(request):
    """Run anyio tests on asyncio only."""
    return request.param
