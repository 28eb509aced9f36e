"""Tests for the ETAPI HTTP client using httpx.MockTransport."""

import json

import httpx
import pytest

from trilium_mcp.client import TriliumClient
from trilium_mcp.exceptions import ExternalStoreError

NOTE = {
    "noteId": "n1",
    "title": "Note",
    "type": "text",
    "mime": "text/html",
    "blobId": "blob1",
    "attributes": [
        {
            "attributeId": "a1",
            "noteId": "n1",
            "type": "label",
            "name": "todo",
            "value": "",
            "position": 10,
            "isInheritable": False,
        }
    ],
}


def make_client(handler):
    return TriliumClient(
        "http://trilium.test/etapi/",
        "secret-token",
        transport=httpx.MockTransport(handler),
    )


def test_requests_carry_token_and_base_url():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=NOTE)

    with make_client(handler) as client:
        meta = client.get_note_meta("n1")

    assert seen[0].headers["Authorization"] == "secret-token"
    assert str(seen[0].url) == "http://trilium.test/etapi/notes/n1"
    assert meta.version_token == "blob1"
    assert meta.attributes[0].name == "todo"


def test_write_content_sends_plain_text_and_returns_new_token():
    seen = []

    def handler(request):
        seen.append(request)
        if request.method == "PUT":
            return httpx.Response(204)
        return httpx.Response(200, json={**NOTE, "blobId": "blob2"})

    with make_client(handler) as client:
        token = client.write_content("n1", "<p>héllo</p>")

    put = seen[0]
    assert put.method == "PUT"
    assert put.url.path == "/etapi/notes/n1/content"
    assert put.headers["Content-Type"] == "text/plain"
    assert put.content == "<p>héllo</p>".encode("utf-8")
    assert token == "blob2"


def test_failed_token_read_after_write_reports_the_write():
    def handler(request):
        if request.method == "PUT":
            return httpx.Response(204)
        return httpx.Response(500, json={"message": "database is locked"})

    with make_client(handler) as client:
        with pytest.raises(ExternalStoreError) as exc_info:
            client.write_content("n1", "<p>x</p>")

    error = exc_info.value
    assert error.content_written is True
    assert error.details["content_written"] is True
    assert error.operation == "write_content"
    assert error.status_code == 500
    assert "was written" in error.message


def test_failed_write_is_not_reported_as_written():
    def handler(request):
        return httpx.Response(500, json={"message": "disk full"})

    with make_client(handler) as client:
        with pytest.raises(ExternalStoreError) as exc_info:
            client.write_content("n1", "<p>x</p>")

    assert exc_info.value.content_written is False
    assert "content_written" not in exc_info.value.details


def test_create_note_posts_json():
    def handler(request):
        assert request.url.path == "/etapi/create-note"
        body = json.loads(request.content)
        assert body["parentNoteId"] == "root"
        return httpx.Response(201, json={"note": {**NOTE, "noteId": "new"}, "branch": {}})

    with make_client(handler) as client:
        response = client.create_note({"parentNoteId": "root", "title": "x", "type": "text", "content": ""})

    assert response["note"]["noteId"] == "new"


def test_attribute_endpoints():
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path))
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json=NOTE["attributes"][0])

    with make_client(handler) as client:
        client.create_attribute({"noteId": "n1", "type": "label", "name": "todo"})
        client.get_attribute("a1")
        client.update_attribute("a1", {"value": "x"})
        client.delete_attribute("a1")

    assert seen == [
        ("POST", "/etapi/attributes"),
        ("GET", "/etapi/attributes/a1"),
        ("PATCH", "/etapi/attributes/a1"),
        ("DELETE", "/etapi/attributes/a1"),
    ]


def test_delete_note_and_search_endpoints():
    seen = []

    def handler(request):
        seen.append(request)
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json={"results": [NOTE]})

    with make_client(handler) as client:
        client.delete_note("n1")
        results = client.search_notes("#todo limit 5")

    assert (seen[0].method, seen[0].url.path) == ("DELETE", "/etapi/notes/n1")
    search = seen[1]
    assert search.url.path == "/etapi/notes"
    assert search.url.params["search"] == "#todo limit 5"
    assert search.url.params["fastSearch"] == "false"
    assert search.url.params["includeArchivedNotes"] == "true"
    assert results[0]["noteId"] == "n1"


def test_http_error_uses_etapi_message():
    def handler(request):
        return httpx.Response(
            404, json={"status": 404, "code": "NOTE_NOT_FOUND", "message": "Note 'zz' not found."}
        )

    with make_client(handler) as client:
        with pytest.raises(ExternalStoreError) as exc_info:
            client.get_note("zz")

    error = exc_info.value
    assert error.status_code == 404
    assert error.operation == "get_note"
    assert "Note 'zz' not found." in error.message


def test_transport_error_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with make_client(handler) as client:
        with pytest.raises(ExternalStoreError) as exc_info:
            client.create_revision("n1")

    assert exc_info.value.status_code is None
    assert "connection refused" in exc_info.value.message
