"""Tests for note creation, retrieval and concurrency-controlled updates."""

import pytest

from trilium_mcp.core.note_operations import (
    append_note,
    create_note,
    delete_note,
    get_note,
    update_note,
)
from trilium_mcp.data_models import NoteType, UpdateRequest
from trilium_mcp.exceptions import (
    AttributeValidationError,
    ConflictError,
    ContentTypeMismatchError,
    ExternalStoreError,
    MissingVersionTokenError,
    TypeMismatchError,
    UnknownNoteTypeError,
)

CODE = "def fibonacci(n):\n    return n if n < 2 else fibonacci(n - 1) + fibonacci(n - 2)\n"


# ==============================================================================
# create_note
# ==============================================================================


class TestCreateNote:
    def test_plain_text_is_wrapped_for_text_notes(self, fake_client):
        result = create_note(fake_client, "root", "Greeting", "text", "Hello")
        assert result.auto_corrected is True
        assert fake_client.contents[result.note_id] == "<p>Hello</p>"
        assert result.version_token == fake_client.token(result.note_id)

    def test_code_is_stored_byte_for_byte(self, fake_client):
        result = create_note(
            fake_client, "root", "fib.py", NoteType.CODE, CODE, mime="text/x-python"
        )
        assert result.auto_corrected is False
        assert fake_client.contents[result.note_id] == CODE
        assert fake_client.notes[result.note_id]["mime"] == "text/x-python"

    def test_html_in_code_note_is_rejected_before_any_call(self, fake_client):
        with pytest.raises(ContentTypeMismatchError):
            create_note(fake_client, "root", "bad", "code", "<p>print(1)</p>")
        assert fake_client.calls == []

    def test_unknown_type_is_rejected_before_any_call(self, fake_client):
        with pytest.raises(UnknownNoteTypeError):
            create_note(fake_client, "root", "bad", "spreadsheet", "x")
        assert fake_client.calls == []

    def test_invalid_attribute_blocks_creation(self, fake_client):
        attributes = [
            {"kind": "label", "name": "todo"},
            {"kind": "relation", "name": "template", "value": ""},
        ]
        with pytest.raises(AttributeValidationError) as exc_info:
            create_note(fake_client, "root", "Board", "book", "", attributes=attributes)
        assert exc_info.value.errors[0]["index"] == 1
        assert fake_client.calls == []

    def test_attributes_are_created_in_order(self, fake_client):
        attributes = [
            {"kind": "label", "name": "todo"},
            {"kind": "relation", "name": "template", "value": "tmpl1", "position": 20},
        ]
        result = create_note(fake_client, "root", "Board", "book", "", attributes=attributes)

        assert result.attributes.succeeded == 2
        created = [payload for name, (payload,) in fake_client.calls if name == "create_attribute"]
        assert [payload["name"] for payload in created] == ["todo", "template"]
        assert all(payload["noteId"] == result.note_id for payload in created)

    def test_failed_attribute_keeps_the_note(self, fake_client):
        fake_client.failing_attribute_names.add("broken")
        result = create_note(
            fake_client,
            "root",
            "Board",
            "book",
            "",
            attributes=[{"kind": "label", "name": "broken"}, {"kind": "label", "name": "ok"}],
        )
        assert result.note_id in fake_client.notes
        payload = result.as_payload()
        assert payload["attributes"]["failed"] == 1
        assert payload["attributes"]["succeeded"] == 1

    def test_store_failure_propagates(self, fake_client):
        with pytest.raises(ExternalStoreError) as exc_info:
            create_note(fake_client, "missing-parent", "x", "text", "<p>x</p>")
        assert exc_info.value.status_code == 404


# ==============================================================================
# get_note
# ==============================================================================


def test_get_note_returns_token_content_and_requirements(fake_client):
    token = fake_client.add_note("n1", note_type="mermaid", content="graph TD; A-->B")
    result = get_note(fake_client, "n1")

    assert result["version_token"] == token
    assert result["content"] == "graph TD; A-->B"
    assert result["content_requirements"]["requires_html"] is False
    assert result["note"]["type"] == "mermaid"


def test_get_note_without_content(fake_client):
    fake_client.add_note("n1")
    result = get_note(fake_client, "n1", include_content=False)
    assert "content" not in result
    assert fake_client.call_names() == ["get_note"]


# ==============================================================================
# update_note
# ==============================================================================


@pytest.fixture
def text_note(fake_client):
    token = fake_client.add_note("n1", note_type="text", content="<p>old</p>")
    return fake_client, token


def _request(token, content="<p>new</p>", note_type="text", revision=False):
    return UpdateRequest(
        note_id="n1",
        declared_note_type=note_type,
        new_content=content,
        expected_version_token=token,
        create_revision=revision,
    )


class TestUpdateNote:
    def test_successful_update_returns_new_token(self, text_note):
        client, token = text_note
        result = update_note(client, _request(token))

        assert result.updated is True
        assert result.auto_corrected is False
        assert result.revision_created is False
        assert client.contents["n1"] == "<p>new</p>"
        assert result.version_token == client.token("n1")
        assert result.version_token != token

    def test_plain_text_update_is_auto_corrected(self, text_note):
        client, token = text_note
        result = update_note(client, _request(token, content="new"))
        assert result.auto_corrected is True
        assert client.contents["n1"] == "<p>new</p>"

    def test_missing_token_writes_nothing(self, text_note):
        client, _ = text_note
        with pytest.raises(MissingVersionTokenError):
            update_note(client, _request(None))
        assert client.mutating_calls() == []
        assert client.contents["n1"] == "<p>old</p>"

    def test_stale_token_writes_nothing(self, text_note):
        client, stale = text_note
        client.write_content("n1", "<p>someone else</p>")
        client.calls.clear()

        with pytest.raises(ConflictError) as exc_info:
            update_note(client, _request(stale))
        assert exc_info.value.current == client.token("n1")
        assert exc_info.value.expected == stale
        assert client.mutating_calls() == []
        assert client.contents["n1"] == "<p>someone else</p>"

    def test_type_mismatch_is_reported_even_with_valid_token(self, text_note):
        client, token = text_note
        with pytest.raises(TypeMismatchError) as exc_info:
            update_note(client, _request(token, content="print(1)", note_type="code"))
        assert exc_info.value.persisted == "text"
        assert exc_info.value.declared == "code"
        assert client.mutating_calls() == []

    def test_type_is_checked_before_the_token(self, text_note):
        client, _ = text_note
        with pytest.raises(TypeMismatchError):
            update_note(client, _request(None, note_type="code"))

    def test_invalid_content_writes_nothing(self, text_note):
        client, token = text_note
        with pytest.raises(ContentTypeMismatchError):
            update_note(client, _request(token, content="   "))
        assert client.mutating_calls() == []

    def test_revision_captures_previous_content_before_write(self, text_note):
        client, token = text_note
        result = update_note(client, _request(token, revision=True))

        assert result.revision_created is True
        assert client.revisions["n1"] == ["<p>old</p>"]
        assert client.mutating_calls() == ["create_revision", "write_content"]

    def test_revision_failure_does_not_block_update(self, text_note):
        client, token = text_note
        client.failures["create_revision"] = ExternalStoreError("boom", operation="create_revision")
        result = update_note(client, _request(token, revision=True))

        assert result.revision_created is False
        assert client.contents["n1"] == "<p>new</p>"

    def test_write_failure_propagates(self, text_note):
        client, token = text_note
        client.failures["write_content"] = ExternalStoreError(
            "down", operation="write_content", status_code=500
        )
        with pytest.raises(ExternalStoreError):
            update_note(client, _request(token))
        assert client.contents["n1"] == "<p>old</p>"

    def test_second_writer_with_same_token_conflicts(self, text_note):
        client, token = text_note
        update_note(client, _request(token, content="<p>first</p>"))

        with pytest.raises(ConflictError):
            update_note(client, _request(token, content="<p>second</p>"))
        assert client.contents["n1"] == "<p>first</p>"

    def test_retry_with_fresh_token_succeeds(self, text_note):
        client, token = text_note
        first = update_note(client, _request(token, content="<p>first</p>"))
        second = update_note(client, _request(first.version_token, content="<p>second</p>"))
        assert second.updated is True
        assert client.contents["n1"] == "<p>second</p>"

    def test_code_update_is_byte_for_byte(self, fake_client):
        token = fake_client.add_note("c1", note_type="code", content="x = 1\n")
        update_note(
            fake_client,
            UpdateRequest("c1", "code", CODE, token),
        )
        assert fake_client.contents["c1"] == CODE


def test_markdown_update_with_stale_token_leaves_content(fake_client):
    stale = fake_client.add_note("n1", note_type="text", content="<p>v1</p>")
    fake_client.write_content("n1", "<p>v2</p>")
    with pytest.raises(ConflictError):
        update_note(fake_client, UpdateRequest("n1", "text", "# Hi", stale))
    assert fake_client.contents["n1"] == "<p>v2</p>"


def test_one_line_code_note_is_not_wrapped(fake_client):
    result = create_note(fake_client, "root", "f", "code", "def f(): pass")
    assert fake_client.contents[result.note_id] == "def f(): pass"


# ==============================================================================
# Container templates
# ==============================================================================


class TestContainerTemplates:
    def test_board_with_content_is_not_created(self, fake_client):
        attributes = [{"kind": "relation", "name": "template", "value": "Board"}]
        with pytest.raises(ContentTypeMismatchError) as exc_info:
            create_note(fake_client, "root", "Tasks", "book", "- todo", attributes=attributes)
        assert "Board template notes must be empty" in exc_info.value.message
        assert fake_client.calls == []

    def test_empty_board_is_created(self, fake_client):
        attributes = [{"kind": "relation", "name": "template", "value": "_template_board"}]
        result = create_note(fake_client, "root", "Tasks", "book", "", attributes=attributes)
        assert fake_client.contents[result.note_id] == ""
        assert result.attributes.succeeded == 1

    def test_update_uses_persisted_template(self, fake_client):
        token = fake_client.add_note("b1", note_type="book")
        fake_client.add_attribute("b1", "relation", "template", value="_template_calendar")
        with pytest.raises(ContentTypeMismatchError):
            update_note(fake_client, UpdateRequest("b1", "book", "<p>x</p>", token))
        assert fake_client.mutating_calls() == []

        update_note(fake_client, UpdateRequest("b1", "book", "", token))
        assert fake_client.contents["b1"] == ""

    def test_get_note_reports_container_requirements(self, fake_client):
        fake_client.add_note("b1", note_type="book")
        fake_client.add_attribute("b1", "relation", "template", value="Table")
        requirements = get_note(fake_client, "b1")["content_requirements"]
        assert requirements["must_be_empty"] is True
        assert "Table" in requirements["description"]


# ==============================================================================
# append_note
# ==============================================================================


class TestAppendNote:
    def test_markdown_chunk_is_converted_and_appended(self, text_note):
        client, token = text_note
        result = append_note(client, "n1", "## More", token)

        assert result.auto_corrected is True
        assert client.contents["n1"] == "<p>old</p><h2>More</h2>"
        assert result.version_token == client.token("n1")

    def test_code_chunk_is_appended_byte_for_byte(self, fake_client):
        token = fake_client.add_note("c1", note_type="code", content="x = 1\n")
        append_note(fake_client, "c1", "y = 2\n", token)
        assert fake_client.contents["c1"] == "x = 1\ny = 2\n"

    def test_html_chunk_is_rejected_for_code(self, fake_client):
        token = fake_client.add_note("c1", note_type="code", content="x = 1\n")
        with pytest.raises(ContentTypeMismatchError):
            append_note(fake_client, "c1", "<b>y</b>", token)
        assert fake_client.mutating_calls() == []

    @pytest.mark.parametrize("chunk", ["", "  \n"])
    def test_empty_chunk_is_rejected(self, fake_client, chunk):
        token = fake_client.add_note("b1", note_type="book", content="")
        with pytest.raises(ContentTypeMismatchError):
            append_note(fake_client, "b1", chunk, token)
        assert fake_client.mutating_calls() == []

    def test_missing_token_does_not_touch_the_store(self, text_note):
        client, _ = text_note
        with pytest.raises(MissingVersionTokenError):
            append_note(client, "n1", "more", None)
        assert client.calls == []

    def test_stale_token_writes_nothing(self, text_note):
        client, stale = text_note
        client.write_content("n1", "<p>other</p>")
        client.calls.clear()

        with pytest.raises(ConflictError):
            append_note(client, "n1", "more", stale)
        assert client.mutating_calls() == []
        assert client.contents["n1"] == "<p>other</p>"

    def test_container_template_rejects_appends(self, fake_client):
        token = fake_client.add_note("b1", note_type="book")
        fake_client.add_attribute("b1", "relation", "template", value="Board")
        with pytest.raises(ContentTypeMismatchError):
            append_note(fake_client, "b1", "card", token)
        assert fake_client.mutating_calls() == []

    def test_revision_is_taken_before_the_write(self, text_note):
        client, token = text_note
        result = append_note(client, "n1", "<p>more</p>", token, create_revision=True)

        assert result.revision_created is True
        assert client.revisions["n1"] == ["<p>old</p>"]
        assert client.mutating_calls() == ["create_revision", "write_content"]


# ==============================================================================
# delete_note
# ==============================================================================


def test_delete_note_removes_note_and_attributes(fake_client):
    fake_client.add_note("n1")
    fake_client.add_attribute("n1", "label", "todo")

    assert delete_note(fake_client, "n1") == {"note_id": "n1", "deleted": True}
    assert "n1" not in fake_client.notes
    assert fake_client.attributes == {}


def test_delete_missing_note_propagates(fake_client):
    with pytest.raises(ExternalStoreError) as exc_info:
        delete_note(fake_client, "ghost")
    assert exc_info.value.status_code == 404
