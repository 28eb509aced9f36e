"""Core business logic for note creation, retrieval, content updates and deletion."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional, Sequence, Union

from trilium_mcp.client import TriliumClient
from trilium_mcp.core.attribute_operations import (
    AttributeItem,
    batch_create_attributes,
    validate_attribute_specs,
)
from trilium_mcp.core.concurrency import check_version, verify_version
from trilium_mcp.core.content_policy import (
    content_requirements,
    extract_template_relation,
    get_policy,
    parse_note_type,
)
from trilium_mcp.core.content_validation import validate_content
from trilium_mcp.data_models import CreateResult, NoteType, UpdateRequest, UpdateResult
from trilium_mcp.exceptions import (
    ContentTypeMismatchError,
    ExternalStoreError,
    TypeMismatchError,
)

logger = logging.getLogger(__name__)


# ==============================================================================
# NOTE OPERATIONS
# ==============================================================================


def create_note(
    client: TriliumClient,
    parent_note_id: str,
    title: str,
    note_type: Union[NoteType, str],
    content: str,
    attributes: Optional[Sequence[AttributeItem]] = None,
    mime: Optional[str] = None,
    cancel_event: Optional[threading.Event] = None,
) -> CreateResult:
    """Create a note after validating its content and attributes.

    The note type, content and every attribute are checked before the note
    is created. Attributes are then added one by one; a failing attribute
    does not remove the note.

    Args:
        client: ETAPI client.
        parent_note_id: Parent note ID.
        title: Note title.
        note_type: Note type deciding the content contract.
        content: Raw content; converted to HTML where the type requires it.
        attributes: Optional labels/relations to create on the new note.
        mime: Optional MIME type (code notes).
        cancel_event: Stops the attribute sequence when set.

    Returns:
        A :class:`CreateResult` with the new note ID, whether the content was
        auto-corrected, the new version token and per-attribute results.

    Raises:
        UnknownNoteTypeError: If the type is unknown.
        ContentTypeMismatchError: If the content violates the type's contract.
        AttributeValidationError: If any attribute is malformed.
        ExternalStoreError: If Trilium rejects the creation.
    """
    parsed = parse_note_type(note_type)
    validated = validate_content(content, parsed, extract_template_relation(attributes))
    if attributes:
        validate_attribute_specs(attributes)

    payload: dict[str, Any] = {
        "parentNoteId": parent_note_id,
        "title": title,
        "type": parsed.value,
        "content": validated.final_content,
    }
    if mime:
        payload["mime"] = mime

    response = client.create_note(payload)
    note = response["note"]
    note_id = note["noteId"]
    logger.info(
        "Created %s note '%s' (%s) under '%s'%s",
        parsed.value,
        title,
        note_id,
        parent_note_id,
        " (content auto-corrected)" if validated.auto_corrected else "",
    )

    batch = None
    if attributes:
        batch = batch_create_attributes(client, note_id, attributes, cancel_event=cancel_event)

    return CreateResult(
        note_id=note_id,
        auto_corrected=validated.auto_corrected,
        version_token=note.get("blobId") or "",
        attributes=batch,
    )


def get_note(client: TriliumClient, note_id: str, include_content: bool = True) -> dict[str, Any]:
    """Retrieve a note with its version token and content requirements.

    Args:
        client: ETAPI client.
        note_id: Note ID.
        include_content: When ``False`` only metadata is returned.

    Returns:
        A dictionary with the raw ETAPI note, ``version_token`` (pass it to
        :func:`update_note`), ``content_requirements`` derived from the type's
        content policy and, optionally, ``content``.
    """
    note = client.get_note(note_id)
    template = extract_template_relation(note.get("attributes"))
    result: dict[str, Any] = {
        "note": note,
        "version_token": note.get("blobId") or "",
        "content_requirements": content_requirements(note["type"], template),
    }
    if include_content:
        result["content"] = client.get_content(note_id)
    return result


def update_note(client: TriliumClient, request: UpdateRequest) -> UpdateResult:
    """Replace a note's content under optimistic concurrency control.

    Steps, stopping at the first failure:

    1. fetch the persisted type and current version token;
    2. require the declared type to equal the persisted type;
    3. compare version tokens;
    4. validate (and possibly auto-correct) the content;
    5. save a revision of the current content if requested;
    6. write the content.

    Nothing is written unless steps 1-4 pass.

    Raises:
        TypeMismatchError: If the declared type differs from the stored one.
        MissingVersionTokenError: If no expected token was supplied.
        ConflictError: If the note changed since the caller read it.
        UnknownNoteTypeError: If the declared type is unknown.
        ContentTypeMismatchError: If the content violates the type's contract.
        ExternalStoreError: If Trilium fails the read or the write.
    """
    note_id = request.note_id
    declared = request.declared_note_type
    if isinstance(declared, NoteType):
        declared = declared.value

    meta = client.get_note_meta(note_id)
    if declared != meta.note_type:
        logger.info(
            "Rejected update of note '%s': declared type %s, persisted %s",
            note_id,
            declared,
            meta.note_type,
        )
        raise TypeMismatchError(note_id, declared=declared, persisted=meta.note_type)

    verify_version(note_id, request.expected_version_token, meta.version_token)
    validated = validate_content(
        request.new_content, declared, extract_template_relation(meta.attributes)
    )

    revision_created = request.create_revision and _create_revision(client, note_id)
    new_token = client.write_content(note_id, validated.final_content)
    logger.info(
        "Updated note '%s'%s%s",
        note_id,
        " (revision created)" if revision_created else "",
        " (content auto-corrected)" if validated.auto_corrected else "",
    )
    return UpdateResult(
        note_id=note_id,
        auto_corrected=validated.auto_corrected,
        revision_created=revision_created,
        version_token=new_token,
    )


def append_note(
    client: TriliumClient,
    note_id: str,
    content: str,
    expected_version_token: Optional[str],
    create_revision: bool = False,
) -> UpdateResult:
    """Append content to the end of a note under optimistic concurrency control.

    The appended chunk is validated against the note's persisted type (and
    container template, if any) exactly like a full update, then written
    after the current content. Text notes therefore receive HTML, code and
    mermaid notes receive the chunk byte-for-byte.

    Raises:
        MissingVersionTokenError: If no expected token was supplied.
        ConflictError: If the note changed since the caller read it.
        ContentTypeMismatchError: If the chunk is empty or violates the
            note type's contract.
        ExternalStoreError: If Trilium fails a read or the write.
    """
    meta = check_version(client, note_id, expected_version_token)
    template = extract_template_relation(meta.attributes)
    if not content.strip():
        policy = get_policy(meta.note_type, template)
        raise ContentTypeMismatchError(
            meta.note_type,
            "content to append must be a non-empty string.",
            policy.description,
            policy.examples,
        )
    validated = validate_content(content, meta.note_type, template)

    current = client.get_content(note_id)
    revision_created = create_revision and _create_revision(client, note_id)
    new_token = client.write_content(note_id, current + validated.final_content)
    logger.info(
        "Appended %d characters to note '%s'%s%s",
        len(validated.final_content),
        note_id,
        " (revision created)" if revision_created else "",
        " (content auto-corrected)" if validated.auto_corrected else "",
    )
    return UpdateResult(
        note_id=note_id,
        auto_corrected=validated.auto_corrected,
        revision_created=revision_created,
        version_token=new_token,
    )


def delete_note(client: TriliumClient, note_id: str) -> dict[str, Any]:
    """Delete a note together with its branches and attributes.

    Raises:
        ExternalStoreError: If the note does not exist or Trilium refuses.
    """
    client.delete_note(note_id)
    logger.info("Deleted note '%s'", note_id)
    return {"note_id": note_id, "deleted": True}


def _create_revision(client: TriliumClient, note_id: str) -> bool:
    """Save a revision of the current content; failures only log a warning."""
    try:
        client.create_revision(note_id)
    except ExternalStoreError as exc:
        logger.warning("Failed to create revision for note '%s': %s", note_id, exc)
        return False
    return True
