"""Optimistic concurrency checks based on the store's content version token.

The note store issues a new token (its ``blobId``) on every content write.
These helpers only compare tokens; they never write. The store exposes no
conditional write, so a narrow window remains between the check and the
following write. This is best-effort optimistic locking.
"""

from __future__ import annotations

import logging
from typing import Optional

from trilium_mcp.client import TriliumClient
from trilium_mcp.data_models import NoteMeta
from trilium_mcp.exceptions import ConflictError, MissingVersionTokenError

logger = logging.getLogger(__name__)


def verify_version(note_id: str, expected: Optional[str], current: str) -> None:
    """Compare the caller's token with the store's current token.

    Comparison is byte-exact; tokens are neither trimmed nor case-folded.

    Raises:
        MissingVersionTokenError: If ``expected`` is missing or empty.
        ConflictError: If the tokens differ.
    """
    if not expected:
        raise MissingVersionTokenError(note_id)
    if current != expected:
        logger.info(
            "Version conflict on note '%s': current=%s expected=%s",
            note_id,
            current,
            expected,
        )
        raise ConflictError(note_id, current=current, expected=expected)


def check_version(client: TriliumClient, note_id: str, expected: Optional[str]) -> NoteMeta:
    """Fetch the note's current token and verify it against ``expected``.

    Guard for writes that do not declare a note type (``append_note``). A
    missing token is rejected before the store is contacted. ``update_note``
    fetches the metadata itself, because the type check must come first, and
    then calls :func:`verify_version`.

    Returns:
        The freshly fetched :class:`NoteMeta` when the tokens match.
    """
    if not expected:
        raise MissingVersionTokenError(note_id)
    meta = client.get_note_meta(note_id)
    verify_version(note_id, expected, meta.version_token)
    return meta
