"""Accept, auto-correct or reject note content according to its note type.

The decision is an explicit table over (policy class x detected format) so
every branch can be enumerated and tested on its own:

================  ========  ==========  ==========  ============
policy class      html      markdown    plain text  empty
================  ========  ==========  ==========  ============
structured        pass      convert     wrap        reject empty
plain_only        reject    pass        pass        reject empty
flexible          pass      pass        pass        pass
container         reject    reject      reject      pass
================  ========  ==========  ==========  ============

Code and diagram content that passes is returned byte-for-byte.
"""

from __future__ import annotations

import logging
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Union

from trilium_mcp.core.content_policy import (
    container_template_name,
    get_policy,
    parse_note_type,
)
from trilium_mcp.core.format_conversion import markdown_to_html, plain_text_to_html
from trilium_mcp.core.format_detection import detect_format
from trilium_mcp.data_models import (
    ContentFormat,
    ContentPayload,
    NoteType,
    PolicyClass,
    ValidationResult,
)
from trilium_mcp.exceptions import ContentTypeMismatchError

logger = logging.getLogger(__name__)


class ContentAction(str, Enum):
    """What the validator does with a piece of content."""

    PASS = "pass"
    CONVERT_MARKDOWN = "convert_markdown"
    WRAP_PLAIN_TEXT = "wrap_plain_text"
    REJECT_MARKUP = "reject_markup"
    REJECT_EMPTY = "reject_empty"
    REJECT_CONTENT = "reject_content"


DECISION_TABLE: Mapping[tuple[PolicyClass, ContentFormat], ContentAction] = MappingProxyType(
    {
        (PolicyClass.STRUCTURED, ContentFormat.HTML): ContentAction.PASS,
        (PolicyClass.STRUCTURED, ContentFormat.MARKDOWN): ContentAction.CONVERT_MARKDOWN,
        (PolicyClass.STRUCTURED, ContentFormat.PLAIN_TEXT): ContentAction.WRAP_PLAIN_TEXT,
        (PolicyClass.STRUCTURED, ContentFormat.EMPTY): ContentAction.REJECT_EMPTY,
        (PolicyClass.PLAIN_ONLY, ContentFormat.HTML): ContentAction.REJECT_MARKUP,
        (PolicyClass.PLAIN_ONLY, ContentFormat.MARKDOWN): ContentAction.PASS,
        (PolicyClass.PLAIN_ONLY, ContentFormat.PLAIN_TEXT): ContentAction.PASS,
        (PolicyClass.PLAIN_ONLY, ContentFormat.EMPTY): ContentAction.REJECT_EMPTY,
        (PolicyClass.FLEXIBLE, ContentFormat.HTML): ContentAction.PASS,
        (PolicyClass.FLEXIBLE, ContentFormat.MARKDOWN): ContentAction.PASS,
        (PolicyClass.FLEXIBLE, ContentFormat.PLAIN_TEXT): ContentAction.PASS,
        (PolicyClass.FLEXIBLE, ContentFormat.EMPTY): ContentAction.PASS,
        (PolicyClass.CONTAINER, ContentFormat.HTML): ContentAction.REJECT_CONTENT,
        (PolicyClass.CONTAINER, ContentFormat.MARKDOWN): ContentAction.REJECT_CONTENT,
        (PolicyClass.CONTAINER, ContentFormat.PLAIN_TEXT): ContentAction.REJECT_CONTENT,
        (PolicyClass.CONTAINER, ContentFormat.EMPTY): ContentAction.PASS,
    }
)


def decide(policy_class: PolicyClass, detected: ContentFormat) -> ContentAction:
    """Look up the action for a (policy class, detected format) pair."""
    return DECISION_TABLE[(policy_class, detected)]


def validate_content(
    raw_content: str,
    note_type: Union[NoteType, str],
    template: Optional[str] = None,
) -> ValidationResult:
    """Validate ``raw_content`` against the content policy of ``note_type``.

    Args:
        raw_content: Content exactly as submitted by the caller.
        note_type: Target note type.
        template: Target of the note's ``~template`` relation, if any.

    Returns:
        A :class:`ValidationResult` holding the content to store and whether it
        was rewritten.

    Raises:
        UnknownNoteTypeError: If ``note_type`` has no policy.
        ContentTypeMismatchError: If the content cannot be accepted for the type.
    """
    parsed = parse_note_type(note_type)
    policy = get_policy(parsed, template)

    if policy.allows_empty and not raw_content.strip():
        return ValidationResult(raw_content, False, ContentFormat.EMPTY)

    payload = ContentPayload(raw_content, detect_format(raw_content))
    action = decide(policy.policy_class, payload.detected_format)
    logger.debug(
        "Content for %s note detected as %s -> %s",
        parsed.value,
        payload.detected_format.value,
        action.value,
    )

    if action is ContentAction.REJECT_MARKUP:
        raise ContentTypeMismatchError(
            parsed.value,
            "require plain text only, but HTML markup was detected. Remove the HTML tags.",
            policy.description,
            policy.examples,
        )
    if action is ContentAction.REJECT_CONTENT:
        raise ContentTypeMismatchError(
            parsed.value,
            f"{container_template_name(template)} template notes must be empty; they are "
            "container notes that provide specialized layouts. Add content as child notes instead.",
            policy.description,
            policy.examples,
        )
    if action is ContentAction.REJECT_EMPTY:
        raise ContentTypeMismatchError(
            parsed.value,
            "content must be a non-empty string.",
            policy.description,
            policy.examples,
        )
    if action is ContentAction.CONVERT_MARKDOWN:
        return ValidationResult(markdown_to_html(raw_content), True, payload.detected_format)
    if action is ContentAction.WRAP_PLAIN_TEXT:
        return ValidationResult(plain_text_to_html(raw_content), True, payload.detected_format)
    return ValidationResult(raw_content, False, payload.detected_format)
