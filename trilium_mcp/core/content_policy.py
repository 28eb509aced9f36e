"""Per-note-type content contracts.

Every :class:`NoteType` maps to exactly one :class:`ContentPolicy`. The table
is built once at import time and is read-only afterwards. Book notes using a
built-in container template (Board, Calendar, ...) are the one exception:
they must stay empty, whatever their base policy allows.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Union

from trilium_mcp.constants import CONTAINER_TEMPLATES, TEMPLATE_RELATION
from trilium_mcp.data_models import AttributeKind, ContentPolicy, NoteType
from trilium_mcp.exceptions import UnknownNoteTypeError

_STRUCTURED = ContentPolicy(
    requires_structured_markup=True,
    allows_empty=False,
    rejects_markup_when_plain_required=False,
    description="HTML content required (plain text is wrapped in <p> tags, Markdown is converted)",
    examples=("<p>Hello world</p>", "<strong>Bold text</strong>"),
)

_CODE = ContentPolicy(
    requires_structured_markup=False,
    allows_empty=False,
    rejects_markup_when_plain_required=True,
    description="Plain text only (no HTML tags); stored exactly as given",
    examples=("def fibonacci(n):", "console.log('hello');"),
)

_MERMAID = ContentPolicy(
    requires_structured_markup=False,
    allows_empty=False,
    rejects_markup_when_plain_required=True,
    description="Plain text Mermaid diagram syntax only (no HTML tags)",
    examples=("graph TD; A-->B", "sequenceDiagram; A->>B: Hello"),
)

_FLEXIBLE = ContentPolicy(
    requires_structured_markup=False,
    allows_empty=True,
    rejects_markup_when_plain_required=False,
    description="Content optional or any format accepted",
    examples=("", "Any content format"),
)

CONTENT_POLICIES: Mapping[NoteType, ContentPolicy] = MappingProxyType(
    {
        NoteType.TEXT: _STRUCTURED,
        NoteType.RENDER: _STRUCTURED,
        NoteType.WEB_VIEW: _STRUCTURED,
        NoteType.CODE: _CODE,
        NoteType.MERMAID: _MERMAID,
        NoteType.BOOK: _FLEXIBLE,
        NoteType.SEARCH: _FLEXIBLE,
        NoteType.RELATION_MAP: _FLEXIBLE,
        NoteType.SHORTCUT: _FLEXIBLE,
        NoteType.DOC: _FLEXIBLE,
        NoteType.CONTENT_WIDGET: _FLEXIBLE,
        NoteType.LAUNCHER: _FLEXIBLE,
        NoteType.NOTE_MAP: _FLEXIBLE,
        NoteType.FILE: _FLEXIBLE,
        NoteType.IMAGE: _FLEXIBLE,
    }
)


def parse_note_type(note_type: Union[NoteType, str]) -> NoteType:
    """Coerce a raw string into a :class:`NoteType`.

    Raises:
        UnknownNoteTypeError: If ``note_type`` is not one of the known values.
    """
    if isinstance(note_type, NoteType):
        return note_type
    try:
        return NoteType(note_type)
    except ValueError as exc:
        raise UnknownNoteTypeError(note_type, [member.value for member in NoteType]) from exc


def container_template_name(template: Optional[str]) -> Optional[str]:
    """Return the container template's title if ``template`` names one.

    Both the template title (``"Board"``) and the built-in template note ID
    (``"_template_board"``) are recognised.
    """
    if not template:
        return None
    for title, template_id in CONTAINER_TEMPLATES.items():
        if template in (title, template_id):
            return title
    return None


def extract_template_relation(attributes: Optional[Iterable[Any]]) -> Optional[str]:
    """Return the target of the first ``~template`` relation in ``attributes``.

    Accepts ETAPI-style dictionaries (``type``), attribute input dictionaries
    (``kind``) and attribute objects exposing ``kind``, ``name`` and ``value``.
    """
    for attribute in attributes or ():
        if isinstance(attribute, Mapping):
            kind = attribute.get("kind", attribute.get("type"))
            name = attribute.get("name")
            value = attribute.get("value")
        else:
            kind = getattr(attribute, "kind", None)
            name = getattr(attribute, "name", None)
            value = getattr(attribute, "value", None)
        if kind == AttributeKind.RELATION and name == TEMPLATE_RELATION:
            return value
    return None


def _container_policy(title: str) -> ContentPolicy:
    return ContentPolicy(
        requires_structured_markup=False,
        allows_empty=True,
        rejects_markup_when_plain_required=False,
        description=f"Container note for {title} template (content must be empty)",
        examples=("",),
        must_be_empty=True,
    )


def get_policy(note_type: Union[NoteType, str], template: Optional[str] = None) -> ContentPolicy:
    """Look up the content policy for ``note_type``.

    A book note whose ``~template`` relation points at a container template
    gets the container policy instead of the flexible one.

    Raises:
        UnknownNoteTypeError: If the type is unknown or has no policy.
    """
    parsed = parse_note_type(note_type)
    if parsed is NoteType.BOOK:
        title = container_template_name(template)
        if title:
            return _container_policy(title)
    try:
        return CONTENT_POLICIES[parsed]
    except KeyError as exc:
        raise UnknownNoteTypeError(parsed.value) from exc


def content_requirements(
    note_type: Union[NoteType, str], template: Optional[str] = None
) -> dict[str, Any]:
    """Describe what content ``note_type`` accepts, for ``get_note`` responses."""
    policy = get_policy(note_type, template)
    return {
        "requires_html": policy.requires_structured_markup,
        "allows_empty": policy.allows_empty,
        "must_be_empty": policy.must_be_empty,
        "description": policy.description,
        "examples": list(policy.examples),
    }
