"""Search and note resolution on top of the ETAPI search endpoint.

Structured criteria are compiled into Trilium's search language:

- labels: ``#name``, ``#!name``, ``#name = 'value'``
- relations: ``~name``, ``~!name``, ``~template.title = 'Board'``
- note properties: ``note.type = 'code'``, ``note.isArchived = false``

Consecutive criteria sharing the same ``logic`` form one group. OR groups are
written as ``~(a OR b)``; AND groups are plain juxtaposition.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence, Union

from pydantic import ValidationError

from trilium_mcp.client import TriliumClient
from trilium_mcp.constants import DEFAULT_RESOLVE_RESULTS, SEARCH_RESULT_FIELDS
from trilium_mcp.exceptions import InvalidSearchError
from trilium_mcp.models.search_models import SearchCriterion

logger = logging.getLogger(__name__)

CriterionItem = Union[SearchCriterion, dict[str, Any]]

_OPERATORS = {
    "=": "=",
    "!=": "!=",
    ">": ">",
    "<": "<",
    ">=": ">=",
    "<=": "<=",
    "contains": "*=*",
    "starts_with": "=*",
    "ends_with": "*=",
}

_BOOLEAN_PROPERTIES = frozenset({"isArchived", "isProtected"})
_NUMERIC_PROPERTIES = frozenset(
    {
        "labelCount",
        "ownedLabelCount",
        "attributeCount",
        "relationCount",
        "parentCount",
        "childrenCount",
        "contentSize",
        "revisionCount",
    }
)


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def _property_value(prop: str, value: str) -> str:
    if prop in _BOOLEAN_PROPERTIES:
        lowered = value.strip().lower()
        if lowered not in ("true", "false"):
            raise InvalidSearchError(
                f"Note property '{prop}' takes 'true' or 'false'. Got: '{value}'",
                [{"field": "value", "message": "must be 'true' or 'false'"}],
            )
        return lowered
    if prop in _NUMERIC_PROPERTIES:
        if not value.strip().isdigit():
            raise InvalidSearchError(
                f"Note property '{prop}' takes a whole number. Got: '{value}'",
                [{"field": "value", "message": "must be a whole number"}],
            )
        return value.strip()
    return _quote(value)


def _coerce_criteria(items: Sequence[CriterionItem]) -> list[SearchCriterion]:
    criteria: list[SearchCriterion] = []
    errors: list[dict[str, Any]] = []
    for index, item in enumerate(items):
        if isinstance(item, SearchCriterion):
            criteria.append(item)
            continue
        try:
            criteria.append(SearchCriterion.model_validate(item))
        except ValidationError as exc:
            for error in exc.errors():
                field = ".".join(str(part) for part in error["loc"]) or "criterion"
                errors.append({"index": index, "field": field, "message": error["msg"]})
    if errors:
        raise InvalidSearchError(f"{len(errors)} invalid search criteria.", errors)
    return criteria


def criterion_expression(criterion: SearchCriterion) -> str:
    """Compile one criterion into a Trilium search expression."""
    if criterion.type == "noteProperty":
        operator = _OPERATORS[criterion.op]
        value = _property_value(criterion.property, criterion.value or "")
        return f"note.{criterion.property} {operator} {value}"

    sigil = "#" if criterion.type == "label" else "~"
    if criterion.op == "exists":
        return f"{sigil}{criterion.property}"
    if criterion.op == "not_exists":
        return f"{sigil}!{criterion.property}"
    return f"{sigil}{criterion.property} {_OPERATORS[criterion.op]} {_quote(criterion.value or '')}"


def _finalize_group(expressions: list[str], logic: str) -> str:
    if len(expressions) == 1:
        return expressions[0]
    if logic == "OR":
        return f"~({' OR '.join(expressions)})"
    return " ".join(expressions)


def _group_expressions(criteria: Sequence[SearchCriterion]) -> list[str]:
    groups: list[str] = []
    current: list[str] = []
    group_logic = "AND"
    last = len(criteria) - 1
    for index, criterion in enumerate(criteria):
        expression = criterion_expression(criterion)
        # The last criterion has nothing to join with, so its logic is ignored
        logic = None if index == last else criterion.logic
        if not current or logic is None or logic == group_logic:
            current.append(expression)
            if logic is not None:
                group_logic = logic
        else:
            groups.append(_finalize_group(current, group_logic))
            current = [expression]
            group_logic = logic
    if current:
        groups.append(_finalize_group(current, group_logic))
    return groups


def _summarize(note: dict[str, Any]) -> dict[str, Any]:
    return {key: note[key] for key in SEARCH_RESULT_FIELDS if key in note}


def _modified(note: dict[str, Any]) -> str:
    # utcDateModified sorts correctly as text; dateModified carries a local offset
    return note.get("utcDateModified") or note.get("dateModified") or ""


def _rank(notes: list[dict[str, Any]], name: str, prefer_exact: bool = True) -> list[dict[str, Any]]:
    """Order candidates: exact title match, then book notes, then most recent."""
    lowered = name.lower()
    by_recency = sorted(notes, key=_modified, reverse=True)
    return sorted(
        by_recency,
        key=lambda note: (
            prefer_exact and (note.get("title") or "").lower() != lowered,
            note.get("type") != "book",
        ),
    )


# ==============================================================================
# SEARCH OPERATIONS
# ==============================================================================


def build_search_query(
    text: Optional[str] = None,
    criteria: Optional[Sequence[CriterionItem]] = None,
    limit: Optional[int] = None,
) -> str:
    """Compile full-text keywords and structured criteria into one query.

    Args:
        text: Full-text keywords, placed first.
        criteria: Structured conditions, ANDed with the text.
        limit: Optional result limit appended as ``limit N``.

    Raises:
        InvalidSearchError: If nothing to search for was given, or a
            criterion is malformed.
    """
    parts: list[str] = []
    if text and text.strip():
        parts.append(text.strip())
    if criteria:
        parts.extend(_group_expressions(_coerce_criteria(criteria)))
    if not parts:
        raise InvalidSearchError(
            "Search requires 'text' or at least one search criterion.",
            [{"field": "text", "message": "provide text or search_criteria"}],
        )

    query = " ".join(parts)
    if limit is not None:
        query += f" limit {int(limit)}"
    return query


def search_notes(
    client: TriliumClient,
    text: Optional[str] = None,
    criteria: Optional[Sequence[CriterionItem]] = None,
    limit: Optional[int] = None,
) -> dict[str, Any]:
    """Search notes by full text and/or structured criteria.

    Plain keyword searches without a limit use Trilium's fast search (titles
    and attributes only); anything else searches content too. Archived notes
    are included.

    Returns:
        A dictionary with the compiled ``query``, the result ``count`` and the
        ``results`` trimmed to identifying metadata and attributes.
    """
    query = build_search_query(text, criteria, limit)
    fast_search = bool(text) and not criteria and limit is None
    logger.debug("Searching notes: %s (fast=%s)", query, fast_search)
    notes = client.search_notes(query, fast_search=fast_search)
    return {
        "query": query,
        "count": len(notes),
        "results": [_summarize(note) for note in notes],
    }


def resolve_note_id(
    client: TriliumClient,
    note_name: str,
    exact_match: bool = False,
    max_results: int = DEFAULT_RESOLVE_RESULTS,
    auto_select: bool = False,
) -> dict[str, Any]:
    """Find the note ID for a title.

    Candidates are ranked exact title match first (case-insensitive), then
    book notes, then most recently modified. With several candidates and
    ``auto_select`` off, no ID is chosen and ``requires_user_choice`` is set.

    Returns:
        ``note_id`` and ``title`` of the chosen note (``None`` when none was
        chosen), ``found``, the total number of ``matches`` and up to
        ``max_results`` ``top_matches``. ``next_steps`` explains what to do
        when nothing matched.

    Raises:
        InvalidSearchError: If ``note_name`` is empty.
    """
    name = note_name.strip()
    if not name:
        raise InvalidSearchError(
            "Note name must be provided.",
            [{"field": "note_name", "message": "cannot be empty"}],
        )

    criterion = SearchCriterion(
        property="title",
        type="noteProperty",
        op="=" if exact_match else "contains",
        value=name,
    )
    notes = client.search_notes(build_search_query(criteria=[criterion]), fast_search=False)
    if not notes:
        return {
            "note_id": None,
            "title": None,
            "found": False,
            "matches": 0,
            "next_steps": (
                f"No note title matches '{name}'. Try search_notes(text='{name}') to "
                "search titles and content."
            ),
        }

    ranked = _rank(notes, name, prefer_exact=not exact_match)
    top_matches = [
        {
            "note_id": note["noteId"],
            "title": note.get("title"),
            "type": note.get("type"),
            "date_modified": note.get("dateModified"),
        }
        for note in ranked[:max_results]
    ]

    if len(notes) > 1 and not auto_select:
        logger.info("Title '%s' matched %d notes; asking for a choice", name, len(notes))
        return {
            "note_id": None,
            "title": None,
            "found": True,
            "matches": len(notes),
            "requires_user_choice": True,
            "top_matches": top_matches,
        }

    best = ranked[0]
    return {
        "note_id": best["noteId"],
        "title": best.get("title"),
        "found": True,
        "matches": len(notes),
        "requires_user_choice": False,
        "top_matches": top_matches,
    }
