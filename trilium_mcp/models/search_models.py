"""Pydantic input models for search and note resolution.

This module defines input models for:
- One search criterion (label, relation or note property)
- Search notes by text and/or structured criteria
- Resolve a note title to a note ID
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from trilium_mcp.constants import (
    DEFAULT_RESOLVE_RESULTS,
    MAX_RESOLVE_RESULTS,
    MAX_SEARCH_LIMIT,
)

CriterionType = Literal["label", "relation", "noteProperty"]
CriterionOperator = Literal[
    "exists",
    "not_exists",
    "=",
    "!=",
    ">",
    "<",
    ">=",
    "<=",
    "contains",
    "starts_with",
    "ends_with",
]

NOTE_PROPERTIES = frozenset(
    {
        "noteId",
        "title",
        "content",
        "type",
        "mime",
        "isArchived",
        "isProtected",
        "dateCreated",
        "dateModified",
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
HIERARCHY_PREFIXES = ("parents.", "children.", "ancestors.")


class SearchCriterion(BaseModel):
    """One condition of a structured search.

    ``logic`` joins this criterion with the NEXT one; consecutive criteria
    sharing a logic form one group.

    Examples:
        >>> SearchCriterion(property="todo", type="label", op="exists")
        >>> SearchCriterion(property="template.title", type="relation", op="=", value="Board")
        >>> SearchCriterion(property="type", type="noteProperty", op="=", value="code")
    """

    property: str = Field(
        min_length=1,
        description=(
            "Label name, relation name (optionally with a path such as 'template.title') "
            "or note property ('type', 'mime', 'title', 'isArchived', 'parents.noteId', ...)"
        ),
    )
    type: CriterionType = Field(description="'label' (#), 'relation' (~) or 'noteProperty' (note.)")
    op: CriterionOperator = Field(
        "exists",
        description="Comparison; 'exists'/'not_exists' apply to labels and relations only",
    )
    value: Optional[str] = Field(
        None,
        description="Value to compare against; not used by exists/not_exists",
    )
    logic: Literal["AND", "OR"] = Field(
        "AND",
        description="How this criterion combines with the next one",
    )

    @field_validator("property")
    @classmethod
    def validate_property(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned or any(char.isspace() for char in cleaned):
            raise ValueError(f"property must be a single word without whitespace. Got: '{v}'")
        return cleaned

    @model_validator(mode="after")
    def validate_operator(self) -> "SearchCriterion":
        presence = self.op in ("exists", "not_exists")
        if self.type == "noteProperty":
            if presence:
                raise ValueError(
                    f"Operator '{self.op}' only applies to labels and relations; "
                    "note properties need a comparison such as '=' or 'contains'."
                )
            if self.property not in NOTE_PROPERTIES and not self.property.startswith(
                HIERARCHY_PREFIXES
            ):
                raise ValueError(
                    f"Unknown note property '{self.property}'. Use one of: "
                    f"{', '.join(sorted(NOTE_PROPERTIES))}, or a hierarchy path such as "
                    "'parents.noteId' or 'ancestors.title'."
                )
        if not presence and self.value is None:
            raise ValueError(f"Operator '{self.op}' requires a value.")
        return self


class SearchNotesInput(BaseModel):
    """Input model for search_notes tool.

    Full-text search, structured criteria, or both. Criteria are ANDed with
    the text.

    Examples:
        >>> SearchNotesInput(text="kubernetes")
        >>> SearchNotesInput(search_criteria=[{"property": "todo", "type": "label"}], limit=20)
    """

    text: Optional[str] = Field(
        None,
        description="Full-text keywords matched against titles and content",
    )
    search_criteria: Optional[list[SearchCriterion]] = Field(
        None,
        description="Structured conditions on labels, relations and note properties",
    )
    limit: Optional[int] = Field(
        None,
        ge=1,
        le=MAX_SEARCH_LIMIT,
        description="Maximum number of results",
    )

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @model_validator(mode="after")
    def validate_has_query(self) -> "SearchNotesInput":
        if not self.text and not self.search_criteria:
            raise ValueError("Provide 'text', 'search_criteria', or both.")
        return self

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"text": "docker compose"},
                {
                    "search_criteria": [
                        {"property": "type", "type": "noteProperty", "op": "=", "value": "code"},
                        {"property": "mime", "type": "noteProperty", "op": "=", "value": "text/x-python"},
                    ],
                    "limit": 10,
                },
            ]
        }


class ResolveNoteInput(BaseModel):
    """Input model for resolve_note_id tool.

    Finds a note ID from a title. With several matches the caller is asked to
    choose unless ``auto_select`` is set.

    Examples:
        >>> ResolveNoteInput(note_name="Projects")
        >>> ResolveNoteInput(note_name="Weekly Review", exact_match=True, auto_select=True)
    """

    note_name: str = Field(min_length=1, description="Title, or part of a title, to look up")
    exact_match: bool = Field(False, description="Require the whole title to match")
    max_results: int = Field(
        DEFAULT_RESOLVE_RESULTS,
        ge=1,
        le=MAX_RESOLVE_RESULTS,
        description="How many candidates to return in top_matches",
    )
    auto_select: bool = Field(
        False,
        description="Pick the best match instead of asking when several notes match",
    )

    @field_validator("note_name")
    @classmethod
    def validate_note_name(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("note_name cannot be empty. Provide a title to look up.")
        return cleaned

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"note_name": "Projects"},
                {"note_name": "Weekly Review", "exact_match": True, "auto_select": True},
            ]
        }
