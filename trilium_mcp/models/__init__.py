"""Pydantic input models for MCP tool validation.

Each model is the input schema of one MCP tool, with field-level validation
and descriptive error messages raised before any call reaches Trilium.

Architecture:
- base: BaseNoteInput for tools addressing an existing note
- note_models: create/get/update/append/delete note inputs
- attribute_models: attribute specs and the manage_attributes input
- search_models: search criteria, search and resolve inputs
"""

from .base import BaseNoteInput
from .note_models import (
    CreateNoteInput,
    GetNoteInput,
    UpdateNoteInput,
    AppendNoteInput,
    DeleteNoteInput,
)
from .attribute_models import (
    AttributeSpec,
    AttributeInput,
    ManageAttributesInput,
)
from .search_models import (
    SearchCriterion,
    SearchNotesInput,
    ResolveNoteInput,
)

__all__ = [
    "BaseNoteInput",
    "CreateNoteInput",
    "GetNoteInput",
    "UpdateNoteInput",
    "AppendNoteInput",
    "DeleteNoteInput",
    "AttributeSpec",
    "AttributeInput",
    "ManageAttributesInput",
    "SearchCriterion",
    "SearchNotesInput",
    "ResolveNoteInput",
]
