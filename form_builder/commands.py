"""
Command types for the form builder reducer.

Commands are the ONLY way to change an editor session.
No direct mutation. No state poking. Commands only.

Every command is a frozen dataclass naming one discrete transition.
Commands referencing ids that no longer exist are not errors - the
reducer treats them as no-ops.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from form_builder.contracts import FormDefinition, FormMode


# Field commands

@dataclass(frozen=True)
class AddField:
    """
    Create a field of field_type on page_index.

    Inserted immediately after after_field_id if that field is on the
    page, else at the end. Selection follows the new field.
    """
    field_type: str
    page_index: int = 0
    after_field_id: Optional[str] = None


@dataclass(frozen=True)
class RemoveField:
    field_id: str


@dataclass(frozen=True)
class UpdateField:
    """Shallow-merge updates (FieldConfig attribute names) into a field."""
    field_id: str
    updates: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DuplicateField:
    field_id: str


@dataclass(frozen=True)
class ReorderFields:
    """Replace a page's field order; must be a permutation of the current ids."""
    page_index: int
    field_ids: Tuple[str, ...]


@dataclass(frozen=True)
class MoveFieldToPage:
    field_id: str
    target_page_index: int
    target_index: Optional[int] = None


# Page commands

@dataclass(frozen=True)
class AddPage:
    after_index: Optional[int] = None
    title: Optional[str] = None


@dataclass(frozen=True)
class RemovePage:
    page_index: int


@dataclass(frozen=True)
class UpdatePage:
    page_index: int
    updates: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ReorderPages:
    page_ids: Tuple[str, ...]


# Form-level commands

@dataclass(frozen=True)
class SetFormMode:
    mode: FormMode


@dataclass(frozen=True)
class UpdateStyling:
    updates: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateSettings:
    updates: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateFormName:
    name: str


@dataclass(frozen=True)
class UpdateFormDescription:
    description: str


# Session commands (no history entry)

@dataclass(frozen=True)
class SelectField:
    field_id: Optional[str] = None


@dataclass(frozen=True)
class SelectPage:
    page_index: int


@dataclass(frozen=True)
class LoadForm:
    """
    Install a previously saved document as the session seed.

    Clears history. Not dirty.
    """
    form: FormDefinition


@dataclass(frozen=True)
class ResetForm:
    pass


@dataclass(frozen=True)
class Undo:
    pass


@dataclass(frozen=True)
class Redo:
    pass


@dataclass(frozen=True)
class MarkSaved:
    """Clear the dirty flag. No history effect."""
    pass


# Commands that change the document and record history
ContentCommand = (
    AddField | RemoveField | UpdateField | DuplicateField | ReorderFields
    | MoveFieldToPage | AddPage | RemovePage | UpdatePage | ReorderPages
    | SetFormMode | UpdateStyling | UpdateSettings | UpdateFormName
    | UpdateFormDescription
)

# Command union type for type hints
Command = (
    ContentCommand | SelectField | SelectPage | LoadForm | ResetForm
    | Undo | Redo | MarkSaved
)
