"""
Form Reducer - the single state-transition function of the form builder

Responsibilities:
- Apply one command to an editor state, atomically
- Record linear, bounded undo/redo history (snapshot per step)
- Keep the document's referential integrity under every structural edit

Design principles:
- Pure: reduce(state, command) returns a new state, never mutates
- Copy-on-write: untouched pages/fields are shared with the previous
  document; retained snapshots are independent deep copies
- Stale references degrade to a no-op (the SAME state object is returned),
  never an exception
- Branchless history: any new edit clears the redo stack

History protocol for every effective content command:
    1. push deep copy of current document onto undo_stack (cap 50, oldest dropped)
    2. clear redo_stack
    3. install the new document (updated_at refreshed)
    4. mark dirty
"""

import copy
import logging
from dataclasses import dataclass, fields as dataclass_fields, replace
from typing import Any, Callable, Dict, Optional, Tuple

from form_builder.commands import (
    AddField,
    AddPage,
    DuplicateField,
    LoadForm,
    MarkSaved,
    MoveFieldToPage,
    Redo,
    RemoveField,
    RemovePage,
    ReorderFields,
    ReorderPages,
    ResetForm,
    SelectField,
    SelectPage,
    SetFormMode,
    Undo,
    UpdateField,
    UpdateFormDescription,
    UpdateFormName,
    UpdatePage,
    UpdateSettings,
    UpdateStyling,
)
from form_builder.contracts import (
    ConditionGroup,
    FormDefinition,
    FormMode,
    FormPage,
    field_attribute_names,
)
from form_builder.core.condition_evaluator import MAX_NESTING_DEPTH, references_field, strip_self_references
from form_builder.core.document_model import (
    create_default_form,
    create_field,
    create_page,
    generate_unique_name,
    has_too_deep_group,
    normalize_form,
)
from form_builder.utils.field_registry import get_field_metadata
from form_builder.utils.helpers import generate_id, utc_now_iso

logger = logging.getLogger(__name__)

UNDO_HISTORY_LIMIT = 50

# Field attributes UpdateField never touches
_IMMUTABLE_FIELD_KEYS = frozenset({"id", "type"})

# Page attributes UpdatePage may touch; structure goes through field commands
_UPDATABLE_PAGE_KEYS = frozenset({"title", "description"})


@dataclass(frozen=True)
class FormBuilderState:
    """
    Session-only editor state. Never persisted.

    Attributes:
        form: Live document
        selected_field_id: Field open in the config panel (None if none)
        selected_page_index: Page shown on the canvas
        has_unsaved_changes: Dirty flag, cleared by MarkSaved
        undo_stack: Prior documents, oldest first (max UNDO_HISTORY_LIMIT)
        redo_stack: Undone documents, oldest first
    """
    form: FormDefinition
    selected_field_id: Optional[str] = None
    selected_page_index: int = 0
    has_unsaved_changes: bool = False
    undo_stack: Tuple[FormDefinition, ...] = ()
    redo_stack: Tuple[FormDefinition, ...] = ()

    @property
    def can_undo(self) -> bool:
        return len(self.undo_stack) > 0

    @property
    def can_redo(self) -> bool:
        return len(self.redo_stack) > 0


def create_initial_state(form: Optional[FormDefinition] = None) -> FormBuilderState:
    """
    Build editor state from a loaded document (normalized) or a default one.
    """
    if form is None:
        form = create_default_form()
    else:
        form = normalize_form(form)
    return FormBuilderState(form=form)


def reduce(state: FormBuilderState, command: Any) -> FormBuilderState:
    """
    Apply one command.

    Args:
        state: Current editor state
        command: Any command from form_builder.commands

    Returns:
        FormBuilderState: New state, or `state` itself when the command
        was a no-op (stale id, invalid index, empty history, ...)
    """
    command_type = type(command)

    content_handler = _CONTENT_HANDLERS.get(command_type)
    if content_handler is not None:
        edit = content_handler(state, command)
        if edit is None:
            return state
        new_form, selection = edit
        return _commit(state, new_form, selection)

    session_handler = _SESSION_HANDLERS.get(command_type)
    if session_handler is not None:
        return session_handler(state, command)

    logger.warning(f"Unknown command type: {command_type.__name__}")
    return state


# ========================
# History
# ========================

def _push(stack: Tuple[FormDefinition, ...], form: FormDefinition) -> Tuple[FormDefinition, ...]:
    """Append an independent snapshot, trimming the oldest past the cap."""
    return (stack + (copy.deepcopy(form),))[-UNDO_HISTORY_LIMIT:]


def _commit(state: FormBuilderState, new_form: FormDefinition, selection: Dict[str, Any]) -> FormBuilderState:
    return replace(
        state,
        form=replace(new_form, updated_at=utc_now_iso()),
        undo_stack=_push(state.undo_stack, state.form),
        redo_stack=(),
        has_unsaved_changes=True,
        **selection,
    )


def _reconciled_selection(form: FormDefinition, selected_field_id: Optional[str], selected_page_index: int) -> Dict[str, Any]:
    """Drop a selection that no longer exists; clamp the page index."""
    if selected_field_id not in form.fields:
        selected_field_id = None
    selected_page_index = max(0, min(selected_page_index, len(form.pages) - 1))
    return {"selected_field_id": selected_field_id, "selected_page_index": selected_page_index}


def _undo(state: FormBuilderState, command: Undo) -> FormBuilderState:
    if not state.undo_stack:
        return state
    previous = state.undo_stack[-1]
    return replace(
        state,
        form=previous,
        undo_stack=state.undo_stack[:-1],
        redo_stack=_push(state.redo_stack, state.form),
        has_unsaved_changes=True,
        **_reconciled_selection(previous, state.selected_field_id, state.selected_page_index),
    )


def _redo(state: FormBuilderState, command: Redo) -> FormBuilderState:
    if not state.redo_stack:
        return state
    following = state.redo_stack[-1]
    return replace(
        state,
        form=following,
        undo_stack=_push(state.undo_stack, state.form),
        redo_stack=state.redo_stack[:-1],
        has_unsaved_changes=True,
        **_reconciled_selection(following, state.selected_field_id, state.selected_page_index),
    )


# ========================
# Session handlers (no history)
# ========================

def _mark_saved(state: FormBuilderState, command: MarkSaved) -> FormBuilderState:
    if not state.has_unsaved_changes:
        return state
    return replace(state, has_unsaved_changes=False)


def _select_field(state: FormBuilderState, command: SelectField) -> FormBuilderState:
    field_id = command.field_id
    if field_id is not None and field_id not in state.form.fields:
        return state
    if field_id == state.selected_field_id:
        return state
    return replace(state, selected_field_id=field_id)


def _select_page(state: FormBuilderState, command: SelectPage) -> FormBuilderState:
    if not _valid_page_index(state.form, command.page_index):
        return state
    if command.page_index == state.selected_page_index:
        return state
    return replace(state, selected_page_index=command.page_index)


def _load_form(state: FormBuilderState, command: LoadForm) -> FormBuilderState:
    logger.info(f"Loading form {command.form.id} ({len(command.form.fields)} fields)")
    return create_initial_state(command.form)


def _reset_form(state: FormBuilderState, command: ResetForm) -> FormBuilderState:
    return create_initial_state()


# ========================
# Content handlers
#
# Each returns (new_form, selection_updates) or None for a no-op.
# ========================

Edit = Optional[Tuple[FormDefinition, Dict[str, Any]]]


def _valid_page_index(form: FormDefinition, index: Any) -> bool:
    return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < len(form.pages)


def _with_page(pages: Tuple[FormPage, ...], index: int, page: FormPage) -> Tuple[FormPage, ...]:
    return pages[:index] + (page,) + pages[index + 1:]


def _insert_after(ids: Tuple[str, ...], anchor_id: Optional[str], new_id: str) -> Tuple[str, ...]:
    if anchor_id is not None and anchor_id in ids:
        position = ids.index(anchor_id) + 1
        return ids[:position] + (new_id,) + ids[position:]
    return ids + (new_id,)


def _add_field(state: FormBuilderState, command: AddField) -> Edit:
    form = state.form
    if not _valid_page_index(form, command.page_index):
        return None

    new_field = create_field(command.field_type, form.field_names())
    page = form.pages[command.page_index]
    new_page = replace(page, field_ids=_insert_after(page.field_ids, command.after_field_id, new_field.id))

    new_form = replace(
        form,
        pages=_with_page(form.pages, command.page_index, new_page),
        fields={**form.fields, new_field.id: new_field},
    )
    return new_form, {"selected_field_id": new_field.id}


def _remove_field(state: FormBuilderState, command: RemoveField) -> Edit:
    form = state.form
    field_id = command.field_id
    if field_id not in form.fields:
        return None

    pages = tuple(
        replace(page, field_ids=tuple(fid for fid in page.field_ids if fid != field_id))
        if field_id in page.field_ids else page
        for page in form.pages
    )
    fields = {fid: f for fid, f in form.fields.items() if fid != field_id}

    selection = {}
    if state.selected_field_id == field_id:
        selection["selected_field_id"] = None
    return replace(form, pages=pages, fields=fields), selection


def _update_field(state: FormBuilderState, command: UpdateField) -> Edit:
    form = state.form
    existing = form.fields.get(command.field_id)
    if existing is None:
        return None

    allowed = set(field_attribute_names(existing)) - _IMMUTABLE_FIELD_KEYS
    updates = {}
    for key, value in (command.updates or {}).items():
        if key in allowed:
            updates[key] = value
        else:
            logger.debug(f"UpdateField {command.field_id}: ignored key '{key}'")

    if not updates:
        return None

    if "name" in updates:
        name = updates["name"]
        if not isinstance(name, str) or not name.strip():
            name = get_field_metadata(existing.type).default_name
        other_names = [f.name for fid, f in form.fields.items() if fid != existing.id]
        updates["name"] = generate_unique_name(name.strip(), other_names)

    if "conditional_visibility" in updates:
        group = updates["conditional_visibility"]
        if group is not None and not isinstance(group, ConditionGroup):
            logger.warning(f"UpdateField {command.field_id}: conditional_visibility is not a ConditionGroup")
            return None
        if has_too_deep_group(group, MAX_NESTING_DEPTH):
            logger.warning(f"UpdateField {command.field_id}: condition nesting exceeds {MAX_NESTING_DEPTH}")
            return None
        if group is not None and references_field(group, existing.id):
            logger.warning(f"UpdateField {command.field_id}: stripped self-referencing conditions")
            updates["conditional_visibility"] = strip_self_references(group, existing.id)

    if isinstance(updates.get("options"), list):
        updates["options"] = tuple(updates["options"])
    if isinstance(updates.get("style"), dict):
        updates["style"] = dict(updates["style"])

    updated = replace(existing, **updates)
    return replace(form, fields={**form.fields, existing.id: updated}), {}


def _duplicate_field(state: FormBuilderState, command: DuplicateField) -> Edit:
    form = state.form
    source = form.fields.get(command.field_id)
    if source is None:
        return None
    page_index = form.find_page_index(source.id)
    if page_index < 0:
        return None

    clone = replace(
        copy.deepcopy(source),
        id=generate_id("field"),
        name=generate_unique_name(source.name, form.field_names(), suffix="copy"),
        label=f"{source.label} (Copy)",
    )
    page = form.pages[page_index]
    new_page = replace(page, field_ids=_insert_after(page.field_ids, source.id, clone.id))

    new_form = replace(
        form,
        pages=_with_page(form.pages, page_index, new_page),
        fields={**form.fields, clone.id: clone},
    )
    return new_form, {"selected_field_id": clone.id}


def _reorder_fields(state: FormBuilderState, command: ReorderFields) -> Edit:
    form = state.form
    if not _valid_page_index(form, command.page_index):
        return None

    page = form.pages[command.page_index]
    new_order = tuple(command.field_ids)
    if len(new_order) != len(set(new_order)) or set(new_order) != set(page.field_ids):
        logger.warning(f"ReorderFields on page {command.page_index}: order is not a permutation, ignored")
        return None

    new_page = replace(page, field_ids=new_order)
    return replace(form, pages=_with_page(form.pages, command.page_index, new_page)), {}


def _move_field_to_page(state: FormBuilderState, command: MoveFieldToPage) -> Edit:
    form = state.form
    source_index = form.find_page_index(command.field_id)
    if source_index < 0 or not _valid_page_index(form, command.target_page_index):
        return None

    source_page = form.pages[source_index]
    pages = _with_page(
        form.pages,
        source_index,
        replace(source_page, field_ids=tuple(fid for fid in source_page.field_ids if fid != command.field_id)),
    )

    target_page = pages[command.target_page_index]
    target_ids = target_page.field_ids
    position = command.target_index
    if not isinstance(position, int) or isinstance(position, bool):
        position = len(target_ids)
    position = max(0, min(position, len(target_ids)))
    target_ids = target_ids[:position] + (command.field_id,) + target_ids[position:]

    pages = _with_page(pages, command.target_page_index, replace(target_page, field_ids=target_ids))
    return replace(form, pages=pages), {"selected_page_index": command.target_page_index}


def _add_page(state: FormBuilderState, command: AddPage) -> Edit:
    form = state.form
    count = len(form.pages)

    after_index = command.after_index
    if not isinstance(after_index, int) or isinstance(after_index, bool):
        after_index = count - 1
    after_index = max(-1, min(after_index, count - 1))

    title = command.title if isinstance(command.title, str) and command.title else f"Page {count + 1}"
    new_page = create_page(title)

    position = after_index + 1
    pages = form.pages[:position] + (new_page,) + form.pages[position:]
    return replace(form, pages=pages), {"selected_page_index": position}


def _remove_page(state: FormBuilderState, command: RemovePage) -> Edit:
    form = state.form
    if len(form.pages) <= 1 or not _valid_page_index(form, command.page_index):
        return None

    index = command.page_index
    removed = form.pages[index]
    pages = list(form.pages)

    # Fields are appended to the previous page, or to the next one when removing the first
    target_index = index - 1 if index > 0 else 1
    target = pages[target_index]
    pages[target_index] = replace(target, field_ids=target.field_ids + removed.field_ids)
    del pages[index]

    selected = min(state.selected_page_index, len(pages) - 1)
    return replace(form, pages=tuple(pages)), {"selected_page_index": selected}


def _update_page(state: FormBuilderState, command: UpdatePage) -> Edit:
    form = state.form
    if not _valid_page_index(form, command.page_index):
        return None

    updates = {k: v for k, v in (command.updates or {}).items() if k in _UPDATABLE_PAGE_KEYS}
    if not updates:
        return None

    page = replace(form.pages[command.page_index], **updates)
    return replace(form, pages=_with_page(form.pages, command.page_index, page)), {}


def _reorder_pages(state: FormBuilderState, command: ReorderPages) -> Edit:
    form = state.form
    by_id = {page.id: page for page in form.pages}

    ordered = []
    seen = set()
    for page_id in command.page_ids or ():
        if page_id in by_id and page_id not in seen:
            seen.add(page_id)
            ordered.append(by_id[page_id])
    # Pages the caller left out keep their relative order at the end
    ordered.extend(page for page in form.pages if page.id not in seen)

    selected_page_id = form.pages[state.selected_page_index].id if _valid_page_index(form, state.selected_page_index) else None
    selected = next((i for i, page in enumerate(ordered) if page.id == selected_page_id), 0)
    return replace(form, pages=tuple(ordered)), {"selected_page_index": selected}


def _set_form_mode(state: FormBuilderState, command: SetFormMode) -> Edit:
    form = state.form
    try:
        mode = FormMode(command.mode)
    except ValueError:
        logger.warning(f"Unknown form mode: {command.mode!r}")
        return None

    pages = form.pages
    if mode == FormMode.SINGLE_PAGE and len(pages) > 1:
        all_field_ids = tuple(fid for page in pages for fid in page.field_ids)
        pages = (replace(pages[0], field_ids=all_field_ids),)

    return replace(form, mode=mode, pages=pages), {"selected_page_index": 0}


def _merge_dataclass(current, updates: Optional[Dict[str, Any]], label: str):
    allowed = {f.name for f in dataclass_fields(current)}
    applied = {k: v for k, v in (updates or {}).items() if k in allowed}
    ignored = set(updates or {}) - allowed
    if ignored:
        logger.debug(f"{label}: ignored keys {sorted(ignored)}")
    if not applied:
        return None
    return replace(current, **applied)


def _update_styling(state: FormBuilderState, command: UpdateStyling) -> Edit:
    styling = _merge_dataclass(state.form.styling, command.updates, "UpdateStyling")
    if styling is None:
        return None
    return replace(state.form, styling=styling), {}


def _update_settings(state: FormBuilderState, command: UpdateSettings) -> Edit:
    settings = _merge_dataclass(state.form.settings, command.updates, "UpdateSettings")
    if settings is None:
        return None
    return replace(state.form, settings=settings), {}


def _update_form_name(state: FormBuilderState, command: UpdateFormName) -> Edit:
    if command.name == state.form.name:
        return None
    return replace(state.form, name=command.name), {}


def _update_form_description(state: FormBuilderState, command: UpdateFormDescription) -> Edit:
    if command.description == state.form.description:
        return None
    return replace(state.form, description=command.description), {}


_CONTENT_HANDLERS: Dict[type, Callable[[FormBuilderState, Any], Edit]] = {
    AddField: _add_field,
    RemoveField: _remove_field,
    UpdateField: _update_field,
    DuplicateField: _duplicate_field,
    ReorderFields: _reorder_fields,
    MoveFieldToPage: _move_field_to_page,
    AddPage: _add_page,
    RemovePage: _remove_page,
    UpdatePage: _update_page,
    ReorderPages: _reorder_pages,
    SetFormMode: _set_form_mode,
    UpdateStyling: _update_styling,
    UpdateSettings: _update_settings,
    UpdateFormName: _update_form_name,
    UpdateFormDescription: _update_form_description,
}

_SESSION_HANDLERS: Dict[type, Callable[[FormBuilderState, Any], FormBuilderState]] = {
    Undo: _undo,
    Redo: _redo,
    MarkSaved: _mark_saved,
    SelectField: _select_field,
    SelectPage: _select_page,
    LoadForm: _load_form,
    ResetForm: _reset_form,
}

