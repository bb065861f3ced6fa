"""
Form Editor Session - explicit state container for one open form

Responsibilities:
- Own the single live FormBuilderState of an editor session
- Route every change through form_reducer.reduce (one dispatch function)
- Answer the outbound queries renderers and the condition builder need

Design principles:
- No globals: callers hold the session by reference
- The session only swaps its state reference; states are immutable
- Dispatches are serialized by the caller (single event loop)
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from form_builder.contracts import FormDefinition
from form_builder.core import condition_evaluator
from form_builder.core.form_reducer import FormBuilderState, create_initial_state, reduce
from form_builder.results import DispatchResult
from form_builder.serialization import form_from_json, form_to_json

logger = logging.getLogger(__name__)


class FormEditorSession:
    """
    Editor session over one form document.

    Example:
        session = FormEditorSession()
        session.dispatch(AddField(field_type='email', page_index=0))
        session.can_undo
        # True
    """

    def __init__(self, initial_form: Optional[Union[FormDefinition, Dict[str, Any]]] = None):
        """
        Open a session.

        Args:
            initial_form: Previously saved document (FormDefinition or its
                JSON dict) used as seed; None for a new default document.
                A structurally odd seed is normalized, not rejected.

        Raises:
            ValueError: If initial_form is neither a FormDefinition nor a dict
        """
        if initial_form is not None and not isinstance(initial_form, FormDefinition):
            initial_form = form_from_json(initial_form)

        self._state = create_initial_state(initial_form)
        logger.info(
            f"Editor session opened for form {self._state.form.id} "
            f"({len(self._state.form.pages)} pages, {len(self._state.form.fields)} fields)"
        )

    # ========================
    # Commands
    # ========================

    def dispatch(self, command: Any) -> DispatchResult:
        """
        Apply one command.

        Args:
            command: Any command from form_builder.commands

        Returns:
            DispatchResult: applied=False when the command was a no-op
        """
        command_type = type(command).__name__
        new_state = reduce(self._state, command)
        applied = new_state is not self._state
        self._state = new_state

        if applied:
            logger.debug(f"Applied {command_type} (undo={len(new_state.undo_stack)}, redo={len(new_state.redo_stack)})")
        else:
            logger.info(f"{command_type} had no effect")

        return DispatchResult(
            command_type=command_type,
            applied=applied,
            can_undo=new_state.can_undo,
            can_redo=new_state.can_redo,
            has_unsaved_changes=new_state.has_unsaved_changes,
        )

    # ========================
    # Queries
    # ========================

    @property
    def state(self) -> FormBuilderState:
        return self._state

    @property
    def form(self) -> FormDefinition:
        return self._state.form

    @property
    def can_undo(self) -> bool:
        return self._state.can_undo

    @property
    def can_redo(self) -> bool:
        return self._state.can_redo

    def should_show_field(self, field_id: str, values: Mapping[str, Any]) -> bool:
        """Visibility of one field; False for unknown field ids."""
        field = self._state.form.fields.get(field_id)
        if field is None:
            return False
        return condition_evaluator.should_show_field(field, values)

    def visible_field_ids(self, values: Mapping[str, Any], page_index: Optional[int] = None) -> List[str]:
        return condition_evaluator.visible_field_ids(self._state.form, values, page_index)

    def export_form(self) -> Dict[str, Any]:
        """
        Current document as a JSON-safe dict for the persistence collaborator.

        Does not clear the dirty flag; dispatch MarkSaved once stored.
        """
        return form_to_json(self._state.form)
