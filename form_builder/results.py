"""
Result types returned by FormEditorSession.dispatch()

These are the ONLY return types from the command handler.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class DispatchResult:
    """
    Outcome of one dispatched command.

    Attributes:
        command_type: Name of the dispatched command class
        applied: False when the command was a no-op (stale id, invalid
            index, empty history, already saved)
        can_undo: Undo stack non-empty after the command
        can_redo: Redo stack non-empty after the command
        has_unsaved_changes: Dirty flag after the command
    """
    command_type: str
    applied: bool
    can_undo: bool
    can_redo: bool
    has_unsaved_changes: bool
