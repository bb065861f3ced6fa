"""
Test Editor Session - dispatch results, queries, export

Run with: python tests/test_editor_session.py
"""

import unittest
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from form_builder.commands import AddField, MarkSaved, RemoveField, Undo, UpdateField
from form_builder.contracts import Combinator, ConditionGroup, FieldCondition
from form_builder.core.editor_session import FormEditorSession
from form_builder.results import DispatchResult


class TestEditorSession(unittest.TestCase):

    def setUp(self):
        self.session = FormEditorSession()

    def test_new_session_is_clean(self):
        self.assertFalse(self.session.can_undo)
        self.assertFalse(self.session.can_redo)
        self.assertEqual(len(self.session.form.pages), 1)
        self.assertFalse(self.session.state.has_unsaved_changes)

    def test_dispatch_reports_effect(self):
        result = self.session.dispatch(AddField("email", 0))

        self.assertIsInstance(result, DispatchResult)
        self.assertEqual(result.command_type, "AddField")
        self.assertTrue(result.applied)
        self.assertTrue(result.can_undo)
        self.assertFalse(result.can_redo)
        self.assertTrue(result.has_unsaved_changes)

    def test_stale_command_not_applied(self):
        before = self.session.state
        result = self.session.dispatch(RemoveField("missing"))

        self.assertFalse(result.applied)
        self.assertIs(self.session.state, before)

    def test_undo_through_session(self):
        self.session.dispatch(AddField("email"))
        result = self.session.dispatch(Undo())

        self.assertTrue(result.applied)
        self.assertTrue(self.session.can_redo)
        self.assertEqual(self.session.form.fields, {})

    def test_mark_saved(self):
        self.session.dispatch(AddField("email"))
        self.assertTrue(self.session.dispatch(MarkSaved()).applied)
        self.assertFalse(self.session.dispatch(MarkSaved()).applied)

    def test_visibility_queries(self):
        self.session.dispatch(AddField("accept_terms"))
        self.session.dispatch(AddField("short_text"))
        terms_id, text_id = self.session.form.pages[0].field_ids

        group = ConditionGroup(
            id="g",
            combinator=Combinator.AND,
            children=(FieldCondition(id="c", target_field_id=terms_id, operator="is_checked"),),
        )
        self.session.dispatch(UpdateField(text_id, {"conditional_visibility": group}))

        self.assertFalse(self.session.should_show_field(text_id, {}))
        self.assertTrue(self.session.should_show_field(text_id, {terms_id: True}))
        self.assertFalse(self.session.should_show_field("missing", {}))
        self.assertEqual(self.session.visible_field_ids({}), [terms_id])
        self.assertEqual(self.session.visible_field_ids({terms_id: True}, page_index=0), [terms_id, text_id])

    def test_export_form(self):
        self.session.dispatch(AddField("email"))
        exported = self.session.export_form()

        field_id = self.session.form.pages[0].field_ids[0]
        self.assertEqual(exported["pages"][0]["fieldIds"], [field_id])
        self.assertEqual(exported["fields"][field_id]["type"], "email")
        self.assertTrue(self.session.state.has_unsaved_changes, "Export does not clear the dirty flag")


class TestSessionSeed(unittest.TestCase):

    def test_seed_from_dict_is_normalized(self):
        seed = {
            "id": "form-seed",
            "name": "Seeded",
            "mode": "wizard",
            "pages": [{"id": "p1", "title": "One", "fieldIds": ["f1", "ghost"]}],
            "fields": {
                "f1": {"id": "f1", "type": "email", "name": "email", "label": "Email"},
                "f2": {"id": "f2", "type": "short_text", "name": "email", "label": "Other"},
            },
        }
        session = FormEditorSession(seed)

        self.assertEqual(session.form.id, "form-seed")
        self.assertEqual(session.form.mode.value, "multi_step")
        self.assertEqual(session.form.pages[0].field_ids, ("f1", "f2"))
        self.assertEqual(session.form.fields["f2"].name, "email_1")
        self.assertFalse(session.can_undo)

    def test_seed_must_be_object(self):
        with self.assertRaises(ValueError):
            FormEditorSession("not a form")


if __name__ == '__main__':
    unittest.main(verbosity=2)
