"""
Test Flask editor API - sessions, commands, preview, operators

Run with: python tests/test_app.py
"""

import unittest
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app


class TestEditorAPI(unittest.TestCase):

    def setUp(self):
        self.app = create_app({'TESTING': True, 'MAX_SESSIONS': 3})
        self.client = self.app.test_client()

    def open_session(self, form=None):
        body = {'form': form} if form is not None else {}
        response = self.client.post('/api/sessions', json=body)
        self.assertEqual(response.status_code, 201)
        return response.get_json()

    def send(self, session_id, command_type, payload=None):
        return self.client.post(
            f'/api/sessions/{session_id}/commands',
            json={'type': command_type, 'payload': payload},
        )

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def test_open_session(self):
        data = self.open_session()

        self.assertTrue(data['success'])
        self.assertEqual(len(data['form']['pages']), 1)
        self.assertFalse(data['can_undo'])
        self.assertFalse(data['has_unsaved_changes'])
        self.assertIn(data['session_id'], self.app.extensions['form_sessions'])

    def test_open_session_with_seed(self):
        seed = {
            'id': 'form-seed',
            'name': 'Seeded',
            'pages': [{'id': 'p1', 'title': 'One', 'fieldIds': ['f1']}],
            'fields': {'f1': {'id': 'f1', 'type': 'email', 'name': 'email'}},
        }
        data = self.open_session(seed)

        self.assertEqual(data['form']['id'], 'form-seed')
        self.assertEqual(data['form']['pages'][0]['fieldIds'], ['f1'])

    def test_invalid_seed_rejected(self):
        response = self.client.post('/api/sessions', json={'form': ['nope']})

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.get_json()['success'])

    def test_wrongly_typed_seed_takes_defaults(self):
        for seed in ({'fields': ['x']}, {'mode': []}):
            data = self.open_session(seed)
            self.assertEqual(data['form']['fields'], {})
            self.assertEqual(data['form']['mode'], 'single_page')

    def test_session_limit(self):
        for _ in range(3):
            self.open_session()
        response = self.client.post('/api/sessions', json={})

        self.assertEqual(response.status_code, 429)

    def test_get_and_close_session(self):
        session_id = self.open_session()['session_id']

        self.assertEqual(self.client.get(f'/api/sessions/{session_id}').status_code, 200)
        self.assertEqual(self.client.delete(f'/api/sessions/{session_id}').status_code, 200)
        self.assertEqual(self.client.get(f'/api/sessions/{session_id}').status_code, 404)

    def test_unknown_session(self):
        response = self.send('missing', 'UNDO')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {'success': False, 'error': 'Session not found'})

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def test_add_field_then_undo(self):
        session_id = self.open_session()['session_id']

        added = self.send(session_id, 'ADD_FIELD', {'fieldType': 'email', 'pageIndex': 0}).get_json()
        self.assertTrue(added['applied'])
        self.assertEqual(added['command_type'], 'AddField')
        self.assertTrue(added['can_undo'])
        field_id = added['form']['pages'][0]['fieldIds'][0]
        self.assertEqual(added['selected_field_id'], field_id)
        self.assertEqual(added['form']['fields'][field_id]['name'], 'email')

        undone = self.send(session_id, 'UNDO').get_json()
        self.assertTrue(undone['can_redo'])
        self.assertEqual(undone['form']['fields'], {})

    def test_stale_command_is_not_applied(self):
        session_id = self.open_session()['session_id']
        response = self.send(session_id, 'REMOVE_FIELD', {'fieldId': 'ghost'})

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.get_json()['applied'])

    def test_non_string_field_id_rejected(self):
        session_id = self.open_session()['session_id']
        response = self.send(session_id, 'REMOVE_FIELD', {'fieldId': []})

        self.assertEqual(response.status_code, 400)
        self.assertIn('fieldId', response.get_json()['error'])

        response = self.send(session_id, 'REORDER_FIELDS', {'pageIndex': 0, 'fieldIds': [[1]]})
        self.assertEqual(response.status_code, 400)

    def test_unknown_command_type(self):
        session_id = self.open_session()['session_id']
        response = self.send(session_id, 'EXPLODE')

        self.assertEqual(response.status_code, 400)
        self.assertIn('EXPLODE', response.get_json()['error'])

    def test_mark_saved(self):
        session_id = self.open_session()['session_id']
        self.send(session_id, 'UPDATE_FORM_NAME', {'name': 'Referral'})

        saved = self.send(session_id, 'MARK_SAVED').get_json()
        self.assertFalse(saved['has_unsaved_changes'])
        self.assertEqual(saved['form']['name'], 'Referral')

    # -------------------------------------------------------------------------
    # Preview
    # -------------------------------------------------------------------------

    def test_preview_conditional_field(self):
        session_id = self.open_session()['session_id']
        age = self.send(session_id, 'ADD_FIELD', {'fieldType': 'number_entry'}).get_json()
        age_id = age['selected_field_id']
        note = self.send(session_id, 'ADD_FIELD', {'fieldType': 'short_text'}).get_json()
        note_id = note['selected_field_id']

        self.send(session_id, 'UPDATE_FIELD', {
            'fieldId': note_id,
            'updates': {
                'conditionalVisibility': {
                    'combinator': 'and',
                    'children': [{'targetFieldId': age_id, 'operator': 'greater_than', 'value': 18}],
                },
            },
        })

        url = f'/api/sessions/{session_id}/preview'
        hidden = self.client.post(url, json={'values': {age_id: '17'}}).get_json()
        self.assertEqual(hidden['visible_field_ids'], [age_id])

        shown = self.client.post(url, json={'values': {age_id: '19'}}).get_json()
        self.assertEqual(shown['visible_field_ids'], [age_id, note_id])

        by_name = self.client.post(url, json={'answers': {'number': 30}}).get_json()
        self.assertEqual(by_name['visible_field_ids'], [age_id, note_id])

    def test_preview_ignores_non_int_page_index(self):
        session_id = self.open_session()['session_id']
        field_id = self.send(session_id, 'ADD_FIELD', {'fieldType': 'email'}).get_json()['selected_field_id']

        url = f'/api/sessions/{session_id}/preview'
        for page_index in ('0', True, [0]):
            response = self.client.post(url, json={'values': {}, 'page_index': page_index})
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.get_json()['visible_field_ids'], [field_id])

        out_of_range = self.client.post(url, json={'page_index': 5}).get_json()
        self.assertEqual(out_of_range['visible_field_ids'], [])

    def test_preview_with_malformed_condition_target(self):
        seed = {
            'pages': [{'id': 'p1', 'title': 'One', 'fieldIds': ['f1', 'f2']}],
            'fields': {
                'f1': {'type': 'email', 'name': 'email'},
                'f2': {
                    'type': 'short_text',
                    'name': 'note',
                    'conditionalVisibility': {
                        'combinator': 'and',
                        'children': [{'targetFieldId': ['f1'], 'operator': 'equals', 'value': 'x'}],
                    },
                },
            },
        }
        session_id = self.open_session(seed)['session_id']

        response = self.client.post(f'/api/sessions/{session_id}/preview', json={'values': {'f1': 'x'}})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['visible_field_ids'], ['f1'])

    def test_preview_non_object_body(self):
        session_id = self.open_session()['session_id']
        response = self.client.post(f'/api/sessions/{session_id}/preview', json=['x'])

        self.assertEqual(response.status_code, 200)

    # -------------------------------------------------------------------------
    # Operators
    # -------------------------------------------------------------------------

    def test_operators_for_type(self):
        data = self.client.get('/api/operators/accept_terms').get_json()

        self.assertEqual([op['value'] for op in data['operators']], ['is_checked', 'is_not_checked'])
        self.assertEqual(data['operators'][0]['label'], 'is checked')
        self.assertFalse(data['operators'][0]['requires_value'])

    def test_operators_unknown_type(self):
        response = self.client.get('/api/operators/hologram')
        self.assertEqual(response.status_code, 404)


if __name__ == '__main__':
    unittest.main(verbosity=2)
