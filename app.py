"""
Flask Web Application for the Form Builder

JSON endpoints hosting editor sessions: the browser-side builder sends
commands here and asks for live-preview visibility.
"""

from flask import Flask, jsonify, request
import logging

from form_builder.core.editor_session import FormEditorSession
from form_builder.core.condition_evaluator import answers_by_field_id
from form_builder.serialization import command_from_json
from form_builder.utils.field_registry import (
    get_field_metadata,
    get_operator_label,
    get_operators_for_field_type,
    operator_requires_value,
)
from form_builder.utils.helpers import generate_session_id

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'SECRET_KEY': 'form-builder-secret-key',
    'MAX_SESSIONS': 100,
}


def create_app(config=None):
    """
    Application factory.

    Args:
        config (dict): Overrides for DEFAULT_CONFIG (e.g. TESTING, MAX_SESSIONS)

    Returns:
        Flask: Configured application
    """
    app = Flask(__name__)
    app.config.update(DEFAULT_CONFIG)
    if config:
        app.config.update(config)

    # Open editor sessions, keyed by session id
    app.extensions['form_sessions'] = {}

    register_routes(app)
    logger.info("Form builder app created")
    return app


def _sessions(app):
    return app.extensions['form_sessions']


def _error(message, status):
    return jsonify({
        'success': False,
        'error': message
    }), status


def _session_payload(session_id, session):
    state = session.state
    return {
        'success': True,
        'session_id': session_id,
        'form': session.export_form(),
        'selected_field_id': state.selected_field_id,
        'selected_page_index': state.selected_page_index,
        'can_undo': state.can_undo,
        'can_redo': state.can_redo,
        'has_unsaved_changes': state.has_unsaved_changes
    }


def register_routes(app):
    """Attach API routes to app"""

    @app.route('/api/sessions', methods=['POST'])
    def open_session():
        """Open an editor session, optionally seeded with a saved form"""
        sessions = _sessions(app)
        if len(sessions) >= app.config['MAX_SESSIONS']:
            return _error('Too many open sessions', 429)

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        seed = data.get('form')

        try:
            session = FormEditorSession(seed)
        except ValueError as e:
            return _error(str(e), 400)

        session_id = generate_session_id()
        sessions[session_id] = session
        logger.info(f"Session {session_id} opened")
        return jsonify(_session_payload(session_id, session)), 201

    @app.route('/api/sessions/<session_id>', methods=['GET'])
    def get_session(session_id):
        """Current form and history flags"""
        session = _sessions(app).get(session_id)
        if session is None:
            return _error('Session not found', 404)
        return jsonify(_session_payload(session_id, session))

    @app.route('/api/sessions/<session_id>', methods=['DELETE'])
    def close_session(session_id):
        """End an editor session (state is discarded)"""
        session = _sessions(app).pop(session_id, None)
        if session is None:
            return _error('Session not found', 404)
        logger.info(f"Session {session_id} closed")
        return jsonify({'success': True})

    @app.route('/api/sessions/<session_id>/commands', methods=['POST'])
    def dispatch_command(session_id):
        """Dispatch one builder command"""
        session = _sessions(app).get(session_id)
        if session is None:
            return _error('Session not found', 404)

        try:
            command = command_from_json(request.get_json(silent=True))
        except ValueError as e:
            logger.warning(f"Session {session_id}: rejected command: {e}")
            return _error(str(e), 400)

        result = session.dispatch(command)
        payload = _session_payload(session_id, session)
        payload['applied'] = result.applied
        payload['command_type'] = result.command_type
        return jsonify(payload)

    @app.route('/api/sessions/<session_id>/preview', methods=['POST'])
    def preview(session_id):
        """Visible field ids for the given answers (live preview / test panel)"""
        session = _sessions(app).get(session_id)
        if session is None:
            return _error('Session not found', 404)

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        values = data.get('values')
        if values is None and isinstance(data.get('answers'), dict):
            values = answers_by_field_id(session.form, data['answers'])
        if not isinstance(values, dict):
            values = {}

        page_index = data.get('page_index')
        if not isinstance(page_index, int) or isinstance(page_index, bool):
            page_index = None
        return jsonify({
            'success': True,
            'visible_field_ids': session.visible_field_ids(values, page_index)
        })

    @app.route('/api/operators/<field_type>', methods=['GET'])
    def operators(field_type):
        """Legal condition operators for a target field type"""
        if get_field_metadata(field_type) is None:
            return _error(f'Unknown field type: {field_type}', 404)

        return jsonify({
            'success': True,
            'field_type': field_type,
            'operators': [
                {
                    'value': op.value,
                    'label': get_operator_label(op),
                    'requires_value': operator_requires_value(op)
                }
                for op in get_operators_for_field_type(field_type)
            ]
        })


if __name__ == '__main__':
    app = create_app()

    print("\n" + "="*60)
    print("FORM BUILDER - EDITOR API")
    print("="*60)
    print("\nServer starting on http://localhost:5000")
    print("\nPress Ctrl+C to stop the server")
    print("="*60 + "\n")

    app.run(debug=False, host='0.0.0.0', port=5000)
