"""
Flask web application serving one editable tournament bracket.
"""
import os
import logging
import yaml
from filelock import FileLock
from flask import Flask, request, jsonify, Response

from brackets.errors import BracketConfigError, BracketEditError
from brackets.models import BracketOptions
from brackets.session import BracketSession, BracketState

app = Flask(__name__)
app.logger.setLevel(logging.INFO)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('BRACKET_DATA_DIR', os.path.join(BASE_DIR, 'data'))

# Paths to data files
BRACKET_FILE = os.path.join(DATA_DIR, 'bracket.yaml')
SETTINGS_FILE = os.path.join(DATA_DIR, 'settings.yaml')

# Errors caused by the request, reported back as 400
CLIENT_ERRORS = (BracketConfigError, BracketEditError)


def _data_lock() -> FileLock:
    """Lock serializing read-modify-write cycles on the data directory."""
    os.makedirs(DATA_DIR, exist_ok=True)
    return FileLock(os.path.join(DATA_DIR, '.lock'), timeout=10)


def get_default_settings():
    """Return default bracket settings."""
    return BracketOptions().to_dict()


def get_default_bracket():
    """Return an empty single elimination bracket for two teams."""
    return {'teams': [[None, None]], 'results': None}


def load_settings():
    """Load bracket settings from YAML file."""
    if not os.path.exists(SETTINGS_FILE):
        return get_default_settings()
    with open(SETTINGS_FILE, 'r', encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            app.logger.warning(f'Failed to parse {SETTINGS_FILE}: {e}')
            return get_default_settings()
    settings = get_default_settings()
    if data:
        settings.update(data)
    return settings


def save_settings(settings):
    """Save bracket settings to YAML file."""
    os.makedirs(DATA_DIR, exist_ok=True)
    with open(SETTINGS_FILE, 'w', encoding='utf-8') as f:
        yaml.dump(settings, f, default_flow_style=False)


def load_bracket():
    """Load teams and results from YAML file."""
    if not os.path.exists(BRACKET_FILE):
        return get_default_bracket()
    with open(BRACKET_FILE, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not data:
        return get_default_bracket()
    if 'teams' not in data:
        data['teams'] = get_default_bracket()['teams']
    if 'results' not in data:
        data['results'] = None
    return data


def save_bracket(data):
    """Save teams and results to YAML file."""
    os.makedirs(DATA_DIR, exist_ok=True)
    with open(BRACKET_FILE, 'w', encoding='utf-8') as f:
        yaml.dump(data, f, default_flow_style=False)


def _on_save(data, user_data):
    save_bracket(data)


def load_session() -> BracketSession:
    """Build a session from the stored bracket; edits are written back as they happen."""
    options = BracketOptions.from_dict(load_settings())
    state = BracketState.from_dict(load_bracket(), options)
    return BracketSession(state, on_save=_on_save)


def _session_payload(session: BracketSession) -> dict:
    return {
        'data': session.data(),
        'view': session.view(),
        'diagnostics': session.diagnostics(),
    }


def _client_error(e):
    app.logger.warning(f'Rejected bracket request: {e}')
    return jsonify({'error': str(e)}), 400


def _apply_edit(edit):
    """Run ``edit(session)`` under the data lock and report the new bracket."""
    with _data_lock():
        try:
            session = load_session()
            edit(session)
        except CLIENT_ERRORS as e:
            return _client_error(e)
        payload = _session_payload(session)
    return jsonify({'success': True, **payload})


@app.route('/api/bracket', methods=['GET'])
def api_bracket():
    """Current bracket data, rendered view and diagnostics."""
    with _data_lock():
        try:
            session = load_session()
        except CLIENT_ERRORS as e:
            return _client_error(e)
        return jsonify(_session_payload(session))


@app.route('/api/bracket/team', methods=['POST'])
def api_set_team():
    """Set or clear the team at one entry position."""
    data = request.get_json(silent=True) or {}
    if 'seed' not in data:
        return jsonify({'error': 'Missing seed'}), 400
    name = data.get('name')
    if isinstance(name, str):
        name = name.strip()

    app.logger.info(f'Setting team at seed {data["seed"]} to {name!r}')
    return _apply_edit(lambda session: session.set_team(data['seed'], name))


@app.route('/api/bracket/score', methods=['POST'])
def api_set_score():
    """Set one side's score of a match."""
    data = request.get_json(silent=True) or {}
    missing = [k for k in ('bracket', 'round', 'match', 'side') if k not in data]
    if missing:
        return jsonify({'error': f'Missing field(s): {", ".join(missing)}'}), 400

    return _apply_edit(lambda session: session.set_score(
        data['bracket'], data['round'], data['match'], data['side'], data.get('score')))


@app.route('/api/bracket/resize', methods=['POST'])
def api_resize():
    """Double or halve the number of team pairs."""
    data = request.get_json(silent=True) or {}
    action = data.get('action')
    if action == 'grow':
        return _apply_edit(lambda session: session.grow())
    if action == 'shrink':
        return _apply_edit(lambda session: session.shrink())
    return jsonify({'error': 'Action must be "grow" or "shrink"'}), 400


@app.route('/api/bracket/type', methods=['POST'])
def api_bracket_type():
    """Switch between single and double elimination."""
    data = request.get_json(silent=True) or {}
    bracket_type = data.get('type')
    if bracket_type == 'double':
        return _apply_edit(lambda session: session.use_double_elimination())
    if bracket_type == 'single':
        return _apply_edit(lambda session: session.use_single_elimination())
    return jsonify({'error': 'Type must be "single" or "double"'}), 400


@app.route('/api/settings/update', methods=['POST'])
def api_update_settings():
    """Change bracket option flags; the bracket is rebuilt with them."""
    changes = request.get_json(silent=True)
    if not isinstance(changes, dict) or not changes:
        return jsonify({'error': 'Expected a JSON object of settings'}), 400

    with _data_lock():
        try:
            session = load_session()
            session.update_options(changes)
        except CLIENT_ERRORS as e:
            return _client_error(e)
        save_settings(session.options.to_dict())
        payload = _session_payload(session)

    app.logger.info(f'Settings updated: {changes}')
    return jsonify({'success': True, 'settings': session.options.to_dict(), **payload})


@app.route('/api/reset', methods=['POST'])
def api_reset():
    """Replace the bracket with an empty one. Settings are kept."""
    with _data_lock():
        try:
            options = BracketOptions.from_dict(load_settings())
            session = BracketSession(BracketState.from_dict(get_default_bracket(), options))
        except CLIENT_ERRORS as e:
            return _client_error(e)
        save_bracket(session.data())
        payload = _session_payload(session)

    app.logger.info('Bracket reset')
    return jsonify({'success': True, **payload})


@app.route('/api/export', methods=['GET'])
def api_export():
    """Download the stored bracket as YAML."""
    with _data_lock():
        data = load_bracket()

    yaml_content = yaml.dump(data, default_flow_style=False, allow_unicode=True)

    return Response(
        yaml_content,
        mimetype='application/x-yaml',
        headers={'Content-Disposition': 'attachment; filename=bracket_export.yaml'}
    )


if __name__ == '__main__':
    app.run(debug=True, port=5000)
