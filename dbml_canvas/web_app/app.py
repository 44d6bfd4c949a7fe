# -*- coding: utf-8 -*-
"""
DBML Canvas Web Application - Flask Backend

The editor and canvas front-ends talk to this API: text changes and graph
gestures go to a per-editor DiagramSession, conversions are stateless.
"""
import io
import logging
import os
import tempfile
import threading
import time
import uuid

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS

from ..core import (
    DEFAULT_DBML, DiagramSession, SQL_DIALECTS,
    generate_json, generate_sql, import_content, parse_dbml,
)
from ..core.doc_generator import generate_docx, generate_html
from ..core.project_store import AutoSaver, ProjectStore
from ..core.share import build_embed_code, build_share_link, decode_diagram
from ..core.visualization import IMAGE_FORMATS, render_diagram_image
from .app_config import config

app = Flask(__name__)
CORS(app)
app.config.update(config.to_flask())

logging.basicConfig(
    level=getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO),
    format=app.config['LOG_FORMAT'],
)

# Live editor sessions, in memory only: id -> {'session', 'lock', 'last_seen'}
sessions = {}
sessions_lock = threading.Lock()

_autosavers = {}


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _dbml_field(data, default=''):
    """The request's DBML text, or None when it is not a string"""
    value = data.get('dbml', default)
    return value if isinstance(value, str) else None


def _invalid_dbml():
    return jsonify({'error': 'dbml must be a string'}), 400


def _project_store():
    return ProjectStore(app.config['PROJECTS_DIR'])


def _autosaver():
    path = app.config['AUTOSAVE_PATH']
    if path not in _autosavers:
        _autosavers[path] = AutoSaver(path)
    return _autosavers[path]


def cleanup_idle_sessions():
    """
    Drop sessions idle longer than SESSION_TTL, then the least recently used
    ones so a new session still fits under MAX_SESSIONS.
    """
    now = time.monotonic()
    with sessions_lock:
        expired_ids = [sid for sid, entry in sessions.items()
                       if now - entry['last_seen'] > app.config['SESSION_TTL']]
        overflow = len(sessions) - len(expired_ids) - (app.config['MAX_SESSIONS'] - 1)
        if overflow > 0:
            remaining = sorted((entry['last_seen'], sid) for sid, entry in sessions.items()
                               if sid not in expired_ids)
            expired_ids.extend(sid for _, sid in remaining[:overflow])
        for sid in expired_ids:
            del sessions[sid]

    if expired_ids:
        app.logger.info(f"Dropped {len(expired_ids)} idle session(s)")


def _get_session(session_id):
    """Session entry for the id, refreshing its idle timer; None when missing or expired"""
    now = time.monotonic()
    with sessions_lock:
        entry = sessions.get(session_id)
        if entry is None:
            return None
        if now - entry['last_seen'] > app.config['SESSION_TTL']:
            del sessions[session_id]
            return None
        entry['last_seen'] = now
        return entry


def _session_state(session_id, session):
    return jsonify({'sessionId': session_id, 'state': session.to_dict()})


def _session_not_found(session_id):
    return jsonify({'error': f'Session {session_id} not found'}), 404


# ----------------------------------------------------------------------
# Stateless conversions
# ----------------------------------------------------------------------

@app.route('/api/health')
def api_health():
    return jsonify({'status': 'ok'})


@app.route('/api/parse_dbml', methods=['POST'])
def api_parse_dbml():
    """Parse DBML text into tables and relationships"""
    dbml = _dbml_field(_json_body())
    if dbml is None:
        return _invalid_dbml()
    return jsonify(parse_dbml(dbml).to_dict())


@app.route('/api/import', methods=['POST'])
def api_import():
    """Import SQL / JSON / DBML content and return canonical DBML"""
    data = _json_body()
    content = data.get('content', '')
    if not isinstance(content, str) or not content.strip():
        return jsonify({'error': 'Content must not be empty'}), 400

    result = import_content(content, data.get('filename'))
    if not result.success:
        app.logger.info(f"Import failed: {result.error}")
        return jsonify(result.to_dict()), 400
    return jsonify(result.to_dict())


@app.route('/api/generate_sql', methods=['POST'])
def api_generate_sql():
    """Generate SQL DDL for one dialect from DBML"""
    data = _json_body()
    dbml = _dbml_field(data)
    if dbml is None:
        return _invalid_dbml()
    dialect = data.get('dialect') or app.config['DEFAULT_DIALECT']
    if dialect not in SQL_DIALECTS:
        return jsonify({'error': f"Invalid dialect, use one of: {', '.join(SQL_DIALECTS)}"}), 400

    try:
        sql = generate_sql(parse_dbml(dbml), dialect)
        return jsonify({'sql': sql, 'dialect': dialect})
    except Exception as e:
        app.logger.error(f"Error generating SQL: {e}")
        return jsonify({'error': str(e)}), 500


@app.route('/api/export_json', methods=['POST'])
def api_export_json():
    """Download the full JSON save document"""
    data = _json_body()
    dbml = _dbml_field(data)
    if dbml is None:
        return _invalid_dbml()
    document = generate_json(dbml, parse_dbml(dbml), data.get('nodePositions'))

    json_file = io.BytesIO(document.encode('utf-8'))
    return send_file(json_file,
                     mimetype='application/json',
                     as_attachment=True,
                     download_name='diagram.json')


@app.route('/api/export_image', methods=['POST'])
def api_export_image():
    """Rasterize the diagram with its current layout"""
    data = _json_body()
    dbml = _dbml_field(data)
    if dbml is None:
        return _invalid_dbml()
    image_format = data.get('format', 'png')
    if image_format not in IMAGE_FORMATS:
        return jsonify({'error': f"Invalid format, use one of: {', '.join(IMAGE_FORMATS)}"}), 400

    session = DiagramSession(dbml, data.get('nodePositions'))
    image, error = render_diagram_image(session, image_format)
    if error:
        return jsonify({'error': error}), 500

    mimetype = 'image/svg+xml' if image_format == 'svg' else 'image/png'
    return send_file(io.BytesIO(image),
                     mimetype=mimetype,
                     as_attachment=True,
                     download_name=f'diagram.{image_format}')


@app.route('/api/generate_doc', methods=['POST'])
def api_generate_doc():
    """
    Generate the schema documentation in HTML or DOCX
    """
    try:
        data = _json_body()
        dbml = _dbml_field(data)
        output_format = data.get('format', 'html')

        if dbml is None:
            return _invalid_dbml()
        if not dbml.strip():
            return jsonify({'error': 'DBML must not be empty'}), 400

        schema = parse_dbml(dbml)
        if not schema.tables:
            return jsonify({'error': 'No table definitions found'}), 400

        if output_format == 'html':
            return jsonify({'html': generate_html(schema)})

        elif output_format == 'docx':
            with tempfile.NamedTemporaryFile(suffix='.docx', delete=False) as tmp_file:
                file_path = tmp_file.name
            generate_docx(schema, file_path)
            with open(file_path, 'rb') as f:
                content = io.BytesIO(f.read())
            os.remove(file_path)

            return send_file(
                content,
                as_attachment=True,
                download_name='database_schema.docx',
                mimetype='application/vnd.openxmlformats-officedocument.wordprocessingml.document'
            )

        else:
            return jsonify({'error': 'Invalid format, use "html" or "docx"'}), 400

    except Exception as e:
        app.logger.error(f"Error generating document: {e}")
        return jsonify({'error': f'Failed to generate document: {e}'}), 500


@app.route('/api/share', methods=['POST'])
def api_share():
    data = _json_body()
    dbml = _dbml_field(data)
    if dbml is None:
        return _invalid_dbml()
    base_url = data.get('baseUrl')
    if not isinstance(base_url, str) or not base_url:
        base_url = app.config['SHARE_BASE_URL']
    link = build_share_link(base_url, dbml)
    return jsonify({'link': link, 'embed': build_embed_code(link)})


@app.route('/api/shared', methods=['GET'])
def api_shared():
    """Resolve a ?diagram= share parameter back into DBML"""
    dbml = decode_diagram(request.args.get('diagram', ''))
    if not dbml:
        return jsonify({'error': 'Invalid or empty shared diagram'}), 400
    return jsonify({'dbmlCode': dbml})


# ----------------------------------------------------------------------
# Editor sessions
#
# Each session is driven under its own lock so requests against one editor
# apply one at a time, in arrival order.
# ----------------------------------------------------------------------

@app.route('/api/sessions', methods=['POST'])
def api_create_session():
    """
    Open a session from the given text, else from the autosave slot, else
    from the starter document.
    """
    data = _json_body()
    dbml = _dbml_field(data, default=None)
    positions = data.get('nodePositions')
    if 'dbml' in data and dbml is None and data['dbml'] is not None:
        return _invalid_dbml()
    if dbml is None:
        saved = _autosaver().load()
        if saved is not None:
            dbml, positions = saved['dbmlCode'], saved.get('nodePositions')
        else:
            dbml = DEFAULT_DBML

    session = DiagramSession(dbml, positions)
    cleanup_idle_sessions()

    session_id = str(uuid.uuid4())
    with sessions_lock:
        sessions[session_id] = {
            'session': session,
            'lock': threading.Lock(),
            'last_seen': time.monotonic(),
        }
    app.logger.info(f"Opened session {session_id}")
    return _session_state(session_id, session), 201


@app.route('/api/sessions/<session_id>', methods=['GET'])
def api_get_session(session_id):
    entry = _get_session(session_id)
    if entry is None:
        return _session_not_found(session_id)
    with entry['lock']:
        return _session_state(session_id, entry['session'])


@app.route('/api/sessions/<session_id>', methods=['DELETE'])
def api_close_session(session_id):
    with sessions_lock:
        entry = sessions.pop(session_id, None)
    if entry is None:
        return _session_not_found(session_id)
    return jsonify({'success': True})


@app.route('/api/sessions/<session_id>/text', methods=['POST'])
def api_session_text(session_id):
    """Editor text changed"""
    entry = _get_session(session_id)
    if entry is None:
        return _session_not_found(session_id)
    dbml = _dbml_field(_json_body())
    if dbml is None:
        return _invalid_dbml()

    with entry['lock']:
        session = entry['session']
        session.set_text(dbml)
        return _session_state(session_id, session)


@app.route('/api/sessions/<session_id>/move', methods=['POST'])
def api_session_move(session_id):
    entry = _get_session(session_id)
    if entry is None:
        return _session_not_found(session_id)
    data = _json_body()
    try:
        x, y = float(data['x']), float(data['y'])
    except (KeyError, TypeError, ValueError):
        return jsonify({'error': 'x and y must be numbers'}), 400

    with entry['lock']:
        session = entry['session']
        if not session.move_node(data.get('nodeId', ''), x, y):
            return jsonify({'error': f"Node {data.get('nodeId')} not found"}), 404
        return _session_state(session_id, session)


@app.route('/api/sessions/<session_id>/connect', methods=['POST'])
def api_session_connect(session_id):
    """Drag-connect between two column handles"""
    entry = _get_session(session_id)
    if entry is None:
        return _session_not_found(session_id)
    data = _json_body()
    required = ('source', 'sourceHandle', 'target', 'targetHandle')
    if any(not isinstance(data.get(key), str) or not data[key] for key in required):
        return jsonify({'error': f"Fields required: {', '.join(required)}"}), 400

    with entry['lock']:
        session = entry['session']
        session.connect(data['source'], data['sourceHandle'], data['target'], data['targetHandle'],
                        propagate=bool(data.get('propagate', True)))
        return _session_state(session_id, session)


@app.route('/api/sessions/<session_id>/delete_node', methods=['POST'])
def api_session_delete_node(session_id):
    entry = _get_session(session_id)
    if entry is None:
        return _session_not_found(session_id)
    node_id = _json_body().get('nodeId', '')

    with entry['lock']:
        session = entry['session']
        if not isinstance(node_id, str) or node_id not in session.nodes:
            return jsonify({'error': f'Node {node_id} not found'}), 404
        session.delete_node(node_id)
        return _session_state(session_id, session)


@app.route('/api/sessions/<session_id>/click_edge', methods=['POST'])
def api_session_click_edge(session_id):
    entry = _get_session(session_id)
    if entry is None:
        return _session_not_found(session_id)
    with entry['lock']:
        session = entry['session']
        session.click_edge(_json_body().get('edgeId', ''))
        return _session_state(session_id, session)


@app.route('/api/sessions/<session_id>/click_canvas', methods=['POST'])
def api_session_click_canvas(session_id):
    entry = _get_session(session_id)
    if entry is None:
        return _session_not_found(session_id)
    with entry['lock']:
        session = entry['session']
        session.click_canvas()
        return _session_state(session_id, session)


@app.route('/api/sessions/<session_id>/delete_key', methods=['POST'])
def api_session_delete_key(session_id):
    entry = _get_session(session_id)
    if entry is None:
        return _session_not_found(session_id)
    with entry['lock']:
        session = entry['session']
        session.delete_key(focus_in_editor=bool(_json_body().get('focusInEditor', False)))
        return _session_state(session_id, session)


@app.route('/api/sessions/<session_id>/import', methods=['POST'])
def api_session_import(session_id):
    entry = _get_session(session_id)
    if entry is None:
        return _session_not_found(session_id)
    data = _json_body()

    with entry['lock']:
        session = entry['session']
        result = session.import_content(data.get('content', ''), data.get('filename'))
        if not result.success:
            return jsonify({'error': result.error, 'state': session.to_dict()}), 400
        return _session_state(session_id, session)


# ----------------------------------------------------------------------
# Projects and autosave
# ----------------------------------------------------------------------

@app.route('/api/save_project', methods=['POST'])
def api_save_project():
    """Save project data"""
    try:
        data = _json_body()
        dbml = _dbml_field(data)
        if dbml is None:
            return _invalid_dbml()
        project = _project_store().save_project(
            dbml,
            data.get('nodePositions'),
            name=data.get('name'),
            project_id=data.get('project_id'),
        )
        return jsonify({
            'success': True,
            'project_id': project['id'],
            'message': 'Project saved'
        })
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        app.logger.error(f"Error saving project: {e}")
        return jsonify({'error': str(e)}), 500


@app.route('/api/load_project/<project_id>', methods=['GET'])
def api_load_project(project_id):
    """Load project data"""
    try:
        project = _project_store().load_project(project_id)
        if project is None:
            return jsonify({'error': 'Project not found'}), 404
        return jsonify({'success': True, 'project': project})
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        app.logger.error(f"Error loading project: {e}")
        return jsonify({'error': str(e)}), 500


@app.route('/api/list_projects', methods=['GET'])
def api_list_projects():
    """List saved projects, most recently updated first"""
    try:
        return jsonify({'success': True, 'projects': _project_store().list_projects()})
    except Exception as e:
        app.logger.error(f"Error listing projects: {e}")
        return jsonify({'error': str(e)}), 500


@app.route('/api/delete_project/<project_id>', methods=['DELETE'])
def api_delete_project(project_id):
    """Delete a project"""
    try:
        if not _project_store().delete_project(project_id):
            return jsonify({'error': 'Project not found'}), 404
        return jsonify({'success': True, 'message': 'Project deleted'})
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        app.logger.error(f"Error deleting project: {e}")
        return jsonify({'error': str(e)}), 500


@app.route('/api/autosave', methods=['POST'])
def api_autosave():
    data = _json_body()
    dbml = _dbml_field(data)
    if dbml is None:
        return _invalid_dbml()
    try:
        saved = _autosaver().save(dbml, data.get('nodePositions'),
                                  immediate=bool(data.get('immediate', False)))
    except OSError as e:
        app.logger.error(f"Autosave failed: {e}")
        return jsonify({'error': f'Autosave failed: {e}'}), 500
    return jsonify({'saved': saved, 'interval': app.config['AUTOSAVE_INTERVAL']})


@app.route('/api/autosave', methods=['GET'])
def api_load_autosave():
    project = _autosaver().load()
    if project is None:
        return jsonify({'error': 'No autosaved project'}), 404
    return jsonify({'success': True, 'project': project})


@app.route('/api/autosave', methods=['DELETE'])
def api_clear_autosave():
    _autosaver().clear()
    return jsonify({'success': True})


if __name__ == '__main__':
    app.run(host=app.config['HOST'], port=app.config['PORT'], debug=app.config['DEBUG'])
