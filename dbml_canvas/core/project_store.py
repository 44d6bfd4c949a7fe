"""
Project persistence - the autosave slot and named saved projects

Both store {dbmlCode, nodePositions} plus bookkeeping as JSON files.
Scheduling (how often save() is called) belongs to the caller.
"""
import json
import logging
import os
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = 'Untitled Project'


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _write_json(path: str, data: Dict[str, Any]):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    tmp_path = f'{path}.tmp'
    with open(tmp_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    os.replace(tmp_path, path)


def _read_json(path: str) -> Optional[Dict[str, Any]]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load project file {path}: {e}")
        return None
    return data if isinstance(data, dict) else None


class AutoSaver:
    """Single autosave slot restored at startup"""

    def __init__(self, path: str, project_id: Optional[str] = None):
        self.path = path
        self.project_id = project_id
        self._last_saved = None

    def save(self, dbml_code: str, node_positions: Optional[Dict[str, Any]] = None,
             immediate: bool = False) -> bool:
        """
        Persist the current text and layout.

        Returns False when nothing changed since the last save, unless
        immediate is set.
        """
        snapshot = json.dumps({'dbmlCode': dbml_code, 'nodePositions': node_positions}, sort_keys=True)
        if snapshot == self._last_saved and not immediate:
            return False

        existing = _read_json(self.path) or {
            'id': self.project_id or str(uuid.uuid4()),
            'name': DEFAULT_PROJECT_NAME,
            'createdAt': _now(),
        }
        existing.update({
            'dbmlCode': dbml_code,
            'nodePositions': node_positions,
            'updatedAt': _now(),
        })
        _write_json(self.path, existing)
        self._last_saved = snapshot
        logger.info(f"Project autosaved to {self.path}")
        return True

    def load(self) -> Optional[Dict[str, Any]]:
        data = _read_json(self.path)
        if data is None or not isinstance(data.get('dbmlCode'), str):
            return None
        return data

    def clear(self):
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        self._last_saved = None


class ProjectStore:
    """Named projects, one JSON file each"""

    def __init__(self, directory: str):
        self.directory = directory

    def _path(self, project_id: str) -> str:
        if not re.fullmatch(r'[\w-]+', project_id or ''):
            raise ValueError(f"Invalid project id '{project_id}'")
        return os.path.join(self.directory, f'{project_id}.json')

    def save_project(self, dbml_code: str, node_positions: Optional[Dict[str, Any]] = None,
                     name: Optional[str] = None, project_id: Optional[str] = None) -> Dict[str, Any]:
        project_id = project_id or str(uuid.uuid4())
        path = self._path(project_id)
        existing = _read_json(path) or {'createdAt': _now()}
        project = {
            'id': project_id,
            'name': name or existing.get('name') or DEFAULT_PROJECT_NAME,
            'dbmlCode': dbml_code,
            'nodePositions': node_positions,
            'createdAt': existing['createdAt'],
            'updatedAt': _now(),
        }
        _write_json(path, project)
        logger.info(f"Saved project {project_id}")
        return project

    def load_project(self, project_id: str) -> Optional[Dict[str, Any]]:
        return _read_json(self._path(project_id))

    def list_projects(self) -> List[Dict[str, Any]]:
        if not os.path.isdir(self.directory):
            return []
        projects = []
        for filename in os.listdir(self.directory):
            if not filename.endswith('.json'):
                continue
            data = _read_json(os.path.join(self.directory, filename))
            if data is None:
                continue
            projects.append({
                'id': data.get('id'),
                'name': data.get('name'),
                'createdAt': data.get('createdAt'),
                'updatedAt': data.get('updatedAt'),
            })
        projects.sort(key=lambda p: p['updatedAt'] or '', reverse=True)
        return projects

    def delete_project(self, project_id: str) -> bool:
        try:
            os.remove(self._path(project_id))
        except FileNotFoundError:
            return False
        return True
