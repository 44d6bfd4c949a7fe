"""
Importers - turn SQL, JSON or DBML input into editable DBML text

Every importer returns an ImportResult and never raises; the failure
reason is meant to be shown to the user as-is.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .edge_geometry import clean_positions
from .exporters import generate_dbml
from .sql_parser import parse_sql

logger = logging.getLogger(__name__)

MISSING_REQUIRED_FIELD = "missing required field: dbmlCode"
NO_TABLE_DEFINITIONS = "no table definitions found"

FILE_TYPES = ('dbml', 'sql', 'json')


@dataclass
class ImportResult:
    success: bool
    dbml_code: str = ''
    node_positions: Optional[Dict[str, Any]] = None
    error: str = ''

    @classmethod
    def ok(cls, dbml_code: str, node_positions: Optional[Dict[str, Any]] = None) -> 'ImportResult':
        return cls(success=True, dbml_code=dbml_code, node_positions=node_positions)

    @classmethod
    def fail(cls, error: str) -> 'ImportResult':
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {'success': False, 'error': self.error}
        data = {'success': True, 'dbmlCode': self.dbml_code}
        if self.node_positions is not None:
            data['nodePositions'] = self.node_positions
        return data


def import_sql(content: str) -> ImportResult:
    """
    Import SQL DDL and normalize it into canonical DBML.
    """
    try:
        schema, error = parse_sql(content)
        if error:
            return ImportResult.fail(error)
        return ImportResult.ok(generate_dbml(schema, header='Imported from SQL'))
    except Exception as e:
        logger.exception("SQL import failed")
        return ImportResult.fail(f"Failed to parse SQL: {e}")


def import_json(content: str) -> ImportResult:
    """Import a JSON document previously written by generate_json."""
    try:
        data = json.loads(content)
    except (TypeError, ValueError) as e:
        return ImportResult.fail(f"Failed to parse JSON: {e}")

    if not isinstance(data, dict) or not isinstance(data.get('dbmlCode'), str) or not data['dbmlCode']:
        return ImportResult.fail(MISSING_REQUIRED_FIELD)

    positions = data.get('nodePositions')
    return ImportResult.ok(data['dbmlCode'], clean_positions(positions) if positions is not None else None)


def import_dbml(content: str) -> ImportResult:
    """Accept DBML as-is after a basic check for table definitions."""
    if not content or not re.search(r'\b[Tt]able\s', content):
        return ImportResult.fail(NO_TABLE_DEFINITIONS)
    return ImportResult.ok(content)


def detect_file_type(filename: Optional[str]) -> str:
    if not isinstance(filename, str) or '.' not in filename:
        return 'unknown'
    ext = filename.rsplit('.', 1)[-1].lower()
    return ext if ext in FILE_TYPES else 'unknown'


def import_content(content: str, filename: Optional[str] = None) -> ImportResult:
    """
    Pick an importer from the file extension, sniffing the content when the
    extension is missing or unknown.
    """
    if not isinstance(content, str):
        return ImportResult.fail("content must be text")

    file_type = detect_file_type(filename)
    if file_type == 'unknown':
        text = content or ''
        if re.search(r'CREATE\s+TABLE', text, re.IGNORECASE):
            file_type = 'sql'
        elif text.lstrip().startswith('{'):
            file_type = 'json'
        else:
            file_type = 'dbml'

    logger.info(f"Importing content as {file_type}")
    if file_type == 'sql':
        return import_sql(content)
    if file_type == 'json':
        return import_json(content)
    return import_dbml(content)
