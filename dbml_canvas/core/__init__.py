"""
DBML / SQL schema core: parsing, import, export and diagram sync
"""
from .schema_model import Column, Table, Relationship, ParsedSchema
from .dbml_parser import parse_dbml, DEFAULT_DBML
from .sql_parser import parse_sql
from .importers import ImportResult, import_sql, import_json, import_dbml, import_content, detect_file_type
from .exporters import generate_sql, generate_dbml, generate_json, SQL_DIALECTS
from .edge_geometry import resolve_handles, NODE_WIDTH
from .diagram_sync import DiagramSession, DerivedEdge, ManualEdge, Node

__all__ = [
    'Column',
    'Table',
    'Relationship',
    'ParsedSchema',
    'parse_dbml',
    'DEFAULT_DBML',
    'parse_sql',
    'ImportResult',
    'import_sql',
    'import_json',
    'import_dbml',
    'import_content',
    'detect_file_type',
    'generate_sql',
    'generate_dbml',
    'generate_json',
    'SQL_DIALECTS',
    'resolve_handles',
    'NODE_WIDTH',
    'DiagramSession',
    'DerivedEdge',
    'ManualEdge',
    'Node',
]
