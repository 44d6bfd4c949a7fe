"""
Exporters - generate SQL DDL, canonical DBML and the JSON interchange
document from a ParsedSchema
"""
import json
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .schema_model import (
    ParsedSchema, ONE_TO_ONE, ONE_TO_MANY, MANY_TO_ONE, MANY_TO_MANY,
)

logger = logging.getLogger(__name__)

JSON_FORMAT_VERSION = '1.0'

SQL_DIALECTS = ('postgresql', 'mysql', 'sqlite', 'sqlserver')

TYPE_MAPPING: Dict[str, Dict[str, str]] = {
    'postgresql': {
        'integer': 'INTEGER',
        'varchar': 'VARCHAR(255)',
        'text': 'TEXT',
        'timestamp': 'TIMESTAMP',
        'boolean': 'BOOLEAN',
        'float': 'REAL',
        'decimal': 'DECIMAL',
        'uuid': 'UUID',
    },
    'mysql': {
        'integer': 'INT',
        'varchar': 'VARCHAR(255)',
        'text': 'TEXT',
        'timestamp': 'TIMESTAMP',
        'boolean': 'TINYINT(1)',
        'float': 'FLOAT',
        'decimal': 'DECIMAL',
        'uuid': 'CHAR(36)',
    },
    'sqlite': {
        'integer': 'INTEGER',
        'varchar': 'TEXT',
        'text': 'TEXT',
        'timestamp': 'TEXT',
        'boolean': 'INTEGER',
        'float': 'REAL',
        'decimal': 'REAL',
        'uuid': 'TEXT',
    },
    'sqlserver': {
        'integer': 'INT',
        'varchar': 'NVARCHAR(255)',
        'text': 'NVARCHAR(MAX)',
        'timestamp': 'DATETIME2',
        'boolean': 'BIT',
        'float': 'FLOAT',
        'decimal': 'DECIMAL',
        'uuid': 'UNIQUEIDENTIFIER',
    },
}

CARDINALITY_OPERATOR = {
    MANY_TO_ONE: '>',
    ONE_TO_MANY: '<',
    ONE_TO_ONE: '-',
    MANY_TO_MANY: '<>',
}


def quote_identifier(name: str, dialect: str) -> str:
    if dialect == 'mysql':
        return f'`{name}`'
    if dialect == 'sqlserver':
        return f'[{name}]'
    return f'"{name}"'


def _check_dialect(dialect: str) -> str:
    if dialect not in SQL_DIALECTS:
        raise ValueError(f"Unsupported SQL dialect '{dialect}'; choose one of: {', '.join(SQL_DIALECTS)}")
    return dialect


def generate_sql(schema: ParsedSchema, dialect: str = 'postgresql') -> str:
    """
    Generate CREATE TABLE statements followed by one ALTER TABLE per
    relationship.

    Primary keys always go into a single table-level PRIMARY KEY clause.
    Notes become trailing comments placed after the separating comma so the
    output stays valid SQL.
    """
    _check_dialect(dialect)
    mapping = TYPE_MAPPING[dialect]
    q = lambda name: quote_identifier(name, dialect)
    lines: List[str] = []

    for table in schema.tables:
        lines.append(f'-- Table: {table.name}')
        lines.append(f'CREATE TABLE {q(table.name)} (')

        # (definition, trailing comment)
        definitions = []
        for column in table.columns:
            sql_type = mapping.get(column.type) or column.type.upper()
            definition = f'  {q(column.name)} {sql_type}'
            if column.is_not_null:
                definition += ' NOT NULL'
            definitions.append((definition, column.note))

        primary_keys = table.primary_keys
        if primary_keys:
            definitions.append((f"  PRIMARY KEY ({', '.join(q(k) for k in primary_keys)})", None))

        for index, (definition, note) in enumerate(definitions):
            separator = ',' if index < len(definitions) - 1 else ''
            comment = f' -- {note}' if note else ''
            lines.append(f'{definition}{separator}{comment}')

        lines.append(');')
        lines.append('')

    for rel in schema.relationships:
        # Not disambiguated when one column references two targets
        constraint_name = f'fk_{rel.from_table}_{rel.from_column}'
        lines.append(f'-- Foreign Key: {rel.from_table}.{rel.from_column} -> {rel.to_table}.{rel.to_column}')
        lines.append(f'ALTER TABLE {q(rel.from_table)}')
        lines.append(f'  ADD CONSTRAINT {q(constraint_name)}')
        lines.append(f'  FOREIGN KEY ({q(rel.from_column)})')
        lines.append(f'  REFERENCES {q(rel.to_table)} ({q(rel.to_column)});')
        lines.append('')

    logger.debug(f"Generated {dialect} DDL for {len(schema.tables)} table(s)")
    return '\n'.join(lines)


def generate_dbml(schema: ParsedSchema, header: Optional[str] = None) -> str:
    """Serialize a schema back into canonical DBML text."""
    lines: List[str] = []
    if header:
        lines.append(f'// {header}\n')

    for table in schema.tables:
        lines.append(f'Table {table.name} {{')
        for column in table.columns:
            constraints = []
            if column.is_primary_key:
                constraints.append('primary key')
            if column.is_not_null and not column.is_primary_key:
                constraints.append('not null')
            if column.note:
                note = column.note.replace("'", '').replace('"', '')
                constraints.append(f"note: '{note}'")
            constraint_str = f" [{', '.join(constraints)}]" if constraints else ''
            lines.append(f'  {column.name} {column.type}{constraint_str}')
        lines.append('}\n')

    for rel in schema.relationships:
        operator = CARDINALITY_OPERATOR.get(rel.cardinality, '<')
        lines.append(f'Ref: {rel.from_table}.{rel.from_column} {operator} {rel.to_table}.{rel.to_column}')

    return '\n'.join(lines)


def build_diagram_json(dbml_code: str,
                       schema: ParsedSchema,
                       node_positions: Optional[Dict[str, Dict[str, float]]] = None) -> Dict:
    return {
        'version': JSON_FORMAT_VERSION,
        'dbmlCode': dbml_code,
        'parsedDBML': schema.to_dict(),
        'nodePositions': node_positions,
        'exportedAt': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
    }


def generate_json(dbml_code: str,
                  schema: ParsedSchema,
                  node_positions: Optional[Dict[str, Dict[str, float]]] = None) -> str:
    """Full save document: text, parsed form, layout and timestamp."""
    return json.dumps(build_diagram_json(dbml_code, schema, node_positions), indent=2, ensure_ascii=False)
