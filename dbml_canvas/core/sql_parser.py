"""
SQL parser with ALTER TABLE support

Reads CREATE TABLE / ALTER TABLE ... FOREIGN KEY statements into the
schema IR. Column bodies are split on every comma; types whose
parameters contain commas (DECIMAL(10,2)) are mis-split on purpose so
the behaviour stays predictable and matches what the editor shows.
"""
import logging
import re
from typing import List, Optional, Tuple

from .schema_model import Column, Table, Relationship, ParsedSchema, MANY_TO_ONE

logger = logging.getLogger(__name__)

NO_TABLES_FOUND = "no tables found"

# Optionally quoted identifier: `name`, "name" or [name]
_IDENT = r'[`"\[]?(\w+)[`"\]]?'

CREATE_TABLE_RE = re.compile(
    r'CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?' + _IDENT + r'\s*\(([\s\S]*?)\)[^;()]*;',
    re.IGNORECASE,
)
COLUMN_RE = re.compile(r'^' + _IDENT + r'\s+(\w+)(?:\([\w\s,]+\))?(.*)$', re.IGNORECASE)
CONSTRAINT_LINE_RE = re.compile(r'^(PRIMARY|FOREIGN|UNIQUE|CHECK|CONSTRAINT)\b', re.IGNORECASE)
TABLE_PK_RE = re.compile(r'PRIMARY\s+KEY\s*\(([^)]*)\)', re.IGNORECASE)
TABLE_FK_RE = re.compile(
    r'FOREIGN\s+KEY\s*\(\s*' + _IDENT + r'\s*\)\s*REFERENCES\s+' + _IDENT + r'\s*\(\s*' + _IDENT + r'\s*\)',
    re.IGNORECASE,
)
INLINE_REF_RE = re.compile(r'REFERENCES\s+' + _IDENT + r'\s*\(\s*' + _IDENT + r'\s*\)', re.IGNORECASE)
ALTER_FK_RE = re.compile(
    r'ALTER\s+TABLE\s+' + _IDENT + r'[^;]*?FOREIGN\s+KEY\s*\(\s*' + _IDENT + r'\s*\)\s*'
    r'REFERENCES\s+' + _IDENT + r'\s*\(\s*' + _IDENT + r'\s*\)',
    re.IGNORECASE,
)
COMMENT_RE = re.compile(r"COMMENT\s+'([^']*)'", re.IGNORECASE)

SQL_TYPE_MAPPING = {
    'int': 'integer',
    'integer': 'integer',
    'bigint': 'integer',
    'smallint': 'integer',
    'tinyint': 'integer',
    'float': 'float',
    'double': 'float',
    'real': 'float',
    'decimal': 'decimal',
    'numeric': 'decimal',
    'varchar': 'varchar',
    'nvarchar': 'varchar',
    'char': 'varchar',
    'text': 'text',
    'ntext': 'text',
    'datetime': 'timestamp',
    'datetime2': 'timestamp',
    'timestamp': 'timestamp',
    'date': 'timestamp',
    'time': 'timestamp',
    'boolean': 'boolean',
    'bit': 'boolean',
    'uuid': 'uuid',
    'uniqueidentifier': 'uuid',
}


def map_sql_type(sql_type: str) -> str:
    """Map a dialect type name to its canonical DBML name."""
    lowered = sql_type.lower()
    return SQL_TYPE_MAPPING.get(lowered, lowered)


def strip_sql_comments(sql: str) -> str:
    """Remove -- line comments and /* */ block comments."""
    sql = re.sub(r'/\*.*?\*/', '', sql, flags=re.DOTALL)
    return '\n'.join(re.sub(r'--.*$', '', line) for line in sql.split('\n'))


def parse_sql(sql: str) -> Tuple[ParsedSchema, str]:
    """
    Parse SQL DDL into a ParsedSchema.

    Returns:
        Tuple of (schema, error message). The message is empty on success
        and the schema is empty whenever the message is set.
    """
    sql = strip_sql_comments(sql or '')

    tables: List[Table] = []
    relationships: List[Relationship] = []

    # Step 1: CREATE TABLE statements, with FKs declared inside the body
    for match in CREATE_TABLE_RE.finditer(sql):
        table_name, body = match.group(1), match.group(2)
        table = _parse_table_body(table_name, body)
        relationships.extend(_inline_foreign_keys(table_name, body))
        if table.columns:
            tables.append(table)
        else:
            logger.debug(f"Skipping table {table_name} without parsable columns")

    # Step 2: ALTER TABLE ... FOREIGN KEY statements
    for match in ALTER_FK_RE.finditer(sql):
        from_table, from_column, to_table, to_column = match.groups()
        relationships.append(Relationship(
            from_table=from_table,
            from_column=from_column,
            to_table=to_table,
            to_column=to_column,
            cardinality=MANY_TO_ONE,
        ))

    if not tables:
        return ParsedSchema(), NO_TABLES_FOUND

    schema = ParsedSchema(tables=tables, relationships=relationships)
    schema.mark_foreign_keys()
    return schema, ""


def _parse_table_body(table_name: str, body: str) -> Table:
    table = Table(name=table_name)

    # Naive split: no paren-depth tracking
    for part in body.split(','):
        part = part.strip()
        if not part or CONSTRAINT_LINE_RE.match(part):
            continue
        column = _parse_column(part)
        if column is not None:
            table.columns.append(column)

    pk_match = TABLE_PK_RE.search(body)
    if pk_match:
        wanted = {name.strip().strip('`"[]').lower() for name in pk_match.group(1).split(',')}
        for column in table.columns:
            if column.name.lower() in wanted:
                column.is_primary_key = True
    return table


def _parse_column(part: str) -> Optional[Column]:
    match = COLUMN_RE.match(part)
    if not match:
        return None

    name, sql_type, constraints = match.group(1), match.group(2), match.group(3) or ''
    comment_match = COMMENT_RE.search(constraints)
    return Column(
        name=name,
        type=map_sql_type(sql_type),
        is_primary_key=bool(re.search(r'PRIMARY\s*KEY', constraints, re.IGNORECASE)),
        is_not_null=bool(re.search(r'NOT\s*NULL', constraints, re.IGNORECASE)),
        note=comment_match.group(1) if comment_match else None,
    )


def _inline_foreign_keys(table_name: str, body: str) -> List[Relationship]:
    relationships = []
    for match in TABLE_FK_RE.finditer(body):
        from_column, to_table, to_column = match.groups()
        relationships.append(Relationship(table_name, from_column, to_table, to_column, MANY_TO_ONE))

    # Column-level "user_id INT REFERENCES users(id)"
    for part in body.split(','):
        part = part.strip()
        if not part or CONSTRAINT_LINE_RE.match(part):
            continue
        ref = INLINE_REF_RE.search(part)
        column = COLUMN_RE.match(part)
        if ref and column:
            relationships.append(Relationship(
                table_name, column.group(1), ref.group(1), ref.group(2), MANY_TO_ONE,
            ))
    return relationships
