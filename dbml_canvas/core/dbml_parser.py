"""
DBML parser - line scanner producing the schema IR

The parser never raises: whatever the editor holds mid-edit must still
produce a renderable (possibly empty) schema.
"""
import logging
import re
from typing import List, Optional, Tuple

from .schema_model import (
    Column, Table, Relationship, ParsedSchema,
    ONE_TO_ONE, ONE_TO_MANY, MANY_TO_ONE, MANY_TO_MANY,
)

logger = logging.getLogger(__name__)

TABLE_HEADER_RE = re.compile(r'\bTable\s+(\w+)\s*\{', re.IGNORECASE)
COLUMN_RE = re.compile(r'^(\w+)\s+(\w+(?:\([^)]*\))?)\s*(?:\[([^\]]*)\])?')
REF_RE = re.compile(r'Ref:\s*(\w+)\.(\w+)\s*([<>\-]+)\s*(\w+)\.(\w+)', re.IGNORECASE)
NOTE_RE = re.compile(r"note:\s*['\"]([^'\"]*)['\"]", re.IGNORECASE)
PRIMARY_KEY_RE = re.compile(r'^(primary\s+key|pk)$', re.IGNORECASE)
NOT_NULL_RE = re.compile(r'^not\s+null$', re.IGNORECASE)

OPERATOR_CARDINALITY = {
    '>': MANY_TO_ONE,
    '<': ONE_TO_MANY,
    '-': ONE_TO_ONE,
    '<>': MANY_TO_MANY,
}

DEFAULT_DBML = """// Use DBML to define your database structure
// Docs: https://dbml.dbdiagram.io/docs

Table follows {
  following_user_id integer
  followed_user_id integer
  created_at timestamp
}

Table users {
  id integer [primary key]
  username varchar
  role varchar
  created_at timestamp
}

Table posts {
  id integer [primary key]
  title varchar
  body text [note: 'Content of the post']
  user_id integer [not null]
  status varchar
  created_at timestamp
}

Ref: posts.user_id > users.id // many-to-one

Ref: users.id < follows.following_user_id

Ref: users.id < follows.followed_user_id
"""


def parse_dbml(code: str) -> ParsedSchema:
    """
    Parse DBML text into a ParsedSchema.

    Tables are read block by block, then every ``Ref:`` statement outside
    a comment line becomes a relationship whose "from" column is flagged
    as a foreign key.
    """
    if not code:
        return ParsedSchema()

    tables = _scan_tables(code)
    relationships = _scan_refs(code.splitlines())

    schema = ParsedSchema(tables=tables, relationships=relationships)
    schema.mark_foreign_keys()
    logger.debug(f"Parsed {len(tables)} table(s), {len(relationships)} relationship(s)")
    return schema


def _in_comment(code: str, pos: int) -> bool:
    line_start = code.rfind('\n', 0, pos) + 1
    return '//' in code[line_start:pos]


def table_blocks(code: str) -> List[Tuple[str, int, int, str]]:
    """
    Locate every table block as (name, start, end, body).

    ``start``/``end`` are character offsets covering the header through the
    closing brace. An unclosed block ends at the next table header (or end
    of text) so a table being typed still shows up.
    """
    headers = [m for m in TABLE_HEADER_RE.finditer(code) if not _in_comment(code, m.start())]
    blocks = []
    for index, header in enumerate(headers):
        limit = headers[index + 1].start() if index + 1 < len(headers) else len(code)
        closing = code.find('}', header.end(), limit)
        if closing == -1:
            blocks.append((header.group(1), header.start(), limit, code[header.end():limit]))
        else:
            blocks.append((header.group(1), header.start(), closing + 1, code[header.end():closing]))
    return blocks


def _scan_tables(code: str) -> List[Table]:
    tables = []
    for name, _, _, body in table_blocks(code):
        table = Table(name=name)
        for raw in body.split('\n'):
            column = _parse_column_line(raw)
            if column is not None:
                table.columns.append(column)
        tables.append(table)
    return tables


def _parse_column_line(raw: str) -> Optional[Column]:
    line = raw.strip()
    if not line or line.startswith('//'):
        return None

    match = COLUMN_RE.match(line)
    if not match:
        return None

    name, col_type, constraints = match.group(1), match.group(2), match.group(3) or ''
    is_pk, is_not_null, note = _parse_constraints(constraints)
    return Column(
        name=name,
        type=col_type.lower(),
        is_primary_key=is_pk,
        is_not_null=is_not_null,
        note=note,
    )


def _parse_constraints(constraints: str) -> Tuple[bool, bool, Optional[str]]:
    note = None
    note_match = NOTE_RE.search(constraints)
    if note_match:
        note = note_match.group(1)
        constraints = constraints[:note_match.start()] + constraints[note_match.end():]

    is_pk = False
    is_not_null = False
    for token in constraints.split(','):
        token = token.strip()
        if PRIMARY_KEY_RE.match(token):
            is_pk = True
        elif NOT_NULL_RE.match(token):
            is_not_null = True
        # null / unique / increment / default and unknown tokens have no effect
    return is_pk, is_not_null, note


def _scan_refs(lines: List[str]) -> List[Relationship]:
    relationships = []
    for line in lines:
        if line.strip().startswith('//'):
            continue
        for match in REF_RE.finditer(line):
            from_table, from_column, operator, to_table, to_column = match.groups()
            relationships.append(Relationship(
                from_table=from_table,
                from_column=from_column,
                to_table=to_table,
                to_column=to_column,
                cardinality=OPERATOR_CARDINALITY.get(operator, ONE_TO_MANY),
            ))
    return relationships
