"""
Diagram synchronizer - keeps the DBML text and the node graph in step

Text is the source of truth. Every text change reparses the whole
document and rebuilds nodes and edges from the result; graph gestures
that change the schema (connect, delete table) are turned into text
rewrites and fed back through the same path.

Edges come in two kinds:

* DerivedEdge - one per relationship in the text. Its id is a hash of the
  relationship endpoints, so reparsing identical text yields identical ids.
* ManualEdge - drawn by the user. Lives in its own id namespace and
  survives re-derivation until deleted, or until a derived edge with the
  same endpoints appears (the derived edge wins).
"""
import hashlib
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple, Union

from .dbml_parser import parse_dbml, table_blocks
from .edge_geometry import NODE_WIDTH, resolve_handles, handle_id, column_from_handle, clean_positions
from .importers import ImportResult, import_content
from .schema_model import Column, ParsedSchema

logger = logging.getLogger(__name__)

GRID_COLUMNS = 3
GRID_ORIGIN = (150, 80)
GRID_SPACING = (280, 250)

Endpoints = Tuple[str, str, str, str]


def edge_digest(endpoints: Endpoints) -> str:
    from_table, from_column, to_table, to_column = endpoints
    key = f'{from_table}.{from_column}->{to_table}.{to_column}'
    return hashlib.sha1(key.encode('utf-8')).hexdigest()[:12]


def default_position(index: int) -> Dict[str, float]:
    return {
        'x': GRID_ORIGIN[0] + (index % GRID_COLUMNS) * GRID_SPACING[0],
        'y': GRID_ORIGIN[1] + (index // GRID_COLUMNS) * GRID_SPACING[1],
    }


@dataclass
class Node:
    id: str
    x: float
    y: float
    columns: List[Column] = field(default_factory=list)

    @property
    def position(self) -> Dict[str, float]:
        return {'x': self.x, 'y': self.y}

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'position': self.position,
            'data': {
                'tableName': self.id,
                'columns': [c.to_dict() for c in self.columns],
            },
        }


@dataclass
class DerivedEdge:
    source: str
    source_column: str
    target: str
    target_column: str
    cardinality: str
    source_handle: str = ''
    target_handle: str = ''
    selected: bool = False

    kind = 'derived'

    @property
    def endpoints(self) -> Endpoints:
        return (self.source, self.source_column, self.target, self.target_column)

    @property
    def id(self) -> str:
        return 'rel-' + edge_digest(self.endpoints)

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'kind': self.kind,
            'source': self.source,
            'target': self.target,
            'sourceHandle': self.source_handle,
            'targetHandle': self.target_handle,
            'type': self.cardinality,
            'selected': self.selected,
        }


@dataclass
class ManualEdge:
    source: str
    source_column: str
    target: str
    target_column: str
    source_handle: str = ''
    target_handle: str = ''
    selected: bool = False

    kind = 'manual'

    @property
    def endpoints(self) -> Endpoints:
        return (self.source, self.source_column, self.target, self.target_column)

    @property
    def id(self) -> str:
        return 'manual-' + edge_digest(self.endpoints)

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'kind': self.kind,
            'source': self.source,
            'target': self.target,
            'sourceHandle': self.source_handle,
            'targetHandle': self.target_handle,
            'selected': self.selected,
        }


Edge = Union[DerivedEdge, ManualEdge]


def derive_edges(schema: ParsedSchema, node_ids) -> List[DerivedEdge]:
    """One edge per distinct relationship whose tables both have a node."""
    edges = []
    seen = set()
    for rel in schema.relationships:
        if rel.endpoints in seen:
            continue
        if rel.from_table not in node_ids or rel.to_table not in node_ids:
            continue
        seen.add(rel.endpoints)
        edges.append(DerivedEdge(
            source=rel.from_table,
            source_column=rel.from_column,
            target=rel.to_table,
            target_column=rel.to_column,
            cardinality=rel.cardinality,
        ))
    return edges


def reconcile_edges(previous: List[Edge], derived: List[DerivedEdge], node_ids) -> List[Edge]:
    """
    Merge a freshly derived edge set with the previous graph edges.

    Derived edges seen before keep their selection. Manual edges are
    kept unless a derived edge now covers the same endpoints or one of
    their nodes is gone.
    """
    previous_by_id = {edge.id: edge for edge in previous}
    derived_endpoints = {edge.endpoints for edge in derived}

    result: List[Edge] = []
    for edge in derived:
        old = previous_by_id.get(edge.id)
        if old is not None:
            edge.selected = old.selected
        result.append(edge)

    for edge in previous:
        if not isinstance(edge, ManualEdge):
            continue
        if edge.endpoints in derived_endpoints:
            # Promoted: hand the selection over to the derived edge
            if edge.selected:
                for promoted in derived:
                    if promoted.endpoints == edge.endpoints:
                        promoted.selected = True
            continue
        if edge.source not in node_ids or edge.target not in node_ids:
            continue
        result.append(edge)
    return result


def remove_table_from_dbml(code: str, table_name: str) -> str:
    """
    Drop every block the parser reads as ``table_name``, then every Ref line
    mentioning the table as a whole word, then collapse runs of blank lines.
    """
    for name, start, end, _ in reversed(table_blocks(code)):
        if name == table_name:
            code = code[:start] + code[end:]

    ref_line = re.compile(r'^\s*Ref\b', re.IGNORECASE)
    word = re.compile(r'\b' + re.escape(table_name) + r'\b')
    kept = [line for line in code.split('\n') if not (ref_line.match(line) and word.search(line))]
    code = '\n'.join(kept)

    # 3+ consecutive blank lines -> 2
    return re.sub(r'\n(?:[ \t]*\n){3,}', '\n\n\n', code)


def append_ref_line(code: str, source: str, source_column: str,
                    target: str, target_column: str, operator: str = '>') -> str:
    if code and not code.endswith('\n'):
        code += '\n'
    return f'{code}\nRef: {source}.{source_column} {operator} {target}.{target_column}\n'


class DiagramSession:
    """
    Live text + graph state for one editor.

    All schema changes go through set_text(); the graph is never patched
    independently of the text except for manual edges, selection and
    positions.
    """

    def __init__(self, dbml_code: str = '', node_positions: Optional[Dict[str, Dict[str, float]]] = None,
                 node_width: float = NODE_WIDTH):
        self.node_width = node_width
        self.dbml_code = ''
        self.schema = ParsedSchema()
        self.nodes: Dict[str, Node] = {}
        self.edges: List[Edge] = []
        self._saved_positions = clean_positions(node_positions)
        self.set_text(dbml_code)

    # ------------------------------------------------------------------
    # Text side
    # ------------------------------------------------------------------

    def set_text(self, dbml_code: str) -> 'DiagramSession':
        """
        Reparse the text and rebuild nodes and edges from it.

        Nothing is assigned until the new state is complete, so a rejected
        text leaves the session as it was.
        """
        dbml_code = dbml_code or ''
        if not isinstance(dbml_code, str):
            raise TypeError(f"DBML text must be a string, not {type(dbml_code).__name__}")

        schema = parse_dbml(dbml_code)
        nodes = self._build_nodes(schema)
        derived = derive_edges(schema, nodes)
        edges = reconcile_edges(self.edges, derived, nodes)

        self.dbml_code, self.schema, self.nodes, self.edges = dbml_code, schema, nodes, edges
        self._route_edges()
        logger.debug(f"Synced {len(self.nodes)} node(s), {len(self.edges)} edge(s)")
        return self

    def import_content(self, content: str, filename: Optional[str] = None) -> ImportResult:
        """Replace the text with imported content; the text is untouched on failure."""
        result = import_content(content, filename)
        if not result.success:
            logger.info(f"Import rejected: {result.error}")
            return result
        if result.node_positions:
            self._saved_positions.update(result.node_positions)
            self.nodes = {}
        self.set_text(result.dbml_code)
        return result

    def _build_nodes(self, schema: ParsedSchema) -> Dict[str, Node]:
        nodes: Dict[str, Node] = {}
        for table in schema.tables:
            if table.name in nodes:
                continue
            previous = self.nodes.get(table.name)
            if previous is not None:
                position = previous.position
            elif table.name in self._saved_positions:
                position = self._saved_positions[table.name]
            else:
                position = default_position(len(nodes))
            nodes[table.name] = Node(
                id=table.name,
                x=position['x'],
                y=position['y'],
                columns=[replace(c) for c in table.columns],
            )
        return nodes

    # ------------------------------------------------------------------
    # Graph gestures
    # ------------------------------------------------------------------

    def move_node(self, node_id: str, x: float, y: float) -> bool:
        node = self.nodes.get(node_id)
        if node is None:
            return False
        node.x, node.y = x, y
        self._saved_positions[node_id] = {'x': x, 'y': y}
        self._route_edges()
        return True

    def connect(self, source: str, source_handle: str, target: str, target_handle: str,
                propagate: bool = True) -> Optional[Edge]:
        """
        Drag-connect between two column handles.

        The manual edge appears at once. With propagate, a Ref line is also
        appended and the resync promotes the connection; the edge returned is
        then the derived one now in the graph.
        """
        if source not in self.nodes or target not in self.nodes:
            logger.debug(f"Ignoring connect to unknown node {source} -> {target}")
            return None

        edge = ManualEdge(
            source=source,
            source_column=column_from_handle(source_handle),
            target=target,
            target_column=column_from_handle(target_handle),
        )
        if any(existing.endpoints == edge.endpoints for existing in self.edges):
            return None

        self.edges.append(edge)
        self._route_edges()

        if propagate:
            self.set_text(append_ref_line(
                self.dbml_code, edge.source, edge.source_column, edge.target, edge.target_column,
            ))
            for promoted in self.edges:
                if promoted.endpoints == edge.endpoints:
                    return promoted
        return edge

    def delete_node(self, node_id: str) -> str:
        """Remove a table through the text and resync. Returns the new text."""
        self._saved_positions.pop(node_id, None)
        self.set_text(remove_table_from_dbml(self.dbml_code, node_id))
        return self.dbml_code

    def click_edge(self, edge_id: str) -> Optional[Edge]:
        """Toggle selection on exactly one edge."""
        clicked = None
        for edge in self.edges:
            if edge.id == edge_id:
                edge.selected = not edge.selected
                clicked = edge
            else:
                edge.selected = False
        return clicked

    def click_canvas(self):
        for edge in self.edges:
            edge.selected = False

    @property
    def selected_edge(self) -> Optional[Edge]:
        for edge in self.edges:
            if edge.selected:
                return edge
        return None

    def delete_key(self, focus_in_editor: bool = False) -> Optional[Edge]:
        """
        Remove the selected edge from the graph.

        Derived edges come back on the next sync since their Ref line is
        left in the text.
        """
        if focus_in_editor:
            return None
        edge = self.selected_edge
        if edge is None:
            return None
        self.edges = [e for e in self.edges if e is not edge]
        return edge

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _route_edges(self):
        for edge in self.edges:
            source = self.nodes[edge.source]
            target = self.nodes[edge.target]
            source_suffix, target_suffix = resolve_handles(source.position, target.position, self.node_width)
            edge.source_handle = handle_id(edge.source_column, source_suffix)
            edge.target_handle = handle_id(edge.target_column, target_suffix)

    def node_positions(self) -> Dict[str, Dict[str, float]]:
        return {node_id: node.position for node_id, node in self.nodes.items()}

    def derived_edge_ids(self) -> List[str]:
        return [e.id for e in self.edges if isinstance(e, DerivedEdge)]

    def to_dict(self) -> Dict:
        return {
            'dbmlCode': self.dbml_code,
            'parsedDBML': self.schema.to_dict(),
            'nodes': [n.to_dict() for n in self.nodes.values()],
            'edges': [e.to_dict() for e in self.edges],
        }
