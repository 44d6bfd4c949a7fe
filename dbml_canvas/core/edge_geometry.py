"""
Edge geometry - pick connector handles from node positions

Every column row exposes four handles. The resolver only looks at the
relative position of the two nodes; it does not try to avoid crossing
other edges or nodes.
"""
from typing import Dict, Tuple

NODE_WIDTH = 250

LEFT_TARGET = 'left'
LEFT_SOURCE = 'left-source'
RIGHT_SOURCE = 'right'
RIGHT_TARGET = 'right-target'

HANDLE_SUFFIXES = (LEFT_TARGET, LEFT_SOURCE, RIGHT_SOURCE, RIGHT_TARGET)

Position = Dict[str, float]


def handle_id(column: str, suffix: str) -> str:
    return f'{column}-{suffix}'


def column_from_handle(handle: str) -> str:
    """'user_id-right-target' -> 'user_id'. Unknown suffixes return the id unchanged."""
    # Longest suffixes first so 'right-target' is not read as 'target'
    for suffix in sorted(HANDLE_SUFFIXES, key=len, reverse=True):
        tail = f'-{suffix}'
        if handle.endswith(tail):
            return handle[:-len(tail)]
    return handle


def resolve_handles(source: Position, target: Position, node_width: float = NODE_WIDTH) -> Tuple[str, str]:
    """
    Choose (source suffix, target suffix) for an edge between two nodes.

    Nodes share a fixed width so the horizontal distance between centres
    is the distance between their x coordinates.
    """
    source_center = source['x'] + node_width / 2
    target_center = target['x'] + node_width / 2
    dx = target_center - source_center

    if dx > node_width / 2:
        return RIGHT_SOURCE, LEFT_TARGET
    if dx < -node_width / 2:
        return LEFT_SOURCE, RIGHT_TARGET

    # Stacked nodes: loop around one side depending on vertical order
    if target['y'] >= source['y']:
        return RIGHT_SOURCE, RIGHT_TARGET
    return LEFT_SOURCE, LEFT_TARGET


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def clean_positions(positions) -> Dict[str, Position]:
    """
    Keep only ``{node_id: {'x': number, 'y': number}}`` entries from a
    saved layout; anything else is dropped so the node falls back to the grid.
    """
    if not isinstance(positions, dict):
        return {}
    return {
        str(node_id): {'x': pos['x'], 'y': pos['y']}
        for node_id, pos in positions.items()
        if isinstance(pos, dict) and _is_number(pos.get('x')) and _is_number(pos.get('y'))
    }
