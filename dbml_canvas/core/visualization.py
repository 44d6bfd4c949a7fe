"""
Diagram Image Export - Renders the canvas layout using Graphviz

Nodes are pinned at their canvas positions (neato layout) so the image
matches what the user arranged. Graphviz is loaded on first use; a
missing ``dot`` binary is reported as a failed export, never raised.
"""
import html
import logging
from typing import Optional, Tuple

from .diagram_sync import DiagramSession, Node
from .edge_geometry import RIGHT_SOURCE, RIGHT_TARGET

logger = logging.getLogger(__name__)

IMAGE_FORMATS = ('png', 'svg')


def _port(column: str, side: str) -> str:
    return f'{column}_{side}'


class DiagramImageRenderer:
    """Renders a DiagramSession's nodes and edges using Graphviz"""

    def __init__(self, name: str = "diagram", fmt: str = "png"):
        import graphviz

        self.dot = graphviz.Digraph(name, format=fmt, engine="neato")
        self.dot.attr(inputscale="72", splines="true", overlap="true", bgcolor="#0a0a0a")
        self.dot.attr("node", shape="plaintext", fontname="Arial", fontsize="10", fontcolor="#e0e0e0")
        self.dot.attr("edge", arrowsize="0.7", penwidth="1.2", color="#8a8a8a")

    def render_nodes(self, nodes):
        """Render table nodes with one left and one right port per column"""
        for node in nodes:
            self.dot.node(
                node.id,
                label=self._table_label(node),
                # canvas y grows downwards
                pos=f"{node.x},{-node.y}!",
            )

    def _table_label(self, node: Node) -> str:
        rows = [
            f'<TR><TD COLSPAN="2" BGCOLOR="#1f2937"><B>{html.escape(node.id)}</B></TD></TR>'
        ]
        for column in node.columns:
            tags = []
            if column.is_primary_key:
                tags.append("PK")
            if column.is_foreign_key:
                tags.append("FK")
            if column.is_not_null:
                tags.append("NN")
            tag_text = f" [{','.join(tags)}]" if tags else ""
            rows.append(
                f'<TR><TD PORT="{_port(column.name, "l")}" ALIGN="LEFT">'
                f'{html.escape(column.name)}{tag_text}</TD>'
                f'<TD PORT="{_port(column.name, "r")}" ALIGN="RIGHT">{html.escape(column.type)}</TD></TR>'
            )
        return '<<TABLE BORDER="0" CELLBORDER="1" CELLSPACING="0" CELLPADDING="4">' + "".join(rows) + "</TABLE>>"

    def render_edges(self, edges):
        """Render edges through the handles chosen by the edge geometry"""
        for edge in edges:
            source_side = "r" if edge.source_handle.endswith(RIGHT_SOURCE) else "l"
            target_side = "r" if edge.target_handle.endswith(RIGHT_TARGET) else "l"
            source_compass = "e" if source_side == "r" else "w"
            target_compass = "e" if target_side == "r" else "w"
            self.dot.edge(
                f"{edge.source}:{_port(edge.source_column, source_side)}:{source_compass}",
                f"{edge.target}:{_port(edge.target_column, target_side)}:{target_compass}",
                style="dashed" if edge.kind == "manual" else "solid",
            )

    def pipe(self) -> bytes:
        return self.dot.pipe()


def build_diagram_renderer(session: DiagramSession, fmt: str = "png") -> DiagramImageRenderer:
    if fmt not in IMAGE_FORMATS:
        raise ValueError(f"Unsupported image format '{fmt}'; choose one of: {', '.join(IMAGE_FORMATS)}")
    renderer = DiagramImageRenderer("diagram", fmt)
    renderer.render_nodes(session.nodes.values())
    renderer.render_edges(session.edges)
    return renderer


def render_diagram_image(session: DiagramSession, fmt: str = "png") -> Tuple[Optional[bytes], str]:
    """
    Rasterize the current diagram.

    Returns:
        Tuple of (image bytes, error message); exactly one is set.
    """
    import graphviz

    renderer = build_diagram_renderer(session, fmt)
    try:
        return renderer.pipe(), ""
    except graphviz.ExecutableNotFound as e:
        logger.error(f"Graphviz executable not found: {e}")
        return None, "Image export needs Graphviz installed (dot executable not found)"
    except graphviz.CalledProcessError as e:
        logger.error(f"Graphviz failed to render diagram: {e}")
        return None, f"Image export failed: {e}"
