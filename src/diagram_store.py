from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Iterable

from src import diagram_graph as graph_ops
from src.config import AppConfig
from src.diagram_clipboard import (
    Clipboard,
    dumps_clipboard_payload,
    parse_clipboard_payload,
    remap_pasted_nodes,
)
from src.diagram_document import THEMES, document_theme, graph_from_document, graph_to_document
from src.diagram_history import MAX_HISTORY_ENTRIES, DiagramHistory
from src.diagram_model import (
    DiagramGraph,
    DiagramNode,
    RelationshipEdge,
    as_position,
    as_size,
    new_column,
    new_group_node,
    new_note_node,
    new_table_node,
)

logger = logging.getLogger("diagram_store")


@dataclass(frozen=True)
class DiagramView:
    """Read-only snapshot handed to renderers."""

    nodes: tuple[DiagramNode, ...]
    edges: tuple[RelationshipEdge, ...]
    selected_node_id: str | None
    selected_edge_id: str | None


class DiagramStore:
    """Authoritative diagram state: graph, selection, theme and undo history.

    Every mutating call checkpoints the pre-mutation graph into history and
    then swaps in the result of a pure ``diagram_graph`` function. Calls that
    target an unknown id, or a node of another kind, change nothing and leave
    history alone.
    """

    def __init__(
        self,
        *,
        max_history: int = MAX_HISTORY_ENTRIES,
        theme: str = "system",
        graph: DiagramGraph | None = None,
    ) -> None:
        self._graph = graph if graph is not None else DiagramGraph()
        self._history = DiagramHistory(max_history)
        self._selected_node_id: str | None = None
        self._selected_edge_id: str | None = None
        self._selected_node_ids: tuple[str, ...] = ()
        self._theme = theme if theme in THEMES else "system"

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "DiagramStore":
        return cls(max_history=cfg.max_history, theme=cfg.default_theme)

    # --- read side --------------------------------------------------------

    @property
    def graph(self) -> DiagramGraph:
        return self._graph

    @property
    def nodes(self) -> tuple[DiagramNode, ...]:
        return self._graph.nodes

    @property
    def edges(self) -> tuple[RelationshipEdge, ...]:
        return self._graph.edges

    @property
    def history(self) -> DiagramHistory:
        return self._history

    @property
    def selected_node_id(self) -> str | None:
        return self._selected_node_id

    @property
    def selected_edge_id(self) -> str | None:
        return self._selected_edge_id

    @property
    def selected_node_ids(self) -> tuple[str, ...]:
        return self._selected_node_ids

    @property
    def theme(self) -> str:
        return self._theme

    def view(self) -> DiagramView:
        return DiagramView(
            nodes=self._graph.nodes,
            edges=self._graph.edges,
            selected_node_id=self._selected_node_id,
            selected_edge_id=self._selected_edge_id,
        )

    def node(self, node_id: str) -> DiagramNode | None:
        return graph_ops.find_node(self._graph, node_id)

    def edge(self, edge_id: str) -> RelationshipEdge | None:
        return graph_ops.find_edge(self._graph, edge_id)

    # --- internals --------------------------------------------------------

    def _commit(self, next_graph: DiagramGraph, *, action: str) -> bool:
        if next_graph is self._graph:
            logger.debug("Ignored %s: target not found", action)
            return False
        self._history.checkpoint(self._graph)
        self._graph = next_graph
        return True

    def _prune_selection(self) -> None:
        node_ids = {node.id for node in self._graph.nodes}
        edge_ids = {edge.id for edge in self._graph.edges}
        if self._selected_node_id not in node_ids:
            self._selected_node_id = None
        if self._selected_edge_id not in edge_ids:
            self._selected_edge_id = None
        self._selected_node_ids = tuple(node_id for node_id in self._selected_node_ids if node_id in node_ids)

    # --- nodes ------------------------------------------------------------

    def add_table(self, position: Any) -> str:
        node = new_table_node(as_position(position))
        self._commit(graph_ops.add_nodes(self._graph, [node]), action="add_table")
        return node.id

    def add_group(self, position: Any) -> str:
        node = new_group_node(as_position(position))
        self._commit(graph_ops.add_nodes(self._graph, [node]), action="add_group")
        return node.id

    def add_note(self, position: Any) -> str:
        node = new_note_node(as_position(position))
        self._commit(graph_ops.add_nodes(self._graph, [node]), action="add_note")
        return node.id

    def move_node(self, node_id: str, position: Any) -> bool:
        # drag streams are not undo steps
        next_graph = graph_ops.move_node(self._graph, node_id, as_position(position))
        changed = next_graph is not self._graph
        self._graph = next_graph
        return changed

    def resize_node(self, node_id: str, width: float, height: float) -> bool:
        next_graph = graph_ops.resize_node(self._graph, node_id, as_size(width, height))
        changed = next_graph is not self._graph
        self._graph = next_graph
        return changed

    def update_table_name(self, node_id: str, name: str) -> bool:
        return self._commit(graph_ops.update_table_name(self._graph, node_id, name), action="update_table_name")

    def update_table_color(self, node_id: str, color: str | None) -> bool:
        return self._commit(graph_ops.update_table_color(self._graph, node_id, color), action="update_table_color")

    def update_table_comment(self, node_id: str, comment: str | None) -> bool:
        return self._commit(
            graph_ops.update_table_comment(self._graph, node_id, comment),
            action="update_table_comment",
        )

    def update_group_name(self, node_id: str, name: str) -> bool:
        return self._commit(graph_ops.update_group_name(self._graph, node_id, name), action="update_group_name")

    def update_group_color(self, node_id: str, color: str | None) -> bool:
        return self._commit(graph_ops.update_group_color(self._graph, node_id, color), action="update_group_color")

    def toggle_group_collapse(self, node_id: str) -> bool:
        return self._commit(graph_ops.toggle_group_collapse(self._graph, node_id), action="toggle_group_collapse")

    def update_note_content(self, node_id: str, content: str) -> bool:
        return self._commit(
            graph_ops.update_note_content(self._graph, node_id, content),
            action="update_note_content",
        )

    def update_note_color(self, node_id: str, color: str | None) -> bool:
        return self._commit(graph_ops.update_note_color(self._graph, node_id, color), action="update_note_color")

    def update_note_name(self, node_id: str, name: str | None) -> bool:
        return self._commit(graph_ops.update_note_name(self._graph, node_id, name), action="update_note_name")

    # --- columns ----------------------------------------------------------

    def add_column(self, table_id: str) -> str | None:
        column = new_column()
        if not self._commit(graph_ops.add_column(self._graph, table_id, column), action="add_column"):
            return None
        return column.id

    def update_column(self, table_id: str, column_id: str, updates: dict[str, Any]) -> bool:
        return self._commit(
            graph_ops.update_column(self._graph, table_id, column_id, updates),
            action="update_column",
        )

    def delete_column(self, table_id: str, column_id: str) -> bool:
        changed = self._commit(graph_ops.delete_column(self._graph, table_id, column_id), action="delete_column")
        if changed:
            self._prune_selection()
        return changed

    def reorder_columns(self, table_id: str, column_ids: Iterable[str]) -> bool:
        return self._commit(
            graph_ops.reorder_columns(self._graph, table_id, list(column_ids)),
            action="reorder_columns",
        )

    # --- edges ------------------------------------------------------------

    def connect(
        self,
        source: str,
        target: str,
        *,
        source_handle: str | None = None,
        target_handle: str | None = None,
    ) -> RelationshipEdge | None:
        next_graph, edge = graph_ops.connect(
            self._graph,
            source,
            target,
            source_handle=source_handle,
            target_handle=target_handle,
        )
        self._commit(next_graph, action="connect")
        return edge

    def update_edge_cardinality(self, edge_id: str, cardinality: str) -> bool:
        return self._commit(
            graph_ops.update_edge_cardinality(self._graph, edge_id, cardinality),
            action="update_edge_cardinality",
        )

    def update_edge_label(self, edge_id: str, label: str | None) -> bool:
        return self._commit(graph_ops.update_edge_label(self._graph, edge_id, label), action="update_edge_label")

    def update_edge_columns(self, edge_id: str, source_column: str | None, target_column: str | None) -> bool:
        return self._commit(
            graph_ops.update_edge_columns(self._graph, edge_id, source_column, target_column),
            action="update_edge_columns",
        )

    def update_edge_color(self, edge_id: str, color: str | None = None) -> bool:
        return self._commit(graph_ops.update_edge_color(self._graph, edge_id, color), action="update_edge_color")

    def update_edge_pattern(self, edge_id: str, pattern: str | None = None) -> bool:
        return self._commit(
            graph_ops.update_edge_pattern(self._graph, edge_id, pattern),
            action="update_edge_pattern",
        )

    # --- deletion ---------------------------------------------------------

    def delete_node(self, node_id: str) -> bool:
        changed = self._commit(graph_ops.delete_node(self._graph, node_id), action="delete_node")
        if changed:
            self._prune_selection()
        return changed

    def delete_edge(self, edge_id: str) -> bool:
        changed = self._commit(graph_ops.delete_edge(self._graph, edge_id), action="delete_edge")
        if changed:
            self._prune_selection()
        return changed

    def delete_selected(self) -> bool:
        if self._selected_node_id is not None:
            return self.delete_node(self._selected_node_id)
        if self._selected_edge_id is not None:
            return self.delete_edge(self._selected_edge_id)
        return False

    def clear_diagram(self) -> None:
        self._history.checkpoint(self._graph)
        self._graph = DiagramGraph()
        self._prune_selection()
        logger.info("Diagram cleared")

    # --- selection --------------------------------------------------------

    def select_node(self, node_id: str | None) -> None:
        self._selected_node_id = node_id if graph_ops.find_node(self._graph, node_id) is not None else None
        self._selected_edge_id = None

    def select_edge(self, edge_id: str | None) -> None:
        self._selected_edge_id = edge_id if graph_ops.find_edge(self._graph, edge_id) is not None else None
        self._selected_node_id = None

    def clear_selection(self) -> None:
        self._selected_node_id = None
        self._selected_edge_id = None

    def set_selected_nodes(self, node_ids: Iterable[str]) -> None:
        known = {node.id for node in self._graph.nodes}
        ordered: list[str] = []
        for node_id in node_ids:
            if node_id in known and node_id not in ordered:
                ordered.append(node_id)
        self._selected_node_ids = tuple(ordered)

    # --- history ----------------------------------------------------------

    def can_undo(self) -> bool:
        return self._history.can_undo()

    def can_redo(self) -> bool:
        return self._history.can_redo()

    def undo(self) -> bool:
        previous = self._history.undo(self._graph)
        if previous is None:
            return False
        self._graph = previous
        self._prune_selection()
        return True

    def redo(self) -> bool:
        following = self._history.redo()
        if following is None:
            return False
        self._graph = following
        self._prune_selection()
        return True

    # --- clipboard --------------------------------------------------------

    def copy_selected_nodes(self, clipboard: Clipboard) -> int:
        selected = set(self._selected_node_ids)
        nodes = [node for node in self._graph.nodes if node.id in selected]
        if not nodes:
            return 0
        try:
            written = clipboard.write_text(dumps_clipboard_payload(nodes))
        except OSError as exc:
            logger.warning("Copy to clipboard failed: %s", exc)
            return 0
        if not written:
            return 0
        logger.debug("Copied %d node(s) to clipboard", len(nodes))
        return len(nodes)

    def paste_nodes(self, clipboard: Clipboard, anchor: Any) -> list[str] | None:
        try:
            text = clipboard.read_text()
        except OSError as exc:
            logger.warning("Paste from clipboard failed: %s", exc)
            return None
        copied = parse_clipboard_payload(text)
        if not copied:
            return None
        pasted = remap_pasted_nodes(copied, as_position(anchor))
        self._commit(graph_ops.add_nodes(self._graph, pasted), action="paste_nodes")
        self._selected_node_ids = tuple(node.id for node in pasted)
        logger.debug("Pasted %d node(s)", len(pasted))
        return [node.id for node in pasted]

    # --- persistence ------------------------------------------------------

    def set_theme(self, theme: str) -> bool:
        if theme not in THEMES:
            return False
        self._theme = theme
        return True

    def export_diagram(self) -> dict[str, Any]:
        return graph_to_document(self._graph, theme=self._theme)

    def import_diagram(self, data: Any) -> None:
        # parse fully before touching live state; a bad document raises here
        next_graph = graph_from_document(data)
        theme = document_theme(data)
        self._history.checkpoint(self._graph)
        self._graph = next_graph
        if theme is not None:
            self._theme = theme
        self.clear_selection()
        self._selected_node_ids = ()
        logger.info("Imported diagram with %d node(s), %d edge(s)", len(next_graph.nodes), len(next_graph.edges))
