from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Iterable

from src.diagram_model import (
    Column,
    DiagramGraph,
    DiagramNode,
    ForeignKeyRef,
    GroupNode,
    NODE_TYPES,
    NOTE_LINK_PATTERN,
    NoteNode,
    Position,
    RelationshipEdge,
    Size,
    TableNode,
    coerce_cardinality,
    coerce_data_type,
    coerce_edge_pattern,
    column_handle_ids,
    is_note_node,
    new_id,
)

# Every function here is pure: it returns a new DiagramGraph, or the very same
# graph object when the call does not resolve to anything (unknown id, wrong
# node kind). Callers use identity to tell a no-op from a change.

COLUMN_UPDATE_FIELDS: tuple[str, ...] = (
    "name",
    "data_type",
    "length",
    "nullable",
    "primary_key",
    "unique",
    "auto_increment",
    "default_value",
    "comment",
    "foreign_key",
)


def find_node(graph: DiagramGraph, node_id: str | None) -> DiagramNode | None:
    if node_id is None:
        return None
    for node in graph.nodes:
        if node.id == node_id:
            return node
    return None


def find_edge(graph: DiagramGraph, edge_id: str | None) -> RelationshipEdge | None:
    if edge_id is None:
        return None
    for edge in graph.edges:
        if edge.id == edge_id:
            return edge
    return None


def find_table(graph: DiagramGraph, table_id: str | None) -> TableNode | None:
    node = find_node(graph, table_id)
    return node if isinstance(node, TableNode) else None


def find_column(table: TableNode, column_id: str | None) -> Column | None:
    for column in table.columns:
        if column.id == column_id:
            return column
    return None


def dangling_edges(graph: DiagramGraph) -> list[RelationshipEdge]:
    node_ids = {node.id for node in graph.nodes}
    return [edge for edge in graph.edges if edge.source not in node_ids or edge.target not in node_ids]


def _map_node(
    graph: DiagramGraph,
    node_id: str,
    node_type: type | tuple[type, ...],
    update: Callable[[Any], DiagramNode],
) -> DiagramGraph:
    target = find_node(graph, node_id)
    if target is None or not isinstance(target, node_type):
        return graph
    updated = update(target)
    return DiagramGraph(
        nodes=tuple(updated if node.id == node_id else node for node in graph.nodes),
        edges=graph.edges,
    )


def _map_edge(
    graph: DiagramGraph,
    edge_id: str,
    update: Callable[[RelationshipEdge], RelationshipEdge],
) -> DiagramGraph:
    target = find_edge(graph, edge_id)
    if target is None:
        return graph
    updated = update(target)
    return DiagramGraph(
        nodes=graph.nodes,
        edges=tuple(updated if edge.id == edge_id else edge for edge in graph.edges),
    )


def _scrub_foreign_keys(
    nodes: Iterable[DiagramNode],
    *,
    table_id: str,
    column_id: str | None = None,
) -> tuple[DiagramNode, ...]:
    """Clear FK references to a table (or to one of its columns when column_id is set)."""

    def _points_at_target(ref: ForeignKeyRef | None) -> bool:
        if ref is None or ref.table_id != table_id:
            return False
        return column_id is None or ref.column_id == column_id

    out: list[DiagramNode] = []
    for node in nodes:
        if not isinstance(node, TableNode) or not any(_points_at_target(c.foreign_key) for c in node.columns):
            out.append(node)
            continue
        out.append(
            replace(
                node,
                columns=tuple(
                    replace(column, foreign_key=None) if _points_at_target(column.foreign_key) else column
                    for column in node.columns
                ),
            )
        )
    return tuple(out)


def add_nodes(graph: DiagramGraph, nodes: Iterable[DiagramNode]) -> DiagramGraph:
    new_nodes = tuple(node for node in nodes if isinstance(node, NODE_TYPES))
    if not new_nodes:
        return graph
    return DiagramGraph(nodes=(*graph.nodes, *new_nodes), edges=graph.edges)


def move_node(graph: DiagramGraph, node_id: str, position: Position) -> DiagramGraph:
    return _map_node(graph, node_id, NODE_TYPES, lambda node: replace(node, position=position))


def resize_node(graph: DiagramGraph, node_id: str, size: Size) -> DiagramGraph:
    return _map_node(graph, node_id, NODE_TYPES, lambda node: replace(node, size=size))


def update_table_name(graph: DiagramGraph, node_id: str, name: str) -> DiagramGraph:
    return _map_node(graph, node_id, TableNode, lambda node: replace(node, name=name))


def update_table_color(graph: DiagramGraph, node_id: str, color: str | None) -> DiagramGraph:
    return _map_node(graph, node_id, TableNode, lambda node: replace(node, color=color))


def update_table_comment(graph: DiagramGraph, node_id: str, comment: str | None) -> DiagramGraph:
    return _map_node(graph, node_id, TableNode, lambda node: replace(node, comment=comment))


def update_group_name(graph: DiagramGraph, node_id: str, name: str) -> DiagramGraph:
    return _map_node(graph, node_id, GroupNode, lambda node: replace(node, name=name))


def update_group_color(graph: DiagramGraph, node_id: str, color: str | None) -> DiagramGraph:
    return _map_node(graph, node_id, GroupNode, lambda node: replace(node, color=color))


def toggle_group_collapse(graph: DiagramGraph, node_id: str) -> DiagramGraph:
    return _map_node(graph, node_id, GroupNode, lambda node: replace(node, collapsed=not node.collapsed))


def update_note_content(graph: DiagramGraph, node_id: str, content: str) -> DiagramGraph:
    return _map_node(graph, node_id, NoteNode, lambda node: replace(node, content=content))


def update_note_color(graph: DiagramGraph, node_id: str, color: str | None) -> DiagramGraph:
    return _map_node(graph, node_id, NoteNode, lambda node: replace(node, color=color))


def update_note_name(graph: DiagramGraph, node_id: str, name: str | None) -> DiagramGraph:
    return _map_node(graph, node_id, NoteNode, lambda node: replace(node, name=name))


def add_column(graph: DiagramGraph, table_id: str, column: Column) -> DiagramGraph:
    table = find_table(graph, table_id)
    if table is None or find_column(table, column.id) is not None:
        return graph
    return _map_node(graph, table_id, TableNode, lambda node: replace(node, columns=(*node.columns, column)))


def _normalize_column_updates(updates: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in updates.items():
        if key not in COLUMN_UPDATE_FIELDS:
            continue
        if key == "data_type":
            value = coerce_data_type(value)
        elif key in {"nullable", "primary_key", "unique", "auto_increment"}:
            value = bool(value)
        elif key == "foreign_key" and value is not None and not isinstance(value, ForeignKeyRef):
            continue
        out[key] = value
    return out


def update_column(
    graph: DiagramGraph,
    table_id: str,
    column_id: str,
    updates: dict[str, Any],
) -> DiagramGraph:
    table = find_table(graph, table_id)
    if table is None or find_column(table, column_id) is None:
        return graph
    clean = _normalize_column_updates(updates)
    if not clean:
        return graph
    return _map_node(
        graph,
        table_id,
        TableNode,
        lambda node: replace(
            node,
            columns=tuple(replace(c, **clean) if c.id == column_id else c for c in node.columns),
        ),
    )


def delete_column(graph: DiagramGraph, table_id: str, column_id: str) -> DiagramGraph:
    table = find_table(graph, table_id)
    if table is None or find_column(table, column_id) is None:
        return graph

    handles = set(column_handle_ids(column_id))
    trimmed = _map_node(
        graph,
        table_id,
        TableNode,
        lambda node: replace(node, columns=tuple(c for c in node.columns if c.id != column_id)),
    )

    def _anchored_on_column(edge: RelationshipEdge) -> bool:
        if edge.source == table_id and (edge.source_handle in handles or edge.source_column == column_id):
            return True
        if edge.target == table_id and (edge.target_handle in handles or edge.target_column == column_id):
            return True
        return False

    return DiagramGraph(
        nodes=_scrub_foreign_keys(trimmed.nodes, table_id=table_id, column_id=column_id),
        edges=tuple(edge for edge in trimmed.edges if not _anchored_on_column(edge)),
    )


def reorder_columns(graph: DiagramGraph, table_id: str, column_ids: Iterable[str]) -> DiagramGraph:
    table = find_table(graph, table_id)
    if table is None:
        return graph
    by_id = {column.id: column for column in table.columns}
    ordered: list[Column] = []
    seen: set[str] = set()
    for column_id in column_ids:
        # stale ids from a drag that raced a delete are dropped
        if column_id in by_id and column_id not in seen:
            ordered.append(by_id[column_id])
            seen.add(column_id)
    return _map_node(graph, table_id, TableNode, lambda node: replace(node, columns=tuple(ordered)))


def connect(
    graph: DiagramGraph,
    source: str,
    target: str,
    *,
    source_handle: str | None = None,
    target_handle: str | None = None,
    edge_id: str | None = None,
) -> tuple[DiagramGraph, RelationshipEdge | None]:
    source_node = find_node(graph, source)
    target_node = find_node(graph, target)
    if source_node is None or target_node is None:
        return graph, None
    for edge in graph.edges:
        if (
            edge.source == source
            and edge.target == target
            and edge.source_handle == source_handle
            and edge.target_handle == target_handle
        ):
            return graph, None

    is_note_link = is_note_node(source_node) or is_note_node(target_node)
    edge = RelationshipEdge(
        id=edge_id or new_id(),
        source=source,
        target=target,
        source_handle=source_handle,
        target_handle=target_handle,
        is_note_link=is_note_link,
        pattern=NOTE_LINK_PATTERN if is_note_link else None,
    )
    return DiagramGraph(nodes=graph.nodes, edges=(*graph.edges, edge)), edge


def update_edge_cardinality(graph: DiagramGraph, edge_id: str, cardinality: str) -> DiagramGraph:
    return _map_edge(graph, edge_id, lambda edge: replace(edge, cardinality=coerce_cardinality(cardinality)))


def update_edge_label(graph: DiagramGraph, edge_id: str, label: str | None) -> DiagramGraph:
    return _map_edge(graph, edge_id, lambda edge: replace(edge, label=label))


def update_edge_columns(
    graph: DiagramGraph,
    edge_id: str,
    source_column: str | None,
    target_column: str | None,
) -> DiagramGraph:
    def _update(edge: RelationshipEdge) -> RelationshipEdge:
        # keep the rendered attachment point on the chosen column
        return replace(
            edge,
            source_column=source_column,
            target_column=target_column,
            source_handle=column_handle_ids(source_column)[1] if source_column else edge.source_handle,
            target_handle=column_handle_ids(target_column)[0] if target_column else edge.target_handle,
        )

    return _map_edge(graph, edge_id, _update)


def update_edge_color(graph: DiagramGraph, edge_id: str, color: str | None) -> DiagramGraph:
    return _map_edge(graph, edge_id, lambda edge: replace(edge, color=color))


def update_edge_pattern(graph: DiagramGraph, edge_id: str, pattern: str | None) -> DiagramGraph:
    return _map_edge(graph, edge_id, lambda edge: replace(edge, pattern=coerce_edge_pattern(pattern)))


def delete_node(graph: DiagramGraph, node_id: str) -> DiagramGraph:
    if find_node(graph, node_id) is None:
        return graph
    remaining = tuple(node for node in graph.nodes if node.id != node_id)
    return DiagramGraph(
        nodes=_scrub_foreign_keys(remaining, table_id=node_id),
        edges=tuple(edge for edge in graph.edges if edge.source != node_id and edge.target != node_id),
    )


def delete_edge(graph: DiagramGraph, edge_id: str) -> DiagramGraph:
    if find_edge(graph, edge_id) is None:
        return graph
    return DiagramGraph(
        nodes=graph.nodes,
        edges=tuple(edge for edge in graph.edges if edge.id != edge_id),
    )
