from __future__ import annotations

import json
from typing import Any

from src.diagram_graph import dangling_edges
from src.diagram_migrations import CURRENT_DOCUMENT_VERSION, migrate_document, raw_node_kind
from src.diagram_model import (
    CARDINALITIES,
    Column,
    DEFAULT_CARDINALITY,
    DEFAULT_GROUP_SIZE,
    DiagramGraph,
    DiagramNode,
    EDGE_PATTERNS,
    ForeignKeyRef,
    GroupNode,
    NODE_KINDS,
    NoteNode,
    Position,
    RelationshipEdge,
    SQL_DATA_TYPES,
    Size,
    TableNode,
)

THEMES: tuple[str, ...] = ("light", "dark", "system")


def _document_error(location: str, issue: str, hint: str) -> str:
    return f"Diagram document / {location}: {issue}. Fix: {hint}."


def _require_dict(value: Any, *, location: str, hint: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(_document_error(location, "must be a JSON object", hint))
    return value


def _require_str(value: Any, *, location: str) -> str:
    if not isinstance(value, str) or value.strip() == "":
        raise ValueError(_document_error(location, "a non-empty string is required", "set a text value"))
    return value


def _optional_str(value: Any, *, location: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(_document_error(location, "must be a string when present", "set text or remove the key"))
    return value


def _optional_bool(value: Any, *, location: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(_document_error(location, "must be true or false", "use a JSON boolean"))
    return value


def _number(value: Any, *, location: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(_document_error(location, "must be a number", "use numeric canvas coordinates"))
    return value


def _choice(value: Any, *, location: str, allowed: tuple[str, ...]) -> str:
    if not isinstance(value, str) or value not in allowed:
        raise ValueError(
            _document_error(location, f"unsupported value {value!r}", f"use one of: {', '.join(allowed)}")
        )
    return value


# --- encode -----------------------------------------------------------------


def _put_optional(out: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        out[key] = value


def column_to_dict(column: Column) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": column.id,
        "name": column.name,
        "dataType": column.data_type,
    }
    _put_optional(out, "length", column.length)
    out["nullable"] = column.nullable
    out["primaryKey"] = column.primary_key
    out["unique"] = column.unique
    out["autoIncrement"] = column.auto_increment
    _put_optional(out, "defaultValue", column.default_value)
    _put_optional(out, "comment", column.comment)
    if column.foreign_key is not None:
        out["foreignKey"] = {
            "tableId": column.foreign_key.table_id,
            "columnId": column.foreign_key.column_id,
        }
    return out


def node_to_dict(node: DiagramNode) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": node.id,
        "type": node.kind,
        "position": {"x": node.position.x, "y": node.position.y},
    }
    if node.size is not None:
        out["style"] = {"width": node.size.width, "height": node.size.height}

    data: dict[str, Any] = {"type": node.kind}
    if isinstance(node, TableNode):
        data["name"] = node.name
        data["columns"] = [column_to_dict(column) for column in node.columns]
        _put_optional(data, "color", node.color)
        _put_optional(data, "comment", node.comment)
    elif isinstance(node, GroupNode):
        data["name"] = node.name
        _put_optional(data, "color", node.color)
        data["collapsed"] = node.collapsed
    elif isinstance(node, NoteNode):
        _put_optional(data, "name", node.name)
        data["content"] = node.content
        _put_optional(data, "color", node.color)
    else:
        raise TypeError(f"unsupported diagram node type: {type(node).__name__}")
    out["data"] = data
    return out


def edge_to_dict(edge: RelationshipEdge) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": edge.id,
        "source": edge.source,
        "target": edge.target,
        "type": "relationship",
    }
    _put_optional(out, "sourceHandle", edge.source_handle)
    _put_optional(out, "targetHandle", edge.target_handle)
    data: dict[str, Any] = {
        "type": "relationship",
        "cardinality": edge.cardinality,
        "isNoteLink": edge.is_note_link,
    }
    _put_optional(data, "label", edge.label)
    _put_optional(data, "sourceColumn", edge.source_column)
    _put_optional(data, "targetColumn", edge.target_column)
    _put_optional(data, "color", edge.color)
    _put_optional(data, "pattern", edge.pattern)
    out["data"] = data
    return out


def graph_to_document(graph: DiagramGraph, *, theme: str | None = None) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "version": CURRENT_DOCUMENT_VERSION,
        "nodes": [node_to_dict(node) for node in graph.nodes],
        "edges": [edge_to_dict(edge) for edge in graph.edges],
    }
    if theme is not None:
        doc["theme"] = theme
    return doc


def dumps_document(doc: dict[str, Any]) -> str:
    return json.dumps(doc, indent=2, ensure_ascii=False) + "\n"


# --- decode -----------------------------------------------------------------


def _parse_position(value: Any, *, location: str) -> Position:
    raw = _require_dict(value, location=location, hint="store positions as {'x': number, 'y': number}")
    return Position(
        x=_number(raw.get("x"), location=f"{location}.x"),
        y=_number(raw.get("y"), location=f"{location}.y"),
    )


def _parse_size(raw_node: dict[str, Any], *, location: str) -> Size | None:
    style = raw_node.get("style")
    source = style if isinstance(style, dict) and "width" in style else raw_node
    if source.get("width") is None or source.get("height") is None:
        return None
    return Size(
        width=_number(source.get("width"), location=f"{location}.width"),
        height=_number(source.get("height"), location=f"{location}.height"),
    )


def column_from_dict(value: Any, *, location: str) -> Column:
    raw = _require_dict(value, location=location, hint="store each column as a JSON object")
    length = raw.get("length")
    if length is not None and (isinstance(length, bool) or not isinstance(length, int)):
        raise ValueError(_document_error(f"{location}.length", "must be a whole number", "use an integer length"))

    foreign_key = None
    raw_fk = raw.get("foreignKey")
    if raw_fk is not None:
        fk = _require_dict(raw_fk, location=f"{location}.foreignKey", hint="use {'tableId', 'columnId'}")
        foreign_key = ForeignKeyRef(
            table_id=_require_str(fk.get("tableId"), location=f"{location}.foreignKey.tableId"),
            column_id=_require_str(fk.get("columnId"), location=f"{location}.foreignKey.columnId"),
        )

    return Column(
        id=_require_str(raw.get("id"), location=f"{location}.id"),
        name=_optional_str(raw.get("name"), location=f"{location}.name") or "",
        data_type=_choice(raw.get("dataType", "VARCHAR"), location=f"{location}.dataType", allowed=SQL_DATA_TYPES),
        length=length,
        nullable=_optional_bool(raw.get("nullable"), location=f"{location}.nullable", default=True),
        primary_key=_optional_bool(raw.get("primaryKey"), location=f"{location}.primaryKey", default=False),
        unique=_optional_bool(raw.get("unique"), location=f"{location}.unique", default=False),
        auto_increment=_optional_bool(
            raw.get("autoIncrement"),
            location=f"{location}.autoIncrement",
            default=False,
        ),
        default_value=_optional_str(raw.get("defaultValue"), location=f"{location}.defaultValue"),
        comment=_optional_str(raw.get("comment"), location=f"{location}.comment"),
        foreign_key=foreign_key,
    )


def node_from_dict(value: Any, *, location: str) -> DiagramNode:
    raw = _require_dict(value, location=location, hint="store each node as a JSON object")
    kind = raw_node_kind(raw)
    if kind not in NODE_KINDS:
        raise ValueError(
            _document_error(
                f"{location}.type",
                f"unsupported node type {kind!r}",
                f"use one of: {', '.join(NODE_KINDS)}",
            )
        )
    node_id = _require_str(raw.get("id"), location=f"{location}.id")
    position = _parse_position(raw.get("position"), location=f"{location}.position")
    size = _parse_size(raw, location=f"{location}.style")
    data = _require_dict(raw.get("data", {}), location=f"{location}.data", hint="store node fields under 'data'")
    color = _optional_str(data.get("color"), location=f"{location}.data.color")

    if kind == "table":
        raw_columns = data.get("columns", [])
        if not isinstance(raw_columns, list):
            raise ValueError(
                _document_error(f"{location}.data.columns", "must be a list", "store table columns as a JSON array")
            )
        columns = tuple(
            column_from_dict(column, location=f"{location}.data.columns[{idx}]")
            for idx, column in enumerate(raw_columns)
        )
        column_ids = [column.id for column in columns]
        if len(set(column_ids)) != len(column_ids):
            raise ValueError(
                _document_error(
                    f"{location}.data.columns",
                    f"duplicate column ids on table '{node_id}'",
                    "give every column of a table a unique id",
                )
            )
        return TableNode(
            id=node_id,
            position=position,
            name=_optional_str(data.get("name"), location=f"{location}.data.name") or "",
            columns=columns,
            size=size,
            color=color,
            comment=_optional_str(data.get("comment"), location=f"{location}.data.comment"),
        )
    if kind == "group":
        return GroupNode(
            id=node_id,
            position=position,
            size=size or DEFAULT_GROUP_SIZE,
            name=_optional_str(data.get("name"), location=f"{location}.data.name") or "",
            color=color,
            collapsed=_optional_bool(data.get("collapsed"), location=f"{location}.data.collapsed", default=False),
        )
    return NoteNode(
        id=node_id,
        position=position,
        content=_optional_str(data.get("content"), location=f"{location}.data.content") or "",
        name=_optional_str(data.get("name"), location=f"{location}.data.name"),
        size=size,
        color=color,
    )


def edge_from_dict(value: Any, *, location: str) -> RelationshipEdge:
    raw = _require_dict(value, location=location, hint="store each edge as a JSON object")
    data = _require_dict(raw.get("data") or {}, location=f"{location}.data", hint="store edge fields under 'data'")
    pattern = data.get("pattern")
    return RelationshipEdge(
        id=_require_str(raw.get("id"), location=f"{location}.id"),
        source=_require_str(raw.get("source"), location=f"{location}.source"),
        target=_require_str(raw.get("target"), location=f"{location}.target"),
        source_handle=_optional_str(raw.get("sourceHandle"), location=f"{location}.sourceHandle"),
        target_handle=_optional_str(raw.get("targetHandle"), location=f"{location}.targetHandle"),
        cardinality=_choice(
            data.get("cardinality") or DEFAULT_CARDINALITY,
            location=f"{location}.data.cardinality",
            allowed=CARDINALITIES,
        ),
        label=_optional_str(data.get("label"), location=f"{location}.data.label"),
        source_column=_optional_str(data.get("sourceColumn"), location=f"{location}.data.sourceColumn"),
        target_column=_optional_str(data.get("targetColumn"), location=f"{location}.data.targetColumn"),
        is_note_link=_optional_bool(data.get("isNoteLink"), location=f"{location}.data.isNoteLink", default=False),
        color=_optional_str(data.get("color"), location=f"{location}.data.color"),
        pattern=(
            None
            if pattern is None
            else _choice(pattern, location=f"{location}.data.pattern", allowed=EDGE_PATTERNS)
        ),
    )


def unwrap_document(data: Any) -> dict[str, Any]:
    """Accept a bare document or the ``{"state": {...}, "version": n}`` local-storage envelope."""
    doc = _require_dict(data, location="Document", hint="load a diagram file saved by this application")
    state = doc.get("state")
    if isinstance(state, dict) and "nodes" not in doc:
        unwrapped = dict(state)
        if "version" in doc:
            unwrapped["version"] = doc["version"]
        return unwrapped
    return doc


def graph_from_document(data: Any) -> DiagramGraph:
    doc = migrate_document(unwrap_document(data))

    raw_nodes = doc.get("nodes", [])
    raw_edges = doc.get("edges", [])
    if not isinstance(raw_nodes, list):
        raise ValueError(_document_error("nodes", "must be a list", "store nodes as a JSON array"))
    if not isinstance(raw_edges, list):
        raise ValueError(_document_error("edges", "must be a list", "store edges as a JSON array"))

    nodes = tuple(node_from_dict(raw, location=f"nodes[{idx}]") for idx, raw in enumerate(raw_nodes))
    edges = tuple(edge_from_dict(raw, location=f"edges[{idx}]") for idx, raw in enumerate(raw_edges))

    node_ids = [node.id for node in nodes]
    if len(set(node_ids)) != len(node_ids):
        raise ValueError(_document_error("nodes", "duplicate node ids", "give every node a unique id"))
    edge_ids = [edge.id for edge in edges]
    if len(set(edge_ids)) != len(edge_ids):
        raise ValueError(_document_error("edges", "duplicate edge ids", "give every edge a unique id"))

    graph = DiagramGraph(nodes=nodes, edges=edges)
    dangling = dangling_edges(graph)
    if dangling:
        raise ValueError(
            _document_error(
                "edges",
                f"edge '{dangling[0].id}' references a node that does not exist",
                "remove the edge or restore its source/target node",
            )
        )
    return graph


def document_theme(data: Any) -> str | None:
    doc = unwrap_document(data)
    theme = doc.get("theme")
    return theme if theme in THEMES else None


def parse_document_text(text: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            _document_error("JSON", f"content is not valid JSON ({exc})", "load a diagram file saved by this application")
        ) from exc
    return unwrap_document(data)
