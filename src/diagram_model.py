from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Union
import uuid

SQL_DATA_TYPES: tuple[str, ...] = (
    "INT",
    "BIGINT",
    "SMALLINT",
    "TINYINT",
    "DECIMAL",
    "NUMERIC",
    "FLOAT",
    "DOUBLE",
    "VARCHAR",
    "CHAR",
    "TEXT",
    "LONGTEXT",
    "DATE",
    "DATETIME",
    "TIMESTAMP",
    "TIME",
    "BOOLEAN",
    "BIT",
    "BLOB",
    "BINARY",
    "VARBINARY",
    "JSON",
    "UUID",
    "ENUM",
    "SET",
)
DEFAULT_DATA_TYPE = "VARCHAR"

CARDINALITIES: tuple[str, ...] = ("one-to-one", "one-to-many", "many-to-many")
DEFAULT_CARDINALITY = "one-to-many"

EDGE_PATTERNS: tuple[str, ...] = ("solid", "dashed", "dotted")
NOTE_LINK_PATTERN = "dashed"

NODE_KINDS: tuple[str, ...] = ("table", "group", "note")

DEFAULT_TABLE_NAME = "New Table"
DEFAULT_GROUP_NAME = "New Group"
DEFAULT_NOTE_NAME = "New Note"
DEFAULT_NOTE_CONTENT = "New note..."


@dataclass(frozen=True)
class Position:
    x: float = 0
    y: float = 0


@dataclass(frozen=True)
class Size:
    width: float
    height: float


DEFAULT_TABLE_SIZE = Size(width=250, height=200)
DEFAULT_GROUP_SIZE = Size(width=400, height=300)


@dataclass(frozen=True)
class ForeignKeyRef:
    table_id: str
    column_id: str


@dataclass(frozen=True)
class Column:
    id: str
    name: str
    data_type: str = DEFAULT_DATA_TYPE
    length: int | None = None
    nullable: bool = True
    primary_key: bool = False
    unique: bool = False
    auto_increment: bool = False
    default_value: str | None = None
    comment: str | None = None
    foreign_key: ForeignKeyRef | None = None


@dataclass(frozen=True)
class TableNode:
    id: str
    position: Position
    name: str = DEFAULT_TABLE_NAME
    columns: tuple[Column, ...] = ()
    size: Size | None = None
    color: str | None = None
    comment: str | None = None

    kind: ClassVar[str] = "table"


@dataclass(frozen=True)
class GroupNode:
    """Visual container; membership is geometric and owned by the canvas."""

    id: str
    position: Position
    size: Size = DEFAULT_GROUP_SIZE
    name: str = DEFAULT_GROUP_NAME
    color: str | None = None
    collapsed: bool = False

    kind: ClassVar[str] = "group"


@dataclass(frozen=True)
class NoteNode:
    id: str
    position: Position
    content: str = DEFAULT_NOTE_CONTENT
    name: str | None = DEFAULT_NOTE_NAME
    size: Size | None = None
    color: str | None = None

    kind: ClassVar[str] = "note"


DiagramNode = Union[TableNode, GroupNode, NoteNode]
NODE_TYPES: tuple[type, ...] = (TableNode, GroupNode, NoteNode)


@dataclass(frozen=True)
class RelationshipEdge:
    id: str
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None
    cardinality: str = DEFAULT_CARDINALITY
    label: str | None = None
    source_column: str | None = None
    target_column: str | None = None
    # fixed when the edge is created; never re-derived from the endpoints
    is_note_link: bool = False
    color: str | None = None
    pattern: str | None = None


@dataclass(frozen=True)
class DiagramGraph:
    nodes: tuple[DiagramNode, ...] = field(default_factory=tuple)
    edges: tuple[RelationshipEdge, ...] = field(default_factory=tuple)


def new_id() -> str:
    return str(uuid.uuid4())


def coerce_data_type(value: object) -> str:
    dtype = str(value).strip().upper() if value is not None else ""
    return dtype if dtype in SQL_DATA_TYPES else DEFAULT_DATA_TYPE


def coerce_cardinality(value: object) -> str:
    cardinality = str(value).strip().lower() if value is not None else ""
    return cardinality if cardinality in CARDINALITIES else DEFAULT_CARDINALITY


def coerce_edge_pattern(value: object) -> str | None:
    if value is None:
        return None
    pattern = str(value).strip().lower()
    return pattern if pattern in EDGE_PATTERNS else None


def column_handle_ids(column_id: str) -> tuple[str, str]:
    """Return the (left, right) canvas handle ids anchored on a column."""
    return f"{column_id}-left", f"{column_id}-right"


def is_note_node(node: object) -> bool:
    return isinstance(node, NoteNode)


def new_primary_key_column() -> Column:
    return Column(
        id=new_id(),
        name="id",
        data_type="INT",
        nullable=False,
        primary_key=True,
        unique=True,
        auto_increment=True,
    )


def new_column() -> Column:
    return Column(
        id=new_id(),
        name="new_column",
        data_type="VARCHAR",
        length=255,
        nullable=True,
    )


def new_table_node(position: Position) -> TableNode:
    return TableNode(
        id=new_id(),
        position=position,
        name=DEFAULT_TABLE_NAME,
        columns=(new_primary_key_column(),),
        size=DEFAULT_TABLE_SIZE,
    )


def new_group_node(position: Position) -> GroupNode:
    return GroupNode(id=new_id(), position=position)


def new_note_node(position: Position) -> NoteNode:
    return NoteNode(id=new_id(), position=position)


def _coordinate(value: object, *, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(
            f"Diagram / {field}: must be a number, got {value!r}. "
            "Fix: pass canvas geometry as int or float values."
        )
    return value


def as_position(value: object) -> Position:
    """Accept a Position, an (x, y) pair or an {"x", "y"} mapping from callers."""
    if isinstance(value, Position):
        x, y = value.x, value.y
    elif isinstance(value, dict):
        x, y = value.get("x", 0), value.get("y", 0)
    elif isinstance(value, (tuple, list)) and len(value) == 2:
        x, y = value
    else:
        raise ValueError(
            "Diagram / Position: expected Position, (x, y) or {'x', 'y'}. "
            "Fix: pass canvas coordinates as a pair of numbers."
        )
    return Position(x=_coordinate(x, field="Position.x"), y=_coordinate(y, field="Position.y"))


def as_size(width: object, height: object) -> Size:
    return Size(width=_coordinate(width, field="Size.width"), height=_coordinate(height, field="Size.height"))
