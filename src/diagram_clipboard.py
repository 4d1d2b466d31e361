from __future__ import annotations

from dataclasses import replace
import json
import logging
from typing import Any, Iterable, Protocol

from src.diagram_document import node_from_dict, node_to_dict
from src.diagram_model import DEFAULT_NOTE_NAME, DiagramNode, GroupNode, NoteNode, Position, TableNode, new_id

logger = logging.getLogger("diagram_clipboard")

CLIPBOARD_KIND = "diagram-nodes"
CLIPBOARD_KINDS: tuple[str, ...] = (CLIPBOARD_KIND, "db-mapper-nodes")
CLIPBOARD_VERSION = "1.0"
COPY_SUFFIX = " (copy)"


class Clipboard(Protocol):
    def read_text(self) -> str | None: ...

    def write_text(self, text: str) -> bool: ...


class MemoryClipboard:
    """Process-local clipboard for headless use and tests."""

    def __init__(self, text: str | None = None) -> None:
        self.text = text

    def read_text(self) -> str | None:
        return self.text

    def write_text(self, text: str) -> bool:
        self.text = text
        return True


class TkClipboard:
    """System clipboard through any Tk widget (clipboard_get/clipboard_append)."""

    def __init__(self, widget: object) -> None:
        self.widget = widget

    def read_text(self) -> str | None:
        import tkinter as tk

        try:
            return str(self.widget.clipboard_get())
        except tk.TclError as exc:
            # empty clipboard or non-text content
            logger.debug("Clipboard read unavailable: %s", exc)
            return None

    def write_text(self, text: str) -> bool:
        import tkinter as tk

        try:
            self.widget.clipboard_clear()
            self.widget.clipboard_append(text)
        except tk.TclError as exc:
            logger.warning("Clipboard write failed: %s", exc)
            return False
        return True


def build_clipboard_payload(nodes: Iterable[DiagramNode]) -> dict[str, Any]:
    return {
        "kind": CLIPBOARD_KIND,
        "version": CLIPBOARD_VERSION,
        "nodes": [node_to_dict(node) for node in nodes],
    }


def dumps_clipboard_payload(nodes: Iterable[DiagramNode]) -> str:
    return json.dumps(build_clipboard_payload(nodes), ensure_ascii=False)


def parse_clipboard_payload(text: str | None) -> list[DiagramNode] | None:
    """Return the copied nodes, or None when the text is not a diagram payload."""
    if not isinstance(text, str) or text.strip() == "":
        return None
    try:
        data = json.loads(text)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    # older payloads tagged the kind under "type"
    kind = data.get("kind", data.get("type"))
    if kind not in CLIPBOARD_KINDS or data.get("version") != CLIPBOARD_VERSION:
        return None
    raw_nodes = data.get("nodes")
    if not isinstance(raw_nodes, list):
        return None
    try:
        return [node_from_dict(raw, location=f"clipboard.nodes[{idx}]") for idx, raw in enumerate(raw_nodes)]
    except ValueError as exc:
        logger.debug("Ignoring malformed clipboard payload: %s", exc)
        return None


def remap_pasted_nodes(nodes: list[DiagramNode], anchor: Position) -> list[DiagramNode]:
    """Give copied nodes fresh identities and re-anchor the group at ``anchor``.

    Relative layout is kept by placing every node at its offset from the
    bounding-box minimum. Table columns get new ids and lose their foreign
    keys, which would otherwise point at the original tables.
    """
    if not nodes:
        return []
    min_x = min(node.position.x for node in nodes)
    min_y = min(node.position.y for node in nodes)

    out: list[DiagramNode] = []
    for node in nodes:
        position = Position(
            x=anchor.x + (node.position.x - min_x),
            y=anchor.y + (node.position.y - min_y),
        )
        if isinstance(node, TableNode):
            out.append(
                replace(
                    node,
                    id=new_id(),
                    position=position,
                    name=f"{node.name}{COPY_SUFFIX}",
                    columns=tuple(replace(c, id=new_id(), foreign_key=None) for c in node.columns),
                )
            )
        elif isinstance(node, GroupNode):
            out.append(replace(node, id=new_id(), position=position, name=f"{node.name}{COPY_SUFFIX}"))
        elif isinstance(node, NoteNode):
            out.append(
                replace(node, id=new_id(), position=position, name=f"{node.name or DEFAULT_NOTE_NAME}{COPY_SUFFIX}")
            )
        else:
            raise TypeError(f"unsupported diagram node type: {type(node).__name__}")
    return out
