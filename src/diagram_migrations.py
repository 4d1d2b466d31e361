"""Upgrade persisted diagram documents to the current schema version.

Version history:

- v0: no version key; edges carry no ``isNoteLink`` flag and renderers looked
  the endpoints up on every draw.
- v1: ``isNoteLink`` is stored in edge data, resolved once when the edge is
  created.
- v2: edges carry optional ``color`` and ``pattern``; note links that never
  chose a pattern keep their dashed look.

Each step is a pure ``dict -> dict`` transform that leaves entries already
carrying the target field untouched, so re-running a step is a no-op.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable

logger = logging.getLogger("diagram_migrations")

CURRENT_DOCUMENT_VERSION = 2

Document = dict[str, Any]


class UnsupportedDocumentVersion(ValueError):
    """Document was written by a newer release than this one understands."""


def _migration_error(field: str, issue: str, hint: str) -> str:
    return f"Diagram migration / {field}: {issue}. Fix: {hint}."


def raw_node_kind(node: object) -> str | None:
    if not isinstance(node, dict):
        return None
    data = node.get("data")
    if isinstance(data, dict) and isinstance(data.get("type"), str):
        return data["type"]
    for key in ("type", "kind"):
        if isinstance(node.get(key), str):
            return node[key]
    return None


def _raw_edges(doc: Document) -> list[Any]:
    edges = doc.get("edges", [])
    return edges if isinstance(edges, list) else []


def migrate_v0_to_v1(doc: Document) -> Document:
    out = copy.deepcopy(doc)
    nodes = out.get("nodes", [])
    kinds_by_id = {
        node["id"]: raw_node_kind(node)
        for node in (nodes if isinstance(nodes, list) else [])
        if isinstance(node, dict) and isinstance(node.get("id"), str)
    }
    for edge in _raw_edges(out):
        if not isinstance(edge, dict):
            continue
        source = edge.get("source")
        target = edge.get("target")
        # malformed endpoints are left for the document parser to reject
        if not isinstance(source, str) or not isinstance(target, str):
            continue
        data = edge.get("data")
        if not isinstance(data, dict):
            data = {}
            edge["data"] = data
        if "isNoteLink" in data:
            continue
        data["isNoteLink"] = kinds_by_id.get(source) == "note" or kinds_by_id.get(target) == "note"
    return out


def migrate_v1_to_v2(doc: Document) -> Document:
    out = copy.deepcopy(doc)
    for edge in _raw_edges(out):
        if not isinstance(edge, dict):
            continue
        data = edge.get("data")
        # an explicit null pattern is kept as stored
        if not isinstance(data, dict) or "pattern" in data:
            continue
        if data.get("isNoteLink") is True:
            data["pattern"] = "dashed"
    return out


# (from_version, step) in application order; step N upgrades vN to vN+1.
MIGRATIONS: list[tuple[int, Callable[[Document], Document]]] = [
    (0, migrate_v0_to_v1),
    (1, migrate_v1_to_v2),
]


def document_version(doc: Document) -> int:
    raw = doc.get("version", 0)
    if raw is None:
        return 0
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValueError(
            _migration_error(
                "Version",
                f"version must be a whole number, got {raw!r}",
                "set 'version' to an integer or remove the key for legacy documents",
            )
        )
    if raw < 0:
        raise ValueError(
            _migration_error(
                "Version",
                f"version must be >= 0, got {raw}",
                "set 'version' to a non-negative integer",
            )
        )
    return raw


def migrate_document(doc: Document) -> Document:
    if not isinstance(doc, dict):
        raise ValueError(
            _migration_error(
                "Document",
                "document must be a JSON object",
                "load a diagram file saved by this application",
            )
        )
    version = document_version(doc)
    if version > CURRENT_DOCUMENT_VERSION:
        raise UnsupportedDocumentVersion(
            _migration_error(
                "Version",
                f"unsupported version {version} (this application reads up to {CURRENT_DOCUMENT_VERSION})",
                "open the diagram with a newer release of the application",
            )
        )

    out = doc
    for from_version, step in MIGRATIONS:
        if from_version < version:
            continue
        logger.info("Migrating diagram document v%d -> v%d", from_version, from_version + 1)
        out = step(out)
    if out is doc:
        out = copy.deepcopy(doc)
    out["version"] = CURRENT_DOCUMENT_VERSION
    return out
