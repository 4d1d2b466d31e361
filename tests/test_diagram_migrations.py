import copy
import json
import unittest
from pathlib import Path

from src.diagram_document import graph_from_document
from src.diagram_migrations import (
    CURRENT_DOCUMENT_VERSION,
    MIGRATIONS,
    UnsupportedDocumentVersion,
    migrate_document,
    migrate_v0_to_v1,
    migrate_v1_to_v2,
)

FIXTURE = Path(__file__).parent / "fixtures" / "legacy_v0_diagram.json"


class TestDiagramMigrations(unittest.TestCase):
    def _legacy(self) -> dict:
        return json.loads(FIXTURE.read_text(encoding="utf-8"))

    def test_chain_is_contiguous_and_ends_at_current_version(self):
        versions = [from_version for from_version, _ in MIGRATIONS]
        self.assertEqual(versions, list(range(CURRENT_DOCUMENT_VERSION)))

    def test_v0_document_is_upgraded_to_current(self):
        migrated = migrate_document(self._legacy())
        self.assertEqual(migrated["version"], CURRENT_DOCUMENT_VERSION)
        by_id = {edge["id"]: edge for edge in migrated["edges"]}
        self.assertTrue(by_id["e_note"]["data"]["isNoteLink"])
        self.assertEqual(by_id["e_note"]["data"]["pattern"], "dashed")
        self.assertFalse(by_id["e_fk"]["data"]["isNoteLink"])
        self.assertNotIn("pattern", by_id["e_fk"]["data"])

    def test_legacy_file_loads_into_a_graph(self):
        graph = graph_from_document(self._legacy())
        self.assertEqual(len(graph.nodes), 3)
        note_edges = [edge for edge in graph.edges if edge.is_note_link]
        self.assertEqual([edge.id for edge in note_edges], ["e_note"])

    def test_migration_does_not_mutate_input(self):
        legacy = self._legacy()
        snapshot = copy.deepcopy(legacy)
        migrate_document(legacy)
        self.assertEqual(legacy, snapshot)

        current = {"version": CURRENT_DOCUMENT_VERSION, "nodes": [], "edges": []}
        migrated = migrate_document(current)
        self.assertIsNot(migrated, current)
        self.assertEqual(migrated, current)

    def test_steps_are_idempotent(self):
        legacy = self._legacy()
        for _, step in MIGRATIONS:
            once = step(legacy)
            self.assertEqual(step(once), once)
            legacy = once

    def test_existing_flags_are_not_overwritten(self):
        doc = self._legacy()
        doc["edges"][1]["data"] = {"isNoteLink": False}
        self.assertFalse(migrate_v0_to_v1(doc)["edges"][1]["data"]["isNoteLink"])

        doc = {"edges": [{"id": "e", "data": {"isNoteLink": True, "pattern": "dotted"}}]}
        self.assertEqual(migrate_v1_to_v2(doc)["edges"][0]["data"]["pattern"], "dotted")

        doc = {"edges": [{"id": "e", "data": {"isNoteLink": True, "pattern": None}}]}
        self.assertIsNone(migrate_v1_to_v2(doc)["edges"][0]["data"]["pattern"])

    def test_null_version_is_treated_as_legacy(self):
        doc = self._legacy()
        doc["version"] = None
        self.assertEqual(migrate_document(doc)["version"], CURRENT_DOCUMENT_VERSION)

    def test_newer_version_is_rejected(self):
        with self.assertRaises(UnsupportedDocumentVersion) as ctx:
            migrate_document({"version": CURRENT_DOCUMENT_VERSION + 1, "nodes": [], "edges": []})
        message = str(ctx.exception)
        self.assertIn("unsupported version", message)
        self.assertIn("Fix:", message)

    def test_malformed_versions_are_rejected(self):
        for version in ("2", 1.5, True, -1):
            with self.subTest(version=version):
                with self.assertRaises(ValueError) as ctx:
                    migrate_document({"version": version, "nodes": [], "edges": []})
                self.assertNotIsInstance(ctx.exception, UnsupportedDocumentVersion)
                self.assertIn("Fix:", str(ctx.exception))

        with self.assertRaises(ValueError):
            migrate_document(["not", "a", "document"])


if __name__ == "__main__":
    unittest.main()
