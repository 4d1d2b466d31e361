import json
import tempfile
import unittest
from pathlib import Path

from src.diagram_errors import NoticeSurface, is_actionable_message, show_notice_dialog
from src.diagram_files import (
    diagram_file_notices,
    load_diagram_drop,
    load_diagram_file,
    open_diagram_with_picker,
    read_diagram_file,
    save_diagram_file,
    save_diagram_with_picker,
)
from src.diagram_store import DiagramStore


class TestDiagramFiles(unittest.TestCase):
    def _notices(self) -> tuple[NoticeSurface, list[tuple[str, str]]]:
        calls: list[tuple[str, str]] = []
        surface = NoticeSurface(
            context="Diagram file",
            dialog_title="Diagram file error",
            show_dialog=lambda title, message: calls.append((title, message)),
        )
        return surface, calls

    def _store(self) -> DiagramStore:
        store = DiagramStore()
        users = store.add_table((0, 0))
        note = store.add_note((0, 300))
        store.connect(note, users)
        store.update_table_name(users, "users")
        return store

    def test_save_then_load_restores_the_diagram(self):
        store = self._store()
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = Path(tmp_dir) / "nested" / "database-diagram.json"
            saved = save_diagram_file(store, str(path))
            self.assertEqual(saved, path)
            self.assertEqual(json.loads(path.read_text(encoding="utf-8"))["version"], 2)

            restored = DiagramStore()
            self.assertTrue(load_diagram_file(restored, str(path)))
        self.assertEqual(restored.graph, store.graph)
        self.assertTrue(restored.can_undo())

    def test_save_requires_json_destination(self):
        store = self._store()
        for value in ("", None, "diagram.txt", "diagram"):
            with self.subTest(value=value):
                with self.assertRaises(ValueError) as ctx:
                    save_diagram_file(store, value)
                self.assertTrue(is_actionable_message(str(ctx.exception)), str(ctx.exception))

    def test_invalid_file_shows_one_generic_notice_and_keeps_state(self):
        store = self._store()
        before = store.graph
        notices, calls = self._notices()
        with tempfile.TemporaryDirectory() as tmp_dir:
            broken = Path(tmp_dir) / "broken.json"
            broken.write_text("{this is not json", encoding="utf-8")
            self.assertFalse(load_diagram_file(store, str(broken), notices=notices))

            wrong_shape = Path(tmp_dir) / "wrong.json"
            wrong_shape.write_text(json.dumps({"version": 2, "nodes": "x", "edges": []}), encoding="utf-8")
            self.assertFalse(load_diagram_file(store, str(wrong_shape), notices=notices))

        self.assertEqual(len(calls), 2)
        for title, message in calls:
            self.assertEqual(title, "Diagram file error")
            self.assertIn("invalid diagram file", message)
            self.assertTrue(is_actionable_message(message))
        self.assertIs(store.graph, before)

    def test_missing_file_is_reported(self):
        store = self._store()
        notices, calls = self._notices()
        with tempfile.TemporaryDirectory() as tmp_dir:
            missing = Path(tmp_dir) / "missing.json"
            self.assertFalse(load_diagram_file(store, str(missing), notices=notices))
        self.assertEqual(len(calls), 1)
        with self.assertRaises(ValueError):
            read_diagram_file("diagram.yaml")

    def test_newer_version_gets_its_own_notice(self):
        store = self._store()
        notices, calls = self._notices()
        with tempfile.TemporaryDirectory() as tmp_dir:
            future = Path(tmp_dir) / "future.json"
            future.write_text(json.dumps({"version": 99, "nodes": [], "edges": []}), encoding="utf-8")
            self.assertFalse(load_diagram_file(store, str(future), notices=notices))
        self.assertEqual(len(calls), 1)
        self.assertIn("unsupported version 99", calls[0][1])

    def test_cancelled_picker_is_silent(self):
        store = self._store()
        before = store.graph
        notices, calls = self._notices()
        self.assertFalse(open_diagram_with_picker(store, ask_open=lambda: "", notices=notices))
        self.assertIsNone(save_diagram_with_picker(store, ask_save=lambda: "", notices=notices))
        self.assertEqual(calls, [])
        self.assertIs(store.graph, before)

    def test_pickers_round_trip_through_chosen_path(self):
        store = self._store()
        with tempfile.TemporaryDirectory() as tmp_dir:
            target = str(Path(tmp_dir) / "picked.json")
            self.assertEqual(save_diagram_with_picker(store, ask_save=lambda: target), Path(target))
            restored = DiagramStore()
            self.assertTrue(open_diagram_with_picker(restored, ask_open=lambda: target))
        self.assertEqual(restored.graph, store.graph)

    def test_save_picker_reports_bad_extension(self):
        notices, calls = self._notices()
        self.assertIsNone(save_diagram_with_picker(self._store(), ask_save=lambda: "out.csv", notices=notices))
        self.assertEqual(len(calls), 1)
        self.assertIn("Fix:", calls[0][1])

    def test_drop_requires_exactly_one_json_file(self):
        store = self._store()
        notices, calls = self._notices()
        self.assertFalse(load_diagram_drop(store, ["a.json", "b.json"], notices=notices))
        self.assertFalse(load_diagram_drop(store, ["picture.png"], notices=notices))
        self.assertFalse(load_diagram_drop(store, [], notices=notices))
        self.assertEqual(len(calls), 3)

        with tempfile.TemporaryDirectory() as tmp_dir:
            path = save_diagram_file(self._store(), str(Path(tmp_dir) / "dropped.json"))
            self.assertTrue(load_diagram_drop(store, [str(path)], notices=notices))
        self.assertEqual(len(calls), 3)

    def test_legacy_file_with_non_text_ids_gets_generic_notice(self):
        store = self._store()
        before = store.graph
        notices, calls = self._notices()
        documents = (
            {"nodes": [{"id": ["x"], "type": "table", "position": {"x": 0, "y": 0}, "data": {}}], "edges": []},
            {
                "nodes": [{"id": "a", "type": "note", "position": {"x": 0, "y": 0}, "data": {}}],
                "edges": [{"id": "e", "source": {"a": 1}, "target": "a"}],
            },
        )
        with tempfile.TemporaryDirectory() as tmp_dir:
            for idx, doc in enumerate(documents):
                path = Path(tmp_dir) / f"legacy_{idx}.json"
                path.write_text(json.dumps(doc), encoding="utf-8")
                self.assertFalse(load_diagram_file(store, str(path), notices=notices))
        self.assertEqual(len(calls), len(documents))
        for _, message in calls:
            self.assertIn("invalid diagram file", message)
        self.assertIs(store.graph, before)

    def test_file_notices_default_to_tk_dialog(self):
        statuses: list[str] = []
        notices = diagram_file_notices(set_status=statuses.append)
        self.assertIs(notices.show_dialog, show_notice_dialog)
        self.assertEqual(notices.dialog_title, "Diagram file error")
        self.assertEqual(
            notices.format(location="Load", issue="invalid diagram file", hint="choose a .json file"),
            "Diagram file / Load: invalid diagram file. Fix: choose a .json file.",
        )


if __name__ == "__main__":
    unittest.main()
