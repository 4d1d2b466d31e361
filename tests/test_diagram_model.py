import unittest
from dataclasses import FrozenInstanceError

from src.diagram_model import (
    DEFAULT_CARDINALITY,
    DEFAULT_DATA_TYPE,
    GroupNode,
    NoteNode,
    Position,
    Size,
    SQL_DATA_TYPES,
    TableNode,
    as_position,
    as_size,
    coerce_cardinality,
    coerce_data_type,
    coerce_edge_pattern,
    column_handle_ids,
    is_note_node,
    new_column,
    new_group_node,
    new_note_node,
    new_table_node,
)
from src.diagram_store import DiagramStore


class TestDiagramModel(unittest.TestCase):
    def test_new_table_has_single_auto_increment_primary_key(self):
        table = new_table_node(Position(10, 20))
        self.assertIsInstance(table, TableNode)
        self.assertEqual(table.kind, "table")
        self.assertEqual(table.position, Position(10, 20))
        self.assertEqual(table.name, "New Table")
        self.assertEqual(len(table.columns), 1)
        pk = table.columns[0]
        self.assertEqual(pk.name, "id")
        self.assertEqual(pk.data_type, "INT")
        self.assertTrue(pk.primary_key)
        self.assertTrue(pk.auto_increment)
        self.assertTrue(pk.unique)
        self.assertFalse(pk.nullable)

    def test_new_nodes_get_distinct_ids(self):
        ids = {new_table_node(Position()).id for _ in range(20)}
        self.assertEqual(len(ids), 20)

    def test_group_and_note_defaults(self):
        group = new_group_node(Position(0, 0))
        note = new_note_node(Position(0, 0))
        self.assertIsInstance(group, GroupNode)
        self.assertFalse(group.collapsed)
        self.assertEqual((group.size.width, group.size.height), (400, 300))
        self.assertIsInstance(note, NoteNode)
        self.assertEqual(note.content, "New note...")
        self.assertTrue(is_note_node(note))
        self.assertFalse(is_note_node(group))

    def test_new_column_is_nullable_varchar(self):
        column = new_column()
        self.assertEqual(column.name, "new_column")
        self.assertEqual(column.data_type, "VARCHAR")
        self.assertEqual(column.length, 255)
        self.assertTrue(column.nullable)
        self.assertFalse(column.primary_key)

    def test_entities_are_immutable(self):
        table = new_table_node(Position())
        with self.assertRaises(FrozenInstanceError):
            table.name = "changed"

    def test_coerce_helpers_normalize_unknown_values(self):
        self.assertEqual(coerce_data_type("bigint"), "BIGINT")
        self.assertEqual(coerce_data_type("geometry"), DEFAULT_DATA_TYPE)
        self.assertEqual(coerce_data_type(None), DEFAULT_DATA_TYPE)
        self.assertIn(DEFAULT_DATA_TYPE, SQL_DATA_TYPES)
        self.assertEqual(coerce_cardinality("many-to-many"), "many-to-many")
        self.assertEqual(coerce_cardinality("zero-to-one"), DEFAULT_CARDINALITY)
        self.assertEqual(coerce_edge_pattern("Dotted"), "dotted")
        self.assertIsNone(coerce_edge_pattern("wavy"))
        self.assertIsNone(coerce_edge_pattern(None))

    def test_column_handle_ids(self):
        self.assertEqual(column_handle_ids("c1"), ("c1-left", "c1-right"))

    def test_as_position_accepts_pairs_and_mappings(self):
        self.assertEqual(as_position((3, 4)), Position(3, 4))
        self.assertEqual(as_position({"x": 5, "y": 6}), Position(5, 6))
        with self.assertRaises(ValueError) as ctx:
            as_position("nowhere")
        self.assertIn("Fix:", str(ctx.exception))

    def test_geometry_must_be_numeric(self):
        for value in ({"x": "10", "y": 0}, ("1", 2), (True, 0), Position(x=None, y=0)):
            with self.subTest(value=value):
                with self.assertRaises(ValueError) as ctx:
                    as_position(value)
                self.assertIn("Fix:", str(ctx.exception))
        self.assertEqual(as_size(640, 480.5), Size(640, 480.5))
        with self.assertRaises(ValueError):
            as_size("big", 10)
        with self.assertRaises(ValueError):
            as_size(10, False)

    def test_rejected_geometry_leaves_store_untouched(self):
        store = DiagramStore()
        node_id = store.add_group((0, 0))
        before = store.graph
        with self.assertRaises(ValueError):
            store.add_table({"x": "10", "y": 0})
        with self.assertRaises(ValueError):
            store.resize_node(node_id, "big", 100)
        with self.assertRaises(ValueError):
            store.move_node(node_id, (0, "top"))
        self.assertIs(store.graph, before)
        DiagramStore().import_diagram(store.export_diagram())


if __name__ == "__main__":
    unittest.main()
