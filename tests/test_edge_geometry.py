import unittest

from dbml_canvas.core.edge_geometry import (
    LEFT_SOURCE, LEFT_TARGET, NODE_WIDTH, RIGHT_SOURCE, RIGHT_TARGET,
    clean_positions, column_from_handle, handle_id, resolve_handles,
)


class TestEdgeGeometry(unittest.TestCase):
    def test_target_to_the_right(self):
        self.assertEqual(resolve_handles({"x": 0, "y": 0}, {"x": 400, "y": 300}),
                         (RIGHT_SOURCE, LEFT_TARGET))

    def test_target_to_the_left(self):
        self.assertEqual(resolve_handles({"x": 400, "y": 0}, {"x": 0, "y": 0}),
                         (LEFT_SOURCE, RIGHT_TARGET))

    def test_stacked_target_below(self):
        self.assertEqual(resolve_handles({"x": 100, "y": 0}, {"x": 120, "y": 300}),
                         (RIGHT_SOURCE, RIGHT_TARGET))

    def test_stacked_target_above(self):
        self.assertEqual(resolve_handles({"x": 100, "y": 300}, {"x": 80, "y": 0}),
                         (LEFT_SOURCE, LEFT_TARGET))

    def test_half_width_offset_counts_as_stacked(self):
        half = NODE_WIDTH / 2
        self.assertEqual(resolve_handles({"x": 0, "y": 0}, {"x": half, "y": 10}),
                         (RIGHT_SOURCE, RIGHT_TARGET))
        self.assertEqual(resolve_handles({"x": 0, "y": 0}, {"x": half + 1, "y": 10}),
                         (RIGHT_SOURCE, LEFT_TARGET))

    def test_custom_node_width(self):
        self.assertEqual(resolve_handles({"x": 0, "y": 0}, {"x": 100, "y": 0}, node_width=100),
                         (RIGHT_SOURCE, LEFT_TARGET))

    def test_handle_ids(self):
        self.assertEqual(handle_id("user_id", RIGHT_TARGET), "user_id-right-target")
        self.assertEqual(column_from_handle("user_id-right-target"), "user_id")
        self.assertEqual(column_from_handle("user_id-left-source"), "user_id")
        self.assertEqual(column_from_handle("id-right"), "id")
        self.assertEqual(column_from_handle("id-left"), "id")
        self.assertEqual(column_from_handle("plain"), "plain")

    def test_clean_positions(self):
        self.assertEqual(clean_positions({
            "a": {"x": 1, "y": 2.5},
            "b": {"x": 1},
            "c": {"x": True, "y": 0},
            "d": None,
        }), {"a": {"x": 1, "y": 2.5}})
        self.assertEqual(clean_positions(None), {})
        self.assertEqual(clean_positions([{"x": 1, "y": 2}]), {})


if __name__ == "__main__":
    unittest.main()
