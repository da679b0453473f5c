import itertools
import math
import unittest

from market_globe.schemas.quote import Quote, QuoteSpec
from market_globe.services.catalog import default_catalog
from market_globe.services.layout_engine import (
    LayoutNode,
    layout_markers,
    marker_size_for_width,
    project,
    relax,
)


def _quotes_at(locations: list[tuple[float, float]]) -> list[Quote]:
    return [
        Quote.from_spec(
            QuoteSpec(symbol=f"IDX{i}", name=f"Index {i}", display_name=f"I{i}", location=loc),
            price=100.0,
            change_pct=0.0,
            source="synthetic",
            ts=1,
        )
        for i, loc in enumerate(locations)
    ]


def _catalog_quotes() -> list[Quote]:
    return [Quote.from_spec(spec, price=1.0, change_pct=0.1, source="primary", ts=1) for spec in default_catalog]


def _pair_distances(positions: dict[str, tuple[float, float]]) -> list[float]:
    return [math.dist(a, b) for a, b in itertools.combinations(positions.values(), 2)]


class ProjectionTest(unittest.TestCase):
    def test_equirectangular_corners(self):
        self.assertEqual(project((90.0, -180.0), 1000, 800), (0.0, 0.0))
        self.assertEqual(project((-90.0, 180.0), 1000, 800), (1000.0, 800.0))
        self.assertEqual(project((0.0, 0.0), 1000, 800), (500.0, 400.0))

    def test_marker_size_breakpoints(self):
        self.assertEqual(marker_size_for_width(500).size, 60)
        self.assertEqual(marker_size_for_width(767).font_size, 10)
        self.assertEqual(marker_size_for_width(768).size, 80)
        self.assertEqual(marker_size_for_width(1199).radius, 40.0)
        self.assertEqual(marker_size_for_width(1200).size, 100)
        self.assertEqual(marker_size_for_width(1920).font_size, 14)


class LayoutEngineTest(unittest.TestCase):
    def test_fewer_than_five_markers_skip_relaxation(self):
        specs = [default_catalog.get(s) for s in ("^GSPC", "^DJI", "^IXIC")]
        quotes = [Quote.from_spec(spec, price=1.0, change_pct=0.0, source="primary", ts=1) for spec in specs]

        positions = layout_markers(quotes, 1000, 800, 50)

        self.assertEqual(set(positions), {"^GSPC", "^DJI", "^IXIC"})
        for spec in specs:
            lat, lon = spec.location
            x, y = positions[spec.symbol]
            self.assertAlmostEqual(x, (lon + 180) / 360 * 1000)
            self.assertAlmostEqual(y, (90 - lat) / 180 * 800)

    def test_empty_batch_has_no_positions(self):
        self.assertEqual(layout_markers([], 1000, 800, 40), {})

    def test_relaxed_positions_stay_inside_margins(self):
        radius = 50
        for width, height in ((1000, 800), (1400, 700), (640, 480)):
            positions = layout_markers(_catalog_quotes(), width, height, radius)

            self.assertEqual(len(positions), len(default_catalog))
            margin = radius * 1.2
            for x, y in positions.values():
                self.assertGreaterEqual(x, margin)
                self.assertLessEqual(x, width - margin)
                self.assertGreaterEqual(y, margin)
                self.assertLessEqual(y, height - margin)

    def test_edge_anchors_are_clamped_inside(self):
        corners = [(90.0, -180.0), (90.0, 180.0), (-90.0, -180.0), (-90.0, 180.0), (0.0, 0.0)]
        positions = layout_markers(_quotes_at(corners), 1000, 800, 40)

        for x, y in positions.values():
            self.assertTrue(48.0 <= x <= 952.0)
            self.assertTrue(48.0 <= y <= 752.0)

    def test_layout_is_deterministic(self):
        quotes = _catalog_quotes()
        self.assertEqual(layout_markers(quotes, 1000, 800, 40), layout_markers(quotes, 1000, 800, 40))

    def test_slightly_overlapping_row_is_separated(self):
        radius = 40
        row = [(0.0, lon) for lon in (-62.0, -31.0, 0.0, 31.0, 62.0)]

        positions = layout_markers(_quotes_at(row), 1000, 800, radius)

        for distance in _pair_distances(positions):
            self.assertGreaterEqual(distance, radius * 2.2 * 0.95)
        for _, y in positions.values():
            self.assertAlmostEqual(y, 400.0)

    def test_dense_cluster_spreads_out(self):
        radius = 40
        cluster = [(10.0 + (i // 5) * 0.05, 20.0 + (i % 5) * 0.05) for i in range(20)]
        quotes = _quotes_at(cluster)
        start = {q.symbol: project(q.location, 1000, 800) for q in quotes}

        positions = layout_markers(quotes, 1000, 800, radius)

        start_min = min(_pair_distances(start))
        final = _pair_distances(positions)
        self.assertGreater(min(final), start_min * 10)
        self.assertGreater(max(final), radius * 2.2)
        for x, y in positions.values():
            self.assertTrue(48.0 <= x <= 952.0)
            self.assertTrue(48.0 <= y <= 752.0)

    def test_coincident_nodes_do_not_produce_nan(self):
        nodes = [LayoutNode(symbol=f"N{i}", x=500.0, y=400.0, home_x=500.0, home_y=400.0, radius=40) for i in range(5)]

        iterations = relax(nodes, 1000, 800, 40)

        self.assertEqual(iterations, 10)
        for node in nodes:
            self.assertFalse(math.isnan(node.x) or math.isnan(node.y))
            self.assertEqual((node.x, node.y), (500.0, 400.0))

    def test_iteration_count_is_capped(self):
        nodes = [
            LayoutNode(symbol=f"N{i}", x=100.0 + 30 * i, y=400.0, home_x=100.0 + 30 * i, home_y=400.0, radius=10)
            for i in range(30)
        ]
        self.assertEqual(relax(nodes, 1200, 800, 10), 50)


if __name__ == "__main__":
    unittest.main()
