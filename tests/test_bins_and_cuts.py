"""Unit tests for pT binning and per-bin cut tables."""

from __future__ import annotations

import math
import unittest

from prongsel import NO_BIN, ConfigurationError, CutTable, PtBinTable


class TestPtBinTable(unittest.TestCase):
    """Bin lookup conventions and construction checks."""

    def test_lower_edge_inclusive_upper_edge_exclusive(self) -> None:
        bins = PtBinTable([1.0, 5.0, 1000.0])
        self.assertEqual(bins.find_bin(1.0), 0)
        self.assertEqual(bins.find_bin(4.999), 0)
        self.assertEqual(bins.find_bin(5.0), 1)
        self.assertEqual(bins.find_bin(999.9), 1)
        self.assertEqual(bins.find_bin(1000.0), NO_BIN)
        self.assertEqual(bins.find_bin(0.999), NO_BIN)

    def test_interior_edges_map_to_their_own_bin(self) -> None:
        edges = [0.0, 0.5, 1.0, 2.0, 4.0, 8.0, 24.0]
        bins = PtBinTable(edges)
        for i, edge in enumerate(edges[:-1]):
            self.assertEqual(bins.find_bin(edge), i)

    def test_lookup_is_monotone(self) -> None:
        bins = PtBinTable([0.5, 1.0, 2.0, 4.0, 8.0])
        values = [i * 0.05 for i in range(0, 200)]
        found = [bins.find_bin(v) for v in values if 0.5 <= v < 8.0]
        self.assertEqual(found, sorted(found))

    def test_nan_and_infinity_have_no_bin(self) -> None:
        bins = PtBinTable([1.0, 5.0])
        self.assertEqual(bins.find_bin(math.nan), NO_BIN)
        self.assertEqual(bins.find_bin(math.inf), NO_BIN)
        self.assertEqual(bins.find_bin(-math.inf), NO_BIN)

    def test_malformed_edges_raise(self) -> None:
        for edges in ([], [1.0], [1.0, 1.0], [2.0, 1.0], [0.0, 1.0, 0.5], [0.0, math.inf], [math.nan, 1.0]):
            with self.subTest(edges=edges):
                with self.assertRaises(ConfigurationError):
                    PtBinTable(edges)

    def test_labels_and_size(self) -> None:
        bins = PtBinTable([1, 5, 1000])
        self.assertEqual(bins.n_bins, 2)
        self.assertEqual(len(bins), 2)
        self.assertEqual(bins.labels(), ["1 < pT < 5", "5 < pT < 1000"])
        self.assertEqual(bins, PtBinTable([1.0, 5.0, 1000.0]))


class TestCutTable(unittest.TestCase):
    """Named lookups, validation, and the no-negative-index rule."""

    @staticmethod
    def _table() -> CutTable:
        return CutTable(
            ["massMin", "massMax", "cosp", "d0d0"],
            [[1.65, 2.15, 0.5, 100.0], [1.70, 2.10, 0.8, 50.0]],
        )

    def test_get_by_name_and_by_column(self) -> None:
        table = self._table()
        self.assertEqual(table.n_bins, 2)
        self.assertEqual(table.get(0, "massMin"), 1.65)
        self.assertEqual(table.get(1, "cosp"), 0.8)
        col = table.column("d0d0")
        self.assertEqual(col, 3)
        self.assertEqual(table.value(1, col), 50.0)
        self.assertEqual(table.row(1), {"massMin": 1.7, "massMax": 2.1, "cosp": 0.8, "d0d0": 50.0})

    def test_unknown_cut_name_raises(self) -> None:
        with self.assertRaises(ConfigurationError):
            self._table().get(0, "decL")

    def test_sentinel_and_out_of_range_bins_raise(self) -> None:
        table = self._table()
        for bin_index in (NO_BIN, 2, 10):
            with self.subTest(bin_index=bin_index):
                with self.assertRaises(ConfigurationError):
                    table.get(bin_index, "massMin")

    def test_require_reports_missing_names(self) -> None:
        table = self._table()
        table.require(["massMin", "massMax"])
        with self.assertRaisesRegex(ConfigurationError, "decL"):
            table.require(["massMin", "decL"])

    def test_from_columns_matches_row_construction(self) -> None:
        table = CutTable.from_columns(
            {
                "massMin": [1.65, 1.70],
                "massMax": [2.15, 2.10],
                "cosp": [0.5, 0.8],
                "d0d0": [100.0, 50.0],
            }
        )
        self.assertEqual(table, self._table())
        self.assertEqual(table.to_columns()["cosp"], [0.5, 0.8])

    def test_invalid_tables_raise(self) -> None:
        with self.assertRaises(ConfigurationError):
            CutTable([], [[1.0]])
        with self.assertRaises(ConfigurationError):
            CutTable(["a", "a"], [[1.0, 2.0]])
        with self.assertRaises(ConfigurationError):
            CutTable(["a", "b"], [])
        with self.assertRaises(ConfigurationError):
            CutTable(["a", "b"], [[1.0]])
        with self.assertRaises(ConfigurationError):
            CutTable(["a"], [[math.nan]])
        with self.assertRaises(ConfigurationError):
            CutTable.from_columns({"a": [1.0, 2.0], "b": [1.0]})

    def test_extra_cut_names_are_carried(self) -> None:
        table = CutTable(["massMin", "myCut"], [[1.0, 42.0]])
        self.assertTrue(table.has_cut("myCut"))
        self.assertEqual(table.get(0, "myCut"), 42.0)


if __name__ == "__main__":
    unittest.main()
