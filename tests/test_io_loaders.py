"""Unit tests for JSON input loaders and table export."""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from prongsel import CandidateSelector, CombinatorialGenerator, ConfigurationError, TableSink
from prongsel.io import (
    load_events_json,
    load_selection_config_json,
    selection_config_from_dict,
    write_candidates_table,
)

from builders import d0_hypothesis, scenario_event


class TestIOLoaders(unittest.TestCase):
    """Validate parsing for event-batch and selection-config JSON inputs."""

    @staticmethod
    def _write(tmpdir: str, name: str, payload) -> Path:
        path = Path(tmpdir) / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_load_events_json_parses_event_payload(self) -> None:
        payload = {
            "events": [
                {
                    "event_id": "evt42",
                    "primary_vertex": {"x": 0.01, "y": -0.02, "z": 1.5},
                    "tracks": [
                        {"track_id": "t0", "px": 1.0, "py": 0.5, "pz": 2.0, "sign": 1, "dcaXY": 0.01, "dcaZ": -0.02},
                        {
                            "px": -0.3,
                            "py": 0.2,
                            "pz": 0.0,
                            "charge": -2,
                            "x": 0.1,
                            "pdgCode": -211,
                            "isPhysicalPrimary": 1,
                        },
                    ],
                },
                {"tracks": []},
            ]
        }
        with tempfile.TemporaryDirectory() as tmpdir:
            events = load_events_json(self._write(tmpdir, "events.json", payload))
        self.assertEqual(len(events), 2)
        event = events[0]
        self.assertEqual(event.event_id, "evt42")
        self.assertEqual(event.primary_vertex.position, (0.01, -0.02, 1.5))
        t0, t1 = event.tracks
        self.assertEqual(t0.track_id, "t0")
        self.assertEqual(t0.sign, 1)
        self.assertEqual(t0.dca_xy, 0.01)
        self.assertEqual(t0.dca_z, -0.02)
        self.assertEqual(t1.track_id, "trk1")
        self.assertEqual(t1.sign, -1)
        self.assertEqual(t1.x, 0.1)
        self.assertEqual(t1.pdg_code, -211)
        self.assertTrue(t1.is_physical_primary)
        self.assertEqual(events[1].event_id, "evt1")
        self.assertEqual(events[1].primary_vertex.position, (0.0, 0.0, 0.0))

    def test_load_events_json_rejects_bad_payloads(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(ValueError):
                load_events_json(self._write(tmpdir, "a.json", {"tracks": []}))
            with self.assertRaises(ValueError):
                load_events_json(self._write(tmpdir, "b.json", [1, 2]))
            with self.assertRaises(ValueError):
                load_events_json(
                    self._write(tmpdir, "c.json", {"events": [{"tracks": [{"px": 1, "py": 0, "pz": 0}]}]})
                )

    def test_selection_config_defaults(self) -> None:
        config = selection_config_from_dict({})
        self.assertEqual(config.pt_tolerance, 0.1)
        self.assertFalse(config.debug)
        self.assertFalse(config.do_3prong)
        self.assertEqual([h.name for h in config.hypotheses_2prong], ["D0ToPiK", "JpsiToEE", "JpsiToMuMu"])
        self.assertEqual(len(config.hypotheses_3prong), 4)

    def test_selection_config_full_document(self) -> None:
        payload = {
            "pt_tolerance": 0.05,
            "debug": True,
            "do_3prong": True,
            "channels": {"2prong": ["D0ToPiK"], "3prong": ["LcToPKPi"]},
            "hypotheses_2prong": {
                "D0ToPiK": {"pt_bins": [0.0, 5.0, 50.0], "cuts": {
                    "massMin": [1.7, 1.6], "massMax": [2.05, 2.15], "cosp": [0.8, 0.7], "d0d0": [0.0, 0.0001]
                }},
                "KsToPiPi": {
                    "orderings": [["pi", "pi"], ["pi", "pi"]],
                    "pt_bins": [0.0, 100.0],
                    "cuts": {"labels": ["massMin", "massMax", "d0d0", "cosp"], "rows": [[0.45, 0.55, 1.0, 0.99]]},
                },
            },
            "hypotheses_3prong": {
                "Custom3": {
                    "orderings": [[{"name": "X", "mass": 1.0}, "K", 0.2], ["pi", "K", "p"]],
                    "pt_bins": [2.0, 24.0],
                    "cuts": {"massMin": [-1.0], "massMax": [3.0], "cosp": [0.9], "decL": [0.01]},
                }
            },
            "track_selection": {
                "2prong": {
                    "pt_min": 0.3,
                    "eta_max": 0.8,
                    "pt_bins": [0.0, 1.0, 100.0],
                    "cuts": {"min_dcaxytoprimary": [0.005, 0.0], "max_dcaxytoprimary": [1.0, 1.0]},
                },
                "3prong": {"pt_min": 0.4},
            },
            "vertexing": {"max_radius": 5.0},
        }
        with tempfile.TemporaryDirectory() as tmpdir:
            config = load_selection_config_json(self._write(tmpdir, "selection.json", payload))
        self.assertEqual(config.pt_tolerance, 0.05)
        self.assertTrue(config.debug)
        self.assertTrue(config.do_3prong)
        self.assertEqual(config.max_radius, 5.0)
        self.assertEqual([h.name for h in config.hypotheses_2prong], ["D0ToPiK", "KsToPiPi"])
        self.assertEqual([h.name for h in config.hypotheses_3prong], ["LcToPKPi", "Custom3"])
        d0 = config.hypotheses_2prong[0]
        self.assertEqual(d0.pt_bins.edges, (0.0, 5.0, 50.0))
        self.assertEqual(d0.cuts.get(1, "d0d0"), 0.0001)
        custom = config.hypotheses_3prong[1]
        self.assertEqual(custom.mass_orderings[0][0], 1.0)
        self.assertEqual(custom.mass_orderings[0][2], 0.2)
        self.assertEqual(config.track_cuts_2prong.eta_max, 0.8)
        self.assertTrue(config.track_cuts_2prong.has_dca_cut)
        self.assertEqual(config.track_cuts_3prong.pt_min, 0.4)
        self.assertFalse(config.track_cuts_3prong.has_dca_cut)

        combiner = config.build_combiner()
        self.assertEqual(combiner.selector_2prong.hypothesis_names, ("D0ToPiK", "KsToPiPi"))
        self.assertTrue(combiner.selector_3prong.debug)

    def test_selection_config_errors(self) -> None:
        bad_documents = [
            {"hypotheses_2prong": {"X": {"orderings": [["pi", "K"], ["K", "pi"]], "pt_bins": [0, 1],
                                         "cuts": {"massMin": [1.0], "massMax": [2.0], "cosp": [0.5]}}}},
            {"hypotheses_2prong": {"X": {"orderings": [["pi", "K"], ["K", "pi"]], "pt_bins": [1, 0],
                                         "cuts": {"massMin": [1.0], "massMax": [2.0], "cosp": [0.5], "d0d0": [1]}}}},
            {"channels": {"2prong": ["LcToPKPi"]}},
            {"channels": {"2prong": ["NotAChannel"]}},
            {"hypotheses_3prong": {"Y": {"orderings": [["pi", "K", "pi"], ["pi", "K", "pi"]]}}},
            {"track_selection": {"2prong": {"cuts": {"min_dcaxytoprimary": [0.1], "max_dcaxytoprimary": [1.0]}}}},
            {"pt_tolerance": "wide"},
        ]
        with tempfile.TemporaryDirectory() as tmpdir:
            for idx, payload in enumerate(bad_documents):
                with self.subTest(idx=idx):
                    with self.assertRaises(ConfigurationError):
                        load_selection_config_json(self._write(tmpdir, f"bad{idx}.json", payload))

    def test_write_candidates_table_csv(self) -> None:
        import pandas as pd

        sink = TableSink()
        generator = CombinatorialGenerator(selector_2prong=CandidateSelector([d0_hypothesis()], debug=True))
        generator.process_event(scenario_event(), sinks=[sink])
        with tempfile.TemporaryDirectory() as tmpdir:
            out = Path(tmpdir) / "candidates.csv"
            write_candidates_table(out, sink.records)
            df = pd.read_csv(out)
            with self.assertRaises(ValueError):
                write_candidates_table(Path(tmpdir) / "candidates.txt", sink.records)
        self.assertEqual(len(df), 1)
        row = df.iloc[0]
        self.assertEqual(row["event_id"], "evt0")
        self.assertEqual(row["track_ids"], "pos,neg")
        self.assertEqual(row["bitmask"], 1)
        self.assertEqual(row["which_hypo_D0ToPiK"], 1)
        self.assertEqual(row["cut_status_D0ToPiK"], 15)
        self.assertTrue(bool(row["sel_D0ToPiK"]))
        self.assertAlmostEqual(row["mass_D0ToPiK"], 1.875, places=2)


if __name__ == "__main__":
    unittest.main()
