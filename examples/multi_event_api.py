"""Multi-event API example selecting D0 and J/psi candidates with custom cut tables.

Run from repository root without installation:
    PYTHONPATH=src python examples/multi_event_api.py
"""

from __future__ import annotations

from pathlib import Path

from prongsel import (
    CandidateSelector,
    CombinatorialGenerator,
    HistogramSink,
    TableSink,
    make_hypothesis,
    standard_hypothesis,
)
from prongsel.io import load_events_json, write_candidates_table


def main() -> int:
    """Load events, select 2-prong candidates, write a parquet table and histograms."""
    events = load_events_json("examples/events.json")
    hypotheses = [
        make_hypothesis(
            "D0ToPiK",
            [["pi", "K"], ["K", "pi"]],
            [0.0, 5.0, 50.0],
            {
                "massMin": [1.7, 1.65],
                "massMax": [2.05, 2.1],
                "d0d0": [0.001, 0.01],
                "cosp": [0.8, 0.5],
            },
        ),
        standard_hypothesis("JpsiToEE"),
    ]
    generator = CombinatorialGenerator(selector_2prong=CandidateSelector(hypotheses, pt_tolerance=0.1))
    table = TableSink()
    histograms = HistogramSink(hypotheses_2prong=[h.name for h in hypotheses])
    generator.combine_events(events, sinks=[table, histograms])

    out_path = Path("examples/multi_event_output.parquet")
    write_candidates_table(out_path, table.records)
    histograms.save("examples/multi_event_histograms.npz")
    print(f"Wrote {len(table)} candidates from {len(table.summaries)} events to {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
