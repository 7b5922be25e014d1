"""Output sinks receiving accepted candidates and per-event summaries.

Sinks are owned by the caller and filled sequentially. Independent sinks of
the same kind can be merged with `+=`, which is how per-batch outputs of the
parallel runner are combined.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Protocol, Sequence

import hist
import numpy as np
from hist import Hist

from .errors import ConfigurationError
from .models import CandidateRecord, CandidateType, EventSummary
from .tracksel import TrackCut, rejection_key


class CandidateSink(Protocol):
    def fill(self, record: CandidateRecord) -> None:
        ...

    def fill_event(self, summary: EventSummary) -> None:
        ...


class TableSink:
    """Collects candidate records and event summaries in memory."""

    def __init__(self) -> None:
        self.records: list[CandidateRecord] = []
        self.summaries: list[EventSummary] = []

    def fill(self, record: CandidateRecord) -> None:
        self.records.append(record)

    def fill_event(self, summary: EventSummary) -> None:
        self.summaries.append(summary)

    def __iadd__(self, other: "TableSink") -> "TableSink":
        self.records.extend(other.records)
        self.summaries.extend(other.summaries)
        return self

    def __len__(self) -> int:
        return len(self.records)

    def to_dataframe(self):
        return records_to_dataframe(self.records)

    def summaries_dataframe(self):
        pd = _require_pandas()
        return pd.DataFrame(
            [
                {
                    "event_id": s.event_id,
                    "n_tracks": s.n_tracks,
                    "n_tracks_2prong": s.n_tracks_2prong,
                    "n_tracks_3prong": s.n_tracks_3prong,
                    "n_candidates_2prong": s.n_candidates_2prong,
                    "n_candidates_3prong": s.n_candidates_3prong,
                }
                for s in self.summaries
            ]
        )


class HistogramSink:
    """Fills the monitoring histograms of the selection.

    Histograms are created up front from the configured hypothesis names, so
    sinks built from the same configuration always have identical axes and
    can be added together.
    """

    def __init__(
        self,
        hypotheses_2prong: Sequence[str] = (),
        hypotheses_3prong: Sequence[str] = (),
        debug: bool = False,
        n_stages: int = 4,
    ) -> None:
        names = list(hypotheses_2prong) + list(hypotheses_3prong)
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Hypothesis names must be unique across prongs: {names!r}")
        self.debug = debug
        self.histograms: dict[str, Hist] = {
            "hNTracks": Hist(hist.axis.Regular(2500, 0, 25000, name="n_tracks", label="# of tracks")),
        }
        for n_prongs, hypotheses in ((2, hypotheses_2prong), (3, hypotheses_3prong)):
            tag = f"{n_prongs}Prong"
            for coord, (lo, hi) in zip("XYZ", ((-2.0, 2.0), (-2.0, 2.0), (-20.0, 20.0))):
                self.histograms[f"hVtx{tag}{coord}"] = Hist(
                    hist.axis.Regular(1000, lo, hi, name=coord.lower(), label=f"{coord} vertex (cm)")
                )
            self.histograms[f"hNCand{tag}"] = Hist(
                hist.axis.Regular(2000, 0, 200000, name="n_cand", label=f"# of {n_prongs}-prong candidates")
            )
            self.histograms[f"hNCand{tag}VsNTracks"] = Hist(
                hist.axis.Regular(250, 0, 25000, name="n_tracks", label="# of tracks"),
                hist.axis.Regular(200, 0, 200000, name="n_cand", label=f"# of {n_prongs}-prong candidates"),
            )
            if debug and hypotheses:
                self.histograms[f"hCutStatus{tag}"] = Hist(
                    hist.axis.Integer(0, len(hypotheses), name="hypothesis"),
                    hist.axis.Integer(0, n_stages, name="stage"),
                )
            for name in hypotheses:
                self.histograms[f"hmass{name}"] = Hist(
                    hist.axis.Regular(500, 0.0, 5.0, name="mass", label=f"{name} invariant mass (GeV)")
                )
        if debug:
            keys = [rejection_key(ct, cut) for ct in CandidateType for cut in TrackCut]
            self.histograms["hTrackRejections"] = Hist(hist.axis.StrCategory(keys, name="reason"))

    def __getitem__(self, name: str) -> Hist:
        return self.histograms[name]

    def fill(self, record: CandidateRecord) -> None:
        tag = f"{record.n_prongs}Prong"
        sv = record.secondary_vertex
        self.histograms[f"hVtx{tag}X"].fill(sv[0])
        self.histograms[f"hVtx{tag}Y"].fill(sv[1])
        self.histograms[f"hVtx{tag}Z"].fill(sv[2])
        for name, masses in record.masses.items():
            if masses:
                self.histograms[f"hmass{name}"].fill(np.asarray(masses, dtype=float))

        status_hist = self.histograms.get(f"hCutStatus{tag}")
        if status_hist is None or record.cut_status is None:
            return
        n_stages = status_hist.axes[1].size
        failed = [
            (i, k)
            for i, bits in enumerate(record.cut_status)
            for k in range(n_stages)
            if not bits >> k & 1
        ]
        if failed:
            hyp_idx, stage_idx = zip(*failed)
            status_hist.fill(np.asarray(hyp_idx), np.asarray(stage_idx))

    def fill_event(self, summary: EventSummary) -> None:
        self.histograms["hNTracks"].fill(summary.n_tracks)
        for tag, n_cand in (("2Prong", summary.n_candidates_2prong), ("3Prong", summary.n_candidates_3prong)):
            self.histograms[f"hNCand{tag}"].fill(n_cand)
            self.histograms[f"hNCand{tag}VsNTracks"].fill(summary.n_tracks, n_cand)
        rejections = self.histograms.get("hTrackRejections")
        if rejections is not None and summary.track_rejections:
            keys = list(summary.track_rejections)
            rejections.fill(keys, weight=[summary.track_rejections[k] for k in keys])

    def __iadd__(self, other: "HistogramSink") -> "HistogramSink":
        if set(self.histograms) != set(other.histograms):
            raise ValueError("Cannot merge histogram sinks with different histogram sets.")
        for name, h in other.histograms.items():
            self.histograms[name] += h
        return self

    def save(self, path: str | Path) -> Path:
        """Write counts and axis edges (or categories) of every histogram to `.npz`."""
        out = Path(path)
        arrays: dict[str, np.ndarray] = {}
        for name, h in self.histograms.items():
            arrays[f"{name}_counts"] = h.values()
            for idx, axis in enumerate(h.axes):
                if isinstance(axis, hist.axis.StrCategory):
                    arrays[f"{name}_axis{idx}"] = np.asarray(list(axis), dtype=str)
                else:
                    arrays[f"{name}_axis{idx}"] = axis.edges
        np.savez(out, **arrays)
        return out


def candidate_rows(records: Sequence[CandidateRecord]) -> list[dict[str, Any]]:
    """Flatten candidate records into DataFrame-ready row dictionaries."""
    rows: list[dict[str, Any]] = []
    for rec in records:
        row: dict[str, Any] = {
            "event_id": rec.event_id,
            "n_prongs": rec.n_prongs,
            "track_indices": ",".join(str(i) for i in rec.track_indices),
            "track_ids": ",".join(rec.track_ids),
            "bitmask": rec.bitmask,
            "sv_x": rec.secondary_vertex[0],
            "sv_y": rec.secondary_vertex[1],
            "sv_z": rec.secondary_vertex[2],
            "pv_x": rec.primary_vertex[0],
            "pv_y": rec.primary_vertex[1],
            "pv_z": rec.primary_vertex[2],
            "px": rec.momentum[0],
            "py": rec.momentum[1],
            "pz": rec.momentum[2],
            "pt": rec.pt,
            "eta": rec.eta,
            "cos_pointing_angle": rec.cos_pointing_angle,
            "decay_length": rec.decay_length,
            "vertex_chi2": rec.vertex_chi2,
        }
        for idx, name in enumerate(rec.hypothesis_names):
            row[f"sel_{name}"] = bool(rec.bitmask >> idx & 1)
            row[f"which_hypo_{name}"] = rec.which_hypo[idx]
            masses = rec.masses.get(name, ())
            row[f"mass_{name}"] = masses[0] if masses else math.nan
            if len(masses) > 1:
                row[f"mass2_{name}"] = masses[1]
            if rec.cut_status is not None:
                row[f"cut_status_{name}"] = rec.cut_status[idx]
        rows.append(row)
    return rows


def records_to_dataframe(records: Sequence[CandidateRecord]):
    pd = _require_pandas()
    return pd.DataFrame(candidate_rows(records))


def _require_pandas():
    """Import pandas lazily and provide a clear installation hint on failure."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required to build output tables. Install pandas and pyarrow."
        ) from exc
    return pd
