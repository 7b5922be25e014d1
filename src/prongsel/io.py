"""Input/output helpers for JSON inputs and tabular candidate export."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Sequence

from .bins import PtBinTable
from .config import SelectionConfig
from .cuts import CutTable
from .errors import ConfigurationError
from .hypotheses import HypothesisSpec, default_hypotheses, make_hypothesis, standard_hypothesis
from .models import CandidateRecord, EventInput, PrimaryVertex, Track
from .sinks import records_to_dataframe
from .tracksel import SingleTrackCuts


def load_events_json(path: str | Path) -> list[EventInput]:
    """Load multi-event input JSON into `EventInput` objects.

    Expected shape:
    {
      "events": [
        {"event_id": "...", "primary_vertex": {"x": 0, "y": 0, "z": 0}, "tracks": [...]},
        ...
      ]
    }
    """
    data = _load_json(path)
    events_data = data.get("events")
    if not isinstance(events_data, list):
        raise ValueError("Events JSON must contain a list under key 'events'.")
    out: list[EventInput] = []
    for idx, event in enumerate(events_data):
        if not isinstance(event, dict):
            raise ValueError(f"Event entry at index {idx} must be an object.")
        event_id = str(event.get("event_id", f"evt{idx}"))
        tracks_data = event.get("tracks")
        if not isinstance(tracks_data, list):
            raise ValueError(f"Event '{event_id}' must contain a list under key 'tracks'.")
        tracks = tuple(
            _parse_track_item(item=track_item, idx=tidx, context=f"event '{event_id}'")
            for tidx, track_item in enumerate(tracks_data)
        )
        pv = _parse_primary_vertex(event.get("primary_vertex"), context=f"event '{event_id}'")
        out.append(EventInput(event_id=event_id, tracks=tracks, primary_vertex=pv))
    return out


def load_selection_config_json(path: str | Path) -> SelectionConfig:
    """Load a selection configuration document.

    Top-level keys (all optional):
    - `pt_tolerance`, `debug`, `do_3prong`
    - `channels`: `{"2prong": [...], "3prong": [...]}` catalogue channel names
    - `hypotheses_2prong` / `hypotheses_3prong`: `{name: {orderings, pt_bins, cuts}}`
    - `track_selection`: `{"2prong": {...}, "3prong": {...}}`
    - `vertexing`: `{"max_radius": ...}`

    Any malformed entry raises `ConfigurationError`.
    """
    try:
        data = _load_json(path)
        return selection_config_from_dict(data)
    except ConfigurationError:
        raise
    except (TypeError, ValueError, KeyError) as exc:
        raise ConfigurationError(f"Invalid selection config {path}: {exc}") from exc


def selection_config_from_dict(data: dict[str, Any]) -> SelectionConfig:
    """Build a `SelectionConfig` from an already decoded JSON object."""
    track_data = data.get("track_selection", {})
    vertexing = data.get("vertexing", {})
    if not isinstance(track_data, dict) or not isinstance(vertexing, dict):
        raise ConfigurationError("'track_selection' and 'vertexing' must be objects.")
    return SelectionConfig(
        hypotheses_2prong=_parse_hypotheses(data, 2),
        hypotheses_3prong=_parse_hypotheses(data, 3),
        pt_tolerance=float(data.get("pt_tolerance", 0.1)),
        debug=bool(data.get("debug", False)),
        do_3prong=bool(data.get("do_3prong", False)),
        track_cuts_2prong=_parse_track_cuts(track_data.get("2prong"), "2prong"),
        track_cuts_3prong=_parse_track_cuts(track_data.get("3prong"), "3prong"),
        max_radius=float(vertexing.get("max_radius", 200.0)),
    )


def write_candidates_table(path: str | Path, records: Sequence[CandidateRecord]) -> None:
    """Write candidate records into Parquet/CSV/Pickle table."""
    df = records_to_dataframe(records)
    out = Path(path)
    suffix = out.suffix.lower()
    if suffix == ".parquet":
        df.to_parquet(out, index=False)
    elif suffix in (".pkl", ".pickle"):
        df.to_pickle(out)
    elif suffix == ".csv":
        df.to_csv(out, index=False)
    else:
        raise ValueError(
            f"Unsupported output format '{suffix}'. Use .parquet, .csv, or .pkl"
        )


def _parse_hypotheses(data: dict[str, Any], n_prongs: int) -> tuple[HypothesisSpec, ...]:
    """Catalogue channels first, then explicit entries (which replace same-named ones)."""
    channels = data.get("channels", {})
    if not isinstance(channels, dict):
        raise ConfigurationError("'channels' must map '2prong'/'3prong' to lists of names.")
    names = channels.get(f"{n_prongs}prong")
    entries = data.get(f"hypotheses_{n_prongs}prong")
    if names is None and entries is None:
        return default_hypotheses(n_prongs)
    if names is not None and not isinstance(names, list):
        raise ConfigurationError(f"'channels.{n_prongs}prong' must be a list.")
    if entries is not None and not isinstance(entries, dict):
        raise ConfigurationError(f"'hypotheses_{n_prongs}prong' must be an object.")

    out: dict[str, HypothesisSpec] = {}
    for name in names or []:
        out[str(name)] = standard_hypothesis(str(name))
    for name, entry in (entries or {}).items():
        out[name] = _parse_hypothesis(name, entry)
    for spec in out.values():
        if spec.n_prongs != n_prongs:
            raise ConfigurationError(
                f"Hypothesis '{spec.name}' has {spec.n_prongs} daughters but is listed "
                f"under {n_prongs}-prong hypotheses."
            )
    return tuple(out.values())


def _parse_hypothesis(name: str, entry: Any) -> HypothesisSpec:
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Hypothesis '{name}' must be an object.")
    orderings = entry.get("orderings")
    pt_bins = entry.get("pt_bins")
    cuts = _parse_cut_table(entry.get("cuts"), context=f"hypothesis '{name}'")
    if orderings is None:
        # Catalogue channel with overridden binning and/or cuts.
        return standard_hypothesis(name, pt_bins=pt_bins, cuts=cuts)
    if not isinstance(orderings, list) or not all(isinstance(o, list) for o in orderings):
        raise ConfigurationError(f"Hypothesis '{name}' orderings must be a list of lists.")
    if pt_bins is None or cuts is None:
        raise ConfigurationError(f"Hypothesis '{name}' must define 'pt_bins' and 'cuts'.")
    return make_hypothesis(name, orderings, pt_bins, cuts)


def _parse_cut_table(value: Any, context: str) -> CutTable | None:
    """Accept `{cut: [per-bin values]}` or `{"labels": [...], "rows": [[...]]}`."""
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ConfigurationError(f"Cuts of {context} must be an object.")
    if "labels" in value or "rows" in value:
        labels = value.get("labels")
        rows = value.get("rows")
        if not isinstance(labels, list) or not isinstance(rows, list):
            raise ConfigurationError(f"Cuts of {context} need 'labels' and 'rows' lists.")
        return CutTable(labels, rows)
    for cut_name, column in value.items():
        if not isinstance(column, list):
            raise ConfigurationError(f"Cut '{cut_name}' of {context} must be a list.")
    return CutTable.from_columns(value)


def _parse_track_cuts(entry: Any, context: str) -> SingleTrackCuts:
    if entry is None:
        return SingleTrackCuts()
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Track selection '{context}' must be an object.")
    pt_bins = entry.get("pt_bins")
    return SingleTrackCuts(
        pt_min=float(entry.get("pt_min", -1.0)),
        eta_max=float(entry.get("eta_max", 4.0)),
        pt_bins=PtBinTable(pt_bins) if pt_bins is not None else None,
        dca_cuts=_parse_cut_table(entry.get("cuts"), context=f"track selection '{context}'"),
    )


def _parse_track_item(item: Any, idx: int, context: str) -> Track:
    """Parse one track dictionary into a `Track`."""
    if not isinstance(item, dict):
        raise ValueError(f"Track entry at index {idx} in {context} must be an object.")
    if "sign" in item:
        sign = int(item["sign"])
    elif "charge" in item:
        sign = int(item["charge"])
    else:
        raise ValueError(f"Track at index {idx} in {context} must define 'sign' or 'charge'.")
    pdg_code = item.get("pdgCode")
    primary = item.get("isPhysicalPrimary")
    return Track(
        track_id=str(item.get("track_id", f"trk{idx}")),
        px=float(item["px"]),
        py=float(item["py"]),
        pz=float(item["pz"]),
        sign=(sign > 0) - (sign < 0),
        dca_xy=float(item.get("dcaXY", item.get("dca_xy", 0.0))),
        dca_z=float(item.get("dcaZ", item.get("dca_z", 0.0))),
        x=float(item.get("x", 0.0)),
        y=float(item.get("y", 0.0)),
        z=float(item.get("z", 0.0)),
        pdg_code=int(pdg_code) if pdg_code is not None else None,
        is_physical_primary=bool(primary) if primary is not None else None,
    )


def _parse_primary_vertex(item: Any, context: str) -> PrimaryVertex:
    if item is None:
        return PrimaryVertex(0.0, 0.0, 0.0)
    if not isinstance(item, dict):
        raise ValueError(f"Primary vertex in {context} must be an object.")
    return PrimaryVertex(
        x=float(item.get("x", 0.0)),
        y=float(item.get("y", 0.0)),
        z=float(item.get("z", 0.0)),
    )


def _load_json(path: str | Path) -> dict[str, Any]:
    """Read and validate a JSON object document from disk."""
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"JSON document at {path} must be an object.")
    return data
