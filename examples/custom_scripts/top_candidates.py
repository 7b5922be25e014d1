"""Example custom callback: rank candidates and persist a top-N summary."""

from __future__ import annotations

import json
from pathlib import Path


def process(records, context):
    """Sort by pointing angle and decay length, then save the best candidates."""
    ranked = sorted(records, key=lambda r: (-r.cos_pointing_angle, -r.decay_length))
    top3 = ranked[:3]
    payload = {
        "n_total": len(records),
        "n_events": len(context["summaries"]),
        "top_candidates": [
            {
                "event_id": r.event_id,
                "track_ids": list(r.track_ids),
                "selected": [name for i, name in enumerate(r.hypothesis_names) if r.bitmask >> i & 1],
                "masses": {name: list(m) for name, m in r.masses.items()},
                "pt": r.pt,
                "cos_pointing_angle": r.cos_pointing_angle,
                "decay_length": r.decay_length,
            }
            for r in top3
        ],
    }
    out = Path(context["output_path"]).with_name("top_candidates.json")
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Wrote {out}")
