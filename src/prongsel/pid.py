"""Particle-hypothesis registry used to build daughter mass assignments.

Decay hypotheses name their daughters (`"pi"`, `"K"`, `"p"`, ...) rather than
raw masses; this module resolves those names, explicit masses, and mapping
entries from configuration files into `ParticleHypothesis` objects.
"""

from __future__ import annotations

from typing import Any

from .models import ParticleHypothesis

PION = ParticleHypothesis(name="pi", mass=0.13957039, pdg_id=211)
KAON = ParticleHypothesis(name="K", mass=0.493677, pdg_id=321)
PROTON = ParticleHypothesis(name="p", mass=0.93827208816, pdg_id=2212)
MUON = ParticleHypothesis(name="mu", mass=0.1056583755, pdg_id=13)
ELECTRON = ParticleHypothesis(name="e", mass=0.00051099895, pdg_id=11)

_NAME_TO_HYPOTHESIS: dict[str, ParticleHypothesis] = {
    "pi": PION,
    "pion": PION,
    "k": KAON,
    "kaon": KAON,
    "p": PROTON,
    "proton": PROTON,
    "mu": MUON,
    "muon": MUON,
    "e": ELECTRON,
    "electron": ELECTRON,
}


def particle_hypothesis_from_name(name: str) -> ParticleHypothesis:
    """Resolve a short particle name (e.g. `pi`, `kaon`) into a hypothesis."""
    key = name.strip().lower()
    try:
        return _NAME_TO_HYPOTHESIS[key]
    except KeyError as exc:
        supported = ", ".join(sorted(_NAME_TO_HYPOTHESIS))
        raise ValueError(
            f"Unknown particle hypothesis name '{name}'. Supported names: {supported}"
        ) from exc


def resolve_particle(entry: Any) -> ParticleHypothesis:
    """Turn one daughter entry into a `ParticleHypothesis`.

    Supported entries:
    - `ParticleHypothesis` instances (returned unchanged)
    - numeric masses (float/int)
    - particle names (`"pi"`, `"kaon"`, `"mu"`, ...)
    - mappings with an alias (`{"pid": "pi"}` or `{"particle": "pi"}`)
    - mappings with an explicit mass (`{"name": "X", "mass": 1.2, "pdg_id": 99}`)
    """
    if isinstance(entry, ParticleHypothesis):
        return entry
    if isinstance(entry, bool):
        raise ValueError(f"Unsupported daughter entry {entry!r}.")
    if isinstance(entry, (int, float)):
        mass = float(entry)
        return ParticleHypothesis(name=f"m={mass:g}", mass=mass)
    if isinstance(entry, str):
        return particle_hypothesis_from_name(entry)
    if isinstance(entry, dict):
        if "pid" in entry:
            return particle_hypothesis_from_name(str(entry["pid"]))
        if "particle" in entry:
            return particle_hypothesis_from_name(str(entry["particle"]))
        if "mass" not in entry:
            raise ValueError("Daughter object must define 'mass', 'pid', or 'particle'.")
        mass = float(entry["mass"])
        name = str(entry.get("name", f"m={mass:g}"))
        pdg_id = entry.get("pdg_id")
        return ParticleHypothesis(
            name=name, mass=mass, pdg_id=int(pdg_id) if pdg_id is not None else None
        )
    raise ValueError(
        f"Unsupported daughter entry {entry!r}. Use number, string, or object."
    )
