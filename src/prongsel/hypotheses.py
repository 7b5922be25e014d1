"""Decay hypotheses: daughter mass orderings plus their pT-binned cut table.

A hypothesis evaluates every candidate under exactly two daughter-to-mass
assignments (forward and reverse ordering). For symmetric final states both
orderings carry the same masses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .bins import PtBinTable
from .cuts import CUT_COSP, CUT_D0D0, CUT_DECAY_LENGTH, CUT_MASS_MAX, CUT_MASS_MIN, CutTable
from .errors import ConfigurationError
from .models import Stage
from .pid import ELECTRON, KAON, MUON, PION, PROTON, resolve_particle

STAGES_2PRONG = (Stage.PT_BIN, Stage.MASS, Stage.IMPACT_PARAMETER_PRODUCT, Stage.POINTING_ANGLE)
STAGES_3PRONG = (Stage.PT_BIN, Stage.MASS, Stage.POINTING_ANGLE, Stage.DECAY_LENGTH)

REQUIRED_CUTS_2PRONG = (CUT_MASS_MIN, CUT_MASS_MAX, CUT_D0D0, CUT_COSP)
REQUIRED_CUTS_3PRONG = (CUT_MASS_MIN, CUT_MASS_MAX, CUT_COSP, CUT_DECAY_LENGTH)


@dataclass(frozen=True)
class HypothesisSpec:
    """Immutable decay hypothesis evaluated by the candidate selector."""

    name: str
    mass_orderings: tuple[tuple[float, ...], tuple[float, ...]]
    pt_bins: PtBinTable
    cuts: CutTable
    daughter_names: tuple[tuple[str, ...], ...] = ()

    def __post_init__(self) -> None:
        if len(self.mass_orderings) != 2:
            raise ConfigurationError(
                f"Hypothesis '{self.name}' needs exactly two mass orderings, "
                f"got {len(self.mass_orderings)}."
            )
        first, second = self.mass_orderings
        if len(first) not in (2, 3) or len(first) != len(second):
            raise ConfigurationError(
                f"Hypothesis '{self.name}' orderings must both have 2 or 3 masses: "
                f"{self.mass_orderings!r}"
            )
        if self.pt_bins.n_bins != self.cuts.n_bins:
            raise ConfigurationError(
                f"Hypothesis '{self.name}' has {self.pt_bins.n_bins} pT bins but "
                f"{self.cuts.n_bins} cut rows."
            )
        try:
            self.cuts.require(self.required_cuts)
        except ConfigurationError as exc:
            raise ConfigurationError(f"Hypothesis '{self.name}': {exc}") from exc

    @property
    def n_prongs(self) -> int:
        return len(self.mass_orderings[0])

    @property
    def stages(self) -> tuple[Stage, ...]:
        """Stage order, i.e. the columns of the debug cut-status matrix."""
        return STAGES_2PRONG if self.n_prongs == 2 else STAGES_3PRONG

    @property
    def required_cuts(self) -> tuple[str, ...]:
        return REQUIRED_CUTS_2PRONG if self.n_prongs == 2 else REQUIRED_CUTS_3PRONG

    @property
    def symmetric(self) -> bool:
        """True when both orderings assign the same masses."""
        return self.mass_orderings[0] == self.mass_orderings[1]


def make_hypothesis(
    name: str,
    orderings: Sequence[Sequence[Any]],
    pt_bins: Sequence[float] | PtBinTable,
    cuts: Mapping[str, Sequence[float]] | CutTable,
) -> HypothesisSpec:
    """Build a `HypothesisSpec` from configuration-style values.

    `orderings` entries may be particle names, numeric masses, or mappings
    accepted by `pid.resolve_particle`. `cuts` is either a ready `CutTable` or
    a `{cut name: [value per pT bin]}` mapping.
    """
    try:
        particles = [tuple(resolve_particle(entry) for entry in ordering) for ordering in orderings]
    except ValueError as exc:
        raise ConfigurationError(f"Hypothesis '{name}': {exc}") from exc
    bins = pt_bins if isinstance(pt_bins, PtBinTable) else PtBinTable(pt_bins)
    table = cuts if isinstance(cuts, CutTable) else CutTable.from_columns(cuts)
    if len(particles) != 2:
        raise ConfigurationError(
            f"Hypothesis '{name}' needs exactly two mass orderings, got {len(particles)}."
        )
    return HypothesisSpec(
        name=name,
        mass_orderings=(
            tuple(p.mass for p in particles[0]),
            tuple(p.mass for p in particles[1]),
        ),
        pt_bins=bins,
        cuts=table,
        daughter_names=tuple(tuple(p.name for p in ordering) for ordering in particles),
    )


DEFAULT_PT_BINS = (1.0, 5.0, 1000.0)

# Channel -> (forward ordering, reverse ordering, (massMin, massMax)).
STANDARD_CHANNELS: dict[str, tuple[tuple, tuple, tuple[float, float]]] = {
    "D0ToPiK": ((PION, KAON), (KAON, PION), (1.65, 2.15)),
    "JpsiToEE": ((ELECTRON, ELECTRON), (ELECTRON, ELECTRON), (2.5, 4.1)),
    "JpsiToMuMu": ((MUON, MUON), (MUON, MUON), (2.5, 4.1)),
    "DPlusToPiKPi": ((PION, KAON, PION), (PION, KAON, PION), (1.7, 2.15)),
    "LcToPKPi": ((PROTON, KAON, PION), (PION, KAON, PROTON), (2.05, 2.55)),
    "DsToPiKK": ((KAON, KAON, PION), (PION, KAON, KAON), (1.7, 2.15)),
    "XicToPKPi": ((PROTON, KAON, PION), (PION, KAON, PROTON), (2.2, 2.75)),
}

CHANNELS_2PRONG = ("D0ToPiK", "JpsiToEE", "JpsiToMuMu")
CHANNELS_3PRONG = ("DPlusToPiKPi", "LcToPKPi", "DsToPiKK", "XicToPKPi")


def default_cut_columns(name: str, n_bins: int) -> dict[str, list[float]]:
    """Loose preselection cuts for a catalogue channel."""
    forward, _, (mass_min, mass_max) = _channel(name)
    columns = {
        CUT_MASS_MIN: [mass_min] * n_bins,
        CUT_MASS_MAX: [mass_max] * n_bins,
        CUT_COSP: [0.5] * n_bins,
    }
    if len(forward) == 2:
        columns[CUT_D0D0] = [100.0] * n_bins
    else:
        columns[CUT_DECAY_LENGTH] = [0.0] * n_bins
    return columns


def standard_hypothesis(
    name: str,
    pt_bins: Sequence[float] | None = None,
    cuts: Mapping[str, Sequence[float]] | CutTable | None = None,
) -> HypothesisSpec:
    """Build a catalogue channel, optionally overriding its bins and cuts."""
    forward, reverse, _ = _channel(name)
    edges = tuple(pt_bins) if pt_bins is not None else DEFAULT_PT_BINS
    if cuts is None:
        cuts = default_cut_columns(name, len(edges) - 1)
    return make_hypothesis(name, (forward, reverse), edges, cuts)


def default_hypotheses(n_prongs: int) -> tuple[HypothesisSpec, ...]:
    """All catalogue channels of one prong multiplicity with default cuts."""
    if n_prongs == 2:
        names = CHANNELS_2PRONG
    elif n_prongs == 3:
        names = CHANNELS_3PRONG
    else:
        raise ValueError("Only 2-prong and 3-prong hypotheses are supported.")
    return tuple(standard_hypothesis(name) for name in names)


def _channel(name: str) -> tuple[tuple, tuple, tuple[float, float]]:
    try:
        return STANDARD_CHANNELS[name]
    except KeyError as exc:
        supported = ", ".join(STANDARD_CHANNELS)
        raise ConfigurationError(
            f"Unknown decay channel '{name}'. Supported channels: {supported}"
        ) from exc
