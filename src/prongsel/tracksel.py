"""Single-track preselection flags.

Every track gets a small bitmask, one bit per `CandidateType`, telling the
combinatorial generator whether it may be used as a 2-prong or 3-prong
daughter. Bits start set and are cleared by failing cuts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from .bins import NO_BIN, PtBinTable
from .cuts import CUT_DCAXY_MAX, CUT_DCAXY_MIN, CutTable
from .errors import ConfigurationError
from .models import ALL_CANDIDATE_TYPES, CandidateType, Track


class TrackCut(str, Enum):
    PT = "pt"
    ETA = "eta"
    DCA = "dca"


CANDIDATE_TYPE_LABELS = {
    CandidateType.TWO_PRONG: "2prong",
    CandidateType.THREE_PRONG: "3prong",
}


@dataclass(frozen=True)
class SingleTrackCuts:
    """Track cuts for one candidate type.

    The DCAxy window is optional and pT dependent: `dca_cuts` holds one row per
    bin of `pt_bins` with `min_dcaxytoprimary` / `max_dcaxytoprimary` applied
    to `|dcaXY|`. Tracks outside the DCA pT bins fail the DCA cut.
    """

    pt_min: float = -1.0
    eta_max: float = 4.0
    pt_bins: PtBinTable | None = None
    dca_cuts: CutTable | None = None

    def __post_init__(self) -> None:
        if (self.pt_bins is None) != (self.dca_cuts is None):
            raise ConfigurationError("Track DCA cuts need both pT bins and a cut table.")
        if self.dca_cuts is not None:
            if self.pt_bins.n_bins != self.dca_cuts.n_bins:
                raise ConfigurationError(
                    f"Track DCA cuts have {self.dca_cuts.n_bins} rows for "
                    f"{self.pt_bins.n_bins} pT bins."
                )
            self.dca_cuts.require((CUT_DCAXY_MIN, CUT_DCAXY_MAX))

    @property
    def has_dca_cut(self) -> bool:
        return self.dca_cuts is not None

    def passes_dca(self, track: Track) -> bool:
        if self.dca_cuts is None:
            return True
        pt_bin = self.pt_bins.find_bin(track.pt)
        if pt_bin == NO_BIN:
            return False
        dca = abs(track.dca_xy)
        if dca < self.dca_cuts.get(pt_bin, CUT_DCAXY_MIN):
            return False
        return dca <= self.dca_cuts.get(pt_bin, CUT_DCAXY_MAX)


@dataclass(frozen=True)
class TrackSelectionResult:
    flags: int
    failed: tuple[tuple[CandidateType, TrackCut], ...] = ()

    def usable_for(self, candidate_type: CandidateType) -> bool:
        return bool(self.flags >> candidate_type & 1)


@dataclass(frozen=True)
class TrackSelector:
    """Computes per-track candidate-type flags.

    The pT cut is always evaluated. The eta and DCA cuts of a candidate type
    are evaluated only while its bit is still set, unless `debug` is on, in
    which case every failing cut is reported in `failed`.
    """

    cuts_2prong: SingleTrackCuts = field(default_factory=SingleTrackCuts)
    cuts_3prong: SingleTrackCuts = field(default_factory=SingleTrackCuts)
    debug: bool = False

    def cuts_for(self, candidate_type: CandidateType) -> SingleTrackCuts:
        if candidate_type is CandidateType.TWO_PRONG:
            return self.cuts_2prong
        return self.cuts_3prong

    def evaluate(self, track: Track) -> TrackSelectionResult:
        flags = ALL_CANDIDATE_TYPES
        failed: list[tuple[CandidateType, TrackCut]] = []

        def clear(candidate_type: CandidateType, cut: TrackCut) -> None:
            nonlocal flags
            flags &= ~(1 << candidate_type)
            failed.append((candidate_type, cut))

        def active(candidate_type: CandidateType) -> bool:
            return self.debug or bool(flags >> candidate_type & 1)

        pt = track.pt
        for candidate_type in CandidateType:
            if pt < self.cuts_for(candidate_type).pt_min:
                clear(candidate_type, TrackCut.PT)

        eta = abs(track.eta)
        for candidate_type in CandidateType:
            if active(candidate_type) and eta > self.cuts_for(candidate_type).eta_max:
                clear(candidate_type, TrackCut.ETA)

        for candidate_type in CandidateType:
            cuts = self.cuts_for(candidate_type)
            if cuts.has_dca_cut and active(candidate_type) and not cuts.passes_dca(track):
                clear(candidate_type, TrackCut.DCA)

        return TrackSelectionResult(flags=flags, failed=tuple(failed))

    def select_tracks(self, tracks: Iterable[Track]) -> list[TrackSelectionResult]:
        return [self.evaluate(t) for t in tracks]


def rejection_key(candidate_type: CandidateType, cut: TrackCut) -> str:
    """Label used when tallying track rejections, e.g. `2prong:pt`."""
    return f"{CANDIDATE_TYPE_LABELS[candidate_type]}:{cut.value}"
