"""Stage-by-stage evaluation of one candidate against one decay hypothesis.

Stages run in a fixed order (see `HypothesisSpec.stages`). A trace carries
the running acceptance flag, the matched mass orderings and, in debug mode,
one pass/fail entry per stage. The flag is only ever cleared.

Outside debug mode the first failing stage ends the evaluation of that
hypothesis. In debug mode every stage after the pT-bin lookup runs so the
status row is complete; a missing pT bin always stops evaluation because no
threshold row exists.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .bins import NO_BIN
from .cuts import CUT_COSP, CUT_D0D0, CUT_DECAY_LENGTH, CUT_MASS_MAX, CUT_MASS_MIN
from .hypotheses import HypothesisSpec
from .models import Candidate, Stage, Vector3
from .physics import cos_pointing_angle, decay_length, invariant_mass2, transverse_momentum

WHICH_HYPO_NONE = 0
WHICH_HYPO_FIRST = 1
WHICH_HYPO_SECOND = 2
WHICH_HYPO_BOTH = 3


def in_mass_window(mass2: float, min2: float, max2: float) -> bool:
    """Half-open squared-mass window `[min2, max2)`."""
    return min2 <= mass2 < max2


def mass_cut_enabled(mass_min: float, mass_max: float) -> bool:
    """A negative lower or non-positive upper threshold disables the mass stage."""
    return mass_min >= 0.0 and mass_max > 0.0


@dataclass
class HypothesisTrace:
    """Mutable per-hypothesis state while one candidate is evaluated."""

    stages: tuple[Stage, ...]
    accepted: bool = True
    which_hypo: int = WHICH_HYPO_NONE
    status: list[bool] | None = None

    def reject(self, stage: Stage) -> None:
        self.accepted = False
        if self.status is not None:
            self.status[self.stages.index(stage)] = False


class HypothesisEvaluator:
    """Applies the cut stages of a single hypothesis.

    Cut columns are resolved once here; `HypothesisSpec` construction has
    already guaranteed they exist.
    """

    def __init__(self, hypothesis: HypothesisSpec, debug: bool = False) -> None:
        self.hypothesis = hypothesis
        self.debug = debug
        cuts = hypothesis.cuts
        self._col_mass_min = cuts.column(CUT_MASS_MIN)
        self._col_mass_max = cuts.column(CUT_MASS_MAX)
        self._col_cosp = cuts.column(CUT_COSP)
        self._col_d0d0 = cuts.column(CUT_D0D0) if hypothesis.n_prongs == 2 else None
        self._col_decl = cuts.column(CUT_DECAY_LENGTH) if hypothesis.n_prongs == 3 else None

    def new_trace(
        self,
        accepted: bool = True,
        which_hypo: int = WHICH_HYPO_NONE,
        status: Sequence[bool] | None = None,
    ) -> HypothesisTrace:
        stages = self.hypothesis.stages
        row: list[bool] | None = None
        if self.debug:
            row = list(status) if status is not None else [True] * len(stages)
        return HypothesisTrace(stages=stages, accepted=accepted, which_hypo=which_hypo, status=row)

    def _proceed(self, trace: HypothesisTrace) -> bool:
        return self.debug or trace.accepted

    @staticmethod
    def _missed_bin(trace: HypothesisTrace) -> bool:
        return trace.status is not None and not trace.status[trace.stages.index(Stage.PT_BIN)]

    def preselect(self, candidate: Candidate, pt: float, trace: HypothesisTrace) -> int:
        """Run the pT-bin, mass and impact-parameter stages. Returns the pT bin."""
        cuts = self.hypothesis.cuts
        pt_bin = self.hypothesis.pt_bins.find_bin(pt)
        if pt_bin == NO_BIN:
            trace.reject(Stage.PT_BIN)
            return NO_BIN

        if self._proceed(trace):
            self._mass_stage(candidate.momenta, pt_bin, trace)

        if self._col_d0d0 is not None and self._proceed(trace):
            if candidate.impact_parameter_product > cuts.value(pt_bin, self._col_d0d0):
                trace.reject(Stage.IMPACT_PARAMETER_PRODUCT)
        return pt_bin

    def _mass_stage(self, momenta: Sequence[Vector3], pt_bin: int, trace: HypothesisTrace) -> None:
        cuts = self.hypothesis.cuts
        mass_min = cuts.value(pt_bin, self._col_mass_min)
        mass_max = cuts.value(pt_bin, self._col_mass_max)
        which = WHICH_HYPO_BOTH
        if mass_cut_enabled(mass_min, mass_max):
            min2 = mass_min * mass_min
            max2 = mass_max * mass_max
            first, second = self.hypothesis.mass_orderings
            if not in_mass_window(invariant_mass2(momenta, first), min2, max2):
                which -= WHICH_HYPO_FIRST
            if not in_mass_window(invariant_mass2(momenta, second), min2, max2):
                which -= WHICH_HYPO_SECOND
        trace.which_hypo = which
        if which == WHICH_HYPO_NONE:
            trace.reject(Stage.MASS)

    def select_after_vertex(
        self,
        momentum: Vector3,
        secondary_vertex: Vector3,
        primary_vertex: Vector3,
        trace: HypothesisTrace,
    ) -> int:
        """Run the post-fit stages at the fitted momentum. Returns the pT bin."""
        if not self._proceed(trace) or self._missed_bin(trace):
            return NO_BIN
        cuts = self.hypothesis.cuts
        pt_bin = self.hypothesis.pt_bins.find_bin(transverse_momentum(momentum))
        if pt_bin == NO_BIN:
            trace.reject(Stage.PT_BIN)
            return NO_BIN

        cosp = cos_pointing_angle(primary_vertex, secondary_vertex, momentum)
        if cosp < cuts.value(pt_bin, self._col_cosp):
            trace.reject(Stage.POINTING_ANGLE)

        if self._col_decl is not None and self._proceed(trace):
            if decay_length(primary_vertex, secondary_vertex) < cuts.value(pt_bin, self._col_decl):
                trace.reject(Stage.DECAY_LENGTH)
        return pt_bin
