"""Multi-hypothesis candidate selection.

`CandidateSelector` runs every configured hypothesis of one prong multiplicity
over a candidate and assembles a `SelectionResult`: a bitmask with one bit per
hypothesis, the matched mass orderings, and the debug cut-status matrix.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .errors import ConfigurationError
from .evaluator import HypothesisEvaluator
from .hypotheses import HypothesisSpec
from .models import Candidate, Stage, Vector3

MAX_HYPOTHESES = 32


@dataclass(frozen=True)
class HypothesisOutcome:
    """Tagged per-hypothesis view of a selection result."""

    hypothesis: str
    accepted: bool
    which_hypo: int


@dataclass(frozen=True)
class SelectionResult:
    hypothesis_names: tuple[str, ...]
    bitmask: int
    which_hypo: tuple[int, ...]
    cut_status: tuple[tuple[bool, ...], ...] | None = None

    def is_selected(self, index: int) -> bool:
        return bool(self.bitmask >> index & 1)

    @property
    def accepted(self) -> bool:
        """True when at least one hypothesis survived."""
        return self.bitmask != 0

    def outcomes(self) -> tuple[HypothesisOutcome, ...]:
        return tuple(
            HypothesisOutcome(hypothesis=name, accepted=self.is_selected(i), which_hypo=which)
            for i, (name, which) in enumerate(zip(self.hypothesis_names, self.which_hypo, strict=True))
        )

    def cut_status_bits(self) -> tuple[int, ...] | None:
        """Pack each status row into an integer, bit k set when stage k passed."""
        if self.cut_status is None:
            return None
        packed = []
        for row in self.cut_status:
            value = 0
            for k, passed in enumerate(row):
                if passed:
                    value |= 1 << k
            packed.append(value)
        return tuple(packed)


class CandidateSelector:
    """Evaluates candidates against an ordered list of hypotheses.

    `pt_tolerance` is added to the pre-fit candidate pT before the bin lookup,
    so candidates just below a bin edge survive until the fitted momentum is
    known. The selector keeps no state between calls.
    """

    def __init__(
        self,
        hypotheses: Sequence[HypothesisSpec],
        debug: bool = False,
        pt_tolerance: float = 0.0,
    ) -> None:
        hypotheses = tuple(hypotheses)
        if not hypotheses:
            raise ConfigurationError("CandidateSelector needs at least one hypothesis.")
        if len(hypotheses) > MAX_HYPOTHESES:
            raise ConfigurationError(
                f"At most {MAX_HYPOTHESES} hypotheses are supported, got {len(hypotheses)}."
            )
        prongs = {h.n_prongs for h in hypotheses}
        if len(prongs) != 1:
            raise ConfigurationError(
                f"Hypotheses of one selector must share their prong multiplicity, got {sorted(prongs)}."
            )
        names = [h.name for h in hypotheses]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate hypothesis names: {names!r}")

        self.hypotheses = hypotheses
        self.debug = debug
        self.pt_tolerance = float(pt_tolerance)
        self.n_prongs = prongs.pop()
        self._evaluators = tuple(HypothesisEvaluator(h, debug=debug) for h in hypotheses)

    @property
    def hypothesis_names(self) -> tuple[str, ...]:
        return tuple(h.name for h in self.hypotheses)

    @property
    def stages(self) -> tuple[Stage, ...]:
        return self.hypotheses[0].stages

    @property
    def full_mask(self) -> int:
        return (1 << len(self.hypotheses)) - 1

    def preselect(self, candidate: Candidate) -> SelectionResult:
        """Pre-fit stages: pT bin, invariant mass, impact-parameter product."""
        if candidate.n_prongs != self.n_prongs:
            raise ValueError(
                f"Selector for {self.n_prongs}-prong hypotheses got a {candidate.n_prongs}-prong candidate."
            )
        pt = candidate.pt + self.pt_tolerance
        traces = []
        for evaluator in self._evaluators:
            trace = evaluator.new_trace()
            evaluator.preselect(candidate, pt, trace)
            traces.append(trace)
        return self._result(traces)

    def select_after_vertex(
        self,
        result: SelectionResult,
        candidate_momentum: Vector3,
        secondary_vertex: Vector3,
        primary_vertex: Vector3,
    ) -> SelectionResult:
        """Post-fit stages. The returned bitmask is a subset of `result.bitmask`."""
        traces = []
        for i, evaluator in enumerate(self._evaluators):
            trace = evaluator.new_trace(
                accepted=result.is_selected(i),
                which_hypo=result.which_hypo[i],
                status=result.cut_status[i] if result.cut_status is not None else None,
            )
            evaluator.select_after_vertex(candidate_momentum, secondary_vertex, primary_vertex, trace)
            traces.append(trace)
        return self._result(traces)

    def _result(self, traces) -> SelectionResult:
        bitmask = self.full_mask
        for i, trace in enumerate(traces):
            if not trace.accepted:
                bitmask &= ~(1 << i)
        status = None
        if self.debug:
            status = tuple(tuple(trace.status) for trace in traces)
        return SelectionResult(
            hypothesis_names=self.hypothesis_names,
            bitmask=bitmask,
            which_hypo=tuple(trace.which_hypo for trace in traces),
            cut_status=status,
        )
