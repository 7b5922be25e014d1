"""Run configuration: hypotheses, track cuts and engine switches."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from .combiner import CombinatorialGenerator
from .hypotheses import HypothesisSpec, default_hypotheses
from .selector import CandidateSelector
from .sinks import HistogramSink
from .tracksel import SingleTrackCuts, TrackSelector
from .vertexing import StraightLineVertexFitter


@dataclass(frozen=True)
class SelectionConfig:
    """Everything needed to build a `CombinatorialGenerator`.

    Read-only after construction; workers of the parallel runner receive a
    pickled copy and build their own engine from it.
    """

    hypotheses_2prong: tuple[HypothesisSpec, ...] = field(default_factory=lambda: default_hypotheses(2))
    hypotheses_3prong: tuple[HypothesisSpec, ...] = field(default_factory=lambda: default_hypotheses(3))
    pt_tolerance: float = 0.1
    debug: bool = False
    do_3prong: bool = False
    track_cuts_2prong: SingleTrackCuts = field(default_factory=SingleTrackCuts)
    track_cuts_3prong: SingleTrackCuts = field(default_factory=SingleTrackCuts)
    max_radius: float = 200.0

    def with_overrides(self, **changes) -> "SelectionConfig":
        """Copy with the given fields replaced; `None` values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def build_combiner(self) -> CombinatorialGenerator:
        selector_2prong = None
        if self.hypotheses_2prong:
            selector_2prong = CandidateSelector(
                self.hypotheses_2prong, debug=self.debug, pt_tolerance=self.pt_tolerance
            )
        selector_3prong = None
        if self.do_3prong and self.hypotheses_3prong:
            selector_3prong = CandidateSelector(
                self.hypotheses_3prong, debug=self.debug, pt_tolerance=self.pt_tolerance
            )
        return CombinatorialGenerator(
            selector_2prong=selector_2prong,
            selector_3prong=selector_3prong,
            vertex_fitter=StraightLineVertexFitter(max_radius=self.max_radius),
            track_selector=TrackSelector(
                cuts_2prong=self.track_cuts_2prong,
                cuts_3prong=self.track_cuts_3prong,
                debug=self.debug,
            ),
            do_3prong=self.do_3prong,
        )

    def build_histogram_sink(self) -> HistogramSink:
        return HistogramSink(
            hypotheses_2prong=[h.name for h in self.hypotheses_2prong],
            hypotheses_3prong=[h.name for h in self.hypotheses_3prong] if self.do_3prong else [],
            debug=self.debug,
        )
