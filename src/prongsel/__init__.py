"""Public package exports for the multi-hypothesis prong selection framework."""

from .bins import NO_BIN, PtBinTable
from .combiner import CombinatorialGenerator, iter_prong_tuples
from .config import SelectionConfig
from .cuts import CutTable
from .errors import ConfigurationError
from .evaluator import HypothesisEvaluator, HypothesisTrace, in_mass_window
from .hypotheses import (
    HypothesisSpec,
    default_hypotheses,
    make_hypothesis,
    standard_hypothesis,
)
from .models import (
    Candidate,
    CandidateRecord,
    CandidateType,
    EventInput,
    EventSummary,
    LorentzVector,
    ParticleHypothesis,
    PrimaryVertex,
    Stage,
    Track,
)
from .pid import particle_hypothesis_from_name
from .selector import CandidateSelector, HypothesisOutcome, SelectionResult
from .sinks import CandidateSink, HistogramSink, TableSink
from .tracksel import SingleTrackCuts, TrackSelector
from .vertexing import StraightLineVertexFitter, VertexFit, VertexFitter

__all__ = [
    "NO_BIN",
    "PtBinTable",
    "CutTable",
    "ConfigurationError",
    "HypothesisSpec",
    "make_hypothesis",
    "standard_hypothesis",
    "default_hypotheses",
    "HypothesisEvaluator",
    "HypothesisTrace",
    "in_mass_window",
    "CandidateSelector",
    "SelectionResult",
    "HypothesisOutcome",
    "CombinatorialGenerator",
    "iter_prong_tuples",
    "SelectionConfig",
    "SingleTrackCuts",
    "TrackSelector",
    "StraightLineVertexFitter",
    "VertexFit",
    "VertexFitter",
    "CandidateSink",
    "TableSink",
    "HistogramSink",
    "Track",
    "PrimaryVertex",
    "EventInput",
    "Candidate",
    "CandidateRecord",
    "CandidateType",
    "EventSummary",
    "LorentzVector",
    "ParticleHypothesis",
    "Stage",
    "particle_hypothesis_from_name",
]
