"""Combinatorial candidate formation for one event at a time."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence

from .errors import ConfigurationError
from .evaluator import WHICH_HYPO_FIRST, WHICH_HYPO_SECOND
from .models import (
    Candidate,
    CandidateRecord,
    CandidateType,
    EventInput,
    EventSummary,
    Track,
    Vector3,
)
from .physics import (
    cos_pointing_angle,
    decay_length,
    invariant_mass,
    pseudorapidity,
    sum_momenta,
    transverse_momentum,
)
from .selector import CandidateSelector, SelectionResult
from .sinks import CandidateSink
from .tracksel import TrackSelector, rejection_key
from .vertexing import StraightLineVertexFitter, VertexFit, VertexFitter

LOGGER = logging.getLogger("prongsel.combiner")

_BIT_2PRONG = 1 << CandidateType.TWO_PRONG
_BIT_3PRONG = 1 << CandidateType.THREE_PRONG


def iter_prong_tuples(
    signs: Sequence[int],
    flags: Sequence[int],
    do_2prong: bool = True,
    do_3prong: bool = False,
) -> Iterator[tuple[int, ...]]:
    """Yield charge-ordered index tuples into the event track collection.

    For each (positive, negative) pair, in input order: the 2-prong pair
    `(pos, neg)`, then the 3-prong triples `(pos, neg, pos2)` with `pos2`
    after `pos`, then `(neg, pos, neg2)` with `neg2` after `neg`. Neutral
    tracks are never used. `flags` are the single-track selection bitmasks.
    """
    if len(signs) != len(flags):
        raise ValueError("signs and flags must have the same length.")
    positives = [i for i, s in enumerate(signs) if s > 0]
    negatives = [i for i, s in enumerate(signs) if s < 0]

    for ip, pos1 in enumerate(positives):
        for ineg, neg1 in enumerate(negatives):
            if do_2prong and flags[pos1] & _BIT_2PRONG and flags[neg1] & _BIT_2PRONG:
                yield (pos1, neg1)

            if not do_3prong:
                continue
            if not (flags[pos1] & _BIT_3PRONG and flags[neg1] & _BIT_3PRONG):
                continue
            for pos2 in positives[ip + 1 :]:
                if flags[pos2] & _BIT_3PRONG:
                    yield (pos1, neg1, pos2)
            for neg2 in negatives[ineg + 1 :]:
                if flags[neg2] & _BIT_3PRONG:
                    yield (neg1, pos1, neg2)


def _build_candidate(tracks: Sequence[Track], indices: tuple[int, ...]) -> Candidate:
    return Candidate(daughters=tuple(tracks[i] for i in indices), indices=indices)


def _candidate_masses(
    selector: CandidateSelector,
    result: SelectionResult,
    momenta: Sequence[Vector3],
) -> dict[str, tuple[float, ...]]:
    """Invariant masses of the accepted hypotheses under the orderings that passed."""
    masses: dict[str, tuple[float, ...]] = {}
    for i, hypothesis in enumerate(selector.hypotheses):
        if not result.is_selected(i):
            continue
        which = result.which_hypo[i]
        first, second = hypothesis.mass_orderings
        values: list[float] = []
        if which & WHICH_HYPO_FIRST:
            values.append(invariant_mass(momenta, first))
        if which & WHICH_HYPO_SECOND and not hypothesis.symmetric:
            values.append(invariant_mass(momenta, second))
        masses[hypothesis.name] = tuple(values)
    return masses


@dataclass
class CombinatorialGenerator:
    """Enumerate track tuples of an event and run them through the selectors.

    Workflow per event:
    1. Flag single tracks with the `TrackSelector`.
    2. Enumerate (pos, neg) pairs and, if enabled, (pos, neg, pos) and
       (neg, pos, neg) triples.
    3. Preselect each tuple; tuples with surviving hypotheses (or all tuples
       in debug mode) go through the vertex fitter.
    4. Apply post-fit selection and hand accepted candidates to every sink.
    5. Emit one `EventSummary` per event.
    """

    selector_2prong: CandidateSelector | None = None
    selector_3prong: CandidateSelector | None = None
    vertex_fitter: VertexFitter = field(default_factory=StraightLineVertexFitter)
    track_selector: TrackSelector = field(default_factory=TrackSelector)
    do_3prong: bool = False

    def __post_init__(self) -> None:
        if self.selector_2prong is not None and self.selector_2prong.n_prongs != 2:
            raise ConfigurationError("selector_2prong must hold 2-prong hypotheses.")
        if self.selector_3prong is not None and self.selector_3prong.n_prongs != 3:
            raise ConfigurationError("selector_3prong must hold 3-prong hypotheses.")
        if self.do_3prong and self.selector_3prong is None:
            raise ConfigurationError("3-prong combinatorics requested without 3-prong hypotheses.")
        if self.selector_2prong is None and not self.do_3prong:
            raise ConfigurationError("Nothing to do: no 2-prong hypotheses and 3-prong disabled.")

    def process_event(
        self,
        event: EventInput,
        sinks: Iterable[CandidateSink] = (),
    ) -> list[CandidateRecord]:
        """Select the candidates of one event and fill `sinks`."""
        sinks = list(sinks)
        tracks = event.tracks
        selections = self.track_selector.select_tracks(tracks)
        flags = [s.flags for s in selections]
        rejections: dict[str, int] = {}
        for selection in selections:
            for candidate_type, cut in selection.failed:
                key = rejection_key(candidate_type, cut)
                rejections[key] = rejections.get(key, 0) + 1

        records: list[CandidateRecord] = []
        n_cand = {2: 0, 3: 0}
        for indices in iter_prong_tuples(
            [t.sign for t in tracks],
            flags,
            do_2prong=self.selector_2prong is not None,
            do_3prong=self.do_3prong,
        ):
            selector = self.selector_2prong if len(indices) == 2 else self.selector_3prong
            record = self._select(event, indices, selector)
            if record is None:
                continue
            n_cand[record.n_prongs] += 1
            records.append(record)
            for sink in sinks:
                sink.fill(record)

        summary = EventSummary(
            event_id=event.event_id,
            n_tracks=len(tracks),
            n_tracks_2prong=sum(1 for f in flags if f & _BIT_2PRONG),
            n_tracks_3prong=sum(1 for f in flags if f & _BIT_3PRONG),
            n_candidates_2prong=n_cand[2],
            n_candidates_3prong=n_cand[3],
            track_rejections=rejections,
        )
        for sink in sinks:
            sink.fill_event(summary)
        LOGGER.debug(
            "Event %s: %d tracks, %d 2-prong and %d 3-prong candidates",
            event.event_id,
            len(tracks),
            n_cand[2],
            n_cand[3],
        )
        return records

    def combine_events(
        self,
        events: Iterable[EventInput],
        sinks: Iterable[CandidateSink] = (),
    ) -> list[CandidateRecord]:
        """Run `process_event` over `events` sequentially and concatenate the output."""
        sinks = list(sinks)
        out: list[CandidateRecord] = []
        n_events = 0
        for event in events:
            out.extend(self.process_event(event, sinks))
            n_events += 1
        LOGGER.info("Processed %d events, selected %d candidates", n_events, len(out))
        return out

    def _select(
        self,
        event: EventInput,
        indices: tuple[int, ...],
        selector: CandidateSelector,
    ) -> CandidateRecord | None:
        candidate = _build_candidate(event.tracks, indices)
        result = selector.preselect(candidate)
        if not (result.accepted or selector.debug):
            return None

        fit = self.vertex_fitter.fit(candidate.daughters)
        if fit is None:
            return None

        primary = event.primary_vertex.position
        momentum = sum_momenta(fit.momenta)
        result = selector.select_after_vertex(result, momentum, fit.position, primary)
        if not result.accepted:
            return None
        return self._record(event, candidate, selector, result, fit, momentum)

    @staticmethod
    def _record(
        event: EventInput,
        candidate: Candidate,
        selector: CandidateSelector,
        result: SelectionResult,
        fit: VertexFit,
        momentum: Vector3,
    ) -> CandidateRecord:
        primary = event.primary_vertex.position
        return CandidateRecord(
            event_id=event.event_id,
            n_prongs=candidate.n_prongs,
            track_indices=candidate.indices,
            track_ids=candidate.track_ids,
            hypothesis_names=result.hypothesis_names,
            bitmask=result.bitmask,
            which_hypo=result.which_hypo,
            secondary_vertex=fit.position,
            primary_vertex=primary,
            momentum=momentum,
            pt=transverse_momentum(momentum),
            eta=pseudorapidity(momentum),
            cos_pointing_angle=cos_pointing_angle(primary, fit.position, momentum),
            decay_length=decay_length(primary, fit.position),
            vertex_chi2=fit.chi2,
            masses=_candidate_masses(selector, result, fit.momenta),
            cut_status=result.cut_status_bits(),
        )
