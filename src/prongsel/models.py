"""Core data models used by the candidate-selection framework.

This module defines:
- immutable physics objects (`Track`, `PrimaryVertex`, `LorentzVector`)
- event containers (`EventInput`)
- particle-mass assignment objects (`ParticleHypothesis`)
- transient n-prong candidates (`Candidate`)
- outputs handed to sinks (`CandidateRecord`, `EventSummary`)
- the enumerations naming candidate types and selection stages.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum

Vector3 = tuple[float, float, float]


class CandidateType(IntEnum):
    """Bit positions of the single-track selection flags."""

    TWO_PRONG = 0
    THREE_PRONG = 1


ALL_CANDIDATE_TYPES = (1 << len(CandidateType)) - 1


class Stage(IntEnum):
    """Candidate selection stages, in evaluation order."""

    PT_BIN = 0
    MASS = 1
    IMPACT_PARAMETER_PRODUCT = 2
    POINTING_ANGLE = 3
    DECAY_LENGTH = 4


@dataclass(frozen=True)
class Track:
    """Single reconstructed track at its reference point.

    `(x, y, z)` is the point used by the vertex fitter (typically the point of
    closest approach to the primary vertex), `(px, py, pz)` the momentum there,
    and `dca_xy` / `dca_z` the signed impact parameters to the primary vertex.
    """

    track_id: str
    px: float
    py: float
    pz: float
    sign: int
    dca_xy: float = 0.0
    dca_z: float = 0.0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    pdg_code: int | None = None
    is_physical_primary: bool | None = None

    @property
    def momentum(self) -> Vector3:
        return (self.px, self.py, self.pz)

    @property
    def position(self) -> Vector3:
        return (self.x, self.y, self.z)

    @property
    def pt(self) -> float:
        """Transverse momentum."""
        return math.sqrt(self.px * self.px + self.py * self.py)

    @property
    def p(self) -> float:
        """Momentum magnitude."""
        return math.sqrt(self.px * self.px + self.py * self.py + self.pz * self.pz)

    @property
    def eta(self) -> float:
        """Pseudorapidity."""
        p = self.p
        if p == abs(self.pz):
            return 1e9 if self.pz >= 0 else -1e9
        return 0.5 * math.log((p + self.pz) / (p - self.pz))

    @property
    def phi(self) -> float:
        """Azimuthal angle in `[0, 2pi)`."""
        phi = math.atan2(self.py, self.px)
        return phi + 2.0 * math.pi if phi < 0.0 else phi


@dataclass(frozen=True)
class PrimaryVertex:
    """Reconstructed collision vertex of one event."""

    x: float
    y: float
    z: float

    @property
    def position(self) -> Vector3:
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class EventInput:
    """One event payload: its tracks and its primary vertex."""

    event_id: str
    tracks: tuple[Track, ...]
    primary_vertex: PrimaryVertex


@dataclass(frozen=True)
class ParticleHypothesis:
    """Named particle hypothesis used to assign a mass to a daughter track."""

    name: str
    mass: float
    pdg_id: int | None = None


@dataclass(frozen=True)
class LorentzVector:
    """Simple 4-vector with convenience properties and addition."""

    px: float
    py: float
    pz: float
    e: float

    def __add__(self, other: "LorentzVector") -> "LorentzVector":
        return LorentzVector(
            self.px + other.px,
            self.py + other.py,
            self.pz + other.pz,
            self.e + other.e,
        )

    @property
    def p2(self) -> float:
        """Squared 3-momentum magnitude."""
        return self.px * self.px + self.py * self.py + self.pz * self.pz

    @property
    def mass2(self) -> float:
        """Invariant mass squared."""
        return self.e * self.e - self.p2

    @property
    def mass(self) -> float:
        """Invariant mass with signed handling for small negative mass2 values."""
        m2 = self.mass2
        return m2**0.5 if m2 >= 0.0 else -((-m2) ** 0.5)


@dataclass(frozen=True)
class Candidate:
    """Ordered 2- or 3-prong daughter tuple evaluated against the hypotheses.

    `indices` are the daughters' positions in the event track collection;
    they identify tracks independently of their kinematics.
    """

    daughters: tuple[Track, ...]
    indices: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if len(self.daughters) not in (2, 3):
            raise ValueError(
                f"Candidates have 2 or 3 daughters, got {len(self.daughters)}."
            )
        if self.indices and len(self.indices) != len(self.daughters):
            raise ValueError("Candidate indices must match the number of daughters.")

    @property
    def n_prongs(self) -> int:
        return len(self.daughters)

    @property
    def momenta(self) -> tuple[Vector3, ...]:
        return tuple(d.momentum for d in self.daughters)

    @property
    def momentum(self) -> Vector3:
        """Vector sum of the daughter momenta."""
        return (
            sum(d.px for d in self.daughters),
            sum(d.py for d in self.daughters),
            sum(d.pz for d in self.daughters),
        )

    @property
    def pt(self) -> float:
        px, py, _ = self.momentum
        return math.sqrt(px * px + py * py)

    @property
    def impact_parameter_product(self) -> float:
        """Product of the daughters' transverse impact parameters."""
        product = 1.0
        for d in self.daughters:
            product *= d.dca_xy
        return product

    @property
    def track_ids(self) -> tuple[str, ...]:
        return tuple(d.track_id for d in self.daughters)


@dataclass(frozen=True)
class CandidateRecord:
    """One accepted candidate as handed to output sinks."""

    event_id: str
    n_prongs: int
    track_indices: tuple[int, ...]
    track_ids: tuple[str, ...]
    hypothesis_names: tuple[str, ...]
    bitmask: int
    which_hypo: tuple[int, ...]
    secondary_vertex: Vector3
    primary_vertex: Vector3
    momentum: Vector3
    pt: float
    eta: float
    cos_pointing_angle: float
    decay_length: float
    vertex_chi2: float
    masses: dict[str, tuple[float, ...]] = field(default_factory=dict)
    cut_status: tuple[int, ...] | None = None


@dataclass(frozen=True)
class EventSummary:
    """Per-event bookkeeping emitted after all candidates of the event."""

    event_id: str
    n_tracks: int
    n_tracks_2prong: int
    n_tracks_3prong: int
    n_candidates_2prong: int
    n_candidates_3prong: int
    track_rejections: dict[str, int] = field(default_factory=dict)
