"""Kinematics and geometry helpers used by the selection stages."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from .models import LorentzVector, Vector3


def momentum_to_lorentz(momentum: Vector3, mass: float) -> LorentzVector:
    """Convert a 3-momentum plus mass hypothesis into a Lorentz 4-vector."""
    px, py, pz = momentum
    energy = math.sqrt(px * px + py * py + pz * pz + mass * mass)
    return LorentzVector(px=px, py=py, pz=pz, e=energy)


def sum_lorentz(vectors: Iterable[LorentzVector]) -> LorentzVector:
    """Sum an iterable of Lorentz vectors."""
    total = LorentzVector(0.0, 0.0, 0.0, 0.0)
    for vec in vectors:
        total = total + vec
    return total


def sum_momenta(momenta: Iterable[Vector3]) -> Vector3:
    """Vector sum of 3-momenta."""
    px = py = pz = 0.0
    for mom in momenta:
        px += mom[0]
        py += mom[1]
        pz += mom[2]
    return (px, py, pz)


def invariant_mass2(momenta: Sequence[Vector3], masses: Sequence[float]) -> float:
    """Squared invariant mass of daughters under one mass assignment."""
    if len(momenta) != len(masses):
        raise ValueError("Mass list length must match daughter multiplicity.")
    return sum_lorentz(
        momentum_to_lorentz(mom, mass) for mom, mass in zip(momenta, masses, strict=True)
    ).mass2


def invariant_mass(momenta: Sequence[Vector3], masses: Sequence[float]) -> float:
    """Invariant mass with signed handling for small negative mass2 values."""
    return sum_lorentz(
        momentum_to_lorentz(mom, mass) for mom, mass in zip(momenta, masses, strict=True)
    ).mass


def transverse_momentum(momentum: Vector3) -> float:
    return math.sqrt(momentum[0] * momentum[0] + momentum[1] * momentum[1])


def pseudorapidity(momentum: Vector3) -> float:
    """Pseudorapidity of a 3-momentum, clamped to +-1e9 along the beam axis."""
    p = norm3(momentum)
    pz = momentum[2]
    if p == abs(pz):
        return 1e9 if pz >= 0 else -1e9
    return 0.5 * math.log((p + pz) / (p - pz))


def cos_pointing_angle(primary: Vector3, secondary: Vector3, momentum: Vector3) -> float:
    """Cosine of the angle between the flight line and the candidate momentum.

    The flight line points from the primary to the secondary vertex. A
    vanishing flight length or momentum has no defined direction and counts
    as perfectly aligned (1.0).
    """
    flight = (
        secondary[0] - primary[0],
        secondary[1] - primary[1],
        secondary[2] - primary[2],
    )
    den = norm3(flight) * norm3(momentum)
    if den <= 0.0:
        return 1.0
    return dot3(flight, momentum) / den


def decay_length(primary: Vector3, secondary: Vector3) -> float:
    """3D distance between primary and secondary vertex."""
    return norm3(
        (
            secondary[0] - primary[0],
            secondary[1] - primary[1],
            secondary[2] - primary[2],
        )
    )


def solve_3x3(a: list[list[float]], b: list[float]) -> tuple[float, float, float] | None:
    """Solve 3x3 linear system by Gaussian elimination with pivoting."""
    m = [row[:] + [rhs] for row, rhs in zip(a, b, strict=True)]
    n = 3
    for col in range(n):
        pivot = max(range(col, n), key=lambda r: abs(m[r][col]))
        if abs(m[pivot][col]) < 1e-14:
            return None
        if pivot != col:
            m[col], m[pivot] = m[pivot], m[col]
        p = m[col][col]
        for j in range(col, n + 1):
            m[col][j] /= p
        for r in range(n):
            if r == col:
                continue
            factor = m[r][col]
            for j in range(col, n + 1):
                m[r][j] -= factor * m[col][j]
    return m[0][3], m[1][3], m[2][3]


def dot3(a: Vector3, b: Vector3) -> float:
    """3D dot product."""
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def norm3(a: Vector3) -> float:
    """Euclidean norm of a 3D vector."""
    return math.sqrt(dot3(a, a))
