"""Secondary-vertex fitting seam.

The candidate selection only needs a fitted vertex position and post-fit
daughter momenta; any solver satisfying `VertexFitter` can be injected. A fit
that does not converge returns `None`, which drops the track tuple silently.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from .models import Track, Vector3
from .physics import dot3, norm3, solve_3x3


@dataclass(frozen=True)
class VertexFit:
    """Fitted secondary vertex and the daughter momenta at that vertex."""

    position: Vector3
    momenta: tuple[Vector3, ...]
    chi2: float


class VertexFitter(Protocol):
    def fit(self, tracks: Sequence[Track]) -> VertexFit | None:
        """Return the fitted vertex, or `None` when the fit fails."""
        ...


@dataclass(frozen=True)
class StraightLineVertexFitter:
    """Point of closest approach of straight track lines.

    Each track is a line through its reference point along its momentum. The
    vertex minimises the sum of squared perpendicular distances to the lines,
    solved from the 3x3 normal equations
    `sum(I - u u^T) v = sum(I - u u^T) r`. Post-fit momenta are the input
    momenta (no field, no material).
    """

    max_radius: float = 200.0

    def fit(self, tracks: Sequence[Track]) -> VertexFit | None:
        if len(tracks) < 2:
            return None
        ata = [[0.0, 0.0, 0.0], [0.0, 0.0, 0.0], [0.0, 0.0, 0.0]]
        atb = [0.0, 0.0, 0.0]
        directions: list[Vector3] = []
        for t in tracks:
            p = t.p
            if p <= 0.0:
                return None
            u = (t.px / p, t.py / p, t.pz / p)
            directions.append(u)
            r = t.position
            for i in range(3):
                for j in range(3):
                    proj = (1.0 if i == j else 0.0) - u[i] * u[j]
                    ata[i][j] += proj
                    atb[i] += proj * r[j]
        vertex = solve_3x3(ata, atb)
        if vertex is None:
            return None
        if (vertex[0] * vertex[0] + vertex[1] * vertex[1]) ** 0.5 > self.max_radius:
            return None

        chi2 = 0.0
        for t, u in zip(tracks, directions, strict=True):
            d = (vertex[0] - t.x, vertex[1] - t.y, vertex[2] - t.z)
            along = dot3(d, u)
            perp = (d[0] - along * u[0], d[1] - along * u[1], d[2] - along * u[2])
            chi2 += norm3(perp) ** 2
        return VertexFit(
            position=vertex,
            momenta=tuple(t.momentum for t in tracks),
            chi2=chi2,
        )
