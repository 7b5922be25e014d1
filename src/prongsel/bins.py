"""Transverse-momentum binning used by pT-dependent cut tables."""

from __future__ import annotations

import math
from bisect import bisect_right
from typing import Sequence

from .errors import ConfigurationError

NO_BIN = -1


class PtBinTable:
    """Immutable lookup from a pT value to a zero-based bin index.

    `k + 1` strictly increasing edges define `k` bins. Bin `i` covers
    `edges[i] <= pt < edges[i + 1]`; values below the first edge, at or above
    the last edge, or NaN map to `NO_BIN`.
    """

    __slots__ = ("_edges",)

    def __init__(self, edges: Sequence[float]) -> None:
        values = tuple(float(e) for e in edges)
        if len(values) < 2:
            raise ConfigurationError(
                f"pT bin table needs at least two edges, got {len(values)}."
            )
        if not all(math.isfinite(v) for v in values):
            raise ConfigurationError(f"pT bin edges must be finite: {values!r}")
        for lo, hi in zip(values, values[1:]):
            if not lo < hi:
                raise ConfigurationError(
                    f"pT bin edges must be strictly increasing: {values!r}"
                )
        self._edges = values

    @property
    def edges(self) -> tuple[float, ...]:
        """Bin edges, lowest first."""
        return self._edges

    @property
    def n_bins(self) -> int:
        """Number of bins defined by the edges."""
        return len(self._edges) - 1

    def __len__(self) -> int:
        return self.n_bins

    def find_bin(self, pt: float) -> int:
        """Return the bin containing `pt`, or `NO_BIN` outside the acceptance."""
        if not (self._edges[0] <= pt < self._edges[-1]):
            return NO_BIN
        return bisect_right(self._edges, pt) - 1

    def labels(self) -> list[str]:
        """Readable bin labels such as `1 < pT < 5`."""
        return [f"{lo:g} < pT < {hi:g}" for lo, hi in zip(self._edges, self._edges[1:])]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PtBinTable):
            return NotImplemented
        return self._edges == other._edges

    def __hash__(self) -> int:
        return hash(self._edges)

    def __repr__(self) -> str:
        return f"PtBinTable({list(self._edges)!r})"
