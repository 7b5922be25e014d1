"""Per-pT-bin tables of named cut thresholds.

Each decay hypothesis owns one `CutTable`: one row per pT bin and one column
per named cut. Column positions are resolved once when the table is built, so
evaluators can look thresholds up by index inside the combinatorial loop.
"""

from __future__ import annotations

import math
from typing import Iterable, Mapping, Sequence

from .errors import ConfigurationError

CUT_MASS_MIN = "massMin"
CUT_MASS_MAX = "massMax"
CUT_D0D0 = "d0d0"
CUT_COSP = "cosp"
CUT_DECAY_LENGTH = "decL"
CUT_DCAXY_MIN = "min_dcaxytoprimary"
CUT_DCAXY_MAX = "max_dcaxytoprimary"


class CutTable:
    """Immutable labelled array of thresholds indexed by `(pT bin, cut name)`."""

    __slots__ = ("_labels", "_rows", "_columns")

    def __init__(self, labels: Sequence[str], rows: Sequence[Sequence[float]]) -> None:
        names = tuple(str(label) for label in labels)
        if not names:
            raise ConfigurationError("Cut table needs at least one cut name.")
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate cut names in {names!r}.")
        if not rows:
            raise ConfigurationError("Cut table needs at least one pT-bin row.")
        parsed: list[tuple[float, ...]] = []
        for idx, row in enumerate(rows):
            if len(row) != len(names):
                raise ConfigurationError(
                    f"Cut row {idx} has {len(row)} values, expected {len(names)} ({', '.join(names)})."
                )
            values = tuple(float(v) for v in row)
            if any(math.isnan(v) for v in values):
                raise ConfigurationError(f"Cut row {idx} contains NaN: {values!r}")
            parsed.append(values)
        self._labels = names
        self._rows = tuple(parsed)
        self._columns = {name: idx for idx, name in enumerate(names)}

    @classmethod
    def from_columns(cls, columns: Mapping[str, Sequence[float]]) -> "CutTable":
        """Build a table from `{cut name: [value per pT bin]}`."""
        if not columns:
            raise ConfigurationError("Cut table needs at least one cut name.")
        lengths = {name: len(values) for name, values in columns.items()}
        if len(set(lengths.values())) != 1:
            raise ConfigurationError(f"Cut columns have different lengths: {lengths!r}")
        labels = list(columns)
        n_rows = lengths[labels[0]]
        rows = [[columns[name][i] for name in labels] for i in range(n_rows)]
        return cls(labels, rows)

    @property
    def labels(self) -> tuple[str, ...]:
        """Cut names in column order."""
        return self._labels

    @property
    def n_bins(self) -> int:
        """Number of pT-bin rows."""
        return len(self._rows)

    def has_cut(self, cut_name: str) -> bool:
        return cut_name in self._columns

    def column(self, cut_name: str) -> int:
        """Resolve a cut name into its column index."""
        try:
            return self._columns[cut_name]
        except KeyError as exc:
            raise ConfigurationError(
                f"Unknown cut '{cut_name}'. Registered cuts: {', '.join(self._labels)}"
            ) from exc

    def value(self, bin_index: int, column: int) -> float:
        """Return the threshold at a pre-resolved column."""
        if not 0 <= bin_index < len(self._rows):
            raise ConfigurationError(
                f"pT bin {bin_index} out of range for a table with {len(self._rows)} bins."
            )
        return self._rows[bin_index][column]

    def get(self, bin_index: int, cut_name: str) -> float:
        """Return the threshold of `cut_name` in pT bin `bin_index`."""
        return self.value(bin_index, self.column(cut_name))

    def require(self, cut_names: Iterable[str]) -> None:
        """Fail unless every name in `cut_names` is registered."""
        missing = [name for name in cut_names if name not in self._columns]
        if missing:
            raise ConfigurationError(
                f"Cut table is missing required cuts: {', '.join(missing)}"
            )

    def row(self, bin_index: int) -> dict[str, float]:
        """Return one pT-bin row as `{cut name: threshold}`."""
        return {name: self.value(bin_index, idx) for idx, name in enumerate(self._labels)}

    def to_columns(self) -> dict[str, list[float]]:
        """Inverse of `from_columns`."""
        return {
            name: [row[idx] for row in self._rows] for idx, name in enumerate(self._labels)
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CutTable):
            return NotImplemented
        return self._labels == other._labels and self._rows == other._rows

    def __hash__(self) -> int:
        return hash((self._labels, self._rows))

    def __repr__(self) -> str:
        return f"CutTable(labels={list(self._labels)!r}, n_bins={len(self._rows)})"
