from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, Iterator, Optional, Sequence, Tuple

import numpy as np

from .errors import DataError

WEEKDAYS = (2, 3, 4, 5, 6)
WEEKEND = (1, 7)


@dataclass(frozen=True)
class Observation:
    """One daily record. ``day_of_week = 1`` denotes Sunday."""

    year: int
    month: int
    day_of_month: int
    day_of_week: int
    count: int

    def __post_init__(self) -> None:
        if not 1 <= int(self.month) <= 12:
            raise DataError(f"month must be in 1..12, got {self.month!r}.")
        if not 1 <= int(self.day_of_month) <= 31:
            raise DataError(f"day_of_month must be in 1..31, got {self.day_of_month!r}.")
        if int(self.day_of_week) not in WEEKDAYS + WEEKEND:
            raise DataError(
                f"day_of_week must be in 1..7 (1=Sunday), got {self.day_of_week!r}."
            )
        if isinstance(self.count, bool) or int(self.count) != self.count:
            raise DataError(f"count must be an integer, got {self.count!r}.")
        if int(self.count) < 0:
            raise DataError(f"count must be >= 0, got {self.count!r}.")

    @property
    def is_weekend(self) -> bool:
        return int(self.day_of_week) in WEEKEND


def _frozen(a: np.ndarray) -> np.ndarray:
    a.flags.writeable = False
    return a


@dataclass(frozen=True)
class Dataset:
    """Ordered, read-only sequence of observations.

    Row position is meaningful: periodic models use it directly as their time
    axis (see :meth:`time_index`).
    """

    observations: Tuple[Observation, ...]
    counts: np.ndarray = field(init=False, repr=False, compare=False)
    day_of_week: np.ndarray = field(init=False, repr=False, compare=False)
    weekday: np.ndarray = field(init=False, repr=False, compare=False)
    weekend: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        obs = tuple(self.observations)
        for o in obs:
            if not isinstance(o, Observation):
                raise DataError(f"Dataset expects Observation rows, got {type(o).__name__}.")
        dow = np.asarray([o.day_of_week for o in obs], dtype=int)
        # frozen dataclass: derived arrays are set once here
        object.__setattr__(self, "observations", obs)
        object.__setattr__(
            self, "counts", _frozen(np.asarray([o.count for o in obs], dtype=float))
        )
        object.__setattr__(self, "day_of_week", _frozen(dow))
        object.__setattr__(self, "weekday", _frozen(np.isin(dow, WEEKDAYS)))
        object.__setattr__(self, "weekend", _frozen(np.isin(dow, WEEKEND)))

    # ---- constructors ----
    @staticmethod
    def from_rows(rows: Iterable[Sequence[Any]]) -> "Dataset":
        """Build a Dataset from parsed 5-field rows.

        Each row is ``(year, month, day_of_month, day_of_week, count)``.
        """
        obs = []
        for i, row in enumerate(rows):
            row = tuple(row)
            if len(row) != 5:
                raise DataError(f"Row {i} has {len(row)} fields; expected 5.")
            year, month, dom, dow, count = row
            obs.append(
                Observation(
                    year=int(year),
                    month=int(month),
                    day_of_month=int(dom),
                    day_of_week=int(dow),
                    count=count,
                )
            )
        return Dataset(tuple(obs))

    @staticmethod
    def from_counts(counts: Iterable[Any], *, start: Optional[date] = None) -> "Dataset":
        """Build a Dataset of consecutive calendar days starting at ``start``.

        Calendar fields are computed from ``start`` (default 2024-01-07, a Sunday).
        """
        day = date(2024, 1, 7) if start is None else start
        obs = []
        for c in counts:
            # isoweekday: Monday=1..Sunday=7 -> 1=Sunday..7=Saturday
            dow = day.isoweekday() % 7 + 1
            obs.append(Observation(day.year, day.month, day.day, dow, c))
            day = day + timedelta(days=1)
        return Dataset(tuple(obs))

    # ---- sequence protocol ----
    def __len__(self) -> int:
        return len(self.observations)

    def __iter__(self) -> Iterator[Observation]:
        return iter(self.observations)

    def __getitem__(self, i: int) -> Observation:
        return self.observations[i]

    # ---- derived views ----
    def time_index(self) -> np.ndarray:
        """Normalised time ``t = 2π · i / (n - 1)`` from row position.

        A single-row dataset yields NaN (0/0), which periodic models treat as
        infeasible.
        """
        n = len(self)
        i = np.arange(n, dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            return 2.0 * np.pi * (i / np.float64(n - 1))

    def describe(self) -> Dict[str, Dict[str, float]]:
        """Summary statistics for all rows and the weekday/weekend groups."""
        out: Dict[str, Dict[str, float]] = {}
        for label, mask in (
            ("all", np.ones(len(self), dtype=bool)),
            ("weekday", self.weekday),
            ("weekend", self.weekend),
        ):
            y = self.counts[mask]
            if y.size == 0:
                out[label] = {"n": 0, "mean": float("nan"), "var": float("nan"),
                              "min": float("nan"), "max": float("nan")}
                continue
            out[label] = {
                "n": int(y.size),
                "mean": float(np.mean(y)),
                "var": float(np.var(y)),
                "min": float(np.min(y)),
                "max": float(np.max(y)),
            }
        return out
