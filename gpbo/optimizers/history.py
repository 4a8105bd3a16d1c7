"""Append-only optimization history and the final result."""

from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

SEED = 'seed'
BO = 'bo'
EXTERNAL = 'external'


@dataclass(frozen=True)
class HistoryEntry:
    """
    One evaluation.

    Args:
        index: Position in the history, starting at 0
        phase: 'seed', 'bo' or 'external' (registered by the caller)
        iteration: Loop iteration (1-based) for 'bo' entries, None otherwise
        x: Evaluated point
        params: Point keyed by dimension name
        y: Observed objective value
        acquisition_value: Acquisition score when the point was selected
        aux: Auxiliary data returned by the objective
    """

    index: int
    phase: str
    iteration: Optional[int]
    x: Tuple[float, ...]
    params: Mapping[str, float]
    y: float
    acquisition_value: Optional[float] = None
    aux: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'params', MappingProxyType(dict(self.params)))
        object.__setattr__(self, 'aux', MappingProxyType(dict(self.aux)))


class OptimizationHistory:
    """Ordered record of every evaluation. Entries are never modified or removed."""

    def __init__(self):
        self._entries = []

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __getitem__(self, i):
        return self._entries[i]

    @property
    def entries(self):
        return tuple(self._entries)

    @property
    def ys(self):
        return [e.y for e in self._entries]

    def append(self, entry):
        if entry.index != len(self._entries):
            raise ValueError(
                f"History entry index {entry.index} does not follow {len(self._entries) - 1}"
            )
        self._entries.append(entry)

    def best(self, direction):
        """Best entry under the given Direction; ties go to the earliest."""
        if not self._entries:
            return None
        best = self._entries[0]
        for entry in self._entries[1:]:
            if direction.sign * entry.y > direction.sign * best.y:
                best = entry
        return best

    def to_records(self):
        """Entries as plain dicts, one per evaluation."""
        records = []
        for entry in self._entries:
            record = {f.name: getattr(entry, f.name) for f in fields(entry)}
            record['params'] = dict(entry.params)
            record['aux'] = dict(entry.aux)
            records.append(record)
        return records


@dataclass(frozen=True)
class Result:
    """Outcome of a finished run."""

    best_x: Tuple[float, ...]
    best_params: Mapping[str, float]
    best_y: float
    history: Tuple[HistoryEntry, ...]
    n_iterations: int
    stopped_early: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'best_params', MappingProxyType(dict(self.best_params)))
        object.__setattr__(self, 'history', tuple(self.history))

    @property
    def best_entry(self):
        for entry in self.history:
            if entry.x == self.best_x and entry.y == self.best_y:
                return entry
        return None
