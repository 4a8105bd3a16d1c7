"""Search-space bounds and the append-only observation set."""

import math
from typing import Mapping

import torch

from ..exceptions import ConfigurationError
from .utils import normalize, denormalize, check_bounds


class Bounds:
    """
    Immutable box bounds, one (lower, upper) pair per named dimension.

    Args:
        bounds: Mapping {name: (lower, upper)} or a sequence of (lower, upper)
                pairs; unnamed dimensions are called x0, x1, ...
    """

    def __init__(self, bounds):
        if isinstance(bounds, Bounds):
            names, pairs, named = bounds.names, bounds.pairs, bounds.named
        elif isinstance(bounds, Mapping):
            names = tuple(str(k) for k in bounds.keys())
            pairs = tuple(bounds.values())
            named = True
        else:
            pairs = tuple(bounds)
            names = tuple(f'x{i}' for i in range(len(pairs)))
            named = False

        if not pairs:
            raise ConfigurationError("Bounds must declare at least one dimension")

        checked = []
        for name, pair in zip(names, pairs):
            try:
                lower, upper = (float(v) for v in pair)
            except (TypeError, ValueError):
                raise ConfigurationError(
                    f"Bounds for {name!r} must be a (lower, upper) pair, got {pair!r}"
                ) from None
            if not (math.isfinite(lower) and math.isfinite(upper)):
                raise ConfigurationError(f"Bounds for {name!r} must be finite, got {pair!r}")
            if lower > upper:
                raise ConfigurationError(
                    f"Lower bound exceeds upper bound for {name!r}: {lower} > {upper}"
                )
            checked.append((lower, upper))

        self._names = names
        self._pairs = tuple(checked)
        self._named = named
        self._lower = torch.tensor([p[0] for p in checked], dtype=torch.float64)
        self._upper = torch.tensor([p[1] for p in checked], dtype=torch.float64)

    @property
    def names(self):
        return self._names

    @property
    def pairs(self):
        return self._pairs

    @property
    def named(self):
        """Whether the dimensions were declared by name (objective takes keywords)."""
        return self._named

    @property
    def dim(self):
        return len(self._pairs)

    @property
    def lower(self):
        return self._lower.clone()

    @property
    def upper(self):
        return self._upper.clone()

    @property
    def fixed(self):
        """Boolean mask of zero-width dimensions (lower == upper)."""
        return self._upper == self._lower

    def __len__(self):
        return self.dim

    def __eq__(self, other):
        return isinstance(other, Bounds) and (self._names, self._pairs) == (other._names, other._pairs)

    def __hash__(self):
        return hash((self._names, self._pairs))

    def __repr__(self):
        inner = ', '.join(f'{n}={p}' for n, p in zip(self._names, self._pairs))
        return f'Bounds({inner})'

    def as_dict(self):
        return dict(zip(self._names, self._pairs))

    def contains(self, x, atol=1e-9):
        """Whether every point in x (D,) or (N x D) lies inside the box."""
        x = torch.as_tensor(x, dtype=torch.float64)
        if x.dim() == 1:
            x = x.unsqueeze(0)
        if x.shape[-1] != self.dim:
            return False
        return len(check_bounds(x, self._pairs, atol=atol)) == len(x)

    def to_unit(self, x):
        """Map points from the box to the unit cube; zero-width dimensions map to 0."""
        x = torch.as_tensor(x, dtype=torch.float64)
        span = self._upper - self._lower
        safe = torch.where(span > 0, span, torch.ones_like(span))
        return normalize(x, self._lower + safe, self._lower) * (span > 0)

    def from_unit(self, u):
        """Map points from the unit cube back to the box."""
        u = torch.as_tensor(u, dtype=torch.float64)
        return denormalize(u, self._upper, self._lower)

    def to_params(self, x):
        """Point (D,) as a {name: float} dict."""
        x = torch.as_tensor(x, dtype=torch.float64).reshape(-1)
        return {name: float(v) for name, v in zip(self._names, x.tolist())}

    def from_params(self, params):
        """{name: value} dict (or a (D,) sequence) as a point tensor."""
        if isinstance(params, Mapping):
            missing = [n for n in self._names if n not in params]
            if missing:
                raise ConfigurationError(f"Point is missing dimensions {missing}")
            params = [params[n] for n in self._names]
        x = torch.as_tensor(params, dtype=torch.float64).reshape(-1)
        if x.numel() != self.dim:
            raise ConfigurationError(
                f"Point has {x.numel()} coordinates but bounds have {self.dim} dimensions"
            )
        return x


class ObservationSet:
    """
    Append-only sequence of (x, y) observations inside fixed bounds.

    Args:
        bounds: Bounds every x must satisfy
    """

    def __init__(self, bounds):
        self.bounds = Bounds(bounds)
        self._X = []
        self._y = []

    def __len__(self):
        return len(self._y)

    @property
    def dim(self):
        return self.bounds.dim

    @property
    def X(self):
        if not self._X:
            return torch.empty(0, self.dim, dtype=torch.float64)
        return torch.stack(self._X)

    @property
    def y(self):
        return torch.tensor(self._y, dtype=torch.float64)

    def append(self, x, y):
        x = torch.as_tensor(x, dtype=torch.float64).reshape(-1).clone()
        if x.numel() != self.dim:
            raise ConfigurationError(
                f"Observation has {x.numel()} coordinates, expected {self.dim}"
            )
        if not self.bounds.contains(x):
            raise ConfigurationError(f"Observation {x.tolist()} lies outside {self.bounds}")
        y = float(y)
        if not math.isfinite(y):
            raise ConfigurationError(f"Observation value must be finite, got {y}")
        self._X.append(x)
        self._y.append(y)

    def best_index(self, maximize=True):
        """Index of the best observation; ties go to the earliest."""
        if not self._y:
            raise IndexError("No observations")
        y = torch.tensor(self._y, dtype=torch.float64)
        return int(torch.argmax(y if maximize else -y))

    def best(self, maximize=True):
        """Best (x, y) pair under the given direction."""
        i = self.best_index(maximize)
        return self._X[i].clone(), self._y[i]
