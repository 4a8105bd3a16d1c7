"""Optimizer configuration."""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional, Tuple

from ..core.acquisition import AcquisitionMode
from ..core.kernels import KernelFamily, KernelParams
from ..core.surrogate import GPConfig
from ..exceptions import ConfigurationError


class Direction(str, Enum):
    MAXIMIZE = 'maximize'
    MINIMIZE = 'minimize'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliases = {'max': cls.MAXIMIZE, 'min': cls.MINIMIZE}
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise ConfigurationError(
                f"direction must be 'maximize' or 'minimize', got {value!r}"
            ) from None

    @property
    def sign(self):
        """Multiplier mapping objective values to the maximization convention."""
        return 1.0 if self is Direction.MAXIMIZE else -1.0


class CandidateStrategy(str, Enum):
    GRID = 'grid'
    GRADIENT = 'gradient'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(
                f"candidate_strategy must be 'grid' or 'gradient', got {value!r}"
            ) from None


@dataclass(frozen=True)
class OptimizerConfig:
    """
    Options for BayesianOptimizer. Strings are converted to enums and every
    value is validated at construction, before anything is evaluated.

    Seeding:
        init_points: Uniform random seed evaluations
        init_grid: Explicit seed points, evaluated first ({name: value} dicts or sequences)
        n_jobs: Worker threads for seed evaluations
    Loop:
        n_iter: Bayesian-optimization iterations after seeding
        direction: 'maximize' or 'minimize'
        evaluation_timeout: Seconds allowed per objective call (None = no limit)
        random_seed: Seed of the single generator behind every random draw
    Acquisition:
        acquisition: 'ei' / 'expected_improvement' or 'ucb' / 'upper_confidence_bound'
        xi: EI exploration margin
        kappa: UCB exploration weight
        candidate_strategy: 'grid' (dense grid) or 'gradient' (Adam from random starts)
        grid_size: Grid points per dimension
        max_grid_points: Cap on the total grid size; points per dimension shrink to fit
        n_candidates: Random starts for the gradient strategy
        acq_iterations: Adam steps per gradient refinement
        acq_lr: Adam learning rate for the acquisition, in unit-cube coordinates
    Surrogate:
        kernel: 'power_exponential' or 'matern'
        power: Power-exponential exponent in (0, 2]
        nu: Matérn smoothness (0.5, 1.5, 2.5)
        nugget, max_nugget, fit_nugget, normalize_y, prior_mean,
        n_restarts, fit_iterations, fit_lr: see GPConfig and KernelParams
    """

    init_points: int = 5
    init_grid: Tuple[Any, ...] = ()
    n_iter: int = 25
    acquisition: AcquisitionMode = AcquisitionMode.EXPECTED_IMPROVEMENT
    kappa: float = 2.576
    xi: float = 0.01
    kernel: KernelFamily = KernelFamily.POWER_EXPONENTIAL
    power: float = 1.95
    nu: float = 2.5
    nugget: float = 1e-6
    max_nugget: float = 1e-2
    fit_nugget: bool = False
    normalize_y: bool = True
    prior_mean: float = 0.0
    direction: Direction = Direction.MAXIMIZE
    candidate_strategy: CandidateStrategy = CandidateStrategy.GRID
    grid_size: int = 100
    max_grid_points: int = 20000
    n_candidates: int = 20
    acq_iterations: int = 40
    acq_lr: float = 1e-2
    n_restarts: int = 2
    fit_iterations: int = 100
    fit_lr: float = 0.1
    evaluation_timeout: Optional[float] = None
    n_jobs: int = 1
    random_seed: int = 0

    def __post_init__(self):
        set_ = lambda name, value: object.__setattr__(self, name, value)

        set_('acquisition', AcquisitionMode.parse(self.acquisition))
        set_('kernel', KernelFamily.parse(self.kernel))
        set_('direction', Direction.parse(self.direction))
        set_('candidate_strategy', CandidateStrategy.parse(self.candidate_strategy))
        set_('init_grid', tuple(self.init_grid))

        for name in ('init_points', 'n_iter', 'n_restarts', 'fit_iterations', 'acq_iterations'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigurationError(f"{name} must be a non-negative integer, got {value!r}")
        for name in ('grid_size', 'max_grid_points', 'n_candidates', 'n_jobs'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if not isinstance(self.random_seed, int) or isinstance(self.random_seed, bool):
            raise ConfigurationError(f"random_seed must be an integer, got {self.random_seed!r}")

        if not (math.isfinite(self.kappa) and self.kappa >= 0):
            raise ConfigurationError(f"kappa must be non-negative, got {self.kappa!r}")
        if not math.isfinite(self.xi):
            raise ConfigurationError(f"xi must be finite, got {self.xi!r}")
        if not self.acq_lr > 0:
            raise ConfigurationError(f"acq_lr must be positive, got {self.acq_lr!r}")
        if self.evaluation_timeout is not None and not self.evaluation_timeout > 0:
            raise ConfigurationError(
                f"evaluation_timeout must be positive or None, got {self.evaluation_timeout!r}"
            )

        # raise InvalidKernelParameter / ConfigurationError now rather than at first fit
        self.kernel_params()
        self.gp_config()

    @property
    def acquisition_param(self):
        if self.acquisition is AcquisitionMode.EXPECTED_IMPROVEMENT:
            return self.xi
        return self.kappa

    def kernel_params(self):
        return KernelParams(
            family=self.kernel,
            power=self.power,
            nu=self.nu,
            nugget=self.nugget,
        )

    def gp_config(self):
        return GPConfig(
            normalize_y=self.normalize_y,
            prior_mean=self.prior_mean,
            max_nugget=self.max_nugget,
            fit_nugget=self.fit_nugget,
            n_restarts=self.n_restarts,
            fit_iterations=self.fit_iterations,
            fit_lr=self.fit_lr,
        )

    def replace(self, **changes):
        """Validated copy with some options changed."""
        return replace(self, **changes)
