"""Sequential Gaussian-process Bayesian optimization."""

import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum

import torch

from ..core import surrogate as gp
from ..core.acquisition import select_candidate
from ..core.space import Bounds, ObservationSet
from ..core.utils import grid_points, uniform_points
from ..exceptions import (
    BoundsViolationError, ConfigurationError, EmptySeedError, OptimizationError,
)
from ..objectives.base import coerce_result, evaluate_objective
from .config import CandidateStrategy, OptimizerConfig
from .history import BO, EXTERNAL, SEED, HistoryEntry, OptimizationHistory, Result

logger = logging.getLogger(__name__)


class OptimizerState(str, Enum):
    SEEDING = 'seeding'
    FITTING = 'fitting'
    ACQUIRING = 'acquiring'
    EVALUATING = 'evaluating'
    UPDATING = 'updating'
    TERMINATED = 'terminated'


class BayesianOptimizer:
    """
    Bayesian optimization of an expensive black-box objective.

    Seeds the search with an explicit grid and/or uniform random points, then
    repeats: refit the GP surrogate from scratch, maximise the acquisition
    over the bounds, evaluate the objective at the winner, append it.

    Args:
        objective: Callable. With named bounds it is called as
                   objective(**params); otherwise with a (D,) float64 tensor.
                   Returns a real scalar or an EvaluationResult.
        bounds: {name: (lower, upper)} or a sequence of (lower, upper) pairs
        config: OptimizerConfig
        stopping: Optional StoppingPolicy consulted after each iteration
        **overrides: OptimizerConfig fields overriding `config`
    """

    def __init__(self, objective, bounds, config=None, stopping=None, **overrides):
        if not callable(objective):
            raise ConfigurationError("objective must be callable")
        if config is None:
            config = OptimizerConfig()
        if overrides:
            config = config.replace(**overrides)

        self.objective = objective
        self.bounds = Bounds(bounds)
        self.config = config
        self.stopping = stopping
        self.direction = config.direction
        self.kernel_params = config.kernel_params()
        self.gp_config = config.gp_config()

        self._init_grid = [self._grid_point(p) for p in config.init_grid]
        self._grid_per_dim = self._points_per_dim()

        # Single source of randomness for seeding, likelihood restarts and acquisition starts
        self.generator = torch.Generator().manual_seed(config.random_seed)

        # Optimization state
        self.observations = ObservationSet(self.bounds)
        self.history = OptimizationHistory()
        self.surrogate = None
        self.iteration = 0
        self.state = OptimizerState.SEEDING
        self.result = None
        self._seeded = False
        self._signed_y = []

    def _grid_point(self, point):
        x = self.bounds.from_params(point)
        if not self.bounds.contains(x):
            raise ConfigurationError(f"init_grid point {point!r} lies outside {self.bounds}")
        return x

    def _points_per_dim(self):
        if self.config.candidate_strategy is not CandidateStrategy.GRID:
            return None
        dim = int((~self.bounds.fixed).sum())
        per_dim = self.config.grid_size
        if dim == 0:
            return per_dim
        while per_dim > 1 and per_dim ** dim > self.config.max_grid_points:
            per_dim -= 1
        if per_dim < 2:
            raise ConfigurationError(
                f"max_grid_points={self.config.max_grid_points} cannot hold a grid in "
                f"{dim} dimensions; raise it or use candidate_strategy='gradient'"
            )
        return per_dim

    # ------------------------------------------------------------------ run

    def optimize(self):
        """
        Run seeding and the optimization loop until the iteration budget is
        spent or the stopping policy fires.

        Returns:
            Result

        Raises:
            OptimizationError subclasses, carrying the iteration number and
            the history recorded before the failure
        """
        if self.state is OptimizerState.TERMINATED:
            return self.result

        stopped_early = False
        try:
            if not self._seeded:
                self.seed()
            while self.iteration < self.config.n_iter:
                self.step()
                if self.stopping is not None and self.stopping.should_stop(self.history, self.direction):
                    logger.info("Stopping policy fired after iteration %d", self.iteration)
                    stopped_early = True
                    break
        except OptimizationError as exc:
            failed_at = self.iteration + 1 if self._seeded else 0
            exc.with_context(failed_at, self.history.entries)
            logger.error("Run aborted: %s", exc)
            raise

        self.state = OptimizerState.TERMINATED
        best = self.history.best(self.direction)
        self.result = Result(
            best_x=best.x,
            best_params=dict(best.params),
            best_y=best.y,
            history=self.history.entries,
            n_iterations=self.iteration,
            stopped_early=stopped_early,
        )
        logger.info("Finished after %d iterations: best y=%.6g at %s",
                    self.iteration, best.y, best.params)
        return self.result

    def seed(self):
        """
        Evaluate the init_grid points, then init_points uniform draws.

        Raises:
            EmptySeedError: nothing to evaluate and no registered observations
        """
        self.state = OptimizerState.SEEDING
        points = list(self._init_grid)
        if self.config.init_points:
            draws = uniform_points(self.config.init_points, self.bounds.dim, self.generator)
            points.extend(self.bounds.from_unit(draws))

        if not points and len(self.observations) == 0:
            raise EmptySeedError(
                "No initial observations: init_grid is empty and init_points is 0"
            )

        timeout = self.config.evaluation_timeout
        if self.config.n_jobs > 1 and len(points) > 1:
            with ThreadPoolExecutor(max_workers=self.config.n_jobs) as pool:
                results = pool.map(
                    lambda x: evaluate_objective(self.objective, x, self.bounds, timeout), points
                )
                for x, result in zip(points, results):
                    self._record(x, result, SEED)
        else:
            for x in points:
                self._record(x, evaluate_objective(self.objective, x, self.bounds, timeout), SEED)

        self._seeded = True
        logger.info("Seeded with %d evaluations (%d grid, %d random)",
                    len(points), len(self._init_grid), self.config.init_points)

    def step(self):
        """One Fitting → Acquiring → Evaluating → Updating pass."""
        self.fit_surrogate()
        x, acq_value = self.acquire()
        self.state = OptimizerState.EVALUATING
        result = evaluate_objective(self.objective, x, self.bounds, self.config.evaluation_timeout)
        self.state = OptimizerState.UPDATING
        self.iteration += 1
        entry = self._record(x, result, BO, acq_value)
        logger.info("Iteration %d: y=%.6g acq=%.4g at %s",
                    self.iteration, entry.y, acq_value, entry.params)
        return entry

    # ------------------------------------------------------------------ ask / tell

    def suggest(self):
        """
        Fit on the current observations and return the next point without
        evaluating it.

        Returns:
            (x, acquisition_value), x a (D,) tensor
        """
        self.fit_surrogate()
        return self.acquire()

    def register(self, point, value):
        """
        Append an observation evaluated outside the optimizer.

        After termination the cached Result is discarded; the next
        optimize() call rebuilds it including this observation.

        Args:
            point: {name: value} or (D,) sequence inside the bounds
            value: Real scalar or EvaluationResult
        """
        x = self.bounds.from_params(point)
        if not self.bounds.contains(x):
            raise BoundsViolationError(f"Registered point {point!r} lies outside {self.bounds}")
        entry = self._record(x, coerce_result(value), EXTERNAL)
        if self.state is OptimizerState.TERMINATED:
            self.state = OptimizerState.UPDATING
            self.result = None
        return entry

    # ------------------------------------------------------------------ phases

    def fit_surrogate(self):
        """Refit the surrogate from scratch on every observation so far."""
        self.state = OptimizerState.FITTING
        if len(self.observations) == 0:
            raise EmptySeedError("Cannot fit a surrogate before any observation")

        # surrogate always maximises; minimisation flips the sign of y
        signed = ObservationSet(self.bounds)
        for x, y in zip(self.observations.X, self._signed_y):
            signed.append(x, y)
        self.surrogate = gp.fit(signed, self.kernel_params, self.gp_config, self.generator)
        return self.surrogate

    def acquire(self):
        """
        Maximise the acquisition over the bounds.

        Returns:
            (x, acquisition_value)
        """
        self.state = OptimizerState.ACQUIRING
        best_y = max(self._signed_y)
        mode = self.config.acquisition
        param = self.config.acquisition_param

        if self.config.candidate_strategy is CandidateStrategy.GRID:
            candidates = self._grid_candidates()
        else:
            candidates = self._refine_candidates(best_y)

        with torch.no_grad():
            mean, variance = self.surrogate.predict_unit(candidates)
            scores = mode(mean, variance.sqrt(), best_y, param)
        idx, acq_value = select_candidate(scores)

        x = self.bounds.from_unit(candidates[idx])
        if not self.bounds.contains(x):
            raise BoundsViolationError(
                f"Acquisition produced {x.tolist()} outside {self.bounds}"
            )
        x = torch.maximum(torch.minimum(x, self.bounds.upper), self.bounds.lower)
        return x, acq_value

    def _grid_candidates(self):
        """Unit-cube grid over the free dimensions; zero-width dimensions stay at 0."""
        free = ~self.bounds.fixed
        n_free = int(free.sum())
        if n_free == 0:
            return torch.zeros(1, self.bounds.dim, dtype=torch.float64)
        grid = grid_points(n_free, self._grid_per_dim)
        candidates = torch.zeros(grid.shape[0], self.bounds.dim, dtype=torch.float64)
        candidates[:, free] = grid
        return candidates

    def _refine_candidates(self, best_y):
        """Adam ascent on the acquisition from seeded uniform starts, kept in the unit cube."""
        mode = self.config.acquisition
        param = self.config.acquisition_param
        # zero-width dimensions map to 0 in the unit cube
        upper = (~self.bounds.fixed).to(torch.float64)

        x_opt = uniform_points(self.config.n_candidates, self.bounds.dim, self.generator) * upper
        x_opt.requires_grad_(True)
        optimizer = torch.optim.Adam([x_opt], lr=self.config.acq_lr)

        for _ in range(self.config.acq_iterations):
            optimizer.zero_grad()
            mean, variance = self.surrogate.predict_unit(x_opt)
            acq = mode(mean, variance.clamp_min(1e-30).sqrt(), best_y, param)
            loss = -acq.sum()
            loss.backward()
            # kernels with power <= 1 are not differentiable at the training points
            x_opt.grad = torch.nan_to_num(x_opt.grad, nan=0.0, posinf=0.0, neginf=0.0)
            optimizer.step()

            with torch.no_grad():
                x_opt.data = torch.minimum(x_opt.data.clamp_min(0.0), upper)

        return x_opt.detach()

    def _record(self, x, result, phase, acquisition_value=None):
        self.observations.append(x, result.score)
        self._signed_y.append(self.direction.sign * result.score)
        entry = HistoryEntry(
            index=len(self.history),
            phase=phase,
            iteration=self.iteration if phase == BO else None,
            x=tuple(float(v) for v in x.tolist()),
            params=self.bounds.to_params(x),
            y=result.score,
            acquisition_value=acquisition_value,
            aux=dict(result.aux),
        )
        self.history.append(entry)
        return entry

    def save_model(self, path):
        """Save the last fitted surrogate to file."""
        if self.surrogate is None:
            raise ValueError("No model to save")
        self.surrogate.save(path)
