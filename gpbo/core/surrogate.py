"""Gaussian-process surrogate: fit on an observation set, predict anywhere in bounds."""

import logging
import math
from dataclasses import dataclass, fields, replace

import torch

from ..exceptions import ConfigurationError, EmptySeedError, SingularCovarianceError
from .hyperparameters import optimize_hyperparameters
from .kernels import KernelParams
from .space import Bounds
from .utils import closest_pair

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GPConfig:
    """
    Surrogate fitting options.

    Args:
        normalize_y: Standardise targets; the zero prior mean then applies on that scale
        prior_mean: Constant prior mean μ₀ used when normalize_y is False
        max_nugget: Largest nugget tried before giving up on factorisation
        fit_nugget: Fit the nugget by likelihood instead of keeping it fixed
        n_restarts: Extra likelihood restarts beyond the unit-weight start
        fit_iterations: Adam steps per restart
        fit_lr: Adam learning rate
    """

    normalize_y: bool = True
    prior_mean: float = 0.0
    max_nugget: float = 1e-2
    fit_nugget: bool = False
    n_restarts: int = 2
    fit_iterations: int = 100
    fit_lr: float = 0.1

    def __post_init__(self):
        if not math.isfinite(self.prior_mean):
            raise ConfigurationError("prior_mean must be finite")
        if not self.max_nugget > 0:
            raise ConfigurationError("max_nugget must be positive")
        if self.n_restarts < 0 or self.fit_iterations < 0:
            raise ConfigurationError("n_restarts and fit_iterations must be non-negative")
        if not self.fit_lr > 0:
            raise ConfigurationError("fit_lr must be positive")


@dataclass(frozen=True, eq=False)
class GaussianProcessSurrogate:
    """
    Fitted GP state. Never mutated; refitting builds a new instance.

    Posterior on the target scale z = (y - y_offset) / y_scale, with
    Σ₀ = outputscale * (R + nugget * I):

        μ(x)  = r(x)ᵀ (R + nugget I)⁻¹ z
        σ²(x) = outputscale * (1 - r(x)ᵀ (R + nugget I)⁻¹ r(x))
    """

    kernel_params: KernelParams
    bounds: Bounds
    train_x: torch.Tensor       # unit-cube inputs (n x D)
    train_y: torch.Tensor       # original targets (n,)
    y_offset: float
    y_scale: float
    chol: torch.Tensor          # lower Cholesky factor of R + nugget I
    alpha: torch.Tensor         # (R + nugget I)⁻¹ z
    nugget: float
    neg_mll: float = float('nan')

    @property
    def n_observations(self):
        return self.train_x.shape[0]

    @property
    def dim(self):
        return self.train_x.shape[1]

    def _query_points(self, X):
        X = torch.as_tensor(X, dtype=torch.float64)
        if X.dim() == 1:
            X = X.unsqueeze(-1) if self.dim == 1 else X.unsqueeze(0)
        if X.shape[-1] != self.dim:
            raise ValueError(f"Query points have {X.shape[-1]} dimensions, expected {self.dim}")
        return X

    def predict_unit(self, U):
        """
        Posterior mean and variance at unit-cube points.

        Differentiable with respect to U, which lets the acquisition
        optimizer run gradient steps through the posterior.

        Args:
            U: Points in the unit cube (N x D)

        Returns:
            mean (N,), variance (N,) on the original y scale
        """
        params = self.kernel_params
        r = params.correlation(U, self.train_x)
        mean_z = r @ self.alpha

        w = torch.linalg.solve_triangular(self.chol, r.transpose(-1, -2), upper=False)
        # both families are stationary correlations, so R(x, x) = 1
        prior = torch.ones(U.shape[:-1], dtype=U.dtype)
        var_z = params.outputscale * (prior - (w ** 2).sum(-2))
        # ill-conditioning can push the variance slightly negative
        var_z = var_z.clamp_min(0.0)

        mean = self.y_offset + self.y_scale * mean_z
        variance = self.y_scale ** 2 * var_z
        return mean, variance

    def predict(self, X):
        """
        Posterior mean and variance at points in the original bounds.

        Args:
            X: Query points (N x D); a 1-D input is N points when D == 1,
               otherwise a single point

        Returns:
            mean (N,), variance (N,)
        """
        U = self.bounds.to_unit(self._query_points(X))
        with torch.no_grad():
            return self.predict_unit(U)

    def save(self, path):
        """Save fitted state to file."""
        params = self.kernel_params
        torch.save({
            'kernel_params': {
                'family': params.family.value,
                'power': params.power,
                'nu': params.nu,
                'theta': params.theta,
                'outputscale': params.outputscale,
                'nugget': params.nugget,
            },
            'bounds': {'names': self.bounds.names, 'pairs': self.bounds.pairs,
                       'named': self.bounds.named},
            'train_x': self.train_x,
            'train_y': self.train_y,
            'y_offset': self.y_offset,
            'y_scale': self.y_scale,
            'chol': self.chol,
            'alpha': self.alpha,
            'nugget': self.nugget,
            'neg_mll': self.neg_mll,
        }, path)


def load_surrogate(path):
    """
    Load a surrogate saved with GaussianProcessSurrogate.save.

    Args:
        path: Path to the checkpoint

    Returns:
        GaussianProcessSurrogate
    """
    checkpoint = torch.load(path, map_location='cpu', weights_only=False)
    b = checkpoint['bounds']
    pairs = [tuple(p) for p in b['pairs']]
    bounds = Bounds(dict(zip(b['names'], pairs)) if b['named'] else pairs)
    names = {f.name for f in fields(GaussianProcessSurrogate)}
    state = {k: v for k, v in checkpoint.items() if k in names and k not in ('kernel_params', 'bounds')}
    return GaussianProcessSurrogate(
        kernel_params=KernelParams(**checkpoint['kernel_params']),
        bounds=bounds,
        **state,
    )


def _factorize(R, nugget, max_nugget, train_x):
    """Cholesky of R + nugget I, escalating the nugget tenfold until it succeeds."""
    n = R.shape[0]
    eye = torch.eye(n, dtype=R.dtype)
    current = nugget
    while True:
        chol, info = torch.linalg.cholesky_ex(R + current * eye)
        if int(info) == 0:
            return chol, current
        if current >= max_nugget:
            break
        logger.debug("Cholesky failed with nugget %.3g, retrying with %.3g",
                     current, min(current * 10, max_nugget))
        current = min(current * 10, max_nugget)

    detail = ''
    if n > 1:
        i, j, dist = closest_pair(train_x)
        detail = (f" (closest pair: observations {i} and {j}, "
                  f"unit-cube distance {dist:.3g})")
    raise SingularCovarianceError(
        f"Covariance matrix over {n} observations is not positive definite even "
        f"with nugget {current:.3g}; duplicate or near-duplicate sample points "
        f"are the usual cause{detail}"
    )


def fit(observations, kernel_params=None, config=None, generator=None):
    """
    Fit a GP surrogate from scratch on the full observation set.

    If kernel_params.theta is None the ARD weights and output scale are fitted
    by maximum marginal likelihood; otherwise they are used as given.

    Args:
        observations: ObservationSet with at least one entry
        kernel_params: KernelParams (defaults to power-exponential)
        config: GPConfig
        generator: Seeded torch.Generator for likelihood restarts

    Returns:
        GaussianProcessSurrogate
    """
    if len(observations) == 0:
        raise EmptySeedError("Cannot fit a surrogate on zero observations")
    if kernel_params is None:
        kernel_params = KernelParams()
    if config is None:
        config = GPConfig()

    bounds = observations.bounds
    train_x = bounds.to_unit(observations.X)
    train_y = observations.y

    if config.normalize_y:
        y_offset = float(train_y.mean())
        y_scale = float(train_y.std(unbiased=False)) if len(train_y) > 1 else 1.0
        if not (math.isfinite(y_scale) and y_scale > 0):
            y_scale = 1.0
    else:
        y_offset, y_scale = float(config.prior_mean), 1.0
    z = (train_y - y_offset) / y_scale

    params = kernel_params
    neg_mll = float('nan')
    if not params.is_fitted:
        noise = params.nugget * max(float(z.pow(2).mean()), 1e-6)
        fitted = optimize_hyperparameters(
            train_x, z, params, noise,
            fit_noise=config.fit_nugget,
            n_restarts=config.n_restarts,
            iterations=config.fit_iterations,
            lr=config.fit_lr,
            generator=generator,
        )
        changes = {'theta': fitted.theta, 'outputscale': fitted.outputscale}
        if config.fit_nugget:
            changes['nugget'] = max(fitted.noise / fitted.outputscale, params.nugget)
        params = replace(params, **changes)
        neg_mll = fitted.neg_mll

    R = params.correlation(train_x, train_x)
    chol, nugget = _factorize(R, params.nugget, config.max_nugget, train_x)
    alpha = torch.cholesky_solve(z.unsqueeze(-1), chol).squeeze(-1)

    return GaussianProcessSurrogate(
        kernel_params=params,
        bounds=bounds,
        train_x=train_x,
        train_y=train_y,
        y_offset=y_offset,
        y_scale=y_scale,
        chol=chol,
        alpha=alpha,
        nugget=nugget,
        neg_mll=neg_mll,
    )


def predict(surrogate, query_points):
    """Posterior (mean, variance) of a fitted surrogate at query points."""
    return surrogate.predict(query_points)
