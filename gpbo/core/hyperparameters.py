"""Kernel hyperparameter fitting by maximum marginal likelihood."""

import logging
import math
from dataclasses import dataclass
from typing import Tuple

import torch
import gpytorch

from ..exceptions import SingularCovarianceError
from .gp_model import ExactGPModel

logger = logging.getLogger(__name__)

# Log-uniform range for theta at random restarts
RESTART_THETA_RANGE = (1e-1, 1e2)


@dataclass(frozen=True)
class FittedHyperparameters:
    theta: Tuple[float, ...]
    outputscale: float
    noise: float
    neg_mll: float
    restart: int


def _initial_theta(restart, dim, generator):
    """Restart 0 starts from unit weights, later restarts from seeded log-uniform draws."""
    if restart == 0:
        return torch.ones(dim, dtype=torch.float64)
    lo, hi = (math.log(v) for v in RESTART_THETA_RANGE)
    u = torch.rand(dim, generator=generator, dtype=torch.float64)
    return torch.exp(lo + u * (hi - lo))


def _make_likelihood(n, noise, fit_noise):
    if fit_noise:
        likelihood = gpytorch.likelihoods.GaussianLikelihood(
            noise_constraint=gpytorch.constraints.GreaterThan(noise)
        ).double()
        likelihood.noise = 10 * noise
        return likelihood
    return gpytorch.likelihoods.FixedNoiseGaussianLikelihood(
        noise=torch.full((n,), noise, dtype=torch.float64)
    ).double()


def optimize_hyperparameters(X, y, kernel_params, noise, fit_noise=False,
                             n_restarts=2, iterations=100, lr=0.05, generator=None):
    """
    Fit ARD weights and output scale (and optionally noise) jointly.

    Each restart trains an ExactGPModel with Adam on the negative exact
    marginal log likelihood; the restart with the lowest final loss wins,
    ties going to the earliest restart.

    Args:
        X: Training inputs in the unit cube (N x D)
        y: Centred training targets (N,)
        kernel_params: KernelParams selecting family and power / nu
        noise: Diagonal noise; fixed unless fit_noise, otherwise its lower bound
        fit_noise: Also fit the noise level
        n_restarts: Additional restarts beyond the unit-weight start
        iterations: Adam steps per restart
        lr: Adam learning rate
        generator: Seeded torch.Generator for restart initialisation

    Returns:
        FittedHyperparameters of the best restart
    """
    n, dim = X.shape
    if generator is None:
        generator = torch.Generator().manual_seed(0)

    best = None
    for restart in range(n_restarts + 1):
        theta0 = _initial_theta(restart, dim, generator)
        kernel = kernel_params.make_kernel(dim, theta=theta0)
        likelihood = _make_likelihood(n, noise, fit_noise)
        model = ExactGPModel(X, y, likelihood, kernel).double()
        model.covar_module.outputscale = max(float(y.pow(2).mean()), 1e-6)

        model.train()
        likelihood.train()

        optimizer = torch.optim.Adam(model.parameters(), lr=lr)
        mll = gpytorch.mlls.ExactMarginalLogLikelihood(likelihood, model)

        try:
            for _ in range(iterations):
                optimizer.zero_grad()
                loss = -mll(model(X), y)

                if not torch.isfinite(loss):
                    # Skip this iteration if loss is not finite
                    continue

                loss.backward()
                optimizer.step()

            with torch.no_grad():
                final = float(-mll(model(X), y))
        except RuntimeError as exc:
            logger.warning("Hyperparameter restart %d abandoned: %s", restart, exc)
            continue

        if not math.isfinite(final):
            logger.warning("Hyperparameter restart %d ended with non-finite loss", restart)
            continue

        fitted = FittedHyperparameters(
            theta=tuple(kernel.theta.detach().reshape(-1).tolist()),
            outputscale=float(model.covar_module.outputscale.detach()),
            noise=float(likelihood.noise.detach().mean()),
            neg_mll=final,
            restart=restart,
        )
        logger.debug("Restart %d: neg_mll=%.6g theta=%s outputscale=%.4g",
                     restart, final, fitted.theta, fitted.outputscale)

        if best is None or fitted.neg_mll < best.neg_mll:
            best = fitted

    if best is None:
        raise SingularCovarianceError(
            f"Hyperparameter fitting failed for all {n_restarts + 1} restarts on {n} "
            "observations; duplicate or near-duplicate sample points are the usual cause"
        )
    return best
