"""
Acquisition functions.

All scores follow the maximization convention: larger posterior mean is
better and best_y is the largest value observed so far. To minimize an
objective, negate both the posterior mean and best_y before scoring (the
optimizer does this by negating observations before fitting).
"""

from enum import Enum

import torch
from scipy.stats import norm
from torch.distributions.normal import Normal

from ..exceptions import ConfigurationError

DEFAULT_XI = 0.01
DEFAULT_KAPPA = 2.576


class AcquisitionMode(str, Enum):
    EXPECTED_IMPROVEMENT = 'expected_improvement'
    UPPER_CONFIDENCE_BOUND = 'upper_confidence_bound'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliases = {'ei': cls.EXPECTED_IMPROVEMENT, 'ucb': cls.UPPER_CONFIDENCE_BOUND}
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise ConfigurationError(
                f"Unknown acquisition mode {value!r}; expected 'ei' or 'ucb'"
            ) from None

    @property
    def default_param(self):
        if self is AcquisitionMode.EXPECTED_IMPROVEMENT:
            return DEFAULT_XI
        return DEFAULT_KAPPA

    def __call__(self, mu, sigma, f_best, param=None):
        if param is None:
            param = self.default_param
        if self is AcquisitionMode.EXPECTED_IMPROVEMENT:
            return expected_improvement(mu, sigma, f_best, xi=param)
        return upper_confidence_bound(mu, sigma, kappa=param)


def expected_improvement(mu, sigma, f_best, xi=DEFAULT_XI):
    """
    Expected Improvement acquisition function.

    EI = (μ - f_best - ξ) * Φ(Z) + σ * φ(Z),  Z = (μ - f_best - ξ) / σ
    EI = 0 where σ == 0.

    Args:
        mu: Predictive mean (N,)
        sigma: Predictive std (N,)
        f_best: Current best value
        xi: Exploration parameter

    Returns:
        EI values (N,)
    """
    mu = torch.as_tensor(mu, dtype=torch.float64)
    sigma = torch.as_tensor(sigma, dtype=torch.float64).to(mu)
    normal = Normal(torch.zeros((), dtype=mu.dtype), torch.ones((), dtype=mu.dtype))

    zero = sigma <= 0
    safe_sigma = torch.where(zero, torch.ones_like(sigma), sigma)
    improvement = mu - f_best - xi
    z = improvement / safe_sigma
    ei = improvement * normal.cdf(z) + safe_sigma * torch.exp(normal.log_prob(z))
    return torch.where(zero, torch.zeros_like(ei), ei)


def upper_confidence_bound(mu, sigma, kappa=DEFAULT_KAPPA):
    """
    Upper Confidence Bound acquisition function.

    Args:
        mu: Predictive mean (N,)
        sigma: Predictive std (N,)
        kappa: Exploration parameter

    Returns:
        UCB values (N,)
    """
    mu = torch.as_tensor(mu, dtype=torch.float64)
    sigma = torch.as_tensor(sigma, dtype=torch.float64).to(mu)
    return mu + kappa * sigma


def score(mean, stddev, best_y, mode, param=None):
    """
    Acquisition score of a single (mean, stddev) pair.

    Args:
        mean: Posterior mean
        stddev: Posterior standard deviation
        best_y: Best observed value
        mode: AcquisitionMode or its name ('ei', 'ucb', ...)
        param: ξ for EI, κ for UCB; mode default when None

    Returns:
        float
    """
    mode = AcquisitionMode.parse(mode)
    if param is None:
        param = mode.default_param
    mean, stddev, best_y = float(mean), float(stddev), float(best_y)
    if mode is AcquisitionMode.UPPER_CONFIDENCE_BOUND:
        return mean + param * stddev
    if stddev <= 0:
        return 0.0
    improvement = mean - best_y - param
    z = improvement / stddev
    return float(improvement * norm.cdf(z) + stddev * norm.pdf(z))


def score_candidates(mean, stddev, best_y, mode, param=None):
    """Batched score over candidate points; returns a (N,) tensor."""
    return AcquisitionMode.parse(mode)(mean, stddev, best_y, param)


def select_candidate(scores):
    """
    Index of the maximum score, ties broken by the first occurrence.

    Args:
        scores: Scores (N,)

    Returns:
        (index, score)
    """
    scores = torch.as_tensor(scores)
    if scores.numel() == 0:
        raise ValueError("No candidates to select from")
    # NaN never wins
    finite = torch.where(torch.isnan(scores), torch.full_like(scores, -float('inf')), scores)
    best = finite.max()
    idx = int(torch.nonzero(finite == best)[0, 0])
    return idx, float(scores[idx])
