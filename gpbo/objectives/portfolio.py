"""Penalised Sharpe-ratio fitness for long-only portfolio weights."""

import numpy as np

from ..exceptions import ConfigurationError
from .base import EvaluationResult


class PortfolioFitness:
    """
    Sharpe ratio of a weight vector minus a penalty on the budget constraint.

    fitness(w) = (μᵀw - r_f) / sqrt(wᵀΣw) - penalty_weight * (Σ_i w_i - 1)^2

    A zero-volatility portfolio has Sharpe ratio 0.

    Args:
        expected_returns: Expected asset returns μ (n,)
        covariance: Asset covariance Σ (n x n), symmetric
        penalty_weight: Weight of the squared budget violation
        risk_free_rate: r_f
        asset_names: Keyword names of the weights; defaults to w0, w1, ...
    """

    def __init__(self, expected_returns, covariance, penalty_weight=1e9,
                 risk_free_rate=0.0, asset_names=None):
        self.expected_returns = np.asarray(expected_returns, dtype=float).reshape(-1)
        self.covariance = np.asarray(covariance, dtype=float)
        n = self.expected_returns.size

        if self.covariance.shape != (n, n):
            raise ConfigurationError(
                f"covariance must be {n}x{n}, got {self.covariance.shape}"
            )
        if not np.allclose(self.covariance, self.covariance.T):
            raise ConfigurationError("covariance must be symmetric")
        if penalty_weight < 0:
            raise ConfigurationError("penalty_weight must be non-negative")

        self.penalty_weight = float(penalty_weight)
        self.risk_free_rate = float(risk_free_rate)
        if asset_names is None:
            asset_names = [f'w{i}' for i in range(n)]
        if len(asset_names) != n:
            raise ConfigurationError(f"Expected {n} asset names, got {len(asset_names)}")
        self.asset_names = tuple(asset_names)

    @property
    def n_assets(self):
        return self.expected_returns.size

    def bounds(self, lower=0.0, upper=1.0):
        """Per-asset weight bounds keyed by asset name."""
        return {name: (lower, upper) for name in self.asset_names}

    def portfolio_return(self, weights):
        return float(self.expected_returns @ weights)

    def portfolio_volatility(self, weights):
        # quadratic form wᵀΣw
        return float(np.sqrt(max(weights @ self.covariance @ weights, 0.0)))

    def sharpe(self, weights):
        weights = np.asarray(weights, dtype=float)
        vol = self.portfolio_volatility(weights)
        if vol == 0:
            return 0.0
        return (self.portfolio_return(weights) - self.risk_free_rate) / vol

    def _weights(self, args, kwargs):
        if kwargs:
            return np.array([float(kwargs[name]) for name in self.asset_names])
        if len(args) == 1:
            return np.asarray(args[0], dtype=float).reshape(-1)
        return np.asarray(args, dtype=float)

    def __call__(self, *args, **kwargs):
        weights = self._weights(args, kwargs)
        if weights.size != self.n_assets:
            raise ValueError(f"Expected {self.n_assets} weights, got {weights.size}")

        sharpe = self.sharpe(weights)
        violation = float(weights.sum() - 1.0)
        score = sharpe - self.penalty_weight * violation ** 2

        return EvaluationResult(score, aux={
            'return': self.portfolio_return(weights),
            'volatility': self.portfolio_volatility(weights),
            'sharpe': sharpe,
            'violation': violation,
        })
