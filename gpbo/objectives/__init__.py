"""Objective adapters and test functions."""

from .base import EvaluationResult, evaluate_objective, coerce_result
from .benchmarks import oscillating_1d, branin, negative_sphere
from .portfolio import PortfolioFitness

__all__ = [
    'EvaluationResult',
    'evaluate_objective',
    'coerce_result',
    'oscillating_1d',
    'branin',
    'negative_sphere',
    'PortfolioFitness',
]
