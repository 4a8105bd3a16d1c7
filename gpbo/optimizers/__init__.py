"""Bayesian optimization loop, its configuration and history."""

from .bayesian import BayesianOptimizer, OptimizerState
from .config import OptimizerConfig, Direction, CandidateStrategy
from .history import HistoryEntry, OptimizationHistory, Result
from .stopping import StoppingPolicy, NoImprovementStopping

__all__ = [
    'BayesianOptimizer',
    'OptimizerState',
    'OptimizerConfig',
    'Direction',
    'CandidateStrategy',
    'HistoryEntry',
    'OptimizationHistory',
    'Result',
    'StoppingPolicy',
    'NoImprovementStopping',
]
