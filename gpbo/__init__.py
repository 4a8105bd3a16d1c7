"""gpbo: Gaussian-process Bayesian optimization of expensive black-box functions"""

__version__ = '1.0.0'

from .core import AcquisitionMode, Bounds, KernelFamily, KernelParams
from .exceptions import (
    GPBOError, ConfigurationError, InvalidKernelParameter, OptimizationError,
    SingularCovarianceError, EmptySeedError, ObjectiveEvaluationError, BoundsViolationError,
)
from .objectives import EvaluationResult, PortfolioFitness
from .optimizers import (
    BayesianOptimizer, OptimizerConfig, Direction, Result, NoImprovementStopping,
)

__all__ = [
    'BayesianOptimizer',
    'OptimizerConfig',
    'Direction',
    'Result',
    'NoImprovementStopping',
    'AcquisitionMode',
    'Bounds',
    'KernelFamily',
    'KernelParams',
    'EvaluationResult',
    'PortfolioFitness',
    'GPBOError',
    'ConfigurationError',
    'InvalidKernelParameter',
    'OptimizationError',
    'SingularCovarianceError',
    'EmptySeedError',
    'ObjectiveEvaluationError',
    'BoundsViolationError',
]
