"""Core components: kernels, GP surrogate, acquisition functions, search space."""

from .kernels import (
    KernelFamily, KernelParams, PowerExponentialKernel, MaternKernel,
    power_exponential_kernel, matern_kernel, covariance, covariance_matrix,
)
from .gp_model import ExactGPModel
from .hyperparameters import optimize_hyperparameters
from .surrogate import GPConfig, GaussianProcessSurrogate, fit, predict, load_surrogate
from .acquisition import (
    AcquisitionMode, expected_improvement, upper_confidence_bound,
    score, score_candidates, select_candidate,
)
from .space import Bounds, ObservationSet
from .utils import normalize, denormalize, check_bounds, grid_points, uniform_points

__all__ = [
    'KernelFamily',
    'KernelParams',
    'PowerExponentialKernel',
    'MaternKernel',
    'power_exponential_kernel',
    'matern_kernel',
    'covariance',
    'covariance_matrix',
    'ExactGPModel',
    'optimize_hyperparameters',
    'GPConfig',
    'GaussianProcessSurrogate',
    'fit',
    'predict',
    'load_surrogate',
    'AcquisitionMode',
    'expected_improvement',
    'upper_confidence_bound',
    'score',
    'score_candidates',
    'select_candidate',
    'Bounds',
    'ObservationSet',
    'normalize',
    'denormalize',
    'check_bounds',
    'grid_points',
    'uniform_points',
]
