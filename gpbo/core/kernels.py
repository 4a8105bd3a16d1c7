"""Correlation kernels: power-exponential and Matérn families."""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

import torch
import gpytorch
from gpytorch.constraints import Interval

from ..exceptions import InvalidKernelParameter

# Legal smoothness values for the closed-form Matérn family
MATERN_NU = (0.5, 1.5, 2.5)

# Box for the ARD weights, in unit-cube coordinates
THETA_BOUNDS = (1e-2, 1e3)


class KernelFamily(str, Enum):
    POWER_EXPONENTIAL = 'power_exponential'
    MATERN = 'matern'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace('-', '_')
        aliases = {'powexp': cls.POWER_EXPONENTIAL, 'exp': cls.POWER_EXPONENTIAL}
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise InvalidKernelParameter(
                f"Unknown kernel family {value!r}; expected one of "
                f"{[f.value for f in cls]}"
            ) from None


def power_exponential_kernel(X1, X2, theta, power=2.0, diag=False):
    """
    Power-exponential correlation.

    R(x1, x2) = exp(-Σ θ_d |x1_d - x2_d|^p)

    Args:
        X1: Points (N x D)
        X2: Points (M x D)
        theta: ARD weights broadcastable to (D,)
        power: Exponent p in (0, 2]
        diag: Only compute the diagonal (requires N == M)

    Returns:
        Correlation matrix (N x M), or (N,) when diag is set
    """
    if diag:
        diff = (X1 - X2).abs()
        return torch.exp(-(diff.pow(power) * theta).sum(-1))
    diff = (X1.unsqueeze(-2) - X2.unsqueeze(-3)).abs()
    return torch.exp(-(diff.pow(power) * theta.unsqueeze(-2)).sum(-1))


def matern_kernel(X1, X2, theta, nu=2.5, diag=False):
    """
    Matérn correlation with half-integer smoothness.

    r = sqrt(Σ θ_d (x1_d - x2_d)^2)
    ν = 1/2: exp(-r)
    ν = 3/2: (1 + √3*r) * exp(-√3*r)
    ν = 5/2: (1 + √5*r + 5*r^2/3) * exp(-√5*r)

    Args:
        X1: Points (N x D)
        X2: Points (M x D)
        theta: ARD weights broadcastable to (D,)
        nu: Smoothness, one of 0.5, 1.5, 2.5
        diag: Only compute the diagonal (requires N == M)

    Returns:
        Correlation matrix (N x M), or (N,) when diag is set
    """
    if diag:
        sq = ((X1 - X2) ** 2 * theta).sum(-1)
    else:
        sq = ((X1.unsqueeze(-2) - X2.unsqueeze(-3)) ** 2 * theta.unsqueeze(-2)).sum(-1)
    # keep sqrt differentiable at r = 0
    r = sq.clamp_min(1e-30).sqrt()

    if nu == 0.5:
        return torch.exp(-r)
    if nu == 1.5:
        sqrt3 = math.sqrt(3)
        return (1 + sqrt3 * r) * torch.exp(-sqrt3 * r)
    sqrt5 = math.sqrt(5)
    return (1 + sqrt5 * r + 5 * r**2 / 3) * torch.exp(-sqrt5 * r)


class _CorrelationKernel(gpytorch.kernels.Kernel):
    """Stationary correlation with a positive, box-constrained ARD weight per dimension."""

    has_lengthscale = False

    def __init__(self, theta_constraint=None, **kwargs):
        super().__init__(**kwargs)
        dim = 1 if self.ard_num_dims is None else self.ard_num_dims
        self.register_parameter(
            name='raw_theta',
            parameter=torch.nn.Parameter(torch.zeros(*self.batch_shape, 1, dim))
        )
        if theta_constraint is None:
            theta_constraint = Interval(*THETA_BOUNDS)
        self.register_constraint('raw_theta', theta_constraint)
        self._set_theta(1.0)

    @property
    def theta(self):
        return self.raw_theta_constraint.transform(self.raw_theta)

    @theta.setter
    def theta(self, value):
        self._set_theta(value)

    def _set_theta(self, value):
        if not torch.is_tensor(value):
            value = torch.as_tensor(value)
        value = value.to(self.raw_theta).expand_as(self.raw_theta)
        self.initialize(raw_theta=self.raw_theta_constraint.inverse_transform(value))


class PowerExponentialKernel(_CorrelationKernel):
    """
    gpytorch kernel for the power-exponential family.

    Args:
        power: Exponent p in (0, 2]
        theta_constraint: Constraint on the ARD weights
    """

    def __init__(self, power=2.0, theta_constraint=None, **kwargs):
        _check_power(power)
        super().__init__(theta_constraint=theta_constraint, **kwargs)
        self.power = float(power)

    def forward(self, x1, x2, diag=False, **params):
        return power_exponential_kernel(x1, x2, self.theta, self.power, diag=diag)


class MaternKernel(_CorrelationKernel):
    """
    gpytorch kernel for the Matérn family, parameterised by ARD weights.

    Args:
        nu: Smoothness, one of 0.5, 1.5, 2.5
        theta_constraint: Constraint on the ARD weights
    """

    def __init__(self, nu=2.5, theta_constraint=None, **kwargs):
        nu = _check_nu(nu)
        super().__init__(theta_constraint=theta_constraint, **kwargs)
        self.nu = nu

    def forward(self, x1, x2, diag=False, **params):
        return matern_kernel(x1, x2, self.theta, self.nu, diag=diag)


def _check_power(power):
    if not isinstance(power, (int, float)) or not 0 < power <= 2:
        raise InvalidKernelParameter(
            f"power-exponential power must lie in (0, 2], got {power!r}"
        )


def _check_nu(nu):
    for legal in MATERN_NU:
        if isinstance(nu, (int, float)) and math.isclose(nu, legal):
            return legal
    raise InvalidKernelParameter(
        f"Matérn smoothness must be one of {MATERN_NU}, got {nu!r}"
    )


@dataclass(frozen=True)
class KernelParams:
    """
    Kernel configuration and, once fitted, its hyperparameters.

    Args:
        family: Correlation family
        power: Power-exponential exponent, in (0, 2]
        nu: Matérn smoothness
        theta: ARD weights per dimension; None means fit by maximum likelihood
        outputscale: Process variance multiplying the correlation
        nugget: Diagonal term added to the correlation matrix, relative to outputscale
    """

    family: KernelFamily = KernelFamily.POWER_EXPONENTIAL
    power: float = 1.95
    nu: float = 2.5
    theta: Optional[Tuple[float, ...]] = None
    outputscale: float = 1.0
    nugget: float = 1e-6

    def __post_init__(self):
        object.__setattr__(self, 'family', KernelFamily.parse(self.family))
        if self.family is KernelFamily.POWER_EXPONENTIAL:
            _check_power(self.power)
        else:
            object.__setattr__(self, 'nu', _check_nu(self.nu))

        if self.theta is not None:
            theta = tuple(float(t) for t in torch.as_tensor(self.theta).reshape(-1).tolist())
            if not theta or not all(math.isfinite(t) and t > 0 for t in theta):
                raise InvalidKernelParameter(f"theta must be positive and finite, got {self.theta!r}")
            object.__setattr__(self, 'theta', theta)

        if not (math.isfinite(self.outputscale) and self.outputscale > 0):
            raise InvalidKernelParameter(f"outputscale must be positive, got {self.outputscale!r}")
        if not (math.isfinite(self.nugget) and self.nugget > 0):
            raise InvalidKernelParameter(f"nugget must be positive, got {self.nugget!r}")

    @property
    def is_fitted(self):
        return self.theta is not None

    def replace(self, **changes):
        return replace(self, **changes)

    def theta_tensor(self, dim, dtype=torch.float64):
        """ARD weights as a (D,) tensor; a single weight is shared by all dimensions."""
        if self.theta is None:
            return torch.ones(dim, dtype=dtype)
        theta = torch.tensor(self.theta, dtype=dtype)
        if theta.numel() == 1:
            return theta.expand(dim).clone()
        if theta.numel() != dim:
            raise InvalidKernelParameter(
                f"theta has {theta.numel()} entries but the inputs have {dim} dimensions"
            )
        return theta

    def make_kernel(self, dim, theta=None):
        """
        Build the gpytorch correlation kernel.

        Args:
            dim: Input dimensionality
            theta: Initial ARD weights (D,); defaults to self.theta or ones

        Returns:
            PowerExponentialKernel or MaternKernel in float64
        """
        if self.family is KernelFamily.POWER_EXPONENTIAL:
            kernel = PowerExponentialKernel(power=self.power, ard_num_dims=dim)
        else:
            kernel = MaternKernel(nu=self.nu, ard_num_dims=dim)
        kernel = kernel.double()
        if theta is None:
            theta = self.theta_tensor(dim)
        kernel.theta = theta
        return kernel

    def correlation(self, X1, X2, diag=False):
        """Correlation (without outputscale) using the stored theta."""
        theta = self.theta_tensor(X1.shape[-1], dtype=X1.dtype)
        if self.family is KernelFamily.POWER_EXPONENTIAL:
            return power_exponential_kernel(X1, X2, theta, self.power, diag=diag)
        return matern_kernel(X1, X2, theta, self.nu, diag=diag)


def _as_points(X):
    X = torch.as_tensor(X, dtype=torch.float64)
    if X.dim() == 1:
        X = X.unsqueeze(0)
    return X


def covariance_matrix(X1, X2, params):
    """
    Covariance between two point sets.

    Args:
        X1: Points (N x D) or a single point (D,)
        X2: Points (M x D) or a single point (D,)
        params: KernelParams

    Returns:
        outputscale * R(X1, X2) as an (N x M) float64 tensor
    """
    X1, X2 = _as_points(X1), _as_points(X2)
    if X1.shape[-1] != X2.shape[-1]:
        raise ValueError(f"Dimension mismatch: {X1.shape[-1]} vs {X2.shape[-1]}")
    with torch.no_grad():
        return params.outputscale * params.correlation(X1, X2)


def covariance(x_i, x_j, params):
    """Covariance between two single points."""
    return float(covariance_matrix(x_i, x_j, params)[0, 0])
