"""Closed-form test functions."""

import math

import torch


def oscillating_1d(x):
    """
    f(x) = (2x - 10)^2 * sin(32x - 4), usually searched on [0, 1].

    Args:
        x: Scalar or tensor

    Returns:
        Function value(s), same type as x
    """
    if torch.is_tensor(x):
        return (2 * x - 10) ** 2 * torch.sin(32 * x - 4)
    return (2 * x - 10) ** 2 * math.sin(32 * x - 4)


def branin(x1, x2):
    """
    Branin function - standard 2D optimization benchmark.

    Domain: x1 ∈ [-5, 10], x2 ∈ [0, 15]
    Has 3 global minima at f(x*) ≈ 0.397887
    """
    a = 1.0
    b = 5.1 / (4.0 * math.pi**2)
    c = 5.0 / math.pi
    r = 6.0
    s = 10.0
    t = 1.0 / (8.0 * math.pi)

    cos = torch.cos if torch.is_tensor(x1) else math.cos
    return a * (x2 - b * x1**2 + c * x1 - r)**2 + s * (1 - t) * cos(x1) + s


def negative_sphere(x, center=0.0):
    """
    -Σ (x_d - center)^2, maximised at x = center.

    Args:
        x: Point (D,) tensor
        center: Location of the optimum

    Returns:
        float
    """
    x = torch.as_tensor(x, dtype=torch.float64)
    return float(-((x - center) ** 2).sum())
