"""Utility functions."""

import torch


def normalize(values, maximum, minimum, scale=1.0):
    """
    Normalize values to [0, scale] range.

    Args:
        values: Values to normalize
        maximum: Maximum value
        minimum: Minimum value
        scale: Output scale

    Returns:
        Normalized values
    """
    if isinstance(scale, (int, float)):
        scale = torch.tensor(scale, dtype=values.dtype, device=values.device)
    return scale * (values - minimum) / (maximum - minimum)


def denormalize(values, maximum, minimum, scale=1.0):
    """Inverse of normalize."""
    return minimum + values / scale * (maximum - minimum)


def check_bounds(points, bounds, atol=0.0):
    """
    Filter points within bounds.

    Args:
        points: List of tensors or tensor (N x D)
        bounds: List of (lower, upper) tuples
        atol: Tolerance on either side of the box

    Returns:
        Valid points
    """
    if isinstance(points, list):
        points = torch.stack(points)

    lower = torch.tensor([b[0] for b in bounds], dtype=points.dtype, device=points.device)
    upper = torch.tensor([b[1] for b in bounds], dtype=points.dtype, device=points.device)

    valid = torch.all((points >= lower - atol) & (points <= upper + atol), dim=-1)
    return points[valid]


def grid_points(dim, num_per_dim=10):
    """
    Dense grid on the unit cube.

    Points are ordered lexicographically with the last dimension varying
    fastest, so iteration order is deterministic.

    Args:
        dim: Dimensionality
        num_per_dim: Grid points per dimension (endpoints included)

    Returns:
        Grid points (num_per_dim ** dim, dim)
    """
    axis = torch.linspace(0.0, 1.0, num_per_dim, dtype=torch.float64)
    return torch.cartesian_prod(*([axis] * dim)).reshape(-1, dim)


def uniform_points(n, dim, generator):
    """
    Uniform draws on the unit cube.

    Args:
        n: Number of points
        dim: Dimensionality
        generator: Seeded torch.Generator

    Returns:
        Points (n, dim)
    """
    return torch.rand(n, dim, generator=generator, dtype=torch.float64)


def closest_pair(X):
    """
    Indices and distance of the two closest rows of X.

    Args:
        X: Points (N x D), N >= 2

    Returns:
        (i, j, distance)
    """
    dist = torch.cdist(X, X)
    dist.fill_diagonal_(float('inf'))
    flat = int(torch.argmin(dist))
    i, j = divmod(flat, dist.shape[1])
    return min(i, j), max(i, j), float(dist[i, j])
