"""Calling conventions for integrands."""

from typing import Callable, Union

import torch
from torch import Tensor

# Highest dimension for which n-D integrands receive coordinates positionally.
MAX_POSITIONAL_DIM = 6


def infer_dtype_device(*values) -> tuple[torch.dtype, torch.device]:
    """Infer dtype and device from the first tensor among ``values``."""
    for value in values:
        if isinstance(value, Tensor):
            if value.dtype.is_floating_point:
                return value.dtype, value.device
            return torch.float64, value.device
    return torch.float64, torch.device("cpu")


def as_float(value: Union[float, Tensor]) -> float:
    if isinstance(value, Tensor):
        return value.detach().item()
    return float(value)


def _coerce(values, x: Tensor, shape: torch.Size) -> Tensor:
    values = torch.as_tensor(values, dtype=x.dtype, device=x.device)
    return torch.broadcast_to(values, shape)


def evaluate(
    f: Callable,
    x: Tensor,
    *,
    vectorized: bool = True,
) -> Tensor:
    """
    Evaluate a one-dimensional integrand at the nodes ``x``.

    Parameters
    ----------
    f : callable
        Integrand. If ``vectorized``, called once with the whole tensor ``x``;
        otherwise called once per node with a Python float.
    x : Tensor
        Nodes, shape (n,).
    vectorized : bool
        Calling convention, see above.

    Returns
    -------
    Tensor
        Values of ``f`` with the shape, dtype and device of ``x``. Scalar
        return values are broadcast, so constant integrands are accepted.
    """
    if vectorized:
        return _coerce(f(x), x, x.shape)

    values = [
        torch.as_tensor(f(node), dtype=x.dtype, device=x.device)
        for node in x.tolist()
    ]
    return torch.stack(values).reshape(x.shape)


def evaluate_points(
    f: Callable,
    points: Tensor,
    *,
    vectorized: bool = True,
) -> Tensor:
    """
    Evaluate an n-dimensional integrand at ``points``.

    For ``ndim <= 6`` the integrand is called as ``f(x1, ..., xn)``; for
    ``ndim > 6`` it receives the coordinates as one tensor, ``f(x)``, with
    the coordinate index on the last axis.

    Parameters
    ----------
    f : callable
        Integrand.
    points : Tensor
        Shape (npoints, ndim).
    vectorized : bool
        If True, ``f`` is called once and each argument holds all points
        (shape (npoints,) positionally, (npoints, ndim) as a buffer).
        If False, ``f`` is called once per point with Python floats
        positionally, or with a tensor of shape (ndim,) as a buffer.

    Returns
    -------
    Tensor
        Shape (npoints,).
    """
    npoints, ndim = points.shape
    positional = ndim <= MAX_POSITIONAL_DIM
    shape = torch.Size([npoints])

    if vectorized:
        if positional:
            values = f(*points.unbind(-1))
        else:
            values = f(points)
        return _coerce(values, points, shape)

    values = []
    for point in points:
        if positional:
            value = f(*point.tolist())
        else:
            value = f(point)
        values.append(
            torch.as_tensor(value, dtype=points.dtype, device=points.device)
        )
    return torch.stack(values).reshape(shape)
