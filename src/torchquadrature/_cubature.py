"""Adaptive cubature over hyper-rectangles (Genz-Malik ADAPT)."""

import heapq
import warnings
from typing import Callable, Optional, Sequence, Union

import torch
from torch import Tensor

from torchquadrature._convergence import (
    default_limit,
    is_converged,
    resolve_tolerances,
)
from torchquadrature._exceptions import QuadratureWarning
from torchquadrature._genz_malik import GaussKronrodRegion, GenzMalik
from torchquadrature._integrand import infer_dtype_device
from torchquadrature._result import QuadratureResult

Bounds = Union[Sequence[float], Tensor]


def cubature(
    f: Callable[..., Tensor],
    a: Bounds,
    b: Bounds,
    *,
    epsrel: Optional[float] = None,
    epsabs: Optional[float] = None,
    maxeval: Optional[int] = None,
    vectorized: bool = True,
) -> Tensor:
    """
    Compute an n-dimensional integral over a hyper-rectangle.

    Integrates f over ``[a_1, b_1] x ... x [a_n, b_n]`` with the adaptive
    subregion algorithm of Genz and Malik.

    Parameters
    ----------
    f : callable
        Integrand. For ``n <= 6`` it is called as ``f(x1, ..., xn)``; for
        ``n > 6`` as ``f(x)`` with the coordinates on the last axis of ``x``.
    a, b : sequence of float or Tensor
        Lower and upper corners, shape (n,), ``a_i < b_i``.
    epsrel : float, optional
        Relative error tolerance. Default: dtype-aware (1e-5 for float64).
    epsabs : float, optional
        Absolute error tolerance. Default: dtype-aware (1e-10 for float64).
        Integration stops when EITHER tolerance is met.
    maxeval : int, optional
        Maximum number of integrand evaluations.
    vectorized : bool
        If True (default), ``f`` is called once per rule application with
        tensors holding every stencil point. If False, once per point.

    Returns
    -------
    Tensor
        Integral approximation.

    Warns
    -----
    QuadratureWarning
        If ``maxeval`` was reached before the tolerance was met.

    Notes
    -----
    Differentiable with respect to parameters captured in f's closure.

    Examples
    --------
    >>> cubature(lambda x, y: x**2 + y**2, [0, 0], [1, 1])  # 2/3
    """
    result = cubature_info(
        f,
        a,
        b,
        epsrel=epsrel,
        epsabs=epsabs,
        maxeval=maxeval,
        vectorized=vectorized,
    )

    if not result.converged:
        warnings.warn(
            f"Cubature did not converge after {result.neval} evaluations. "
            f"Error: {result.abserr.item():.2e}",
            QuadratureWarning,
        )

    return result.estimate


def cubature_info(
    f: Callable[..., Tensor],
    a: Bounds,
    b: Bounds,
    *,
    epsrel: Optional[float] = None,
    epsabs: Optional[float] = None,
    maxeval: Optional[int] = None,
    vectorized: bool = True,
) -> QuadratureResult:
    """
    Like cubature, but returns the full diagnostics without warning.

    Returns
    -------
    QuadratureResult
        ``(estimate, abserr, neval, converged, nregions)``.

    Raises
    ------
    ValueError
        If the bounds are malformed, not finite or ``a_i >= b_i``, or if
        ``maxeval`` is smaller than one rule application.
    """
    dtype, device = infer_dtype_device(a, b)
    epsrel, epsabs = resolve_tolerances(epsrel, epsabs, dtype)

    a = torch.as_tensor(a, dtype=dtype, device=device).detach()
    b = torch.as_tensor(b, dtype=dtype, device=device).detach()

    if a.dim() != 1 or a.shape != b.shape or a.numel() == 0:
        raise ValueError(
            f"a and b must be 1-D with the same non-zero length, "
            f"got shapes {tuple(a.shape)} and {tuple(b.shape)}"
        )
    if not (torch.isfinite(a).all() and torch.isfinite(b).all()):
        raise ValueError("integration bounds must be finite")
    if not (a < b).all():
        raise ValueError(
            f"a must be less than b along every axis, got a={a.tolist()}, "
            f"b={b.tolist()}"
        )

    ndim = a.numel()
    rule = GenzMalik(ndim) if ndim > 1 else GaussKronrodRegion()

    if maxeval is None:
        maxeval = rule.npoints * (2 * default_limit(epsrel) - 1)
    if maxeval < rule.npoints:
        raise ValueError(
            f"maxeval must be at least {rule.npoints} for ndim={ndim}, "
            f"got {maxeval}"
        )

    return _adaptive_genz_malik(
        f,
        rule,
        (a + b) / 2,
        (b - a) / 2,
        epsrel=epsrel,
        epsabs=epsabs,
        maxeval=maxeval,
        vectorized=vectorized,
    )


def _adaptive_genz_malik(
    f: Callable[..., Tensor],
    rule,
    center: Tensor,
    halfwidth: Tensor,
    *,
    epsrel: float,
    epsabs: float,
    maxeval: int,
    vectorized: bool,
) -> QuadratureResult:
    """Bisect the worst subregion along its roughest axis until converged."""
    estimate = rule.integrate_with_error(
        f, center, halfwidth, vectorized=vectorized
    )

    # Arena of subregions; live[i] is False once region i has been split
    region_centers = [center]
    region_halfwidths = [halfwidth]
    region_estimates = [estimate]
    region_values = [estimate.result.detach().item()]
    region_errors = [estimate.error.item()]
    live = [True]

    neval = rule.npoints
    nregions = 1

    # Priority queue: (-error, region_index); ties pop the lowest index
    heap = [(-region_errors[0], 0)]

    converged = False
    while True:
        indices = [i for i, alive in enumerate(live) if alive]
        total_value = sum(region_values[i] for i in indices)
        total_error = sum(region_errors[i] for i in indices)

        if is_converged(total_value, total_error, epsrel, epsabs):
            converged = True
            break

        if neval + 2 * rule.npoints > maxeval:
            break

        _, idx = heapq.heappop(heap)
        axis = region_estimates[idx].split_axis
        parent_center = region_centers[idx]
        child_halfwidth = region_halfwidths[idx].clone()
        child_halfwidth[axis] = child_halfwidth[axis] / 2
        offset = child_halfwidth[axis].item()

        # Region too small to split in floating point
        middle = parent_center[axis].item()
        if middle + offset == middle or middle - offset == middle:
            break

        live[idx] = False

        for sign in (-1.0, 1.0):
            child_center = parent_center.clone()
            child_center[axis] = middle + sign * offset
            child = rule.integrate_with_error(
                f, child_center, child_halfwidth, vectorized=vectorized
            )
            child_idx = len(live)
            region_centers.append(child_center)
            region_halfwidths.append(child_halfwidth)
            region_estimates.append(child)
            region_values.append(child.result.detach().item())
            region_errors.append(child.error.item())
            live.append(True)
            heapq.heappush(heap, (-region_errors[child_idx], child_idx))

        neval += 2 * rule.npoints
        nregions += 1

    total_result = torch.stack(
        [region_estimates[i].result for i in indices]
    ).sum()

    return QuadratureResult(
        estimate=total_result,
        abserr=torch.tensor(
            total_error, dtype=center.dtype, device=center.device
        ),
        neval=neval,
        converged=converged,
        nregions=nregions,
    )
