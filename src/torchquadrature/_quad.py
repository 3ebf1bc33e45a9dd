"""Adaptive quadrature using the G7-K15 Gauss-Kronrod rule."""

import heapq
import math
import warnings
from functools import partial
from typing import Callable, Optional, Union

import torch
from torch import Tensor

from torchquadrature._convergence import (
    default_limit,
    is_converged,
    resolve_tolerances,
)
from torchquadrature._exceptions import QuadratureWarning
from torchquadrature._integrand import as_float, evaluate, infer_dtype_device
from torchquadrature._result import QuadratureResult
from torchquadrature._rules import GaussKronrod
from torchquadrature._substitution import Substitution, substitute


def quad(
    f: Callable[[Tensor], Tensor],
    a: Union[float, Tensor],
    b: Union[float, Tensor],
    *,
    epsrel: Optional[float] = None,
    epsabs: Optional[float] = None,
    limit: Optional[int] = None,
    substitution: Optional[Substitution] = None,
    vectorized: bool = True,
) -> Tensor:
    """
    Compute definite integral using adaptive quadrature.

    Uses adaptive bisection with G7-K15 Gauss-Kronrod error estimation.
    Based on ``gsl_integration_qag``.

    Parameters
    ----------
    f : callable
        Integrand function.
    a, b : float or Tensor
        Integration bounds (scalars only, not batched), ``a < b``.
    epsrel : float, optional
        Relative error tolerance. Default: dtype-aware (1e-5 for float64).
    epsabs : float, optional
        Absolute error tolerance. Default: dtype-aware (1e-10 for float64).
        Integration stops when EITHER tolerance is met.
    limit : int, optional
        Maximum number of subintervals. Default: ``default_limit(epsrel)``.
    substitution : Substitution, optional
        Change of variables. ``a`` and ``b`` are given in the original
        variable and mapped through ``substitution.u``.
    vectorized : bool
        If True (default), ``f`` receives a tensor of nodes. If False,
        ``f`` is called once per node with a Python float.

    Returns
    -------
    Tensor
        Integral approximation.

    Warns
    -----
    QuadratureWarning
        If the subdivision budget ran out before the tolerance was met.
        The best estimate is returned anyway.

    Notes
    -----
    Differentiable with respect to parameters captured in f's closure.

    Examples
    --------
    >>> quad(torch.sin, 0, torch.pi)  # approximately 2.0

    >>> # Tail integral via x = 1/u
    >>> quad(lambda x: x**-2, 1, math.inf, substitution=InverseSubstitution())
    """
    result = quad_info(
        f,
        a,
        b,
        epsrel=epsrel,
        epsabs=epsabs,
        limit=limit,
        substitution=substitution,
        vectorized=vectorized,
    )

    if not result.converged:
        warnings.warn(
            f"Quadrature did not converge after {result.nregions} "
            f"subintervals. Error: {result.abserr.item():.2e}",
            QuadratureWarning,
        )

    return result.estimate


def quad_info(
    f: Callable[[Tensor], Tensor],
    a: Union[float, Tensor],
    b: Union[float, Tensor],
    *,
    epsrel: Optional[float] = None,
    epsabs: Optional[float] = None,
    limit: Optional[int] = None,
    substitution: Optional[Substitution] = None,
    vectorized: bool = True,
) -> QuadratureResult:
    """
    Like quad, but returns the full diagnostics without warning.

    Returns
    -------
    QuadratureResult
        ``(estimate, abserr, neval, converged, nregions)``. ``neval`` is
        always ``15 * (2 * k + 1)`` where ``k`` is the number of bisections.

    Raises
    ------
    ValueError
        If ``a >= b``, a bound is not finite in the integration variable,
        or ``limit < 1``.
    """
    dtype, device = infer_dtype_device(a, b)
    epsrel, epsabs = resolve_tolerances(epsrel, epsabs, dtype)

    a_val = as_float(a)
    b_val = as_float(b)

    if not a_val < b_val:
        raise ValueError(f"a must be less than b, got a={a_val}, b={b_val}")

    if limit is None:
        limit = default_limit(epsrel)
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")

    integrand = f
    if not vectorized and substitution is not None:
        integrand = partial(evaluate, f, vectorized=False)
        vectorized = True
    if substitution is not None:
        integrand = substitute(integrand, substitution)
        with torch.no_grad():
            lower = substitution.u(
                torch.tensor(a_val, dtype=dtype, device=device)
            ).item()
            upper = substitution.u(
                torch.tensor(b_val, dtype=dtype, device=device)
            ).item()
    else:
        lower, upper = a_val, b_val

    if not (math.isfinite(lower) and math.isfinite(upper)):
        raise ValueError(
            f"integration bounds must be finite in the integration variable, "
            f"got [{lower}, {upper}]; use a substitution for infinite ranges"
        )

    return _adaptive_gauss_kronrod(
        integrand,
        lower,
        upper,
        epsrel=epsrel,
        epsabs=epsabs,
        limit=limit,
        vectorized=vectorized,
        dtype=dtype,
        device=device,
    )


def _adaptive_gauss_kronrod(
    f: Callable,
    lower: float,
    upper: float,
    *,
    epsrel: float,
    epsabs: float,
    limit: int,
    vectorized: bool,
    dtype: torch.dtype,
    device: torch.device,
) -> QuadratureResult:
    """Bisect the worst subinterval of [lower, upper] until converged.

    ``lower > upper`` is allowed and integrates with the opposite sign.
    """
    gk_rule = GaussKronrod(15)

    def integrate(left: float, right: float):
        return gk_rule.integrate_with_error(
            f,
            torch.tensor(left, dtype=dtype, device=device),
            torch.tensor(right, dtype=dtype, device=device),
            vectorized=vectorized,
        )

    # Arena of subintervals; bounds is None once an interval has been split
    estimate = integrate(lower, upper)
    interval_results = [estimate.kronrod]
    interval_values = [estimate.kronrod.detach().item()]
    interval_errors = [estimate.error.item()]
    interval_bounds = [(lower, upper)]

    neval = gk_rule.npoints
    nsubintervals = 1

    # Priority queue: (-error, interval_index); ties pop the lowest index
    heap = [(-interval_errors[0], 0)]

    converged = False
    while True:
        live = [
            i for i, bounds in enumerate(interval_bounds) if bounds is not None
        ]
        total_value = sum(interval_values[i] for i in live)
        total_error = sum(interval_errors[i] for i in live)

        if is_converged(total_value, total_error, epsrel, epsabs):
            converged = True
            break

        if nsubintervals >= limit:
            break

        _, idx = heapq.heappop(heap)
        left, right = interval_bounds[idx]
        mid = (left + right) / 2

        # Interval too small to split in floating point
        if mid == left or mid == right:
            break

        left_estimate = integrate(left, mid)
        right_estimate = integrate(mid, right)

        neval += 2 * gk_rule.npoints
        nsubintervals += 1

        interval_bounds[idx] = None

        for child, bounds in (
            (left_estimate, (left, mid)),
            (right_estimate, (mid, right)),
        ):
            child_idx = len(interval_bounds)
            interval_results.append(child.kronrod)
            interval_values.append(child.kronrod.detach().item())
            interval_errors.append(child.error.item())
            interval_bounds.append(bounds)
            heapq.heappush(heap, (-interval_errors[child_idx], child_idx))

    total_result = torch.stack([interval_results[i] for i in live]).sum()

    return QuadratureResult(
        estimate=total_result,
        abserr=torch.tensor(total_error, dtype=dtype, device=device),
        neval=neval,
        converged=converged,
        nregions=nsubintervals,
    )
