"""Convergence utilities for adaptive quadrature."""

import math

import torch


def default_tolerances(dtype: torch.dtype) -> dict[str, float]:
    """Return dtype-appropriate default tolerances.

    Parameters
    ----------
    dtype : torch.dtype
        The working dtype of the integration.

    Returns
    -------
    dict[str, float]
        Dictionary with keys 'epsrel', 'epsabs'.
    """
    if dtype in (torch.float16, torch.bfloat16):
        return {"epsrel": 1e-2, "epsabs": 1e-3}
    elif dtype == torch.float32:
        return {"epsrel": 1e-4, "epsabs": 1e-6}
    else:  # float64 and others
        return {"epsrel": 1e-5, "epsabs": 1e-10}


def default_limit(epsrel: float) -> int:
    """Return the default maximum number of subregions for ``epsrel``.

    Each requested decimal digit buys 50 bisections, with at least 50.
    """
    if epsrel > 0:
        digits = math.ceil(-math.log10(epsrel))
    else:
        digits = 16
    return 1 + 50 * max(1, digits)


def resolve_tolerances(
    epsrel: float | None,
    epsabs: float | None,
    dtype: torch.dtype,
) -> tuple[float, float]:
    """Fill unset tolerances from :func:`default_tolerances`."""
    defaults = default_tolerances(dtype)
    if epsrel is None:
        epsrel = defaults["epsrel"]
    if epsabs is None:
        epsabs = defaults["epsabs"]
    if epsrel < 0 or epsabs < 0:
        raise ValueError(
            f"tolerances must be non-negative, got epsrel={epsrel}, "
            f"epsabs={epsabs}"
        )
    return epsrel, epsabs


def is_converged(
    estimate: float,
    abserr: float,
    epsrel: float,
    epsabs: float,
) -> bool:
    """Check the global tolerance.

    Convergence is achieved when EITHER:
    - abserr <= epsabs (absolute error converged)
    - abserr <= epsrel * |estimate| (relative error converged)
    """
    return abserr <= epsabs or abserr <= epsrel * abs(estimate)
