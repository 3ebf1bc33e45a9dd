"""Independent integrals evaluated concurrently on a thread pool."""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, TypeVar

from torch import Tensor

from torchquadrature._cubature import cubature_info
from torchquadrature._quad import quad_info
from torchquadrature._result import QuadratureResult

T = TypeVar("T")


def _broadcast_bounds(
    bounds: Sequence[T],
    count: int,
    shared: bool,
) -> List[T]:
    if shared:
        return [bounds] * count
    if len(bounds) != count:
        raise ValueError(
            f"expected {count} bounds, one per integrand, got {len(bounds)}"
        )
    return list(bounds)


def _run(
    driver: Callable[..., QuadratureResult],
    integrands: Sequence[Callable],
    bounds: Sequence,
    max_workers: Optional[int],
    options: dict,
) -> List[QuadratureResult]:
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [
            pool.submit(driver, f, a, b, **options)
            for f, (a, b) in zip(integrands, bounds)
        ]
        return [future.result() for future in futures]


def quad_batched(
    integrands: Sequence[Callable],
    bounds,
    *,
    max_workers: Optional[int] = None,
    **options,
) -> List[QuadratureResult]:
    """
    Run independent adaptive 1-D integrations concurrently.

    Parameters
    ----------
    integrands : sequence of callable
        One integrand per integral.
    bounds : tuple or sequence of tuple
        A single ``(a, b)`` pair shared by every integrand, or one pair per
        integrand.
    max_workers : int, optional
        Thread pool size, see :class:`concurrent.futures.ThreadPoolExecutor`.
    **options
        Keyword arguments forwarded to :func:`quad_info`.

    Returns
    -------
    list of QuadratureResult
        Results in the order of ``integrands``.

    Raises
    ------
    ValueError
        If the number of bound pairs does not match the number of integrands,
        or any individual call rejects its arguments.

    Notes
    -----
    Each integration owns its subinterval state, so calls share nothing
    but the integrands themselves. Integrands must be safe to call from
    several threads when they are reused across the batch.

    Examples
    --------
    >>> powers = [lambda x, k=k: x**k for k in range(4)]
    >>> results = quad_batched(powers, (0, 1))
    >>> [r.estimate.item() for r in results]  # 1, 1/2, 1/3, 1/4
    """
    integrands = list(integrands)
    shared = len(bounds) == 2 and not _is_sequence(bounds[0])
    pairs = _broadcast_bounds(bounds, len(integrands), shared)
    return _run(quad_info, integrands, pairs, max_workers, options)


def cubature_batched(
    integrands: Sequence[Callable],
    bounds,
    *,
    max_workers: Optional[int] = None,
    **options,
) -> List[QuadratureResult]:
    """
    Run independent adaptive n-D integrations concurrently.

    Parameters
    ----------
    integrands : sequence of callable
        One integrand per integral.
    bounds : tuple or sequence of tuple
        A single ``(a, b)`` pair of corner sequences shared by every
        integrand, or one pair per integrand.
    max_workers : int, optional
        Thread pool size.
    **options
        Keyword arguments forwarded to :func:`cubature_info`.

    Returns
    -------
    list of QuadratureResult
        Results in the order of ``integrands``.
    """
    integrands = list(integrands)
    shared = _is_corner_pair(bounds)
    pairs = _broadcast_bounds(bounds, len(integrands), shared)
    return _run(cubature_info, integrands, pairs, max_workers, options)


def _is_sequence(value) -> bool:
    if isinstance(value, Tensor):
        return value.dim() > 0
    return isinstance(value, (tuple, list))


def _is_corner_pair(bounds) -> bool:
    """True if ``bounds`` is one ``(a, b)`` pair of corner sequences."""
    if len(bounds) != 2 or not _is_sequence(bounds[0]):
        return False
    return len(bounds[0]) > 0 and not _is_sequence(bounds[0][0])
