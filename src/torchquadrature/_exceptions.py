"""Exceptions for quadrature integration."""


class QuadratureWarning(UserWarning):
    """Warning for quadrature issues (e.g., exhausted subdivision budget)."""

    pass


class IntegrationError(Exception):
    """Error when integration fails to converge."""

    pass
