# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for fixed costs, fee lookup and margin reports.
"""


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""


class FixedCostUnavailable(AccountingServiceError):
    """Raised when a pool is inactive or has no units left to draw."""


class FixedCostReleaseError(AccountingServiceError):
    """Raised when a released unit would push a pool above total_units."""


class InvalidReportPeriod(AccountingServiceError, ValueError):
    """Raised when a report period cannot be parsed or is inverted."""
