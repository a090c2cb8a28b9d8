# sales/services/exceptions.py

"""
SALE SERVICE ERRORS

Centralized domain errors for the sale saga, reversal engine and
cost reconciliation.

The saga never raises these for phase failures; it returns them inside
a SagaResult so callers can see how far the sale got.
"""


class SaleError(Exception):
    """Base exception for all sale service failures."""


class InvalidSaleInput(SaleError):
    """Raised when the sale payload cannot be turned into a sale."""


class SaleNotFound(SaleError):
    pass


class InsufficientStock(SaleError):
    """Requested quantity exceeds the variant's remaining lot stock."""

    def __init__(self, message: str = "", *, variant_id=None, requested: int = 0, unfulfilled: int = 0):
        super().__init__(message or "Insufficient lot stock")
        self.variant_id = variant_id
        self.requested = requested
        self.unfulfilled = unfulfilled


class ConsumptionPersistFailure(SaleError):
    """
    Lots could not be consumed (phase 1) or the Sale header could not be
    written after consuming them (phase 2). Always compensated.
    """


class PartialSaveFailure(SaleError):
    """
    The sale header exists but its line items could not be saved (phase 3).
    Not compensated: the sale stays for operator repair.
    """

    def __init__(self, message: str = "", *, sale_id=None):
        super().__init__(message or "Sale line items could not be saved")
        self.sale_id = sale_id


class AuditWriteFailure(SaleError):
    """LotConsumption rows could not be written (phase 4, non-fatal)."""


class LedgerEntryWriteFailure(SaleError):
    """A stock ledger out entry could not be written (phase 5, non-fatal)."""


class FixedCostApplyFailure(SaleError):
    """A fixed cost pool unit could not be drawn (phase 6, non-fatal)."""


class RollbackFailure(SaleError):
    """A compensating lot restore failed; lot quantities need operator review."""


class ReversalInconsistency(SaleError):
    """
    Reversal could not place units back exactly where they came from
    (legacy restore without audit rows, or units with no lot room left).
    """
