from .lot_ledger import (
    ConsumptionPlan,
    ConsumedLot,
    LotLedger,
    LotLedgerError,
    lot_ledger,
)

__all__ = [
    "ConsumptionPlan",
    "ConsumedLot",
    "LotLedger",
    "LotLedgerError",
    "lot_ledger",
]
