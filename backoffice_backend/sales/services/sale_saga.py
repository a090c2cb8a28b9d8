# sales/services/sale_saga.py

"""
======================================================
PATH: sales/services/sale_saga.py
======================================================
SALE SAGA ORCHESTRATOR

Records (or re-applies) a sale as ONE logical operation made of six
ordered phases. Each phase is its own atomic block; a phase either
commits as a unit or rolls back as a unit.

    1. Consume       FIFO lot consumption per stocked line (skipped for preorders)
    2. Persist Sale  derive financials, create / update the header
    3. Line items    snapshot rows for the sale
    4. Audit         LotConsumption rows per line           (non-fatal)
    5. Ledger        one OUT stock ledger entry per line    (non-fatal)
    6. Fixed costs   one unit per opted-in pool, new sales  (non-fatal; the header
                     is re-derived from the units actually drawn)

Outcomes (never raised, always returned in SagaResult):
- COMMITTED              phases 1-3 succeeded; phase 4-6 problems are warnings
- COMPENSATED_FAILURE    phase 1 or 2 failed; every lot consumed here was restored.
                         On an edit the whole edit rolls back and the stored
                         sale is untouched
- UNCOMPENSATED_FAILURE  phase 3 failed; the Sale exists (sale_id is returned)
                         and consumption is kept for operator reconciliation

Oversell policy (settings.INVENTORY["OVERSELL_POLICY"]):
- "allow"  shortfall units carry zero cost, the line records quantity_unfulfilled,
           the sale is cogs_pending and an InsufficientStock warning is returned
- "reject" the saga compensates and returns InsufficientStock as the error
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from accounting.services.exceptions import AccountingServiceError
from accounting.services.fixed_costs import apply_fixed_cost, quote_fixed_costs
from accounting.services.payment_fees import payment_fee_for
from products.models import ProductVariant
from products.services.lot_ledger import ConsumptionPlan, LotLedgerError, lot_ledger
from products.services.stock_ledger import record_sale_out
from sales.models import Customer, LotConsumption, Sale, SaleLineItem
from sales.services.exceptions import (
    AuditWriteFailure,
    ConsumptionPersistFailure,
    FixedCostApplyFailure,
    InsufficientStock,
    InvalidSaleInput,
    LedgerEntryWriteFailure,
    PartialSaveFailure,
    RollbackFailure,
    SaleError,
    SaleNotFound,
)
from sales.services.financials import derive_financials, derive_profit
from sales.services.sale_input import SaleInput
from sales.services.sale_reversal import reverse_sale_inventory

logger = logging.getLogger(__name__)

OVERSELL_ALLOW = "allow"
OVERSELL_REJECT = "reject"

_PERSIST_ERRORS = (DatabaseError, ValidationError)


def oversell_policy() -> str:
    policy = (getattr(settings, "INVENTORY", {}) or {}).get("OVERSELL_POLICY", OVERSELL_ALLOW)
    return (policy or OVERSELL_ALLOW).strip().lower()


# ============================================================
# RESULT TYPES
# ============================================================

class SagaOutcome(str, enum.Enum):
    COMMITTED = "committed"
    COMPENSATED_FAILURE = "compensated_failure"
    UNCOMPENSATED_FAILURE = "uncompensated_failure"


@dataclass
class SagaResult:
    outcome: SagaOutcome
    sale_id: Optional[object] = None
    cogs_pending: bool = False
    error: Optional[SaleError] = None
    warnings: list[SaleError] = field(default_factory=list)

    @property
    def committed(self) -> bool:
        return self.outcome == SagaOutcome.COMMITTED

    def as_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "sale_id": str(self.sale_id) if self.sale_id else None,
            "cogs_pending": self.cogs_pending,
            "error": str(self.error) if self.error else None,
            "error_type": type(self.error).__name__ if self.error else None,
            "warnings": [
                {"type": type(w).__name__, "detail": str(w)} for w in self.warnings
            ],
        }


@dataclass
class _LinePlan:
    index: int
    plan: Optional[ConsumptionPlan] = None

    @property
    def cost(self) -> Decimal:
        if self.plan is None:
            return Decimal("0.00")
        return Decimal(self.plan.total_cost).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    @property
    def unfulfilled(self) -> int:
        return self.plan.quantity_unfulfilled if self.plan else 0


# ============================================================
# COMPENSATION
# ============================================================

def rollback_consumption(plans) -> list[RollbackFailure]:
    """
    Give every consumed unit back to the lot it came from.

    Never raises: a failed restore is logged at ERROR (alerting picks it up)
    and returned so the caller can attach it to the result.
    """
    failures: list[RollbackFailure] = []

    for plan in plans:
        if plan is None:
            continue
        for line in plan.lines:
            try:
                lot_ledger.restore(lot_id=line.lot_id, quantity=line.quantity)
            except (LotLedgerError, DatabaseError) as exc:
                logger.error(
                    "Lot rollback failed",
                    extra={
                        "lot_id": str(line.lot_id),
                        "quantity": line.quantity,
                        "error": str(exc),
                    },
                )
                failures.append(
                    RollbackFailure(f"Could not restore {line.quantity} units to lot {line.lot_id}: {exc}")
                )

    return failures


def _compensated(error: SaleError, plans, warnings, *, sale_id=None) -> SagaResult:
    rollback_failures = rollback_consumption(plans)
    logger.warning(
        "Sale saga compensated",
        extra={
            "sale_id": str(sale_id) if sale_id else None,
            "error": str(error),
            "rollback_failures": len(rollback_failures),
        },
    )
    return SagaResult(
        outcome=SagaOutcome.COMPENSATED_FAILURE,
        sale_id=sale_id,
        error=error,
        warnings=list(warnings) + rollback_failures,
    )


# ============================================================
# PHASES
# ============================================================

def _phase_consume(data: SaleInput, line_plans: list[_LinePlan], warnings: list) -> Optional[SaleError]:
    if data.is_preorder:
        return None

    reject = oversell_policy() == OVERSELL_REJECT

    for index, line in enumerate(data.items):
        if not line.is_stocked:
            continue

        try:
            plan = lot_ledger.consume(variant=line.variant_id, quantity=line.quantity)
        except (LotLedgerError, DatabaseError, ValueError) as exc:
            return ConsumptionPersistFailure(f"Lot consumption failed: {exc}")

        line_plans[index].plan = plan

        if plan.is_short:
            shortage = InsufficientStock(
                f"Only {plan.quantity_consumed} of {plan.quantity_requested} units "
                f"of variant {line.variant_id} were in stock",
                variant_id=line.variant_id,
                requested=plan.quantity_requested,
                unfulfilled=plan.quantity_unfulfilled,
            )
            if reject:
                return shortage
            warnings.append(shortage)

    return None


def _header_fields(data: SaleInput, financials, *, cogs_pending: bool) -> dict:
    return {
        "customer_id": data.customer_id,
        "sale_date": data.sale_date,
        "payment_method": data.payment_method,
        "installments": data.installments,
        "channel": data.channel,
        "notes": data.notes,
        "is_preorder": data.is_preorder,
        "cogs_pending": cogs_pending,
        **financials.as_model_fields(),
    }


def _phase_persist_sale(data: SaleInput, line_plans, *, sale: Optional[Sale], user) -> tuple[Sale, bool]:
    plans = [lp.plan for lp in line_plans if lp.plan is not None]

    cogs = sum((lp.cost for lp in line_plans), Decimal("0"))
    cogs_pending = (
        data.is_preorder
        or any(p.cost_pending for p in plans)
        or any(lp.unfulfilled > 0 for lp in line_plans)
    )

    if sale is None:
        fixed_costs = (
            Decimal("0.00")
            if data.is_preorder
            else quote_fixed_costs(pool_ids=data.fixed_cost_pool_ids)
        )
    else:
        # Edits keep the fixed cost charged when the sale was created.
        fixed_costs = sale.fixed_costs_applied

    with transaction.atomic():
        partial = derive_financials(lines=data.price_lines, discount_percent=data.discount_percent)
        if data.payment_fee is not None:
            fee = data.payment_fee
        else:
            fee = payment_fee_for(
                payment_method=data.payment_method,
                installments=data.installments,
                gross_after_discount=partial.gross_after_discount,
            )

        financials = derive_financials(
            lines=data.price_lines,
            discount_percent=data.discount_percent,
            payment_fee=fee,
            shipping=data.shipping,
            fixed_costs=fixed_costs,
            cogs=cogs,
        )

        fields = _header_fields(data, financials, cogs_pending=cogs_pending)

        if sale is None:
            sale = Sale(created_by=user, **fields)
        else:
            for name, value in fields.items():
                setattr(sale, name, value)
        sale.save()

    return sale, cogs_pending


def _snapshot_labels(data: SaleInput) -> dict:
    variant_ids = [line.variant_id for line in data.items if line.is_stocked]
    if not variant_ids:
        return {}
    return {
        v.id: v
        for v in ProductVariant.objects.select_related("product").filter(id__in=variant_ids)
    }


def _phase_line_items(data: SaleInput, line_plans, *, sale: Sale) -> list[SaleLineItem]:
    variants = _snapshot_labels(data)
    created: list[SaleLineItem] = []

    with transaction.atomic():
        for index, line in enumerate(data.items):
            variant = variants.get(line.variant_id) if line.is_stocked else None
            lp = line_plans[index]

            item = SaleLineItem(
                sale=sale,
                variant_id=line.variant_id,
                product_label_snapshot=(
                    line.product_label or getattr(getattr(variant, "product", None), "name", "") or "Item"
                ),
                variant_label_snapshot=line.variant_label or getattr(variant, "label", ""),
                size_snapshot=line.size or getattr(variant, "size", ""),
                quantity=line.quantity,
                unit_price=line.unit_price,
                cost_amount=lp.cost,
                quantity_unfulfilled=lp.unfulfilled,
            )
            item.full_clean()
            item.save()
            created.append(item)

    return created


def _phase_audit(items, line_plans, *, sale: Sale, warnings: list) -> None:
    for item, lp in zip(items, line_plans):
        if lp.plan is None or not lp.plan.lines:
            continue
        try:
            with transaction.atomic():
                for consumed in lp.plan.lines:
                    LotConsumption.objects.create(
                        sale_item=item,
                        lot_id=consumed.lot_id,
                        quantity_consumed=consumed.quantity,
                        unit_cost_at_consumption=consumed.unit_cost,
                    )
        except _PERSIST_ERRORS as exc:
            logger.warning(
                "Lot consumption audit not written",
                extra={"sale_id": str(sale.id), "sale_item_id": str(item.id), "error": str(exc)},
            )
            warnings.append(AuditWriteFailure(f"Audit rows for item {item.id} not written: {exc}"))


def _phase_ledger(items, data: SaleInput, *, sale: Sale, warnings: list) -> None:
    if data.is_preorder:
        return

    for item in items:
        if not item.variant_id:
            continue
        try:
            with transaction.atomic():
                record_sale_out(variant=item.variant_id, quantity=item.quantity, sale_id=sale.id)
        except _PERSIST_ERRORS as exc:
            logger.warning(
                "Stock ledger OUT entry not written",
                extra={"sale_id": str(sale.id), "variant_id": str(item.variant_id), "error": str(exc)},
            )
            warnings.append(
                LedgerEntryWriteFailure(f"OUT entry for variant {item.variant_id} not written: {exc}")
            )


def _phase_fixed_costs(data: SaleInput, *, sale: Sale, warnings: list) -> Decimal:
    """
    Draw one unit per opted-in pool. Returns the fixed cost actually drawn.
    """
    drawn = Decimal("0.00")

    for pool_id in dict.fromkeys(data.fixed_cost_pool_ids):
        try:
            usage = apply_fixed_cost(sale=sale, pool_id=pool_id)
        except (AccountingServiceError, *_PERSIST_ERRORS) as exc:
            logger.warning(
                "Fixed cost not applied",
                extra={"sale_id": str(sale.id), "pool_id": str(pool_id), "error": str(exc)},
            )
            warnings.append(FixedCostApplyFailure(f"Fixed cost pool {pool_id} not applied: {exc}"))
            continue
        drawn += Decimal(usage.unit_cost_applied)

    return drawn.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _settle_fixed_costs(sale: Sale, *, drawn: Decimal, warnings: list) -> None:
    """
    Re-derive the header from the fixed cost units actually drawn, so the
    sale never carries a charge with no usage row behind it.
    """
    charged = sale.fixed_costs_applied
    net, margin = derive_profit(
        gross_after_discount=sale.gross_after_discount,
        fee=sale.payment_fee,
        shipping=sale.shipping,
        fixed_costs=drawn,
        cogs=sale.product_cost,
    )

    try:
        with transaction.atomic():
            sale.fixed_costs_applied = drawn
            sale.net_profit = net
            sale.margin_percent = margin
            sale.save(update_fields=["fixed_costs_applied", "net_profit", "margin_percent", "updated_at"])
    except _PERSIST_ERRORS as exc:
        sale.refresh_from_db(fields=["fixed_costs_applied", "net_profit", "margin_percent"])
        logger.warning(
            "Sale header still carries undrawn fixed cost",
            extra={"sale_id": str(sale.id), "charged": str(charged), "drawn": str(drawn), "error": str(exc)},
        )
        warnings.append(
            FixedCostApplyFailure(
                f"Sale {sale.id} carries {charged - drawn} of fixed cost that was never drawn: {exc}"
            )
        )
        return

    logger.info(
        "Sale fixed cost re-derived from drawn units",
        extra={"sale_id": str(sale.id), "charged": str(charged), "drawn": str(drawn)},
    )


# ============================================================
# ORCHESTRATION
# ============================================================

class _EditAborted(Exception):
    """Rolls an edit's transaction back to the sale as it was stored."""

    def __init__(self, error: SaleError):
        super().__init__(str(error))
        self.error = error


def _validate_references(data: SaleInput) -> None:
    if data.customer_id and not Customer.objects.filter(id=data.customer_id).exists():
        raise InvalidSaleInput("Customer not found")

    variant_ids = {line.variant_id for line in data.items if line.is_stocked}
    if variant_ids:
        found = set(ProductVariant.objects.filter(id__in=variant_ids).values_list("id", flat=True))
        missing = {str(v) for v in variant_ids} - {str(v) for v in found}
        if missing:
            raise InvalidSaleInput(f"Unknown variant(s): {', '.join(sorted(missing))}")


def _finish(data: SaleInput, line_plans, *, sale: Sale, cogs_pending: bool, is_new: bool, warnings: list) -> SagaResult:
    # Phase 3
    try:
        items = _phase_line_items(data, line_plans, sale=sale)
    except _PERSIST_ERRORS as exc:
        logger.error(
            "Sale saved without line items",
            extra={"sale_id": str(sale.id), "error": str(exc)},
        )
        return SagaResult(
            outcome=SagaOutcome.UNCOMPENSATED_FAILURE,
            sale_id=sale.id,
            cogs_pending=cogs_pending,
            error=PartialSaveFailure(
                f"Sale {sale.id} recorded but its items could not be saved: {exc}",
                sale_id=sale.id,
            ),
            warnings=warnings,
        )

    # Phases 4-6
    _phase_audit(items, line_plans, sale=sale, warnings=warnings)
    _phase_ledger(items, data, sale=sale, warnings=warnings)
    if is_new and not data.is_preorder:
        drawn = _phase_fixed_costs(data, sale=sale, warnings=warnings)
        if drawn != sale.fixed_costs_applied:
            _settle_fixed_costs(sale, drawn=drawn, warnings=warnings)

    logger.info(
        "Sale saga committed",
        extra={
            "sale_id": str(sale.id),
            "new_sale": is_new,
            "cogs_pending": cogs_pending,
            "product_cost": str(sale.product_cost),
            "warnings": len(warnings),
        },
    )

    return SagaResult(
        outcome=SagaOutcome.COMMITTED,
        sale_id=sale.id,
        cogs_pending=cogs_pending,
        warnings=warnings,
    )


def _run(data: SaleInput, *, user, warnings: list) -> SagaResult:
    try:
        _validate_references(data)
    except InvalidSaleInput as exc:
        return SagaResult(outcome=SagaOutcome.COMPENSATED_FAILURE, error=exc, warnings=warnings)

    line_plans = [_LinePlan(index=i) for i in range(len(data.items))]

    # Phase 1
    error = _phase_consume(data, line_plans, warnings)
    if error is not None:
        return _compensated(error, [lp.plan for lp in line_plans], warnings)

    # Phase 2
    try:
        sale, cogs_pending = _phase_persist_sale(data, line_plans, sale=None, user=user)
    except _PERSIST_ERRORS as exc:
        return _compensated(
            ConsumptionPersistFailure(f"Sale could not be saved: {exc}"),
            [lp.plan for lp in line_plans],
            warnings,
        )

    return _finish(data, line_plans, sale=sale, cogs_pending=cogs_pending, is_new=True, warnings=warnings)


def record_sale(*, data: SaleInput, user=None) -> SagaResult:
    return _run(data, user=user, warnings=[])


def update_sale(*, sale_id, data: SaleInput, user=None) -> SagaResult:
    """
    Reverse the sale's prior inventory effects, then re-run the saga on the
    same header. Fixed cost usage is kept as charged at creation.

    The reversal and phases 1-2 share one transaction: if re-consuming or
    saving the header fails, the stored sale is left exactly as it was.
    """
    warnings: list[SaleError] = []
    line_plans = [_LinePlan(index=i) for i in range(len(data.items))]

    try:
        with transaction.atomic():
            sale = Sale.objects.select_for_update().get(id=sale_id)
            reversal = reverse_sale_inventory(sale=sale, release_fixed_costs=False)
            sale.items.all().delete()

            _validate_references(data)

            # Phase 1
            error = _phase_consume(data, line_plans, warnings)
            if error is not None:
                raise _EditAborted(error)

            # Phase 2
            try:
                sale, cogs_pending = _phase_persist_sale(data, line_plans, sale=sale, user=user)
            except _PERSIST_ERRORS as exc:
                raise _EditAborted(ConsumptionPersistFailure(f"Sale could not be saved: {exc}")) from exc
    except Sale.DoesNotExist:
        return SagaResult(
            outcome=SagaOutcome.COMPENSATED_FAILURE,
            error=SaleNotFound("Sale not found"),
        )
    except InvalidSaleInput as exc:
        return SagaResult(outcome=SagaOutcome.COMPENSATED_FAILURE, sale_id=sale_id, error=exc)
    except _EditAborted as exc:
        logger.warning(
            "Sale edit rolled back",
            extra={"sale_id": str(sale_id), "error": str(exc.error)},
        )
        return SagaResult(outcome=SagaOutcome.COMPENSATED_FAILURE, sale_id=sale_id, error=exc.error)
    except (LotLedgerError, *_PERSIST_ERRORS) as exc:
        logger.warning(
            "Sale reversal failed; edit not applied",
            extra={"sale_id": str(sale_id), "error": str(exc)},
        )
        return SagaResult(
            outcome=SagaOutcome.COMPENSATED_FAILURE,
            sale_id=sale_id,
            error=ConsumptionPersistFailure(f"Previous inventory effects could not be reversed: {exc}"),
        )

    warnings = list(reversal.inconsistencies) + warnings
    return _finish(data, line_plans, sale=sale, cogs_pending=cogs_pending, is_new=False, warnings=warnings)
