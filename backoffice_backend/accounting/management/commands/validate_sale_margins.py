# accounting/management/commands/validate_sale_margins.py

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from django.core.management.base import BaseCommand
from django.db.models import Sum

from accounting.models import SaleFixedCost
from sales.models import LotConsumption, Sale, SaleLineItem

TWOPLACES = Decimal("0.01")


def _parse_date(s: str | None):
    """
    Parse YYYY-MM-DD into a date, or None.
    """
    if not s:
        return None
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        return None


def _q2(v) -> Decimal:
    return Decimal(v or 0).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


class Command(BaseCommand):
    help = "Validate persisted sale financials (net profit identity, COGS and fixed-cost totals)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--from",
            dest="date_from",
            help="Start sale_date YYYY-MM-DD (optional)",
        )
        parser.add_argument(
            "--to",
            dest="date_to",
            help="End sale_date YYYY-MM-DD (optional)",
        )
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any error is found.",
        )

    def handle(self, *args, **options):
        date_from = _parse_date(options.get("date_from"))
        date_to = _parse_date(options.get("date_to"))
        strict = bool(options.get("strict"))

        if options.get("date_from") and not date_from:
            self.stderr.write(self.style.ERROR("Invalid --from date. Use YYYY-MM-DD"))
            return self._exit(strict)

        if options.get("date_to") and not date_to:
            self.stderr.write(self.style.ERROR("Invalid --to date. Use YYYY-MM-DD"))
            return self._exit(strict)

        sales_qs = Sale.objects.all()
        if date_from:
            sales_qs = sales_qs.filter(sale_date__gte=date_from)
        if date_to:
            sales_qs = sales_qs.filter(sale_date__lte=date_to)

        sales = list(sales_qs)
        sale_ids = [s.id for s in sales]

        self.stdout.write(self.style.MIGRATE_HEADING("Sale Margin Validation"))
        self.stdout.write(f"Window: {date_from or 'ALL'}  →  {date_to or 'ALL'}")
        self.stdout.write(f"Sales in window: {len(sales)}")
        self.stdout.write("")

        line_cost = {
            r["sale_id"]: _q2(r["total"])
            for r in SaleLineItem.objects.filter(sale_id__in=sale_ids)
            .values("sale_id")
            .annotate(total=Sum("cost_amount"))
            .order_by()
        }

        fixed_cost = {
            r["sale_id"]: _q2(r["total"])
            for r in SaleFixedCost.objects.filter(sale_id__in=sale_ids)
            .values("sale_id")
            .annotate(total=Sum("unit_cost_applied"))
            .order_by()
        }

        audited_cost = defaultdict(Decimal)
        for item_id, qty, unit_cost in LotConsumption.objects.filter(
            sale_item__sale_id__in=sale_ids
        ).values_list("sale_item_id", "quantity_consumed", "unit_cost_at_consumption"):
            audited_cost[item_id] += Decimal(qty) * Decimal(unit_cost)

        errors = 0

        # -----------------------------
        # 1) Net profit identity
        # -----------------------------
        broken_identity = [
            s for s in sales if _q2(s.net_profit) != _q2(s.expected_net_profit())
        ]
        if broken_identity:
            errors += len(broken_identity)
            self.stderr.write(self.style.ERROR(f"[FAIL] Net profit identity broken: {len(broken_identity)}"))
            for s in broken_identity[:10]:
                self.stderr.write(f"  sale_id={s.id} net_profit={s.net_profit} expected={_q2(s.expected_net_profit())}")
        else:
            self.stdout.write(self.style.SUCCESS("[OK] net_profit = revenue - fee - shipping - fixed - COGS"))

        # -----------------------------
        # 2) Sale COGS vs line costs
        # -----------------------------
        cost_mismatch = [
            s for s in sales if _q2(s.product_cost) != line_cost.get(s.id, Decimal("0.00"))
        ]
        if cost_mismatch:
            errors += len(cost_mismatch)
            self.stderr.write(self.style.ERROR(f"[FAIL] product_cost != Σ line cost_amount: {len(cost_mismatch)}"))
            for s in cost_mismatch[:10]:
                self.stderr.write(
                    f"  sale_id={s.id} product_cost={s.product_cost} lines={line_cost.get(s.id, Decimal('0.00'))}"
                )
        else:
            self.stdout.write(self.style.SUCCESS("[OK] product_cost matches line costs"))

        # -----------------------------
        # 3) Line cost vs consumption snapshots (informational when cogs_pending)
        # -----------------------------
        pending_ids = {s.id for s in sales if s.cogs_pending}
        snapshot_mismatch = []
        for item in SaleLineItem.objects.filter(sale_id__in=sale_ids, id__in=list(audited_cost)):
            if item.sale_id in pending_ids:
                continue
            if _q2(item.cost_amount) != _q2(audited_cost[item.id]):
                snapshot_mismatch.append(item)

        if snapshot_mismatch:
            self.stdout.write(
                self.style.WARNING(
                    f"[WARN] Line cost differs from consumption snapshot (reconciled or repriced): {len(snapshot_mismatch)}"
                )
            )
            for item in snapshot_mismatch[:10]:
                self.stdout.write(
                    f"  sale_item_id={item.id} cost_amount={item.cost_amount} snapshot={_q2(audited_cost[item.id])}"
                )
        else:
            self.stdout.write(self.style.SUCCESS("[OK] Line costs match consumption snapshots"))

        # -----------------------------
        # 4) Fixed costs vs usage rows
        # -----------------------------
        fixed_mismatch = [
            s
            for s in sales
            if _q2(s.fixed_costs_applied) != fixed_cost.get(s.id, Decimal("0.00"))
        ]
        if fixed_mismatch:
            errors += len(fixed_mismatch)
            self.stderr.write(
                self.style.ERROR(f"[FAIL] fixed_costs_applied != Σ pool usages: {len(fixed_mismatch)}")
            )
            for s in fixed_mismatch[:10]:
                self.stderr.write(
                    f"  sale_id={s.id} fixed_costs_applied={s.fixed_costs_applied} "
                    f"usages={fixed_cost.get(s.id, Decimal('0.00'))}"
                )
        else:
            self.stdout.write(self.style.SUCCESS("[OK] Fixed costs match pool usages"))

        self.stdout.write("")
        self.stdout.write(f"Sales flagged cogs_pending: {len(pending_ids)}")

        if errors == 0:
            self.stdout.write(self.style.SUCCESS("✅ VALIDATION PASSED"))
        else:
            self.stderr.write(self.style.ERROR(f"❌ VALIDATION FOUND ISSUES: {errors} problem(s)"))

        return self._exit(strict and errors > 0)

    def _exit(self, fail: bool):
        if fail:
            raise SystemExit(1)
        return None
