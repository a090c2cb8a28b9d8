# products/management/commands/audit_stock.py

from django.core.management.base import BaseCommand

from products.services.stock_audit import audit_stock


class Command(BaseCommand):
    help = "Compare lot quantities with the stock ledger per variant and list inconsistent lots."

    def add_arguments(self, parser):
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any discrepancy or inconsistent lot is found.",
        )
        parser.add_argument(
            "--all",
            action="store_true",
            dest="show_all",
            help="List every audited variant, not only those with discrepancies.",
        )

    def handle(self, *args, **options):
        strict = bool(options.get("strict"))
        show_all = bool(options.get("show_all"))

        report = audit_stock()
        summary = report["summary"]

        self.stdout.write(self.style.MIGRATE_HEADING("Stock Audit (lots vs ledger)"))
        self.stdout.write(f"Variants audited:          {summary['total_variants_audited']}")
        self.stdout.write(f"Variants with discrepancy: {summary['variants_with_discrepancies']}")
        self.stdout.write(f"Variants below zero:       {summary['variants_with_negative_stock']}")
        self.stdout.write(f"Inconsistent lots:         {summary['inconsistent_lots']}")
        self.stdout.write("")

        for row in report["variants"]:
            if not show_all and not row["has_discrepancy"]:
                continue
            label = " / ".join(p for p in (row["product_label"], row["variant_label"], row["size"]) if p)
            line = (
                f"  {label} [{row['variant_id']}] lots={row['lots_quantity_remaining']} "
                f"ledger={row['ledger_balance']} diff={row['discrepancy']}"
            )
            if row["has_discrepancy"]:
                self.stderr.write(self.style.WARNING(line))
            else:
                self.stdout.write(line)

        for lot in report["inconsistent_lots"]:
            self.stderr.write(
                self.style.ERROR(
                    f"  lot {lot['lot_id']} ({lot['product_label']}): {lot['issue']} "
                    f"received={lot['quantity_received']} remaining={lot['quantity_remaining']}"
                )
            )

        problems = summary["variants_with_discrepancies"] + summary["inconsistent_lots"]

        self.stdout.write("")
        if problems == 0:
            self.stdout.write(self.style.SUCCESS("✅ Lots and ledger agree."))
        else:
            self.stderr.write(self.style.ERROR(f"❌ AUDIT FOUND ISSUES: {problems} problem(s)"))

        if strict and problems:
            raise SystemExit(1)
