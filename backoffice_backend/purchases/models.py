# purchases/models.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from products.models.product import ProductVariant

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES)


User = settings.AUTH_USER_MODEL


class Supplier(models.Model):
    """
    Supplier master.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=50, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["name"], name="supplier_name_idx"),
            models.Index(fields=["is_active"], name="supplier_active_idx"),
        ]

    def __str__(self):
        return self.name


class PurchaseOrder(models.Model):
    """
    Purchase order header.

    Status workflow: draft -> bought -> shipped -> arrived.

    Arrival is performed by services:
    - creates one InventoryLot per item (idempotent: one lot per item)
    - appends one IN stock ledger entry per item
    - stamps stock_posted_at

    Landed cost shared by all units of the order:
        freight + extra_fees + duty_cost
    duty_cost is NULL while unknown (deferred customs duty).
    """

    STATUS_DRAFT = "draft"
    STATUS_BOUGHT = "bought"
    STATUS_SHIPPED = "shipped"
    STATUS_ARRIVED = "arrived"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_BOUGHT, "Bought"),
        (STATUS_SHIPPED, "Shipped"),
        (STATUS_ARRIVED, "Arrived"),
    ]

    # Forward-only workflow
    ALLOWED_TRANSITIONS = {
        STATUS_DRAFT: {STATUS_BOUGHT, STATUS_SHIPPED, STATUS_ARRIVED},
        STATUS_BOUGHT: {STATUS_SHIPPED, STATUS_ARRIVED},
        STATUS_SHIPPED: {STATUS_ARRIVED},
        STATUS_ARRIVED: set(),
    }

    SOURCE_DOMESTIC = "domestic"
    SOURCE_INTERNATIONAL = "international"

    SOURCES = [
        (SOURCE_DOMESTIC, "Domestic"),
        (SOURCE_INTERNATIONAL, "International"),
    ]

    # remittance: duty paid up-front with the order
    # offline: duty charged on arrival (may be unknown at arrival)
    SHIPPING_REMITTANCE = "remittance"
    SHIPPING_OFFLINE = "offline"
    SHIPPING_FORWARDER = "forwarder"

    SHIPPING_MODES = [
        (SHIPPING_REMITTANCE, "Remittance"),
        (SHIPPING_OFFLINE, "Offline"),
        (SHIPPING_FORWARDER, "Forwarder"),
    ]

    DEFERRED_DUTY_MODES = {SHIPPING_OFFLINE}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name="purchase_orders",
        null=True,
        blank=True,
    )

    reference = models.CharField(max_length=64, blank=True, default="")
    order_date = models.DateField(default=timezone.localdate)

    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_DRAFT)

    source = models.CharField(max_length=20, choices=SOURCES, default=SOURCE_DOMESTIC)
    shipping_mode = models.CharField(
        max_length=20,
        choices=SHIPPING_MODES,
        null=True,
        blank=True,
    )

    freight = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    extra_fees = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    duty_cost = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        default=None,
        help_text="Customs duty; NULL while not yet known.",
    )

    notes = models.TextField(blank=True, default="")

    arrived_at = models.DateTimeField(null=True, blank=True)

    # Arrival idempotency marker (lots themselves are unique per item)
    stock_posted_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchase_orders_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-order_date", "-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(freight__gte=Decimal("0.00")),
                name="purchase_order_freight_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(extra_fees__gte=Decimal("0.00")),
                name="purchase_order_extra_fees_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(duty_cost__isnull=True) | models.Q(duty_cost__gte=Decimal("0.00")),
                name="purchase_order_duty_cost_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "order_date"], name="po_status_date_idx"),
            models.Index(fields=["supplier", "order_date"], name="po_supplier_date_idx"),
        ]

    def clean(self):
        for f in ("freight", "extra_fees"):
            v = getattr(self, f)
            if v is None or v < Decimal("0.00"):
                raise ValidationError({f: f"{f} cannot be negative"})

        if self.duty_cost is not None and self.duty_cost < Decimal("0.00"):
            raise ValidationError({"duty_cost": "duty_cost cannot be negative"})

        if self.status == self.STATUS_ARRIVED and not self.arrived_at:
            raise ValidationError({"arrived_at": "arrived_at is required when status is arrived"})

    def save(self, *args, **kwargs):
        if self.reference is not None:
            self.reference = self.reference.strip()

        self.full_clean()
        return super().save(*args, **kwargs)

    # -------------------------------------------------
    # COST HELPERS
    # -------------------------------------------------

    @property
    def has_deferred_duty(self) -> bool:
        """
        True while a duty cost is expected but unknown.
        """
        return (
            self.source == self.SOURCE_INTERNATIONAL
            and self.shipping_mode in self.DEFERRED_DUTY_MODES
            and self.duty_cost is None
        )

    @property
    def shared_costs(self) -> Decimal:
        return _money(self.freight) + _money(self.extra_fees) + _money(self.duty_cost)

    @property
    def total_units(self) -> int:
        return sum(int(it.quantity or 0) for it in self.items.all())

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, set())

    def __str__(self):
        label = self.reference or str(self.id)[:8]
        supplier = getattr(self.supplier, "name", "no supplier")
        return f"PO {label} ({supplier})"


class PurchaseOrderItem(models.Model):
    """
    Purchase order line.

    unit_cost is in `currency`; exchange_rate converts to the default currency
    when they differ (e.g. USD -> BRL). A line without a variant produces no lot.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        related_name="items",
    )
    variant = models.ForeignKey(
        ProductVariant,
        on_delete=models.PROTECT,
        related_name="purchase_items",
        null=True,
        blank=True,
    )

    description = models.CharField(max_length=255, blank=True, default="")

    quantity = models.PositiveIntegerField()
    unit_cost = models.DecimalField(max_digits=14, decimal_places=4)
    currency = models.CharField(max_length=3, default="BRL")
    exchange_rate = models.DecimalField(
        max_digits=14,
        decimal_places=6,
        default=Decimal("1.000000"),
        help_text="Units of default currency per unit of `currency`.",
    )

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="purchase_item_quantity_gt_zero",
            ),
            models.CheckConstraint(
                condition=models.Q(unit_cost__gte=Decimal("0")),
                name="purchase_item_unit_cost_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(exchange_rate__gt=Decimal("0")),
                name="purchase_item_exchange_rate_gt_zero",
            ),
        ]

    def clean(self):
        if self.quantity is None or self.quantity <= 0:
            raise ValidationError({"quantity": "quantity must be greater than zero"})
        if self.unit_cost is None or self.unit_cost < Decimal("0"):
            raise ValidationError({"unit_cost": "unit_cost cannot be negative"})
        if self.exchange_rate is None or self.exchange_rate <= Decimal("0"):
            raise ValidationError({"exchange_rate": "exchange_rate must be greater than zero"})

    def save(self, *args, **kwargs):
        self.currency = (self.currency or "BRL").strip().upper()
        self.full_clean()
        return super().save(*args, **kwargs)

    def base_unit_cost(self, default_currency: str = "BRL") -> Decimal:
        """
        Item cost in the default currency, before landed-cost apportionment.
        """
        cost = Decimal(str(self.unit_cost or "0"))
        if (self.currency or "").upper() != (default_currency or "").upper():
            cost = cost * Decimal(str(self.exchange_rate or "1"))
        return cost

    def line_cost(self, default_currency: str = "BRL") -> Decimal:
        return self.base_unit_cost(default_currency) * Decimal(int(self.quantity or 0))

    def __str__(self):
        label = getattr(self.variant, "sku", None) or self.description or "item"
        return f"{label} x {self.quantity}"
