"""
Client account and ledger movement models.

A ClientAccount holds one client's prepaid rental credit. Every balance
change is recorded as an immutable AccountMovement; the account row is
only ever mutated by AccountService.apply_movement.

Usage:
    from rental.models import ClientAccount, AccountMovement
    from rental.services import AccountService

    account = AccountService.create_account(
        tenant_id=tenant_id,
        client_id=client_id,
        initial_balance=Decimal("100000"),
        created_by="admin",
    )
    account.movements.count()  # 1 (INITIAL_CREDIT)
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import Q

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from rental.state_machines import MovementType, StatementFrequency


class ClientAccount(UUIDPrimaryKeyMixin, BaseModel):
    """
    Prepaid credit account, one per client within a tenant.

    Fields:
        tenant_id: Owning tenant
        client_id: CRM client this account belongs to (unique per tenant)
        balance: Current usable credit, never negative
        total_consumed: Lifetime charges (monotonic)
        total_reloaded: Lifetime credits (monotonic)
        alert_amount: Threshold at or below which a low-balance alert fires
        alert_triggered: Whether the alert already fired for this dip
        last_alert_sent: When the alert last fired
        statement_frequency: Statement dispatch cadence
        last_statement_sent: When the last statement was delivered
        next_statement_due: When the next statement should go out
        notes: Free text

    Note:
        Balance and counters are mutated exclusively through
        AccountService.apply_movement, under select_for_update.
    """

    # ==========================================================================
    # Ownership
    # ==========================================================================

    tenant_id = models.UUIDField(
        db_index=True,
        help_text="Tenant that owns this account",
    )
    client_id = models.UUIDField(
        db_index=True,
        help_text="Client this account belongs to",
    )

    # ==========================================================================
    # Balance
    # ==========================================================================

    balance = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0"),
        help_text="Current usable credit",
    )
    total_consumed = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0"),
        help_text="Lifetime charges, never decreases",
    )
    total_reloaded = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0"),
        help_text="Lifetime credits, never decreases",
    )

    # ==========================================================================
    # Alerts & Statements
    # ==========================================================================

    alert_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("100000"),
        help_text="Low-balance alert threshold",
    )
    alert_triggered = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether the low-balance alert already fired",
    )
    last_alert_sent = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the low-balance alert last fired",
    )
    statement_frequency = models.CharField(
        max_length=20,
        choices=StatementFrequency.choices,
        default=StatementFrequency.MONTHLY,
        help_text="How often statements are sent",
    )
    last_statement_sent = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the last statement was delivered",
    )
    next_statement_due = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="When the next statement is due",
    )

    notes = models.TextField(
        null=True,
        blank=True,
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Client Account"
        verbose_name_plural = "Client Accounts"
        indexes = [
            models.Index(fields=["tenant_id", "client_id"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "client_id"],
                name="unique_client_account_per_tenant",
            ),
            models.CheckConstraint(
                check=Q(balance__gte=0),
                name="client_account_balance_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"ClientAccount({self.client_id}, balance={self.balance})"

    @property
    def is_below_alert(self) -> bool:
        return self.balance <= self.alert_amount


class AccountMovement(UUIDPrimaryKeyMixin, models.Model):
    """
    One immutable, signed ledger entry against a client account.

    Invariant: balance_after == balance_before + amount and
    balance_after >= 0. Corrections are made with ADJUSTMENT movements,
    never by editing an existing row.

    Fields:
        account: Account the movement applies to
        contract_id / asset_rental_id / usage_report_id: Optional references
        movement_type: Category of this movement
        amount: Signed amount (negative = charge, positive = credit)
        balance_before / balance_after: Account balance around the movement
        machinery_cost / operator_cost / tool_cost: Cost breakdown of a charge
        description: Human-readable description
        evidence_urls: Evidence URIs
        metadata: Free-form audit notes
        notes: Operator notes
        created_by: User or job that applied the movement
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this movement was recorded",
    )

    account = models.ForeignKey(
        ClientAccount,
        on_delete=models.PROTECT,
        related_name="movements",
        help_text="Account this movement applies to",
    )
    contract_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Contract this movement is attributed to",
    )
    asset_rental_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Asset rental this movement relates to",
    )
    usage_report_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="Usage report that produced this movement",
    )

    movement_type = models.CharField(
        max_length=30,
        choices=MovementType.choices,
        db_index=True,
        help_text="Category of this movement",
    )
    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Signed amount: negative is a charge, positive a credit",
    )
    balance_before = models.DecimalField(
        max_digits=14,
        decimal_places=2,
    )
    balance_after = models.DecimalField(
        max_digits=14,
        decimal_places=2,
    )

    # ==========================================================================
    # Cost Breakdown
    # ==========================================================================

    machinery_cost = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
    )
    operator_cost = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
    )
    tool_cost = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
    )

    # ==========================================================================
    # Audit
    # ==========================================================================

    description = models.TextField(
        blank=True,
        default="",
    )
    evidence_urls = models.JSONField(
        default=list,
        blank=True,
        help_text="Evidence URIs (photos, receipts)",
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Free-form audit notes",
    )
    notes = models.TextField(
        null=True,
        blank=True,
    )
    created_by = models.CharField(
        max_length=255,
        help_text="User or job that applied this movement",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Account Movement"
        verbose_name_plural = "Account Movements"
        indexes = [
            models.Index(fields=["account", "created_at"]),
            models.Index(fields=["contract_id", "movement_type"]),
        ]
        constraints = [
            models.CheckConstraint(
                check=Q(balance_after__gte=0),
                name="account_movement_balance_after_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_movement_type_display()}: {self.amount}"

    def save(self, *args, **kwargs):
        """Insert only. Existing movements cannot be modified."""
        if not self._state.adding:
            raise ValueError(f"AccountMovement {self.pk} is immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError(f"AccountMovement {self.pk} is immutable")

    @property
    def is_charge(self) -> bool:
        return self.amount < 0
