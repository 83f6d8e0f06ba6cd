"""
RentalContract model.

A contract groups one or more asset rentals for one client and bills them
against that client's ClientAccount.

Usage:
    from rental.models import RentalContract

    contract.suspend(reason="Overdue reload")  # active -> suspended
    contract.save()

    contract.reactivate()  # suspended -> active
    contract.save()
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from rental.state_machines import ContractStatus


class RentalContract(UUIDPrimaryKeyMixin, BaseModel):
    """
    Rental contract tracking its lifecycle and consumption.

    State Flow:
        ACTIVE -> SUSPENDED -> ACTIVE (any number of times)
        ACTIVE -> COMPLETED (only with every rental returned)
        ACTIVE/SUSPENDED -> CANCELLED

    Fields:
        tenant_id / business_unit_id: Owning tenant and business unit
        client_id: CRM client
        account: ClientAccount charged for this contract
        code: Human-readable code, CON-<year>-<seq>
        status: Current FSM state
        estimated_total: Quoted total, informational
        total_consumed: Sum of ledger charges attributed to this contract
        start_date / estimated_end_date / actual_end_date: Contract dates
        suspended_at / cancelled_at: Transition timestamps
        notes / metadata: Free-form
        created_by: User that created the contract

    Note:
        The "no open rentals" guard on completion lives in
        ContractService.complete_contract, which reports the offending
        rental ids.
    """

    # ==========================================================================
    # Ownership
    # ==========================================================================

    tenant_id = models.UUIDField(db_index=True)
    business_unit_id = models.UUIDField(db_index=True)
    client_id = models.UUIDField(db_index=True)

    account = models.ForeignKey(
        "rental.ClientAccount",
        on_delete=models.PROTECT,
        related_name="contracts",
        help_text="Account charged for this contract",
    )

    code = models.CharField(
        max_length=50,
        help_text="Contract code, CON-<year>-<seq>",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=ContractStatus.ACTIVE,
        choices=ContractStatus.choices,
        db_index=True,
        help_text="Current state of the contract (managed by FSM)",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    estimated_total = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
    )
    total_consumed = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0"),
        help_text="Ledger charges attributed to this contract",
    )

    # ==========================================================================
    # Dates
    # ==========================================================================

    start_date = models.DateTimeField(default=timezone.now)
    estimated_end_date = models.DateTimeField(null=True, blank=True)
    actual_end_date = models.DateTimeField(null=True, blank=True)
    suspended_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    # ==========================================================================
    # Metadata
    # ==========================================================================

    notes = models.TextField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_by = models.CharField(max_length=255)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Rental Contract"
        verbose_name_plural = "Rental Contracts"
        indexes = [
            models.Index(fields=["tenant_id", "business_unit_id", "status"]),
            models.Index(fields=["client_id", "status"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "business_unit_id", "code"],
                name="unique_contract_code_per_business_unit",
            ),
        ]

    def __str__(self) -> str:
        return f"RentalContract({self.code}, {self.status})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=ContractStatus.ACTIVE,
        target=ContractStatus.SUSPENDED,
    )
    def suspend(self, reason: str | None = None):
        """
        Suspend the contract.

        Transition: ACTIVE -> SUSPENDED

        Suspended contracts accept no new withdrawals. Open rentals keep
        their state.
        """
        self.suspended_at = timezone.now()
        if reason:
            self.append_note(f"Suspended: {reason}")

    @transition(
        field=status,
        source=ContractStatus.SUSPENDED,
        target=ContractStatus.ACTIVE,
    )
    def reactivate(self):
        """
        Reactivate a suspended contract.

        Transition: SUSPENDED -> ACTIVE
        """
        self.suspended_at = None

    @transition(
        field=status,
        source=ContractStatus.ACTIVE,
        target=ContractStatus.COMPLETED,
    )
    def complete(self):
        """
        Close the contract once every asset is back.

        Transition: ACTIVE -> COMPLETED (terminal)
        """
        self.actual_end_date = timezone.now()

    @transition(
        field=status,
        source=[ContractStatus.ACTIVE, ContractStatus.SUSPENDED],
        target=ContractStatus.CANCELLED,
    )
    def cancel(self, reason: str | None = None):
        """
        Cancel the contract.

        Transition: ACTIVE/SUSPENDED -> CANCELLED (terminal)
        """
        self.cancelled_at = timezone.now()
        if reason:
            self.append_note(f"Cancelled: {reason}")

    def append_note(self, note: str) -> None:
        """Add a line to notes, keeping what is already there."""
        self.notes = f"{self.notes}\n\n{note}" if self.notes else note

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_active(self) -> bool:
        return self.status == ContractStatus.ACTIVE

    @property
    def is_terminal(self) -> bool:
        return self.status in [ContractStatus.COMPLETED, ContractStatus.CANCELLED]
