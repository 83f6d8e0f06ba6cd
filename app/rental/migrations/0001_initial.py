import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ClientAccount",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "tenant_id",
                    models.UUIDField(db_index=True, help_text="Tenant that owns this account"),
                ),
                (
                    "client_id",
                    models.UUIDField(db_index=True, help_text="Client this account belongs to"),
                ),
                (
                    "balance",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        help_text="Current usable credit",
                        max_digits=14,
                    ),
                ),
                (
                    "total_consumed",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        help_text="Lifetime charges, never decreases",
                        max_digits=14,
                    ),
                ),
                (
                    "total_reloaded",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        help_text="Lifetime credits, never decreases",
                        max_digits=14,
                    ),
                ),
                (
                    "alert_amount",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("100000"),
                        help_text="Low-balance alert threshold",
                        max_digits=14,
                    ),
                ),
                (
                    "alert_triggered",
                    models.BooleanField(
                        db_index=True,
                        default=False,
                        help_text="Whether the low-balance alert already fired",
                    ),
                ),
                (
                    "last_alert_sent",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the low-balance alert last fired",
                        null=True,
                    ),
                ),
                (
                    "statement_frequency",
                    models.CharField(
                        choices=[
                            ("weekly", "Weekly"),
                            ("biweekly", "Biweekly"),
                            ("monthly", "Monthly"),
                            ("manual", "Manual"),
                        ],
                        default="monthly",
                        help_text="How often statements are sent",
                        max_length=20,
                    ),
                ),
                (
                    "last_statement_sent",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the last statement was delivered",
                        null=True,
                    ),
                ),
                (
                    "next_statement_due",
                    models.DateTimeField(
                        blank=True,
                        db_index=True,
                        help_text="When the next statement is due",
                        null=True,
                    ),
                ),
                ("notes", models.TextField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "Client Account",
                "verbose_name_plural": "Client Accounts",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["tenant_id", "client_id"],
                        name="rental_clie_tenant__4fbb60_idx",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tenant_id", "client_id"),
                        name="unique_client_account_per_tenant",
                    ),
                    models.CheckConstraint(
                        check=models.Q(("balance__gte", 0)),
                        name="client_account_balance_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RentalAsset",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                ("tenant_id", models.UUIDField(db_index=True)),
                ("name", models.CharField(max_length=255)),
                ("code", models.CharField(max_length=50)),
                (
                    "tracking_type",
                    models.CharField(
                        blank=True,
                        choices=[("MACHINERY", "Machinery"), ("TOOL", "Tool")],
                        help_text="Billing model; assets without one cannot be withdrawn",
                        max_length=20,
                        null=True,
                    ),
                ),
                (
                    "price_per_hour",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True),
                ),
                (
                    "price_per_day",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True),
                ),
                (
                    "operator_cost_type",
                    models.CharField(
                        blank=True,
                        choices=[("PER_DAY", "Per Day"), ("PER_HOUR", "Per Hour")],
                        max_length=20,
                        null=True,
                    ),
                ),
                (
                    "operator_cost_rate",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True),
                ),
                (
                    "min_daily_hours",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        help_text="Minimum billable hours per day (standby floor)",
                        max_digits=6,
                    ),
                ),
            ],
            options={
                "verbose_name": "Rental Asset",
                "verbose_name_plural": "Rental Assets",
                "ordering": ["name"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tenant_id", "code"),
                        name="unique_rental_asset_code_per_tenant",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="AccountMovement",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this movement was recorded",
                    ),
                ),
                (
                    "contract_id",
                    models.UUIDField(
                        blank=True,
                        db_index=True,
                        help_text="Contract this movement is attributed to",
                        null=True,
                    ),
                ),
                (
                    "asset_rental_id",
                    models.UUIDField(
                        blank=True,
                        db_index=True,
                        help_text="Asset rental this movement relates to",
                        null=True,
                    ),
                ),
                (
                    "usage_report_id",
                    models.UUIDField(
                        blank=True,
                        help_text="Usage report that produced this movement",
                        null=True,
                    ),
                ),
                (
                    "movement_type",
                    models.CharField(
                        choices=[
                            ("INITIAL_CREDIT", "Initial Credit"),
                            ("CREDIT_RELOAD", "Credit Reload"),
                            ("DAILY_CHARGE", "Daily Charge"),
                            ("ADJUSTMENT", "Adjustment"),
                            ("WITHDRAWAL_START", "Withdrawal Start"),
                            ("RETURN_END", "Return End"),
                        ],
                        db_index=True,
                        help_text="Category of this movement",
                        max_length=30,
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Signed amount: negative is a charge, positive a credit",
                        max_digits=14,
                    ),
                ),
                ("balance_before", models.DecimalField(decimal_places=2, max_digits=14)),
                ("balance_after", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "machinery_cost",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True),
                ),
                (
                    "operator_cost",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True),
                ),
                (
                    "tool_cost",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True),
                ),
                ("description", models.TextField(blank=True, default="")),
                (
                    "evidence_urls",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Evidence URIs (photos, receipts)",
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(blank=True, default=dict, help_text="Free-form audit notes"),
                ),
                ("notes", models.TextField(blank=True, null=True)),
                (
                    "created_by",
                    models.CharField(
                        help_text="User or job that applied this movement",
                        max_length=255,
                    ),
                ),
                (
                    "account",
                    models.ForeignKey(
                        help_text="Account this movement applies to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movements",
                        to="rental.clientaccount",
                    ),
                ),
            ],
            options={
                "verbose_name": "Account Movement",
                "verbose_name_plural": "Account Movements",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["account", "created_at"],
                        name="rental_acco_account_a7aa9e_idx",
                    ),
                    models.Index(
                        fields=["contract_id", "movement_type"],
                        name="rental_acco_contrac_081358_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        check=models.Q(("balance_after__gte", 0)),
                        name="account_movement_balance_after_non_negative",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="RentalContract",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                ("tenant_id", models.UUIDField(db_index=True)),
                ("business_unit_id", models.UUIDField(db_index=True)),
                ("client_id", models.UUIDField(db_index=True)),
                (
                    "code",
                    models.CharField(help_text="Contract code, CON-<year>-<seq>", max_length=50),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("active", "Active"),
                            ("suspended", "Suspended"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="active",
                        help_text="Current state of the contract (managed by FSM)",
                        max_length=50,
                    ),
                ),
                (
                    "estimated_total",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True),
                ),
                (
                    "total_consumed",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        help_text="Ledger charges attributed to this contract",
                        max_digits=14,
                    ),
                ),
                ("start_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("estimated_end_date", models.DateTimeField(blank=True, null=True)),
                ("actual_end_date", models.DateTimeField(blank=True, null=True)),
                ("suspended_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_by", models.CharField(max_length=255)),
                (
                    "account",
                    models.ForeignKey(
                        help_text="Account charged for this contract",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="contracts",
                        to="rental.clientaccount",
                    ),
                ),
            ],
            options={
                "verbose_name": "Rental Contract",
                "verbose_name_plural": "Rental Contracts",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["tenant_id", "business_unit_id", "status"],
                        name="rental_rent_tenant__66baa3_idx",
                    ),
                    models.Index(
                        fields=["client_id", "status"],
                        name="rental_rent_client__d6afca_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tenant_id", "business_unit_id", "code"),
                        name="unique_contract_code_per_business_unit",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="AssetRental",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "tracking_type",
                    models.CharField(
                        choices=[("MACHINERY", "Machinery"), ("TOOL", "Tool")],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                (
                    "hourly_rate",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True),
                ),
                (
                    "operator_cost_type",
                    models.CharField(
                        blank=True,
                        choices=[("PER_DAY", "Per Day"), ("PER_HOUR", "Per Hour")],
                        max_length=20,
                        null=True,
                    ),
                ),
                (
                    "operator_cost_rate",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True),
                ),
                (
                    "min_daily_hours",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        help_text="Standby floor copied from the asset at withdrawal",
                        max_digits=6,
                    ),
                ),
                (
                    "daily_rate",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True),
                ),
                (
                    "initial_hourometer",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True),
                ),
                (
                    "current_hourometer",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True),
                ),
                (
                    "initial_odometer",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True),
                ),
                (
                    "current_odometer",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True),
                ),
                ("days_elapsed", models.PositiveIntegerField(default=0)),
                (
                    "total_hours_used",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12),
                ),
                (
                    "total_km_used",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12),
                ),
                (
                    "total_machinery_cost",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14),
                ),
                (
                    "total_operator_cost",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14),
                ),
                (
                    "total_cost",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14),
                ),
                ("last_charge_date", models.DateTimeField(blank=True, null=True)),
                ("withdrawal_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("expected_return_date", models.DateTimeField(blank=True, null=True)),
                (
                    "actual_return_date",
                    models.DateTimeField(blank=True, db_index=True, null=True),
                ),
                ("operator_id", models.UUIDField(blank=True, null=True)),
                ("withdrawal_evidence", models.JSONField(blank=True, default=list)),
                ("return_evidence", models.JSONField(blank=True, default=list)),
                ("return_condition", models.CharField(blank=True, max_length=255, null=True)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_by", models.CharField(max_length=255)),
                (
                    "asset",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rentals",
                        to="rental.rentalasset",
                    ),
                ),
                (
                    "contract",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rentals",
                        to="rental.rentalcontract",
                    ),
                ),
            ],
            options={
                "verbose_name": "Asset Rental",
                "verbose_name_plural": "Asset Rentals",
                "ordering": ["-withdrawal_date"],
                "indexes": [
                    models.Index(
                        fields=["contract", "actual_return_date"],
                        name="rental_asse_contrac_6ebed2_idx",
                    ),
                    models.Index(
                        fields=["tracking_type", "actual_return_date"],
                        name="rental_asse_trackin_c68abf_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AssetUsage",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "report_date",
                    models.DateField(db_index=True, default=django.utils.timezone.localdate),
                ),
                ("reported_by", models.CharField(max_length=255)),
                (
                    "metric_type",
                    models.CharField(
                        choices=[
                            ("HOUROMETER", "Hourometer"),
                            ("ODOMETER", "Odometer"),
                            ("BOTH", "Both"),
                        ],
                        default="HOUROMETER",
                        max_length=20,
                    ),
                ),
                (
                    "hourometer_start",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True),
                ),
                (
                    "hourometer_end",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True),
                ),
                (
                    "odometer_start",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True),
                ),
                (
                    "odometer_end",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True),
                ),
                (
                    "hours_worked",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12),
                ),
                (
                    "hours_billed",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12),
                ),
                (
                    "km_traveled",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True),
                ),
                (
                    "machinery_cost",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14),
                ),
                (
                    "operator_cost",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14),
                ),
                (
                    "total_cost",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=14),
                ),
                ("evidence_urls", models.JSONField(default=list)),
                (
                    "source",
                    models.CharField(
                        choices=[("APP", "Mobile App"), ("WEB", "Web"), ("API", "API")],
                        default="APP",
                        max_length=10,
                    ),
                ),
                ("notes", models.TextField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processed", "Processed"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "asset",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="usage_reports",
                        to="rental.rentalasset",
                    ),
                ),
                (
                    "rental",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="usage_reports",
                        to="rental.assetrental",
                    ),
                ),
            ],
            options={
                "verbose_name": "Asset Usage",
                "verbose_name_plural": "Asset Usage Reports",
                "ordering": ["-report_date", "-created_at"],
                "indexes": [
                    models.Index(
                        fields=["rental", "report_date"],
                        name="rental_asse_rental__ede110_idx",
                    )
                ],
                "constraints": [
                    models.CheckConstraint(
                        check=models.Q(("hours_billed__gte", models.F("hours_worked"))),
                        name="asset_usage_billed_not_below_worked",
                    )
                ],
            },
        ),
    ]
