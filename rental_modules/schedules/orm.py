"""
Module: rental_modules.schedules.orm
Responsibility:
    SQLAlchemy ORM persistence models for rental agreements, their payment
    schedules, the payment ledger and the payment-to-schedule allocation
    links.  Maps to and from the engine value types.

Architecture position:
    **Modules layer** -- ORM models inheriting from ``TrackedBase``
    (kernel DB base).

Invariants enforced:
    - (rental_agreement_id, billing_period_start) is unique
      (uq_schedule_agreement_period); a second generation for the same
      agreement fails at INSERT.
    - Schedule rows carry a ``version`` counter used as SQLAlchemy's
      ``version_id_col``; an UPDATE against a stale version raises
      ``StaleDataError``.
    - Monetary fields map to Numeric(18, 2) via the Base type map.
    - Schedules and payments are owned by their agreement and deleted with
      it (cascade="all, delete-orphan").

Failure modes:
    - IntegrityError on duplicate unique constraints.
    - StaleDataError on a concurrent schedule update.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rental_engines.types import (
    DurationUnit,
    PaymentSchedule,
    RentalAgreement,
    RentalPeriod,
    ScheduleStatus,
)
from rental_kernel.db.base import TrackedBase, UUIDString


# =============================================================================
# Rental Agreement
# =============================================================================


class RentalAgreementModel(TrackedBase):
    """
    A rental agreement, as far as schedule generation needs it.

    Guarantees:
        - ``contract_number`` is unique (uq_rental_agreement_contract).
        - ``end_date`` is always resolved before the row is written.
    """

    __tablename__ = "rental_agreements"

    __table_args__ = (
        UniqueConstraint("contract_number", name="uq_rental_agreement_contract"),
        Index("idx_rental_agreement_active", "is_active"),
    )

    contract_number: Mapped[str] = mapped_column(String(50), nullable=False)
    start_date: Mapped[date] = mapped_column(nullable=False)
    end_date: Mapped[date] = mapped_column(nullable=False)
    duration_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration_unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    rental_amount: Mapped[Decimal] = mapped_column(nullable=False)
    rental_period: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    schedules: Mapped[list["PaymentScheduleModel"]] = relationship(
        "PaymentScheduleModel",
        back_populates="agreement",
        cascade="all, delete-orphan",
        order_by="PaymentScheduleModel.due_date",
    )
    payments: Mapped[list["PaymentModel"]] = relationship(
        "PaymentModel",
        back_populates="agreement",
        cascade="all, delete-orphan",
    )

    def to_dto(self) -> RentalAgreement:
        return RentalAgreement(
            id=self.id,
            contract_number=self.contract_number,
            start_date=self.start_date,
            end_date=self.end_date,
            duration_value=self.duration_value,
            duration_unit=(
                DurationUnit(self.duration_unit) if self.duration_unit else None
            ),
            rental_amount=self.rental_amount,
            rental_period=RentalPeriod(self.rental_period),
        )

    @classmethod
    def from_dto(cls, dto: RentalAgreement, created_by_id: UUID) -> "RentalAgreementModel":
        model = cls(
            contract_number=dto.contract_number,
            start_date=dto.start_date,
            end_date=dto.end_date,
            duration_value=dto.duration_value,
            duration_unit=dto.duration_unit.value if dto.duration_unit else None,
            rental_amount=dto.rental_amount,
            rental_period=dto.rental_period.value,
            created_by_id=created_by_id,
        )
        if dto.id is not None:
            model.id = dto.id
        return model

    def __repr__(self) -> str:
        return (
            f"<RentalAgreementModel {self.contract_number} "
            f"{self.start_date}..{self.end_date} {self.rental_period}>"
        )


# =============================================================================
# Payment Schedule
# =============================================================================


class PaymentScheduleModel(TrackedBase):
    """
    One billing period of an agreement.

    Contract:
        ``status``, ``is_overdue``, ``days_overdue`` and ``balance`` are a
        snapshot written with the last change; readers re-project them.

    Guarantees:
        - (rental_agreement_id, billing_period_start) is unique.
        - ``version`` increments on every UPDATE.
    """

    __tablename__ = "payment_schedules"

    __table_args__ = (
        UniqueConstraint(
            "rental_agreement_id",
            "billing_period_start",
            name="uq_schedule_agreement_period",
        ),
        Index("idx_schedule_agreement", "rental_agreement_id"),
        Index("idx_schedule_due_date", "due_date"),
        Index("idx_schedule_status", "status"),
    )

    rental_agreement_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("rental_agreements.id", ondelete="CASCADE"),
        nullable=False,
    )
    contract_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    due_date: Mapped[date] = mapped_column(nullable=False)
    billing_period_start: Mapped[date] = mapped_column(nullable=False)
    billing_period_end: Mapped[date] = mapped_column(nullable=False)
    amount_due: Mapped[Decimal] = mapped_column(nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    balance: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ScheduleStatus.PENDING.value, nullable=False
    )
    is_overdue: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    days_overdue: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    late_fee: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    payment_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("rental_payments.id", ondelete="SET NULL"),
        nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    agreement: Mapped["RentalAgreementModel"] = relationship(
        "RentalAgreementModel",
        back_populates="schedules",
    )
    payment: Mapped["PaymentModel | None"] = relationship(
        "PaymentModel",
        foreign_keys=[payment_id],
    )

    def to_dto(self) -> PaymentSchedule:
        return PaymentSchedule(
            id=self.id,
            rental_agreement_id=self.rental_agreement_id,
            contract_number=self.contract_number,
            due_date=self.due_date,
            billing_period_start=self.billing_period_start,
            billing_period_end=self.billing_period_end,
            amount_due=self.amount_due,
            amount_paid=self.amount_paid,
            status=ScheduleStatus(self.status),
            is_overdue=self.is_overdue,
            days_overdue=self.days_overdue,
            late_fee=self.late_fee,
            payment_id=self.payment_id,
        )

    @classmethod
    def from_dto(cls, dto: PaymentSchedule, created_by_id: UUID) -> "PaymentScheduleModel":
        model = cls(
            rental_agreement_id=dto.rental_agreement_id,
            contract_number=dto.contract_number,
            due_date=dto.due_date,
            billing_period_start=dto.billing_period_start,
            billing_period_end=dto.billing_period_end,
            amount_due=dto.amount_due,
            amount_paid=dto.amount_paid,
            balance=dto.balance,
            status=dto.status.value,
            is_overdue=dto.is_overdue,
            days_overdue=dto.days_overdue,
            late_fee=dto.late_fee,
            payment_id=dto.payment_id,
            created_by_id=created_by_id,
        )
        if dto.id is not None:
            model.id = dto.id
        return model

    def apply_projection(self, projected: PaymentSchedule) -> None:
        """Copy the derived fields of a projected row onto this row."""
        self.balance = projected.balance
        self.status = projected.status.value
        self.is_overdue = projected.is_overdue
        self.days_overdue = projected.days_overdue

    def __repr__(self) -> str:
        return (
            f"<PaymentScheduleModel {self.contract_number} "
            f"{self.billing_period_start} paid={self.amount_paid}/{self.amount_due}>"
        )


# =============================================================================
# Payment ledger
# =============================================================================


class PaymentModel(TrackedBase):
    """
    A payment received against an agreement.

    Contract:
        Ledger entry: written once by ``record_payment`` and never updated.

    Guarantees:
        - ``allocated_amount + unallocated_amount == amount``.
    """

    __tablename__ = "rental_payments"

    __table_args__ = (
        Index("idx_payment_agreement", "rental_agreement_id"),
        Index("idx_payment_date", "payment_date"),
    )

    rental_agreement_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("rental_agreements.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_date: Mapped[date] = mapped_column(nullable=False)
    allocated_amount: Mapped[Decimal] = mapped_column(nullable=False)
    unallocated_amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    remarks: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    agreement: Mapped["RentalAgreementModel"] = relationship(
        "RentalAgreementModel",
        back_populates="payments",
    )
    allocations: Mapped[list["PaymentAllocationModel"]] = relationship(
        "PaymentAllocationModel",
        back_populates="payment",
        cascade="all, delete-orphan",
    )

    def to_dto(self):
        from rental_modules.schedules.models import PaymentRecord

        return PaymentRecord(
            id=self.id,
            rental_agreement_id=self.rental_agreement_id,
            amount=self.amount,
            payment_date=self.payment_date,
            allocated_amount=self.allocated_amount,
            unallocated_amount=self.unallocated_amount,
            payment_method=self.payment_method,
            remarks=self.remarks,
        )

    def __repr__(self) -> str:
        return f"<PaymentModel amount={self.amount} date={self.payment_date}>"


class PaymentAllocationModel(TrackedBase):
    """
    The part of a payment applied to one schedule row.

    Guarantees:
        - (payment_id, schedule_id) is unique (uq_allocation_payment_schedule).
    """

    __tablename__ = "payment_allocations"

    __table_args__ = (
        UniqueConstraint(
            "payment_id", "schedule_id", name="uq_allocation_payment_schedule",
        ),
        Index("idx_allocation_schedule", "schedule_id"),
    )

    payment_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("rental_payments.id", ondelete="CASCADE"),
        nullable=False,
    )
    schedule_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("payment_schedules.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount_applied: Mapped[Decimal] = mapped_column(nullable=False)
    previous_amount_paid: Mapped[Decimal] = mapped_column(nullable=False)
    new_amount_paid: Mapped[Decimal] = mapped_column(nullable=False)

    payment: Mapped["PaymentModel"] = relationship(
        "PaymentModel",
        back_populates="allocations",
    )
    schedule: Mapped["PaymentScheduleModel"] = relationship("PaymentScheduleModel")

    def to_dto(self):
        from rental_modules.schedules.models import PaymentAllocationLink

        return PaymentAllocationLink(
            id=self.id,
            payment_id=self.payment_id,
            schedule_id=self.schedule_id,
            amount_applied=self.amount_applied,
            previous_amount_paid=self.previous_amount_paid,
            new_amount_paid=self.new_amount_paid,
        )

    def __repr__(self) -> str:
        return (
            f"<PaymentAllocationModel payment={self.payment_id} "
            f"schedule={self.schedule_id} amount={self.amount_applied}>"
        )
