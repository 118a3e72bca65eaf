"""
Batch Models: Batch, BatchRelation, BatchDispatch.

All three tables are written by the production-logging, delivery-receipt and
dispatch workflows; the traceability engine only reads them.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from shared.config.constants import BATCH_TRANSITIONS, BatchKind, BatchStatus, Limits
from shared.utils.validators import normalize_batch_code

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .tenant import Site


class Batch(TimestampMixin, Base):
    """
    A produced or received unit of material.
    Kinds: raw_material_lot, production_batch, finished_good, shipment.

    Created once at receipt or production-logging time and never deleted.
    Status only moves forward (see shared.config.constants.BATCH_TRANSITIONS).
    """

    __tablename__ = "batch"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    site_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("site.id"), nullable=True, index=True
    )
    code: Mapped[str] = mapped_column(String(Limits.MAX_BATCH_CODE_LENGTH), nullable=False)
    # Upper-cased, trimmed code; kept in sync by _sync_code_normalized
    code_normalized: Mapped[str] = mapped_column(
        String(Limits.MAX_BATCH_CODE_LENGTH), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(32), nullable=False, default=BatchKind.PRODUCTION_BATCH)
    quantity_produced: Mapped[Decimal] = mapped_column(
        Numeric(Limits.QUANTITY_PRECISION, Limits.QUANTITY_SCALE), nullable=False
    )
    unit: Mapped[str] = mapped_column(String(Limits.MAX_UNIT_LENGTH), nullable=False)
    produced_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=BatchStatus.ACTIVE)
    description: Mapped[Optional[str]] = mapped_column(Text)  # e.g. "Strong white flour"
    supplier_batch_code: Mapped[Optional[str]] = mapped_column(String(Limits.MAX_BATCH_CODE_LENGTH))
    supplier_name: Mapped[Optional[str]] = mapped_column(String(Limits.MAX_PARTY_NAME_LENGTH))
    allergens: Mapped[Optional[str]] = mapped_column(Text)  # JSON array of allergen names

    # Relationships
    site: Mapped[Optional["Site"]] = relationship(back_populates="batches")
    consumed_into: Mapped[list["BatchRelation"]] = relationship(
        back_populates="input_batch",
        foreign_keys="BatchRelation.input_batch_id",
    )
    made_from: Mapped[list["BatchRelation"]] = relationship(
        back_populates="output_batch",
        foreign_keys="BatchRelation.output_batch_id",
    )
    dispatches: Mapped[list["BatchDispatch"]] = relationship(back_populates="batch")

    __table_args__ = (
        UniqueConstraint("tenant_id", "code_normalized", name="uq_batch_tenant_code"),
        CheckConstraint(
            "kind IN (" + ", ".join(repr(kind) for kind in BatchKind.ALL) + ")",
            name="ck_batch_kind",
        ),
        CheckConstraint(
            "status IN (" + ", ".join(repr(status) for status in BatchStatus.ALL) + ")",
            name="ck_batch_status",
        ),
    )

    @validates("code")
    def _sync_code_normalized(self, _key: str, value: str) -> str:
        self.code_normalized = normalize_batch_code(value)
        return value

    @validates("status")
    def _check_status_transition(self, _key: str, value: str) -> str:
        current = self.status
        if current is None or current == value:
            return value
        if value not in BATCH_TRANSITIONS.get(current, []):
            raise ValueError(f"Batch status cannot move from {current} to {value}")
        return value

    def __repr__(self) -> str:
        return f"<Batch(id={self.id}, code='{self.code}', kind='{self.kind}')>"


class BatchRelation(TimestampMixin, Base):
    """
    Directed, quantified "consumed-into" edge:
    quantity_consumed of input_batch went into output_batch.

    Created once when consumption is logged and never mutated. The relation
    set is meant to be a DAG; cycle rejection happens at write time, and the
    trace engine guards against violations on read.
    """

    __tablename__ = "batch_relation"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    input_batch_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("batch.id", ondelete="RESTRICT"), nullable=False
    )
    output_batch_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("batch.id", ondelete="RESTRICT"), nullable=False
    )
    quantity_consumed: Mapped[Decimal] = mapped_column(
        Numeric(Limits.QUANTITY_PRECISION, Limits.QUANTITY_SCALE), nullable=False
    )
    unit: Mapped[str] = mapped_column(String(Limits.MAX_UNIT_LENGTH), nullable=False)
    recorded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Relationships
    input_batch: Mapped["Batch"] = relationship(
        back_populates="consumed_into",
        foreign_keys=[input_batch_id],
    )
    output_batch: Mapped["Batch"] = relationship(
        back_populates="made_from",
        foreign_keys=[output_batch_id],
    )

    __table_args__ = (
        CheckConstraint("input_batch_id <> output_batch_id", name="ck_batch_relation_no_self_loop"),
        CheckConstraint("quantity_consumed > 0", name="ck_batch_relation_positive_qty"),
        # Frontier lookups filter by tenant plus one endpoint IN (...)
        Index("ix_batch_relation_tenant_input", "tenant_id", "input_batch_id"),
        Index("ix_batch_relation_tenant_output", "tenant_id", "output_batch_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<BatchRelation(id={self.id}, {self.input_batch_id} -> {self.output_batch_id}, "
            f"{self.quantity_consumed} {self.unit})>"
        )


class BatchDispatch(TimestampMixin, Base):
    """
    A quantity of a batch delivered to a customer.
    Forward traces end here: these are the parties a recall has to notify.
    """

    __tablename__ = "batch_dispatch"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    batch_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("batch.id", ondelete="RESTRICT"), nullable=False
    )
    customer_name: Mapped[str] = mapped_column(String(Limits.MAX_PARTY_NAME_LENGTH), nullable=False)
    dispatched_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(Limits.QUANTITY_PRECISION, Limits.QUANTITY_SCALE), nullable=False
    )
    unit: Mapped[str] = mapped_column(String(Limits.MAX_UNIT_LENGTH), nullable=False)
    delivery_note_reference: Mapped[Optional[str]] = mapped_column(
        String(Limits.MAX_REFERENCE_LENGTH)
    )

    # Relationships
    batch: Mapped["Batch"] = relationship(back_populates="dispatches")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_batch_dispatch_positive_qty"),
        Index("ix_batch_dispatch_tenant_batch", "tenant_id", "batch_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<BatchDispatch(id={self.id}, batch_id={self.batch_id}, "
            f"customer='{self.customer_name}')>"
        )
