"""
Multi-Tenancy Models: Tenant and Site.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin

if TYPE_CHECKING:
    from .batch import Batch


class Tenant(TimestampMixin, Base):
    """
    Represents a company (top-level tenant).
    All other entities belong to a tenant for complete data isolation.
    """

    __tablename__ = "tenant"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, unique=True, nullable=False)

    # Relationships
    sites: Mapped[list["Site"]] = relationship(back_populates="tenant")

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, slug='{self.slug}')>"


class Site(TimestampMixin, Base):
    """
    A physical location (kitchen, bakery, warehouse) where batches are
    received or produced.
    """

    __tablename__ = "site"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text)

    # Relationships
    tenant: Mapped["Tenant"] = relationship(back_populates="sites")
    batches: Mapped[list["Batch"]] = relationship(back_populates="site")

    def __repr__(self) -> str:
        return f"<Site(id={self.id}, tenant_id={self.tenant_id}, name='{self.name}')>"
