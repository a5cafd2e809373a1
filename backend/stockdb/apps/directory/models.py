from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from stockdb.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Customer(Base):
    __tablename__ = "customers"

    customer_code = Column(String(32), primary_key=True)
    customer_name = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    branches = relationship("Branch", back_populates="owner", lazy="selectin")


class Branch(Base):
    """
    A customer site. Installations and transfers are addressed to a branch.
    """

    __tablename__ = "branches"
    __table_args__ = (Index("ix_branches_owner", "owner_customer_code"),)

    branch_code = Column(String(32), primary_key=True)
    branch_name = Column(String(255), nullable=False, index=True)
    owner_customer_code = Column(
        String(32),
        ForeignKey("customers.customer_code", ondelete="RESTRICT"),
        nullable=False,
    )
    address = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    owner = relationship("Customer", back_populates="branches", lazy="joined")


class Department(Base):
    __tablename__ = "departments"

    department_code = Column(String(32), primary_key=True)
    department_name = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Staff(Base):
    __tablename__ = "staff"

    staff_code = Column(String(32), primary_key=True)
    staff_name = Column(String(255), nullable=False, index=True)
    department_code = Column(
        String(32),
        ForeignKey("departments.department_code", ondelete="SET NULL"),
        nullable=True,
    )
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    department = relationship("Department", lazy="joined")
