from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from stockdb.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WithdrawalTypeEnum(str, enum.Enum):
    INSTALLATION = "INSTALLATION"
    LENDING = "LENDING"
    TRANSFER = "TRANSFER"


class WithdrawalStatusEnum(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Withdrawal(Base):
    """
    Header for a batch of serialised items leaving stock.

    Installations and transfers are addressed to a branch, lendings to a
    department. `install_date` only applies to installations and `return_by`
    only to lendings.
    """

    __tablename__ = "withdrawals"
    __table_args__ = (
        Index("ix_withdrawals_status_date", "status", "date"),
        Index("ix_withdrawals_type", "type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    type = Column(
        SAEnum(WithdrawalTypeEnum, name="withdrawal_type_enum", native_enum=False),
        nullable=False,
    )
    status = Column(
        SAEnum(WithdrawalStatusEnum, name="withdrawal_status_enum", native_enum=False),
        nullable=False,
        default=WithdrawalStatusEnum.PENDING,
    )
    for_branch_code = Column(
        String(32),
        ForeignKey("branches.branch_code", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    for_department_code = Column(
        String(32),
        ForeignKey("departments.department_code", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    created_by_staff_code = Column(
        String(32),
        ForeignKey("staff.staff_code", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    date = Column(Date, nullable=False)
    install_date = Column(Date, nullable=True)
    return_by = Column(Date, nullable=True)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    branch = relationship("Branch", lazy="joined")
    department = relationship("Department", lazy="joined")
    created_by = relationship("Staff", lazy="joined")
    item_links = relationship(
        "WithdrawalItem",
        back_populates="withdrawal",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    @property
    def serials(self) -> list[str]:
        return [link.serial_no for link in self.item_links]

    def __repr__(self) -> str:
        return f"<Withdrawal id={self.id} type={self.type} status={self.status}>"


class WithdrawalItem(Base):
    __tablename__ = "withdrawal_items"
    __table_args__ = (
        UniqueConstraint("withdrawal_id", "serial_no", name="uq_withdrawal_item"),
        Index("ix_withdrawal_items_serial", "serial_no"),
    )

    id = Column(Integer, primary_key=True, index=True)
    withdrawal_id = Column(
        Integer,
        ForeignKey("withdrawals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    serial_no = Column(
        String(64),
        ForeignKey("items.serial_no", ondelete="RESTRICT"),
        nullable=False,
    )
    added_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    withdrawal = relationship("Withdrawal", back_populates="item_links")
    item = relationship("Item", lazy="joined")
