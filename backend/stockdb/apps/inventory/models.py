from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from stockdb.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ItemStatusEnum(str, enum.Enum):
    IN_STOCK = "IN_STOCK"
    RESERVED = "RESERVED"
    INSTALLED = "INSTALLED"
    LENT = "LENT"
    TRANSFERRED = "TRANSFERRED"
    BROKEN = "BROKEN"


# Statuses in which an item may carry a reserved branch.
BRANCH_BOUND_STATUSES = frozenset({ItemStatusEnum.RESERVED, ItemStatusEnum.TRANSFERRED})


class Item(Base):
    __tablename__ = "items"
    __table_args__ = (
        Index("ix_items_status", "status"),
        Index("ix_items_reserved_branch", "reserved_branch_code"),
    )

    serial_no = Column(String(64), primary_key=True)
    model = Column(String(128), nullable=True)
    status = Column(
        SAEnum(ItemStatusEnum, name="item_status_enum", native_enum=False),
        nullable=False,
        default=ItemStatusEnum.IN_STOCK,
    )
    reserved_branch_code = Column(
        String(32),
        ForeignKey("branches.branch_code", ondelete="SET NULL"),
        nullable=True,
    )
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    reserved_branch = relationship("Branch", lazy="joined")

    @property
    def is_broken(self) -> bool:
        return self.status == ItemStatusEnum.BROKEN

    def __repr__(self) -> str:
        return f"<Item serial_no={self.serial_no} status={self.status}>"
