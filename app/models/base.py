"""
HRMS Multi-Country Payroll - Base Model

Declarative base with UUID keys, timestamps, actor tracking and the
shared money column type.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import DateTime, Numeric, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


# Three decimals so OMR and BHD amounts are stored without loss
MONEY = Numeric(precision=15, scale=3)


def money_column(nullable: bool = False, default: Optional[Decimal] = None) -> Any:
    """Mapped column for a currency amount."""
    return mapped_column(MONEY, nullable=nullable, default=default)


class TimestampMixin:
    """Row creation and last-update times, set by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class AuditMixin:
    """Who created or last changed an employee, period or run."""

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    updated_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)


class BaseModel(Base, TimestampMixin):
    """Abstract payroll table with a UUID primary key."""

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"
