import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from readyset.db.base import Base


class _OrderRequestColumns:
    """Columns shared by catering and on-demand order requests."""

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="ACTIVE")
    driver_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    client_attention: Mapped[str | None] = mapped_column(String(255), nullable=True)
    pickup_date_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    arrival_date_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    pickup_address_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("addresses.id"), nullable=True
    )
    delivery_address_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("addresses.id"), nullable=True
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class CateringRequest(_OrderRequestColumns, Base):
    __tablename__ = "catering_requests"


class OnDemandRequest(_OrderRequestColumns, Base):
    __tablename__ = "on_demand_requests"


class Dispatch(Base):
    """Legacy driver assignment predating the ``deliveries`` table."""

    __tablename__ = "dispatches"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    catering_request_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("catering_requests.id", ondelete="CASCADE"), nullable=True
    )
    on_demand_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("on_demand_requests.id", ondelete="CASCADE"), nullable=True
    )
    # profile id of the assigned driver
    driver_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )
