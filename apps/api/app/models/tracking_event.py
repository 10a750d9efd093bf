import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.order import Order


class TrackingEventType(str, enum.Enum):
    LABEL_CREATED = "LABEL_CREATED"
    SHIPMENT_PICKED = "SHIPMENT_PICKED"
    PACKAGE_RECEIVED_AT_FACILITY = "PACKAGE_RECEIVED_AT_FACILITY"
    PACKAGE_LEFT_FACILITY = "PACKAGE_LEFT_FACILITY"
    PACKAGE_ARRIVED_AT_LOCAL_FACILITY = "PACKAGE_ARRIVED_AT_LOCAL_FACILITY"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"


class TrackingEvent(Base):
    __tablename__ = "tracking_events"
    __table_args__ = (
        UniqueConstraint("order_id", "sequence", name="uq_tracking_events_order_sequence"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_type: Mapped[TrackingEventType] = mapped_column(
        Enum(TrackingEventType, name="tracking_event_type"), nullable=False
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    event_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    order: Mapped[Order] = relationship(back_populates="tracking_events")
