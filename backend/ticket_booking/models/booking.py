"""
Booking model representing one confirmed ticket for a user.

Key design decisions:
- No unique (user_id, event_id) constraint: repeated requests are
  independent attempts, a user may hold several tickets
- Cancellation sets status=CANCELED and deleted_at instead of deleting
- user_id is an opaque reference to a user owned by another service
"""

import enum
import uuid

from sqlalchemy import Column, String, Uuid, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from ticket_booking.db.base import Base, TimestampMixin, SoftDeleteMixin


class BookingStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    CANCELED = "CANCELED"
    WAITLISTED = "WAITLISTED"


class Booking(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "bookings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_id = Column(Uuid(as_uuid=True), ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)

    event = relationship("Event", back_populates="bookings", lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "status IN ('CONFIRMED', 'CANCELED', 'WAITLISTED')",
            name="check_booking_status",
        ),
        # Serves count_confirmed during reconciliation
        Index("ix_bookings_event_status", "event_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, event={self.event_id}, status={self.status})>"
