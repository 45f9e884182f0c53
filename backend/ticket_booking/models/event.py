"""
Event model with ticket inventory tracking.

Key design decisions:
- `available_tickets` is denormalized so the inventory can be restored
  without counting bookings
- CHECK constraints keep 0 <= available_tickets <= total_tickets in the DB
- Soft delete via `deleted_at`; deleted events disappear from lookups
"""

import uuid

from sqlalchemy import Column, Integer, Uuid, CheckConstraint
from sqlalchemy.orm import relationship

from ticket_booking.db.base import Base, TimestampMixin, SoftDeleteMixin


class Event(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "events"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    total_tickets = Column(Integer, nullable=False)
    available_tickets = Column(Integer, nullable=False)

    bookings = relationship("Booking", back_populates="event", lazy="raise")

    __table_args__ = (
        CheckConstraint("total_tickets >= 0", name="check_total_tickets_non_negative"),
        CheckConstraint("available_tickets >= 0", name="check_available_tickets_non_negative"),
        CheckConstraint("available_tickets <= total_tickets", name="check_available_lte_total"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, available={self.available_tickets}/{self.total_tickets})>"
