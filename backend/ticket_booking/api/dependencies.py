"""
Request dependencies shared by the routes.
"""

from fastapi import Request

from ticket_booking.services.booking_service import BookingOrchestrator


def get_orchestrator(request: Request) -> BookingOrchestrator:
    """The orchestrator built at startup (see main.lifespan)."""
    return request.app.state.orchestrator
