"""Domain errors raised by the booking core.

Each error carries the HTTP status it maps to and a stable ``code`` that
clients can switch on; the handler registered in ``cinebook.main`` renders
them as JSON.
"""
from typing import Any, Dict, Iterable, Optional

from cinebook.core.config import SUPPORT_EMAIL


class BookingError(Exception):
    code = "booking_error"
    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code}


class InvalidShowtime(BookingError):
    code = "invalid_showtime"


class InvalidSeatSelection(BookingError):
    code = "invalid_seat_selection"


class SeatConflict(BookingError):
    """Some requested seats are taken.

    ``after_payment`` marks the commit-time variant: the gateway has already
    captured money, so the caller is pointed at support for a refund.
    """
    code = "seat_conflict"

    def __init__(self, seats: Iterable[str], after_payment: bool = False):
        self.seats = list(seats)
        self.after_payment = after_payment
        if after_payment:
            message = (
                f"Payment received but seats are no longer available: {', '.join(self.seats)}. "
                f"Contact {SUPPORT_EMAIL} for a refund."
            )
            super().__init__(message, status_code=409)
        else:
            super().__init__(f"Seats already booked: {', '.join(self.seats)}", status_code=400)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["seats"] = self.seats
        if self.after_payment:
            data["refund_required"] = True
            data["support"] = SUPPORT_EMAIL
        return data


class InvalidAmount(BookingError):
    code = "invalid_amount"


class AmountMismatch(BookingError):
    code = "amount_mismatch"


class GatewayUnavailable(BookingError):
    code = "gateway_unavailable"
    status_code = 502


class InvalidSignature(BookingError):
    code = "invalid_signature"


class NotFound(BookingError):
    code = "not_found"
    status_code = 404


class InvalidState(BookingError):
    code = "invalid_state"
    status_code = 409


class PaymentNotBookable(BookingError):
    """A verified payment whose booking request is no longer valid (e.g. the show started)."""
    code = "payment_not_bookable"
    status_code = 409

    def __init__(self, reason: BookingError):
        self.reason = reason
        super().__init__(
            f"Payment received but the booking could not be completed: {reason.message}. "
            f"Contact {SUPPORT_EMAIL} for a refund."
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason.code
        data["refund_required"] = True
        data["support"] = SUPPORT_EMAIL
        return data
