# cinebook/database/schemas.py
# =========================================================
# 🧩 Booking / Payment Schemas (Pydantic v2)
# =========================================================
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ConfigModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# =========================================================
# 🪑 Seats
# =========================================================
class OccupiedSeatsResponse(BaseModel):
    movie: int
    theater: str
    showtime: datetime
    seats: List[str]


# =========================================================
# 🎟 Booking intent
# =========================================================
class IntentRequest(BaseModel):
    movie: int
    theater: str
    showtime: datetime
    seats: List[str] = Field(default_factory=list)


class TheaterSnapshot(BaseModel):
    name: str
    location: str


class IntentResponse(BaseModel):
    movie: int
    theater: TheaterSnapshot
    showtime: datetime
    seats: List[str]
    price_per_seat: int
    amount: int
    currency: str


# =========================================================
# 📄 Bookings
# =========================================================
class BookingResponse(ConfigModel):
    id: int
    user_id: int
    movie_id: int
    theater_name: str
    theater_location: str
    showtime_id: int
    showtime_start: datetime
    seats: List[str]
    amount: int
    status: str
    payment_status: str
    order_id: Optional[str] = None
    payment_id: Optional[str] = None
    created_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class BookingListResponse(BaseModel):
    count: int
    bookings: List[BookingResponse]


class CancelResponse(BaseModel):
    success: bool
    booking: BookingResponse


# =========================================================
# 💳 Payments
# =========================================================
class CreateOrderRequest(BaseModel):
    amount: int


class CreateOrderResponse(BaseModel):
    externalOrderId: str
    amount: int
    currency: str
    key_id: Optional[str] = None


class VerifyPaymentRequest(BaseModel):
    externalOrderId: str
    paymentId: str
    signature: str
    intent: IntentRequest


class VerifyPaymentResponse(BaseModel):
    bookingId: int
    message: str
    booking: BookingResponse
