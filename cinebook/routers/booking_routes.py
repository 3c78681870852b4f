# cinebook/routers/booking_routes.py
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cinebook.auth import get_current_user
from cinebook.database import models
from cinebook.database.database import get_db
from cinebook.database.schemas import (
    BookingListResponse,
    BookingResponse,
    CancelResponse,
    IntentRequest,
    IntentResponse,
    OccupiedSeatsResponse,
    TheaterSnapshot,
)
from cinebook.services import cancellation_service
from cinebook.services.intent_service import build_intent
from cinebook.services.notifier import get_notifier
from cinebook.services.payment_service import PaymentGateway, get_payment_gateway
from cinebook.services.seat_ledger import occupied_seats
from cinebook.utils import sorted_seats

router = APIRouter(tags=["Bookings"])


@router.get("/seats/occupied", response_model=OccupiedSeatsResponse)
def get_occupied_seats(
    movie: int = Query(..., description="Movie id"),
    theater: str = Query(..., description="Theater name"),
    showtime: datetime = Query(..., description="Showtime start (ISO 8601)"),
    db: Session = Depends(get_db),
):
    """Seats that can't be booked right now (blocked or already booked)."""
    seats = occupied_seats(db, movie, theater, showtime)
    return OccupiedSeatsResponse(movie=movie, theater=theater, showtime=showtime, seats=sorted_seats(seats))


@router.post("/booking/intent", response_model=IntentResponse)
def create_intent(
    payload: IntentRequest,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    intent = build_intent(db, current_user, payload.movie, payload.theater, payload.showtime, payload.seats)
    return IntentResponse(
        movie=intent.movie_id,
        theater=TheaterSnapshot(name=intent.theater_name, location=intent.theater_location),
        showtime=intent.showtime_start,
        seats=list(intent.seats),
        price_per_seat=intent.price_per_seat,
        amount=intent.amount,
        currency=gateway.currency,
    )


@router.get("/booking/my-bookings", response_model=BookingListResponse)
def my_bookings(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    bookings = cancellation_service.list_user_bookings(db, current_user)
    return BookingListResponse(count=len(bookings), bookings=bookings)


@router.get("/booking/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return cancellation_service.get_user_booking(db, booking_id, current_user)


@router.patch("/booking/{booking_id}/cancel", response_model=CancelResponse)
async def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    notifier=Depends(get_notifier),
):
    booking = await cancellation_service.cancel_booking(db, booking_id, current_user, notifier)
    return CancelResponse(success=True, booking=booking)
