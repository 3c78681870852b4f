# cinebook/routers/payment_routes.py
"""
Payment routes: quote an external order, then verify the gateway callback
and hand the paid intent to the booking reconciler.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from cinebook.auth import get_current_user
from cinebook.core.redis import get_redis_optional
from cinebook.database import models
from cinebook.database.database import get_db
from cinebook.database.schemas import (
    CreateOrderRequest,
    CreateOrderResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from cinebook.exceptions import InvalidSeatSelection, InvalidShowtime, InvalidSignature
from cinebook.services.booking_service import BookingReconciler, PaymentProof
from cinebook.services.intent_service import build_intent
from cinebook.services.notifier import get_notifier
from cinebook.services.payment_service import (
    GATEWAY_RAZORPAY,
    PaymentGateway,
    get_payment_gateway,
    record_order,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment", tags=["Payments"])


def get_booking_reconciler(
    notifier=Depends(get_notifier),
    redis: Optional[Redis] = Depends(get_redis_optional),
) -> BookingReconciler:
    return BookingReconciler(notifier=notifier, redis=redis)


@router.get("/gateway-status")
def get_gateway_status(gateway: PaymentGateway = Depends(get_payment_gateway)) -> Dict[str, Any]:
    return {
        "gateway": gateway.mode,
        "configured": gateway.configured,
        "key_id": gateway.key_id if gateway.mode == GATEWAY_RAZORPAY and gateway.key_id else None,
        "currency": gateway.currency,
    }


@router.post("/order", response_model=CreateOrderResponse)
async def create_order(
    payload: CreateOrderRequest,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> CreateOrderResponse:
    order_id = await gateway.create_order(payload.amount)
    await run_in_threadpool(record_order, db, order_id, payload.amount, current_user, gateway.currency)
    logger.info("Created order %s for user %s (amount=%s)", order_id, current_user.id, payload.amount)
    return CreateOrderResponse(
        externalOrderId=order_id,
        amount=payload.amount,
        currency=gateway.currency,
        key_id=gateway.key_id or None,
    )


@router.post("/verify", response_model=VerifyPaymentResponse)
async def verify_payment(
    payload: VerifyPaymentRequest,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    reconciler: BookingReconciler = Depends(get_booking_reconciler),
) -> VerifyPaymentResponse:
    if not gateway.verify(payload.externalOrderId, payload.paymentId, payload.signature):
        logger.warning(
            "⚠️ Signature mismatch for order %s (payment %s, user %s)",
            payload.externalOrderId, payload.paymentId, current_user.id,
        )
        raise InvalidSignature("Invalid signature. Payment verification failed.")

    proof = PaymentProof(
        order_id=payload.externalOrderId,
        payment_id=payload.paymentId,
        signature=payload.signature,
    )

    # re-price server side; the reconciler owns the occupancy decision
    try:
        intent = await run_in_threadpool(
            build_intent,
            db,
            current_user,
            payload.intent.movie,
            payload.intent.theater,
            payload.intent.showtime,
            payload.intent.seats,
            check_occupancy=False,
        )
    except (InvalidShowtime, InvalidSeatSelection) as e:
        logger.warning("Paid order %s no longer bookable: %s", proof.order_id, e.message)
        booking = await reconciler.reject(db, proof, current_user, e)
    else:
        booking = await reconciler.commit(db, intent, proof, current_user)
    return VerifyPaymentResponse(
        bookingId=booking.id,
        message="Payment verified and booking confirmed",
        booking=booking,
    )
