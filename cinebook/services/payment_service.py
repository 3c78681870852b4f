# cinebook/services/payment_service.py
"""
Payment gateway adapter (Razorpay + dev-friendly fallback)

Creating an order is the only outbound call; it runs in a worker thread
under an explicit timeout so a slow gateway degrades to GatewayUnavailable
instead of hanging the request. Callback verification is a pure HMAC check.
"""
import asyncio
import hashlib
import hmac
import logging
import time
import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from cinebook.core.config import settings
from cinebook.database import models
from cinebook.database.payment_models import ORDER_CREATED, PaymentOrder
from cinebook.exceptions import GatewayUnavailable, InvalidAmount

logger = logging.getLogger(__name__)

GATEWAY_RAZORPAY = "razorpay"
GATEWAY_FALLBACK = "fallback"


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    """Hex HMAC-SHA256 of ``order_id|payment_id``, as the gateway signs callbacks."""
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_callback(order_id: Any, payment_id: Any, signature: Any, secret: Any) -> bool:
    """
    True only when ``signature`` is the HMAC of ``order_id|payment_id`` under ``secret``.
    Malformed input of any kind yields False.
    """
    if not all(isinstance(v, str) for v in (order_id, payment_id, signature, secret)):
        return False
    if not order_id or not payment_id or not signature or not secret:
        return False
    try:
        expected = compute_signature(order_id, payment_id, secret)
        return hmac.compare_digest(expected.encode(), signature.encode())
    except (TypeError, ValueError, UnicodeError):
        return False


class PaymentGateway:
    def __init__(
        self,
        mode: str = settings.PAYMENT_GATEWAY,
        key_id: Optional[str] = settings.RAZORPAY_KEY_ID,
        key_secret: Optional[str] = settings.RAZORPAY_KEY_SECRET,
        currency: str = settings.PAYMENT_CURRENCY,
        timeout: float = settings.GATEWAY_TIMEOUT_SECONDS,
    ):
        self.mode = mode
        self.key_id = key_id or ""
        self.key_secret = key_secret or ""
        self.currency = currency
        self.timeout = timeout
        self._client: Optional[Any] = None

    @property
    def configured(self) -> bool:
        if self.mode == GATEWAY_FALLBACK:
            return bool(self.key_secret)
        return self.mode == GATEWAY_RAZORPAY and bool(self.key_id and self.key_secret)

    def _razorpay_client(self) -> Any:
        if self._client is None:
            import razorpay

            self._client = razorpay.Client(auth=(self.key_id, self.key_secret))
        return self._client

    async def create_order(self, amount: int) -> str:
        """Create an external order for ``amount`` (smallest currency unit) and return its id."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount("amount must be a positive integer in the smallest currency unit")

        if self.mode == GATEWAY_FALLBACK:
            order_id = f"dev-{uuid.uuid4().hex}"
            logger.info("🧾 Dev order created: %s (amount=%s)", order_id, amount)
            return order_id

        if not self.configured:
            raise GatewayUnavailable(f"Payment gateway {self.mode!r} is not configured")

        payload = {
            "amount": amount,
            "currency": self.currency,
            "receipt": f"receipt_{int(time.time() * 1000)}",
        }
        try:
            client = self._razorpay_client()
            created = await asyncio.wait_for(
                asyncio.to_thread(client.order.create, payload),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error("❌ Razorpay order creation timed out after %ss", self.timeout)
            raise GatewayUnavailable("Payment gateway timed out, please retry")
        except Exception as e:
            logger.error("❌ Razorpay order creation failed: %s", e)
            raise GatewayUnavailable("Payment gateway unavailable, please retry") from e

        order_id = created.get("id") if isinstance(created, dict) else None
        if not order_id:
            logger.error("❌ Razorpay returned an order without id: %s", created)
            raise GatewayUnavailable("Payment gateway returned an invalid order")

        logger.info("🧾 Razorpay order created: %s", order_id)
        return str(order_id)

    def sign(self, order_id: str, payment_id: str) -> str:
        return compute_signature(order_id, payment_id, self.key_secret)

    def verify(self, order_id: Any, payment_id: Any, signature: Any) -> bool:
        if not self.key_secret:
            logger.warning("⚠️ No payment secret configured (RAZORPAY_KEY_SECRET); rejecting callback for %s", order_id)
            return False
        return verify_callback(order_id, payment_id, signature, self.key_secret)


def record_order(db: Session, order_id: str, amount: int, user: models.User, currency: str) -> PaymentOrder:
    """Persist the quoted order so the callback can be reconciled against it."""
    order = PaymentOrder(
        order_id=order_id,
        amount=amount,
        currency=currency,
        user_id=user.id,
        status=ORDER_CREATED,
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


_gateway: Optional[PaymentGateway] = None


def get_payment_gateway() -> PaymentGateway:
    global _gateway
    if _gateway is None:
        _gateway = PaymentGateway()
    return _gateway
