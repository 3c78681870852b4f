# cinebook/database/payment_models.py
"""
Payment-related database models
"""
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String

from cinebook.database.database import Base
from cinebook.utils import utcnow

ORDER_CREATED = "CREATED"
ORDER_PAID = "PAID"
# paid at the gateway but the seats were gone at commit time; needs a refund
ORDER_ORPHANED = "ORPHANED"


class PaymentOrder(Base):
    """External gateway order quoted to a user before payment"""
    __tablename__ = "payment_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(100), unique=True, nullable=False, index=True)  # gateway order id
    amount = Column(Integer, nullable=False)  # smallest currency unit
    currency = Column(String(10), default="INR")
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(String(20), nullable=False, default=ORDER_CREATED)
    payment_id = Column(String(100), nullable=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    meta = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
