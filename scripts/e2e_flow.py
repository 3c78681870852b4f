"""Walk a running server through a full booking and cancellation.

Needs the fallback gateway and the same SECRET_KEY / RAZORPAY_KEY_SECRET as
the server. Seed first with scripts/seed_catalog.py.

python scripts/e2e_flow.py
"""
import os

import requests
from dotenv import load_dotenv

from cinebook.auth import create_access_token
from cinebook.database import models
from cinebook.database.database import SessionLocal
from cinebook.services.payment_service import compute_signature
from cinebook.services.seat_ledger import occupied_seats
from cinebook.utils import utcnow

load_dotenv()

BASE = os.getenv("CINEBOOK_BASE_URL", "http://127.0.0.1:8000")
EMAIL = os.getenv("E2E_EMAIL", "demo@cinebook.local")


def show(label, r):
    print(f"{label}: {r.status_code} {r.text}")
    return r


def pick_showtime():
    db = SessionLocal()
    try:
        row = (
            db.query(models.Showtime)
            .filter(models.Showtime.start_time > utcnow())
            .order_by(models.Showtime.start_time)
            .first()
        )
        if not row:
            raise SystemExit("No upcoming showtime; run scripts/seed_catalog.py first")
        taken = occupied_seats(db, row.movie_id, row.theater.name, row.start_time)
        free = [f"{r}{n}" for r in "EFGH" for n in range(1, 11) if f"{r}{n}" not in taken]
        return row.movie_id, row.theater.name, row.start_time.isoformat(), free[:2]
    finally:
        db.close()


def main():
    headers = {"Authorization": f"Bearer {create_access_token({'sub': EMAIL})}"}
    movie, theater, showtime, seats = pick_showtime()

    params = {"movie": movie, "theater": theater, "showtime": showtime}
    show("Occupied", requests.get(f"{BASE}/api/seats/occupied", params=params))

    intent_body = {"movie": movie, "theater": theater, "showtime": showtime, "seats": seats}
    intent = show("Intent", requests.post(f"{BASE}/api/booking/intent", json=intent_body, headers=headers))
    intent.raise_for_status()

    order = show(
        "Order",
        requests.post(f"{BASE}/api/payment/order", json={"amount": intent.json()["amount"]}, headers=headers),
    )
    order.raise_for_status()
    order_id = order.json()["externalOrderId"]

    # what the checkout widget would hand back
    payment_id = f"pay_e2e_{order_id[-8:]}"
    secret = os.getenv("RAZORPAY_KEY_SECRET", "")
    verify_body = {
        "externalOrderId": order_id,
        "paymentId": payment_id,
        "signature": compute_signature(order_id, payment_id, secret),
        "intent": intent_body,
    }
    verified = show("Verify", requests.post(f"{BASE}/api/payment/verify", json=verify_body, headers=headers))
    verified.raise_for_status()
    booking_id = verified.json()["bookingId"]

    show("Occupied after booking", requests.get(f"{BASE}/api/seats/occupied", params=params))
    show("Cancel", requests.patch(f"{BASE}/api/booking/{booking_id}/cancel", headers=headers))
    show("Occupied after cancel", requests.get(f"{BASE}/api/seats/occupied", params=params))


if __name__ == "__main__":
    main()
