"""
Fire-and-forget booking notifications over SMTP.

``dispatch`` schedules delivery as a detached task and returns immediately.
Delivery failures are only ever logged; they never reach the caller.
"""
import asyncio
import logging
from email.message import EmailMessage
from typing import Any, Callable, Dict, Optional, Set, Tuple

import aiosmtplib

from cinebook.core.config import settings
from cinebook.database import models
from cinebook.database.database import SessionLocal

logger = logging.getLogger(__name__)

BOOKING_CONFIRMED = "booking_confirmed"
BOOKING_CANCELLED = "booking_cancelled"


def _details_html(data: Dict[str, Any]) -> str:
    return (
        "<ul>"
        f"<li><strong>Theater:</strong> {data.get('theater_name')}</li>"
        f"<li><strong>Location:</strong> {data.get('theater_location')}</li>"
        f"<li><strong>Showtime:</strong> {data.get('showtime')}</li>"
        f"<li><strong>Seats:</strong> {', '.join(data.get('seats') or [])}</li>"
        "</ul>"
    )


def _details_text(data: Dict[str, Any]) -> str:
    return (
        f"{data.get('theater_name')}, {data.get('theater_location')} on {data.get('showtime')}. "
        f"Seats: {', '.join(data.get('seats') or [])}."
    )


def render_template(template: str, name: str, data: Dict[str, Any]) -> Optional[Tuple[str, str, str]]:
    """Return (subject, html, text) for a template, or None if it is unknown."""
    title = data.get("movie_title") or "your movie"
    if template == BOOKING_CONFIRMED:
        subject = f"🎬 Your booking for {title}"
        html = (
            '<div style="font-family: Arial, sans-serif; padding: 20px;">'
            "<h2>Booking Confirmed</h2>"
            f"<p>Hi {name},</p>"
            f"<p>Your booking for <strong>{title}</strong> is confirmed!</p>"
            f"{_details_html(data)}"
            f"<p>Booking #{data.get('booking_id')}, amount paid: {data.get('amount')}</p>"
            "</div>"
        )
        text = f"Hi {name}, your booking for {title} is confirmed. {_details_text(data)}"
        return subject, html, text
    if template == BOOKING_CANCELLED:
        subject = f"Your booking for {title} was cancelled"
        html = (
            '<div style="font-family: Arial, sans-serif; padding: 20px;">'
            "<h2>Booking Cancelled</h2>"
            f"<p>Hi {name},</p>"
            f"<p>Your booking for <strong>{title}</strong> has been cancelled.</p>"
            f"{_details_html(data)}"
            "</div>"
        )
        text = f"Hi {name}, your booking for {title} has been cancelled. {_details_text(data)}"
        return subject, html, text
    return None


class EmailNotifier:
    def __init__(
        self,
        session_factory: Callable = SessionLocal,
        retries: int = settings.EMAIL_RETRIES,
        backoff_seconds: float = 1.0,
    ):
        self.session_factory = session_factory
        self.retries = retries
        self.backoff_seconds = backoff_seconds
        self._tasks: Set[asyncio.Task] = set()

    def _lookup_user(self, user_id: int) -> Optional[Tuple[str, str]]:
        db = self.session_factory()
        try:
            user = db.query(models.User).filter(models.User.id == user_id).first()
            return (user.name, user.email) if user else None
        finally:
            db.close()

    async def send_email(self, to_email: str, subject: str, html: str, text: str) -> Any:
        message = EmailMessage()
        message["From"] = f"Cinebook <{settings.EMAIL_USER}>"
        message["To"] = to_email
        message["Subject"] = subject
        message.set_content(text)
        message.add_alternative(html, subtype="html")

        for attempt in range(1, self.retries + 2):
            try:
                response = await aiosmtplib.send(
                    message,
                    hostname=settings.SMTP_SERVER,
                    port=settings.SMTP_PORT,
                    start_tls=True,
                    username=settings.EMAIL_USER or None,
                    password=settings.EMAIL_PASSWORD or None,
                )
                logger.info("📩 Email sent to %s: %s", to_email, response)
                return response
            except aiosmtplib.SMTPException as e:
                logger.warning("Attempt %s to email %s failed: %s", attempt, to_email, e)
                if attempt > self.retries:
                    raise
                await asyncio.sleep(self.backoff_seconds * attempt)

    async def notify(self, user_id: int, template: str, data: Dict[str, Any]) -> None:
        if not settings.SMTP_SERVER:
            logger.info("SMTP not configured; skipping %s notification for user %s", template, user_id)
            return
        recipient = await asyncio.to_thread(self._lookup_user, user_id)
        if recipient is None:
            logger.warning("⚠ Notification %s skipped: user %s not found", template, user_id)
            return
        name, email = recipient
        rendered = render_template(template, name, data)
        if rendered is None:
            logger.warning("⚠ Unknown notification template %r", template)
            return
        subject, html, text = rendered
        await self.send_email(email, subject, html, text)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("⚠ Notification delivery failed: %s", exc)

    def dispatch(self, user_id: int, template: str, data: Dict[str, Any]) -> Optional[asyncio.Task]:
        """Schedule ``notify`` without waiting for it. Never raises."""
        try:
            task = asyncio.get_running_loop().create_task(self.notify(user_id, template, data))
        except Exception as e:
            logger.warning("⚠ Could not schedule %s notification for user %s: %s", template, user_id, e)
            return None
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    async def shutdown(self, timeout: float = 2.0) -> None:
        """Cancel notifications still in flight."""
        pending = [t for t in self._tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending, timeout=timeout)


_notifier: Optional[EmailNotifier] = None


def get_notifier() -> EmailNotifier:
    global _notifier
    if _notifier is None:
        _notifier = EmailNotifier()
    return _notifier
