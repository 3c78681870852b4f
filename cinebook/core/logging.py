"""
Logging setup with per-request correlation ids.

Every record gets a ``request_id`` attribute taken from a context variable
that the HTTP middleware sets. Tasks spawned while handling a request copy
the context, so detached notification tasks log with the same id.
"""
import logging
import uuid
from contextvars import ContextVar
from typing import Optional

from fastapi import Request

from cinebook.core.config import LOG_LEVEL

REQUEST_ID_HEADER = "X-Request-ID"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get()
        return True


def configure_logging(level: Optional[str] = None) -> None:
    """Install the root handler once; safe to call from every lifespan start."""
    root = logging.getLogger()
    root.setLevel((level or LOG_LEVEL).upper())
    if any(isinstance(f, RequestIdFilter) for h in root.handlers for f in h.filters):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)


def get_request_id() -> str:
    return request_id_ctx.get()


async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    token = request_id_ctx.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_ctx.reset(token)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response
