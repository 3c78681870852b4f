# cinebook/main.py
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cinebook.core.config import settings
from cinebook.core.logging import configure_logging, get_request_id, request_id_middleware
from cinebook.database import models, payment_models  # noqa: F401  (register tables)
from cinebook.database.database import Base, engine
from cinebook.exceptions import BookingError
from cinebook.routers import booking_routes, health, payment_routes

logger = logging.getLogger(__name__)


# Lifespan events (startup/shutdown)
@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    Base.metadata.create_all(bind=engine)

    # Redis init (non-fatal)
    if settings.REDIS_URL:
        try:
            from cinebook.core.redis import get_redis
            await get_redis()
        except Exception as e:
            logger.warning(f"⚠ Redis connection failed (commit lock disabled): {e}")
    else:
        logger.info("ℹ️ REDIS_URL not set, commit lock disabled")

    yield

    try:
        logger.info("🔄 Starting graceful shutdown...")

        try:
            from cinebook.services.notifier import get_notifier
            await get_notifier().shutdown()
        except Exception as e:
            logger.debug(f"Error draining notification tasks: {e}")

        try:
            from cinebook.core.redis import close_redis
            await close_redis()
        except Exception as e:
            logger.error(f"Error closing Redis: {e}")

        logger.info("✅ Graceful shutdown complete")
    except asyncio.CancelledError:
        logger.debug("Shutdown process cancelled (normal during Ctrl+C)")


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"Booking error: {exc.message}")
    else:
        logger.info(f"Booking error ({exc.code}): {exc.message}")
    content = exc.to_dict()
    content["request_id"] = get_request_id()
    return JSONResponse(status_code=exc.status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)


# Build FastAPI app
fastapi_app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Seat booking core: intents, payment reconciliation and cancellation",
    version=settings.VERSION,
    lifespan=lifespan,
)

fastapi_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)
fastapi_app.middleware("http")(request_id_middleware)
register_exception_handlers(fastapi_app)

# every router is mounted under /api
fastapi_app.include_router(booking_routes.router, prefix="/api")
fastapi_app.include_router(payment_routes.router, prefix="/api")
fastapi_app.include_router(health.router)


@fastapi_app.get("/")
def root():
    return {"message": "🎬 Cinebook API is running"}


app = fastapi_app
