# cinebook/routers/health.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.orm import Session

from cinebook.core.redis import health_check_redis
from cinebook.database.database import get_db

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health(db: Session = Depends(get_db)):
    """Liveness plus a trivial database round trip."""
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Database error: {e}") from e
    return {"status": "ok"}


@router.get("/redis")
async def redis_health():
    result = await health_check_redis()
    if result.get("status") == "unhealthy":
        raise HTTPException(status_code=503, detail=result)
    return result
