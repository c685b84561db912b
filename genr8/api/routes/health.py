from fastapi import APIRouter, Depends, Response
import redis
from sqlalchemy import text
from sqlalchemy.orm import Session

from genr8.core.config import settings
from genr8.db.session import get_db


router = APIRouter()


def _check_database(db: Session) -> None:
    db.execute(text("SELECT 1"))


def _check_redis() -> None:
    redis.Redis.from_url(settings.redis_url, socket_timeout=2).ping()


@router.get("/health")
def health() -> dict:
    """Liveness probe - 200 while the process serves requests."""
    return {"status": "ok"}


@router.get("/ready")
def readiness(response: Response, db: Session = Depends(get_db)) -> dict:
    """Readiness probe - 503 with the failing dependency when Postgres or Redis is down."""
    checks = {}
    for name, check in (("database", lambda: _check_database(db)), ("redis", _check_redis)):
        try:
            check()
            checks[name] = "ok"
        except Exception as e:
            checks[name] = str(e)
    if any(value != "ok" for value in checks.values()):
        response.status_code = 503
        return {"status": "not_ready", "checks": checks}
    return {"status": "ready", "checks": checks}
