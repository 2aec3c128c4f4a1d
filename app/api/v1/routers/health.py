# app/api/v1/routers/health.py
import time
import subprocess
from fastapi import APIRouter
from app.core.config import get_settings
from app.db import mongo
from app.db.redis import get_redis  # returns Redis instance or None

router = APIRouter(tags=["health"])
START_TIME = time.time()


def _git_sha(short: bool = True) -> str:
    try:
        cmd = ["git", "rev-parse", "--short" if short else "HEAD"]
        return subprocess.check_output(cmd, stderr=subprocess.DEVNULL).decode().strip()
    except Exception:
        return "unknown"


@router.get("/health")
async def health():
    """
    Tolerant health check:
    - pings Mongo through Motor
    - Redis is 'skipped' when not configured
    - exposes basic build info and a global status
    """
    settings = get_settings()
    checks: dict[str, object] = {
        "app_name": settings.APP_NAME,
        "env": settings.APP_ENV,
        "debug": settings.DEBUG,
        "version": settings.GIT_SHA if settings.GIT_SHA != "unknown" else _git_sha(),
        "uptime_seconds": int(time.time() - START_TIME),
        "notifications": "redis" if settings.NOTIFICATIONS_ENABLED and get_redis() else "noop",
    }

    # --- Mongo ---
    try:
        db = mongo.get_db()
        await db.command("ping")
        checks["mongodb"] = "ok"
    except Exception as e:
        checks["mongodb"] = f"error: {e}"

    # --- Redis (optional) ---
    try:
        r = get_redis()
        if r:
            await r.ping()
            checks["redis"] = "ok"
        else:
            checks["redis"] = "skipped"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    def _is_ok(v):
        return v in ("ok", "skipped")

    health_keys = ("mongodb", "redis")
    status = "ok" if all(_is_ok(checks.get(k)) for k in health_keys) else "error"

    return {"status": status, "checks": checks, "timestamp": int(time.time())}
