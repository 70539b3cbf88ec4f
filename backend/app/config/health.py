# app/config/health.py
import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.utils import timezone

from app.common.redis_client import ping_redis

logger = logging.getLogger(__name__)

CONNECTED = "connected"
ERROR = "error"


def check_database() -> bool:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError as exc:
        logger.warning("health: database check failed: %s", exc)
        return False
    return True


def health(request):
    """
    GET /api/health
    res: { status: ok|degraded, database, redis, timestamp }
    """
    checks = {
        "database": check_database(),
        "redis": ping_redis(),
    }
    if not checks["redis"]:
        logger.warning("health: redis check failed")

    all_ok = all(checks.values())
    body = {"status": "ok" if all_ok else "degraded"}
    body.update({name: CONNECTED if up else ERROR for name, up in checks.items()})
    body["timestamp"] = timezone.now().isoformat()

    return JsonResponse(body, status=200 if all_ok else 503)
