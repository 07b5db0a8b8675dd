import time
from typing import Any, Callable, Dict

import structlog
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone

from modules.core.models import EventStatus, OutboxEvent

logger = structlog.get_logger()


def _ping_database() -> Dict[str, Any]:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()
    return {}


def _ping_cache() -> Dict[str, Any]:
    cache.set("_health_check", "ok", 10)
    if cache.get("_health_check") != "ok":
        raise ConnectionError("Cache read failed")
    return {}


def _outbox_backlog() -> Dict[str, Any]:
    counts = {
        "pending": OutboxEvent.objects.filter(status=EventStatus.PENDING).count(),
        "failed": OutboxEvent.objects.filter(status=EventStatus.FAILED).count(),
    }
    return counts


CHECKS: Dict[str, Callable[[], Dict[str, Any]]] = {
    "database": _ping_database,
    "cache": _ping_cache,
    "outbox": _outbox_backlog,
}


def health_check(request: HttpRequest) -> JsonResponse:
    """Liveness probe: database, cache and the outbox backlog.

    The outbox entry is informational; a backlog never marks the service
    unhealthy, only an unreachable table does.
    """
    services: Dict[str, Dict[str, Any]] = {}
    overall_healthy = True

    for name, check in CHECKS.items():
        start = time.monotonic()
        try:
            details = check()
        except Exception:
            services[name] = {"status": "down"}
            overall_healthy = False
            logger.error("health_check_failure", service=name)
            continue
        services[name] = {
            "status": "up",
            "response_time_ms": round((time.monotonic() - start) * 1000, 2),
            **details,
        }

    status = "healthy" if overall_healthy else "unhealthy"
    logger.info("health_check_completed", status=status)

    return JsonResponse(
        {
            "status": status,
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=200 if overall_healthy else 503,
    )
