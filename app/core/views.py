"""
Core views providing infrastructure endpoints.

This module contains views that are not part of the payments domain but are
essential for running the service, such as health checks.
"""

from django.conf import settings
from django.db import connection
from django.http import JsonResponse


def _configured_gateways() -> dict[str, bool]:
    """Report which gateways have webhook verification credentials."""
    return {
        "razorpay": bool(settings.RAZORPAY_WEBHOOK_SECRET),
        "paypal": bool(settings.PAYPAL_WEBHOOK_ID),
    }


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - cache: "connected" or "disconnected"
        - gateways: which gateways can accept webhooks

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable

    A missing cache only degrades distributed locking and PayPal cert
    caching, so it does not fail the check. An unconfigured gateway is
    reported but never fails the check either: its webhooks are rejected
    with 401 until configured.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
        "gateways": _configured_gateways(),
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    try:
        from django.core.cache import cache

        cache.set("health_check", "ok", timeout=1)
        if cache.get("health_check") == "ok":
            health_status["cache"] = "connected"
        else:
            health_status["cache"] = "disconnected"
    except Exception:
        health_status["cache"] = "disconnected"

    status_code = 200 if is_healthy else 503

    return JsonResponse(health_status, status=status_code)
