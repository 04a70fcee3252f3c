"""
Operational API routes.

Handles:
- /health - Health check endpoint with service and cache status
"""

from flask import Blueprint, current_app

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    # Check backend client configuration
    api_client = current_app.config.get("API_CLIENT")
    if api_client:
        health_status["checks"]["backend"] = api_client.base_url
    else:
        health_status["checks"]["backend"] = "not_configured"
        health_status["status"] = "degraded"

    # Check query cache
    cache = current_app.config.get("QUERY_CACHE")
    if cache:
        health_status["checks"]["query_cache"] = cache.stats()
    else:
        health_status["checks"]["query_cache"] = "not_available"
        health_status["status"] = "degraded"

    # Check preference store
    preferences = current_app.config.get("PREFERENCE_STORE")
    if preferences:
        health_status["checks"]["preferences"] = str(preferences.path)
    else:
        health_status["checks"]["preferences"] = "not_available"
        health_status["status"] = "degraded"

    # Check workflow services
    for name, check in (("ORDER_WORKFLOW", "order_workflow"), ("TICKET_SERVICE", "ticket_service")):
        if current_app.config.get(name):
            health_status["checks"][check] = "ok"
        else:
            health_status["checks"][check] = "not_available"
            health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
