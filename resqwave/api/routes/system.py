"""System routes: liveness and readiness checks."""

from typing import Any

from apiflask import APIBlueprint
from flask import current_app

from resqwave.api.schemas import HealthResponse, ReadinessResponse
from resqwave.db.models import check_database_connectivity
from resqwave.utils.logging import get_logger

logger = get_logger(__name__)

api = APIBlueprint("system", __name__, url_prefix="/api", tag="System")


@api.route("/health", methods=["GET"])
@api.output(HealthResponse)
def health_check() -> tuple[dict[str, str | None], int]:
    """Liveness check - verifies the application process is running.

    Does NOT check the database or OpenWeather; use /api/ready for that.
    """
    return {
        "status": "ok",
        "version": current_app.config.get("APP_VERSION"),
    }, 200


@api.route("/ready", methods=["GET"])
@api.output(ReadinessResponse)
@api.doc(responses=[503])
def readiness_check() -> tuple[dict[str, Any], int]:
    """Readiness check - verifies the application can serve traffic.

    The weather provider is deliberately not checked: stale cache data can
    still be served while it is down.

    Returns:
        200: Application is ready to serve traffic
        503: Database is unreachable or not migrated
    """
    checks: dict[str, dict[str, Any]] = {}

    db_ok, db_error = check_database_connectivity(current_app.config.get("DATABASE_PATH"))
    checks["database"] = {
        "status": "ok" if db_ok else "error",
        "message": "Connected" if db_ok else db_error,
    }

    response = {
        "status": "ready" if db_ok else "not_ready",
        "checks": checks,
        "version": current_app.config.get("APP_VERSION"),
    }

    if db_ok:
        logger.debug("Readiness check passed")
        return response, 200

    logger.warning("Readiness check failed", extra={"checks": checks})
    return response, 503
