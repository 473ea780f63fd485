"""ResQWave weather service: application factory and server entry point."""

import atexit
import sys
import time
import uuid

from apiflask import APIFlask
from flask import Response, g, request

from resqwave.api.errors import register_error_handlers
from resqwave.api.routes import register_blueprints
from resqwave.config import Config
from resqwave.utils.logging import get_logger, set_request_id, setup_logging
from resqwave.weather.cache_manager import shutdown_weather_cache_manager

REQUEST_ID_HEADER = "X-Request-ID"


def _register_request_hooks(app: APIFlask) -> None:
    """Request correlation and access logging."""
    logger = get_logger(__name__)

    @app.before_request
    def start_request() -> None:
        # Terminals' gateway forwards its own ID; generate one otherwise
        set_request_id(request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4()))
        g.request_started = time.perf_counter()
        logger.info(
            "Incoming request",
            extra={
                "method": request.method,
                "path": request.path,
                "remote_addr": request.remote_addr,
            },
        )

    @app.after_request
    def finish_request(response: Response) -> Response:
        response.headers[REQUEST_ID_HEADER] = g.get("request_id", "")
        started = g.get("request_started")
        logger.info(
            "Outgoing response",
            extra={
                "method": request.method,
                "path": request.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2)
                if started is not None
                else None,
            },
        )
        return response


def create_app() -> APIFlask:
    """Create and configure the application."""
    setup_logging()
    get_logger(__name__).info(
        "App created",
        extra={"environment": Config.FLASK_ENV, "log_level": Config.LOG_LEVEL},
    )

    app = APIFlask(__name__, title="ResQWave Weather API", version=Config.APP_VERSION)
    app.config["APP_VERSION"] = Config.APP_VERSION
    app.config["DATABASE_PATH"] = Config.DATABASE_PATH
    app.config["TESTING"] = Config.is_testing()

    _register_request_hooks(app)
    register_error_handlers(app)
    register_blueprints(app)
    return app


def main() -> None:
    """Validate configuration and run the development server."""
    setup_logging()
    logger = get_logger(__name__)

    errors = Config.validate()
    if errors:
        logger.error("Configuration validation failed", extra={"errors": errors})
        print("Configuration errors:")
        for error in errors:
            print(f"  - {error}")
        sys.exit(1)

    app = create_app()
    atexit.register(shutdown_weather_cache_manager)
    logger.info(
        "Starting ResQWave weather service",
        extra={
            "port": Config.PORT,
            "environment": Config.FLASK_ENV,
            "cache_ttl_hours": Config.WEATHER_CACHE_TTL_HOURS,
            "refresh_wait_seconds": Config.WEATHER_REFRESH_WAIT_SECONDS,
        },
    )
    # threaded: concurrent requests for one terminal must reach the cache manager together
    app.run(host="0.0.0.0", port=Config.PORT, debug=Config.is_development(), threaded=True)


if __name__ == "__main__":
    main()
