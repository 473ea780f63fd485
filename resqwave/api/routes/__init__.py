"""API routes module - registers all route blueprints.

Route Organization:
- system.py: Liveness/readiness checks (2 routes)
- terminals.py: Terminal registry (4 routes)
- weather.py: Forecasts and weather cache administration (5 routes)
"""

from apiflask import APIFlask

from resqwave.api.routes import system, terminals, weather


def register_blueprints(app: APIFlask) -> None:
    """Register all route blueprints with the app."""
    app.register_blueprint(system.api)
    app.register_blueprint(terminals.api)
    app.register_blueprint(weather.api)


__all__ = ["register_blueprints"]
