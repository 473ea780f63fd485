"""Terminal routes: register, list, inspect and remove alert terminals."""

import sqlite3
from typing import Any

from apiflask import APIBlueprint

from resqwave.api.errors import raise_conflict_error, raise_not_found_error
from resqwave.api.schemas import (
    CreateTerminalRequest,
    StatusResponse,
    TerminalResponse,
    TerminalsListResponse,
)
from resqwave.api.validation import validate_request
from resqwave.db.models import Terminal, db
from resqwave.utils.logging import get_logger

logger = get_logger(__name__)

api = APIBlueprint("terminals", __name__, url_prefix="/api/terminals", tag="Terminals")


def _serialize(terminal: Terminal) -> dict[str, Any]:
    return {
        "id": terminal.id,
        "name": terminal.name,
        "latitude": terminal.latitude,
        "longitude": terminal.longitude,
        "createdAt": terminal.created_at.isoformat(),
    }


@api.route("", methods=["GET"])
@api.output(TerminalsListResponse)
def list_terminals() -> dict[str, Any]:
    """List registered terminals."""
    return {"terminals": [_serialize(t) for t in db.list_terminals()]}


@api.route("", methods=["POST"])
@api.output(TerminalResponse, status_code=201)
@api.doc(responses=[400, 409])
@validate_request(CreateTerminalRequest)
def create_terminal(data: CreateTerminalRequest) -> dict[str, Any]:
    """Register a terminal with its location."""
    try:
        terminal = db.create_terminal(data.id, data.name, data.latitude, data.longitude)
    except sqlite3.IntegrityError:
        logger.warning("Duplicate terminal registration", extra={"terminal_id": data.id})
        raise_conflict_error(f"Terminal {data.id} already exists")

    return _serialize(terminal)


@api.route("/<terminal_id>", methods=["GET"])
@api.output(TerminalResponse)
@api.doc(responses=[404])
def get_terminal(terminal_id: str) -> dict[str, Any]:
    terminal = db.get_terminal(terminal_id)
    if terminal is None:
        raise_not_found_error("Terminal")
    return _serialize(terminal)


@api.route("/<terminal_id>", methods=["DELETE"])
@api.output(StatusResponse)
@api.doc(responses=[404])
def delete_terminal(terminal_id: str) -> dict[str, Any]:
    """Remove a terminal together with its cached forecast."""
    if not db.delete_terminal(terminal_id):
        raise_not_found_error("Terminal")
    return {"status": "deleted"}
