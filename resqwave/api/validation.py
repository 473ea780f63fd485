"""Request validation utilities using Pydantic.

validate_request() checks a JSON body against a schema before the view runs.
Failures are raised in the standard error format, so they pass through
@api.output untouched.
"""

from collections.abc import Callable
from functools import wraps
from typing import Any, NoReturn

from flask import request
from pydantic import BaseModel, ValidationError

from resqwave.api.errors import raise_invalid_json_error, raise_validation_error
from resqwave.utils.logging import get_logger

logger = get_logger(__name__)


def raise_pydantic_error(error: ValidationError) -> NoReturn:
    """Raise the first error of a ValidationError as a VALIDATION_ERROR response.

    The field is the dotted location, e.g. "latitude"; messages from custom
    validators lose Pydantic's "Value error, " prefix.
    """
    first_error = error.errors()[0]

    loc = first_error.get("loc", ())
    field = ".".join(str(x) for x in loc) if loc else None
    message = first_error.get("msg", "Invalid input").removeprefix("Value error, ")

    logger.debug(
        "Pydantic validation failed",
        extra={"field": field, "message": message, "error_count": error.error_count()},
    )
    raise_validation_error(message, field=field)


def validate_request[T: BaseModel](
    schema_class: type[T],
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator that validates request JSON against a Pydantic schema.

    Usage:
        @api.route("/terminals", methods=["POST"])
        @api.output(TerminalResponse, status_code=201)
        @validate_request(CreateTerminalRequest)
        def create_terminal(data: CreateTerminalRequest) -> ...:
            ...

    The validated model is passed to the view as its first positional argument.
    A body that is not a JSON object is rejected with INVALID_FORMAT.
    """

    def decorator(f: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(f)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                raise_invalid_json_error()

            try:
                validated = schema_class.model_validate(data)
            except ValidationError as e:
                raise_pydantic_error(e)

            return f(validated, *args, **kwargs)

        return wrapper

    return decorator
