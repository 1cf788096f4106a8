# validation.py — Payload parsing into typed models with field-level errors
#
# Bodies are parsed by FastAPI and their RequestValidationError is turned
# into the same field map in main.py; query strings and path ids go
# through the helpers below.
import uuid
from typing import Any, Dict, Iterable, Mapping, Sequence, Type, TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError as PydanticValidationError

from errors import BadRequestError, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

# Leading loc segments that name the request part, not the field
REQUEST_PARTS = ("body", "query", "path", "header")


def format_errors(errors: Iterable[Mapping[str, Any]]) -> Dict[str, str]:
    """pydantic error list → {"field.path": "message"}; first error per field wins."""
    fields: Dict[str, str] = {}
    for error in errors:
        loc: Sequence[Any] = error.get("loc", ())
        if loc and loc[0] in REQUEST_PARTS:
            loc = loc[1:]
        path = ".".join(str(part) for part in loc) or "body"
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        fields.setdefault(path, message)
    return fields


def validate(model: Type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError("Validation failed", format_errors(exc.errors()))


def query_model(model: Type[ModelT]):
    """Dependency factory: parse the raw query string into `model`."""

    async def _parse(request: Request) -> ModelT:
        return validate(model, dict(request.query_params))

    return _parse


def validate_id(value: str) -> str:
    try:
        return str(uuid.UUID(value))
    except (ValueError, TypeError, AttributeError):
        raise BadRequestError("Invalid ID format", "INVALID_ID")
