from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError


class CampaignError(Exception):
    """Base class for errors raised by the ledger and config services."""


class ValidationError(CampaignError):
    """Malformed or out-of-range input. The message is safe to show to the caller."""


class NotFoundError(CampaignError):
    pass


class StorageError(CampaignError):
    """The durability layer failed; nothing was written."""


def describe_error(error: dict) -> str:
    loc = [str(part) for part in error.get("loc", ())]
    # Errors raised from our own validators come back prefixed
    message = error.get("msg", "invalid value").removeprefix("Value error, ")
    if not loc:
        return message

    field = ".".join(loc)
    # Our messages already start with the innermost field name
    if message.startswith(loc[-1]):
        return field + message[len(loc[-1]):]
    return f"{field}: {message}"


def from_pydantic(exc: PydanticValidationError) -> ValidationError:
    return ValidationError(describe_error(exc.errors()[0]))


def from_request_validation(exc: RequestValidationError) -> ValidationError:
    """Converts FastAPI's path and body parsing errors."""
    errors = exc.errors()
    if not errors:
        return ValidationError("Invalid request")

    error = dict(errors[0])
    source, *rest = error.get("loc") or ("request",)
    if source == "path":
        return ValidationError("Invalid ID")
    if error.get("type") == "json_invalid":
        return ValidationError("Invalid JSON body")
    if not rest:
        return ValidationError(f"Invalid request {source}: {error.get('msg', 'invalid value')}")
    error["loc"] = rest
    return ValidationError(describe_error(error))
