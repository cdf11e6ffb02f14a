"""Error taxonomy shared by the repositories, reconciler and HTTP layer.

Only ValidationError and NotFoundError are meant for callers to branch on.
Everything else surfaces as a generic internal failure.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for application errors."""


class ValidationError(ServiceError):
    """Malformed or out-of-range input. Carries every violation, not just the first."""

    def __init__(self, errors: list[dict]):
        self.errors = errors
        super().__init__("; ".join(f"{e['field']}: {e['reason']}" for e in errors))


class NotFoundError(ServiceError):
    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class StoreError(ServiceError):
    """Persistence failure: connectivity, constraint violation or timeout."""


class SchemaBootstrapError(ServiceError):
    """Raised inside the schema bootstrapper; never escapes it."""


class ExternalNotifyError(ServiceError):
    """Raised inside the external sync notifier; never escapes it."""


class WebhookSignatureError(ServiceError):
    pass


def format_validation_errors(raw_errors) -> list[dict]:
    """Flatten pydantic error dicts into [{"field", "reason"}]."""
    formatted = []
    for err in raw_errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        formatted.append({
            "field": ".".join(loc) or "body",
            "reason": err.get("msg", "Invalid value"),
        })
    return formatted


def _validation_response(errors: list[dict]) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "details": errors},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map the error taxonomy onto HTTP responses."""

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return _validation_response(exc.errors)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return _validation_response(format_validation_errors(exc.errors()))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"error": f"{exc.resource} not found"})

    @app.exception_handler(WebhookSignatureError)
    async def handle_bad_signature(request: Request, exc: WebhookSignatureError):
        logger.warning("Rejected webhook on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=401, content={"error": "Invalid signature"})

    @app.exception_handler(StoreError)
    async def handle_store_error(request: Request, exc: StoreError):
        logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.exception_handler(SQLAlchemyError)
    async def handle_sqlalchemy_error(request: Request, exc: SQLAlchemyError):
        logger.exception("Unhandled database error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
