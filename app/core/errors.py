"""
Wallet verification error taxonomy.

Every failure the service reports is a WalletAuthError subclass carrying a machine-readable
``code`` and the HTTP status it maps to. ``register_exception_handlers`` renders them as

    {"error": "<human readable message>", "code": "<machine code>"}

so the front end can branch on ``code`` without parsing messages.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class WalletAuthError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "wallet_auth_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Wallet verification failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(WalletAuthError):
    code = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class ValidationError(WalletAuthError):
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NonceNotFound(WalletAuthError):
    code = "nonce_not_found"
    default_message = "No outstanding challenge, request a new nonce"


class NonceExpired(WalletAuthError):
    code = "nonce_expired"
    default_message = "Challenge expired, request a new nonce"


class SignatureMismatch(WalletAuthError):
    code = "signature_mismatch"
    default_message = "Signature mismatch"


class WalletAlreadyLinked(WalletAuthError):
    code = "wallet_already_linked"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Wallet already linked by another user"


class WalletNotFound(WalletAuthError):
    code = "wallet_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Wallet not found"


class StorageError(WalletAuthError):
    code = "storage_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Storage error"


def error_body(code: str, message: str) -> dict:
    return {"error": message, "code": code}


async def wallet_auth_error_handler(request: Request, exc: WalletAuthError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message),
        headers=headers,
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    fields = [".".join(str(part) for part in err.get("loc", ()) if part != "body") for err in errors]
    fields = [field for field in fields if field]
    message = "Invalid request: " + ", ".join(fields) if fields else "Invalid request"
    logger.warning("request validation failed on %s: %s", request.url.path, fields)
    return JSONResponse(
        status_code=422,
        content=error_body(ValidationError.code, message),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body("http_error", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WalletAuthError, wallet_auth_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
