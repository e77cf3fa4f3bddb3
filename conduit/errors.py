"""
Error taxonomy and its HTTP rendering.

Services raise a single ``ServiceError`` tagged with an ``ErrorKind``; the
handlers registered here translate the tag into a status code and the
canonical ``{"errors": {"body": [...]}}`` envelope.  Request-parsing errors
raised by FastAPI/pydantic and Starlette's own HTTP errors are rendered in
the same envelope so clients only ever see one error shape.
"""
import enum
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    INVALID_REQUEST_BODY = "invalid_request_body"
    MALFORMED_ID = "malformed_id"
    VALIDATION_FAILED = "validation_failed"
    INVALID_CREDENTIALS = "invalid_credentials"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    USERNAME_TAKEN = "username_taken"
    EMAIL_TAKEN = "email_taken"
    USER_NOT_FOUND = "user_not_found"
    ARTICLE_ALREADY_EXISTS = "article_already_exists"
    ARTICLE_NOT_FOUND = "article_not_found"
    ARTICLE_NOT_AUTHORIZED = "article_not_authorized"
    COMMENT_NOT_FOUND = "comment_not_found"
    COMMENT_NOT_AUTHORIZED = "comment_not_authorized"
    CANNOT_FOLLOW_SELF = "cannot_follow_self"
    INTERNAL = "internal"


STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.INVALID_REQUEST_BODY: 400,
    ErrorKind.MALFORMED_ID: 400,
    ErrorKind.CANNOT_FOLLOW_SELF: 400,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.ARTICLE_NOT_AUTHORIZED: 403,
    ErrorKind.COMMENT_NOT_AUTHORIZED: 403,
    ErrorKind.USER_NOT_FOUND: 404,
    ErrorKind.ARTICLE_NOT_FOUND: 404,
    ErrorKind.COMMENT_NOT_FOUND: 404,
    ErrorKind.VALIDATION_FAILED: 422,
    ErrorKind.USERNAME_TAKEN: 422,
    ErrorKind.EMAIL_TAKEN: 422,
    ErrorKind.ARTICLE_ALREADY_EXISTS: 422,
    ErrorKind.INTERNAL: 500,
}

DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.INVALID_REQUEST_BODY: "Invalid request body",
    ErrorKind.MALFORMED_ID: "Invalid comment ID",
    ErrorKind.VALIDATION_FAILED: "Validation failed",
    ErrorKind.INVALID_CREDENTIALS: "Invalid credentials",
    ErrorKind.UNAUTHORIZED: "Unauthorized",
    ErrorKind.FORBIDDEN: "Forbidden",
    ErrorKind.USERNAME_TAKEN: "Username already taken",
    ErrorKind.EMAIL_TAKEN: "Email already registered",
    ErrorKind.USER_NOT_FOUND: "User not found",
    ErrorKind.ARTICLE_ALREADY_EXISTS: "Article with this title already exists",
    ErrorKind.ARTICLE_NOT_FOUND: "Article not found",
    ErrorKind.ARTICLE_NOT_AUTHORIZED: "You are not the author of this article",
    ErrorKind.COMMENT_NOT_FOUND: "Comment not found",
    ErrorKind.COMMENT_NOT_AUTHORIZED: "You are not the author of this comment",
    ErrorKind.CANNOT_FOLLOW_SELF: "Cannot follow yourself",
    ErrorKind.INTERNAL: "Internal server error",
}


class ServiceError(Exception):
    """A failure from the service layer, tagged with the kind of failure."""

    def __init__(self, kind: ErrorKind, messages: list[str] | None = None) -> None:
        self.kind = kind
        self.messages = messages or [DEFAULT_MESSAGES[kind]]
        super().__init__(f"{kind.value}: {'; '.join(self.messages)}")

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]


def error_body(messages: list[str]) -> dict:
    return {"errors": {"body": messages}}


def error_response(status_code: int, messages: list[str]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(messages))


# ---------------------------------------------------------------------------
# Request validation translation
# ---------------------------------------------------------------------------

def _field_label(loc: tuple) -> str:
    name = str(loc[-1]) if loc else "value"
    return name[:1].upper() + name[1:]


def translate_validation_errors(errors: list[dict]) -> tuple[ErrorKind, list[str]]:
    """
    Turn pydantic error dicts into the API's error kind and messages.

    Malformed JSON, a body that is not an object, or a missing envelope key
    (``{"user": ...}``) is an invalid request body; everything else is a
    per-field validation failure.
    """
    messages: list[str] = []
    for err in errors:
        loc = tuple(err.get("loc", ()))
        err_type = err.get("type", "")
        if loc and loc[0] == "body" and (err_type == "json_invalid" or len(loc) <= 2):
            return ErrorKind.INVALID_REQUEST_BODY, [DEFAULT_MESSAGES[ErrorKind.INVALID_REQUEST_BODY]]

        field = _field_label(loc)
        ctx = err.get("ctx") or {}
        if err_type == "missing":
            messages.append(f"{field} is required")
        elif err_type == "string_too_short" and ctx.get("min_length") == 1:
            messages.append(f"{field} is required")
        elif err_type == "string_too_short":
            messages.append(f"{field} must be at least {ctx.get('min_length')} characters long")
        elif err_type == "value_error" and "email" in str(loc[-1]).lower():
            messages.append(f"{err.get('input')} is not a valid email")
        else:
            messages.append(f"{field} is not valid")
    return ErrorKind.VALIDATION_FAILED, messages


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.kind is ErrorKind.INTERNAL:
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc)
    return error_response(exc.status_code, exc.messages)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    kind, messages = translate_validation_errors(list(exc.errors()))
    return error_response(STATUS_CODES[kind], messages)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, [str(exc.detail)])


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, [DEFAULT_MESSAGES[ErrorKind.INTERNAL]])


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
