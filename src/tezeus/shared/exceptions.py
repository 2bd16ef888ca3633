from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException

from tezeus.shared.error_codes import ERROR_CODES
from tezeus.shared.logging import get_logger

logger = get_logger(__name__)


# ───────────────────────── Base & Domain Exceptions ─────────────────────────
class DomainError(Exception):
    """Base class for domain-level errors. Services should raise these, never HTTPException."""
    code: str = "domain_error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str
    details: Optional[Dict[str, Any]]

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message or self.__class__.__name__)
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.message = message or self.__class__.__name__
        self.details = details


class ValidationError(DomainError):
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class MissingFieldError(ValidationError):
    code = "missing_field"

    def __init__(self, *fields: str, message: str = "") -> None:
        names = ", ".join(fields)
        super().__init__(message or f"Missing required field(s): {names}", details={"fields": list(fields)})


class AuthError(DomainError):
    """Missing local session or workspace selection."""
    code, status_code = "unauthenticated", status.HTTP_401_UNAUTHORIZED


class Unauthenticated(AuthError):
    code, status_code = "unauthenticated", status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "User is not authenticated", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class NoWorkspaceSelected(AuthError):
    code, status_code = "no_workspace_selected", status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "No workspace selected", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ForbiddenError(DomainError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(DomainError):
    # generic; set a specific code via constructor if needed (e.g., "conversation_not_found")
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(DomainError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class UpstreamError(DomainError):
    """Store or gateway call failed; message is passed through."""
    code = "upstream_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ConfigurationError(DomainError):
    code = "configuration_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class CryptoError(DomainError):
    code = "crypto_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# ───────────────────────────── Helpers ──────────────────────────────────────

def _problem(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]],
    correlation_id: Optional[str],
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": message, "code": code}
    if details:
        body["details"] = details
    if correlation_id:
        body["correlation_id"] = correlation_id
    return body


def _extract_correlation_id(req: Request) -> Optional[str]:
    return getattr(getattr(req, "state", None), "request_id", None)


def _http_for(code: str) -> int:
    return int(ERROR_CODES.get(code, {}).get("http", status.HTTP_500_INTERNAL_SERVER_ERROR))


def _msg_for(code: str) -> str:
    return str(ERROR_CODES.get(code, {}).get("message", code))


def _validation_code(errors: list) -> str:
    if errors and all(e.get("type") == "missing" for e in errors):
        return "missing_field"
    return "validation_error"


# ─────────────────────────── Registration ───────────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def handle_app_error(req: Request, exc: DomainError):
        if exc.status_code >= 500:
            logger.error("Request failed", code=exc.code, error=exc.message, path=req.url.path)
        else:
            logger.info("Request rejected", code=exc.code, error=exc.message, path=req.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content=_problem(exc.code, exc.message, exc.details, _extract_correlation_id(req)),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(req: Request, exc: RequestValidationError):
        errors = list(exc.errors())
        code = _validation_code(errors)
        return JSONResponse(
            status_code=_http_for(code),
            content=_problem(
                code,
                _msg_for(code),
                {"errors": jsonable_errors(errors)},
                _extract_correlation_id(req),
            ),
        )

    @app.exception_handler(PydanticValidationError)
    async def handle_pydantic_validation(req: Request, exc: PydanticValidationError):
        code = "validation_error"
        return JSONResponse(
            status_code=_http_for(code),
            content=_problem(code, _msg_for(code), {"errors": jsonable_errors(exc.errors())}, _extract_correlation_id(req)),
        )

    @app.exception_handler(HTTPException)
    async def handle_http_exception(req: Request, exc: HTTPException):
        # map HTTP status → first matching ERROR_CODES entry
        reverse_map: Dict[int, str] = {}
        for k, v in ERROR_CODES.items():
            reverse_map.setdefault(v["http"], k)
        code = reverse_map.get(exc.status_code, "internal_error")
        detail = getattr(exc, "detail", None)
        details = detail if isinstance(detail, dict) else None
        return JSONResponse(
            status_code=exc.status_code,
            content=_problem(code, str(detail) if isinstance(detail, str) else _msg_for(code), details, _extract_correlation_id(req)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(req: Request, exc: Exception):
        code = "internal_error"
        logger.exception("Unhandled error", path=req.url.path)
        return JSONResponse(
            status_code=_http_for(code),
            content=_problem(code, _msg_for(code), {"type": exc.__class__.__name__}, _extract_correlation_id(req)),
        )


def jsonable_errors(errors: Any) -> list:
    """Strip non-serializable bits (ctx exceptions, raw bytes) from pydantic error lists."""
    out = []
    for e in errors or []:
        item = {k: v for k, v in dict(e).items() if k in ("type", "loc", "msg")}
        item["loc"] = [str(p) for p in item.get("loc", ())]
        out.append(item)
    return out
