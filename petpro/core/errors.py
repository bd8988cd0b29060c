# petpro/core/errors.py
from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from petpro.core.logger import logger


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"  # 400
    UNAUTHORIZED = "UNAUTHORIZED"          # 401
    FORBIDDEN = "FORBIDDEN"                # 403
    PLAN_LIMIT = "PLAN_LIMIT"              # 403
    NOT_FOUND = "NOT_FOUND"                # 404
    CONFLICT = "CONFLICT"                  # 409
    RATE_LIMITED = "RATE_LIMITED"          # 429
    INTERNAL_ERROR = "INTERNAL_ERROR"      # 500


STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.PLAN_LIMIT: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.INTERNAL_ERROR: 500,
}


class ApiError(Exception):
    """
    Error raised anywhere below the HTTP layer and rendered by a single handler.

    The frontend keys on `code`; `message` is human-readable (pt-BR) and not a contract.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        field: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.field = field
        self.meta = meta
        self.headers = headers

    @property
    def status_code(self) -> int:
        return STATUS_BY_CODE[self.code]

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "code": self.code.value}
        if self.field:
            body["field"] = self.field
        if self.meta:
            body["meta"] = self.meta
        return body


def http_error(
    *,
    code: ErrorCode,
    message: str,
    field: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> ApiError:
    """Standardized error factory; the status code is derived from `code`."""
    return ApiError(code, message, field=field, meta=meta, headers=headers)


# Errors raised by the router itself (unknown path, wrong method, ...).
CODE_BY_HTTP_STATUS: Dict[int, ErrorCode] = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    429: ErrorCode.RATE_LIMITED,
}

MESSAGE_BY_HTTP_STATUS: Dict[int, str] = {
    404: "Recurso não encontrado.",
    405: "Método não permitido.",
}


def _http_exception_body(exc: StarletteHTTPException) -> Dict[str, Any]:
    status = exc.status_code
    code = CODE_BY_HTTP_STATUS.get(status)
    if code is None:
        code = ErrorCode.INTERNAL_ERROR if status >= 500 else ErrorCode.VALIDATION_ERROR
    message = MESSAGE_BY_HTTP_STATUS.get(status)
    if message is None:
        message = exc.detail if isinstance(exc.detail, str) and exc.detail else "Erro na requisição."
    return ApiError(code, message).to_body()


def _validation_field(error: Dict[str, Any]) -> Optional[str]:
    # a malformed body has no field; loc carries the byte offset instead
    if error.get("type") == "json_invalid":
        return None
    loc = [part for part in error.get("loc", ()) if part not in ("body", "query", "path", "header")]
    return str(loc[0]) if loc else None


def _validation_message(error: Dict[str, Any]) -> str:
    if error.get("type") == "json_invalid":
        return "JSON inválido."
    if error.get("type") == "value_error":
        msg = str(error.get("msg", ""))
        return msg.removeprefix("Value error, ") or "Dados inválidos."
    if error.get("type") == "missing":
        return "Campo obrigatório."
    return "Dados inválidos."


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=exc.headers)

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_http_exception_body(exc),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        err = http_error(
            code=ErrorCode.VALIDATION_ERROR,
            message=_validation_message(first),
            field=_validation_field(first),
        )
        return JSONResponse(status_code=err.status_code, content=err.to_body())

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            exc_info=exc,
            extra={"meta": {"path": request.url.path, "method": request.method}},
        )
        err = http_error(code=ErrorCode.INTERNAL_ERROR, message="Erro interno do servidor.")
        return JSONResponse(status_code=err.status_code, content=err.to_body())
