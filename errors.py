import threading
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import requests
import structlog
from fastapi import HTTPException

import config
from constants import VALIDATION_FAILED

logger = structlog.get_logger(__name__)


class ErrorType(str, Enum):
    NETWORK_ERROR = "NETWORK_ERROR"
    API_ERROR = "API_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    PAYMENT_ERROR = "PAYMENT_ERROR"
    NOT_FOUND_ERROR = "NOT_FOUND_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


CRITICAL_ERRORS = {
    ErrorType.SERVER_ERROR,
    ErrorType.DATABASE_ERROR,
    ErrorType.AUTHENTICATION_ERROR,
    ErrorType.AUTHORIZATION_ERROR,
}
WARNING_ERRORS = {
    ErrorType.NETWORK_ERROR,
    ErrorType.TIMEOUT_ERROR,
    ErrorType.RATE_LIMIT_ERROR,
}


class ApiError(HTTPException):
    """HTTP error rendered as the ``{success: false, error, message}`` envelope."""

    error_type = ErrorType.SERVER_ERROR

    def __init__(
        self,
        status_code: int,
        error: str,
        message: Optional[str] = None,
        error_type: Optional[ErrorType] = None,
        **extra: Any,
    ):
        super().__init__(status_code=status_code, detail=message or error)
        self.error = error
        self.message = message or error
        if error_type is not None:
            self.error_type = error_type
        self.extra = extra


class ValidationFailed(ApiError):
    error_type = ErrorType.VALIDATION_ERROR

    def __init__(self, message: str, **extra: Any):
        super().__init__(400, VALIDATION_FAILED, message, **extra)


class NotFound(ApiError):
    error_type = ErrorType.NOT_FOUND_ERROR

    def __init__(self, resource: str, identifier: Any, **extra: Any):
        super().__init__(
            404,
            f"{resource} not found",
            f"No {resource.lower()} found with identifier: {identifier}",
            **extra,
        )


class AuthenticationFailed(ApiError):
    error_type = ErrorType.AUTHENTICATION_ERROR

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(401, "Authentication failed", message)
        self.headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(ApiError):
    error_type = ErrorType.AUTHORIZATION_ERROR

    def __init__(self, message: str = "You don't have permission to perform this action"):
        super().__init__(403, "Forbidden", message)


class Conflict(ApiError):
    error_type = ErrorType.VALIDATION_ERROR

    def __init__(self, message: str):
        super().__init__(409, "Conflict", message)


class DatabaseFailure(ApiError):
    error_type = ErrorType.DATABASE_ERROR

    def __init__(self, error: str, message: str):
        super().__init__(500, error, message, source="mongodb")


def get_log_level(error_type: ErrorType) -> str:
    if error_type in CRITICAL_ERRORS:
        return "error"
    if error_type in WARNING_ERRORS:
        return "warning"
    return "info"


def _post_error_report(error_info: Dict[str, Any], url: str):
    try:
        requests.post(url, json=error_info, timeout=5)
    except requests.RequestException as e:
        logger.warning("error_report_failed", url=url, reason=str(e))


def report_error(error_info: Dict[str, Any], url: Optional[str] = None) -> threading.Thread:
    """Fire-and-forget POST of an error record to the collection endpoint."""
    thread = threading.Thread(
        target=_post_error_report,
        args=(error_info, url or config.ERROR_REPORT_URL),
        daemon=True,
    )
    thread.start()
    return thread


def handle_error(
    error: Any,
    error_type: ErrorType = ErrorType.UNKNOWN_ERROR,
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    error_type = ErrorType(error_type)
    is_exception = isinstance(error, BaseException)
    error_info = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "type": error_type.value,
        "message": getattr(error, "message", None) or str(error),
        "stack": "".join(traceback.format_exception(error)) if is_exception and error.__traceback__ else None,
        "context": context or {},
        "url": "server",
    }

    log = getattr(logger, get_log_level(error_type))
    log(
        "error_handled",
        error_type=error_info["type"],
        message=error_info["message"],
        context=error_info["context"],
    )

    if config.is_production():
        report_error(error_info)

    return error_info
