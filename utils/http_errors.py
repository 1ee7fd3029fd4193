"""Translate typed workflow results into HTTP errors."""

from __future__ import annotations

from werkzeug.exceptions import BadRequest, Conflict, HTTPException, NotFound

from services.workflow_engine import ErrorCode, OperationResult

_STATUS_FOR_CODE: dict[ErrorCode, type[HTTPException]] = {
    ErrorCode.UNKNOWN_DOCUMENT_TYPE: BadRequest,
    ErrorCode.MISSING_FILE: BadRequest,
    ErrorCode.FEEDBACK_REQUIRED: BadRequest,
    ErrorCode.INVALID_DECISION: BadRequest,
    ErrorCode.STEP_NOT_AVAILABLE: Conflict,
    ErrorCode.STEP_NOT_REVIEWABLE: Conflict,
    ErrorCode.CONCURRENT_UPDATE: Conflict,
    ErrorCode.APPLICATION_NOT_REVIEWABLE: Conflict,
    ErrorCode.APPLICATION_LOCKED: Conflict,
    ErrorCode.STEP_NOT_FOUND: NotFound,
    ErrorCode.EMPLOYEE_NOT_FOUND: NotFound,
    ErrorCode.APPLICATION_NOT_FOUND: NotFound,
}


def coded_error(
    exception_class: type[HTTPException], description: str, code: str, **extra
) -> HTTPException:
    """Build an HTTP exception whose JSON body carries ``code`` and ``extra``."""

    error = exception_class(description)
    error.error_code = code  # type: ignore[attr-defined]
    error.extra = {key: value for key, value in extra.items() if value is not None}  # type: ignore[attr-defined]
    return error


def error_for_result(result: OperationResult) -> HTTPException:
    """Return the HTTP exception matching a failed :class:`OperationResult`."""

    exception_class = _STATUS_FOR_CODE.get(result.error, BadRequest)
    return coded_error(
        exception_class,
        result.message or "Request could not be completed.",
        result.error.value if result.error else "Error",
        **result.data,
    )


def raise_for_result(result: OperationResult) -> OperationResult:
    if not result.ok:
        raise error_for_result(result)
    return result
