"""Problem+JSON responses and global exception handlers.

Every error leaving the runtime API is an RFC 7807 body
``{title, status, detail, code}`` served as application/problem+json.
"""

from __future__ import annotations

from typing import Any
import logging
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException
from fastapi.responses import JSONResponse

from formrunner.logic.answer_codec import AnswerShapeError
from formrunner.logic.repository_forms import FormNotFoundError, UnknownQuestionError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem_response(status: int, title: str, detail: str = "", code: str | None = None, **extra: Any) -> JSONResponse:
    body: dict[str, Any] = {"title": title, "status": status, "detail": detail}
    if code:
        body["code"] = code
    body.update(extra)
    return JSONResponse(body, status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status = int(getattr(exc, "status_code", 500) or 500)
    headers = {str(k): str(v) for k, v in (getattr(exc, "headers", None) or {}).items()}
    if isinstance(exc.detail, dict):
        body = {"title": "Error", "status": status, **exc.detail}
    else:
        body = {"title": "Error", "status": status, "detail": str(exc.detail or "")}
    return JSONResponse(body, status_code=status, headers=headers or None, media_type=PROBLEM_MEDIA_TYPE)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    return problem_response(
        422,
        "Invalid Request",
        "Request validation failed",
        code="REQUEST_INVALID",
        errors=[{k: v for k, v in e.items() if k in {"loc", "msg", "type"}} for e in exc.errors()],
    )


async def handle_form_not_found(request: Request, exc: FormNotFoundError) -> JSONResponse:  # noqa: D401
    return problem_response(404, "Not Found", str(exc), code="FORM_NOT_FOUND")


async def handle_unknown_question(request: Request, exc: UnknownQuestionError) -> JSONResponse:  # noqa: D401
    return problem_response(404, "Not Found", str(exc), code="QUESTION_NOT_FOUND")


async def handle_answer_shape_error(request: Request, exc: AnswerShapeError) -> JSONResponse:  # noqa: D401
    logger.info("answer_shape_rejected question_id=%s type=%s reason=%s", exc.question_id, exc.question_type, exc.reason)
    return problem_response(
        422,
        "Unprocessable Entity",
        str(exc),
        code="ANSWER_SHAPE_INVALID",
        question_id=exc.question_id,
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return problem_response(500, "Internal Server Error", code="INTERNAL_ERROR")


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem_response",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_form_not_found",
    "handle_unknown_question",
    "handle_answer_shape_error",
    "handle_unexpected_error",
]
