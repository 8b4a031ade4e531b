from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from formrunner.config import AppConfig, load_config
from formrunner.http.problem import (
    handle_answer_shape_error,
    handle_form_not_found,
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
    handle_unknown_question,
)
from formrunner.http.request_id import RequestIdMiddleware
from formrunner.logging_setup import configure_logging
from formrunner.logic.answer_codec import AnswerShapeError
from formrunner.logic.repository_forms import FormNotFoundError, FormRepository, UnknownQuestionError
from formrunner.routes import api_router

logger = logging.getLogger(__name__)


def create_app(config: AppConfig | None = None, forms: FormRepository | None = None) -> FastAPI:
    """Build the runtime API.

    `forms` defaults to the definitions found in the configured forms
    directory; tests pass a repository built in memory.
    """
    try:
        configure_logging()
    except Exception:
        logging.getLogger(__name__).error("global_logging_configuration_failed", exc_info=True)
    cfg = config or load_config()
    app = FastAPI(title="formrunner runtime API")
    app.state.config = cfg
    app.state.forms = forms if forms is not None else FormRepository.from_directory(cfg.forms.directory)

    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(FormNotFoundError, handle_form_not_found)
    app.add_exception_handler(UnknownQuestionError, handle_unknown_question)
    app.add_exception_handler(AnswerShapeError, handle_answer_shape_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return {"status": "ok", "forms": len(app.state.forms)}

    logger.info("app_created forms=%s", len(app.state.forms))
    return app


# Intentionally do not instantiate the app at import time to prevent side effects.


__all__ = ["create_app"]
