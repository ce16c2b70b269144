"""
Application exception hierarchy.

Every error carries an HTTP status and a machine-readable ``code`` so the
mobile client can branch on it without parsing English messages.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


class EasyModeError(Exception):
    """Base class for all application-level errors."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class LLMConfigurationError(EasyModeError):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "LLM_NOT_CONFIGURED"

    def __init__(self, message: str = "OpenAI API key is not configured. Set OPENAI_API_KEY to enable AI features."):
        super().__init__(message)


class LLMServiceError(EasyModeError):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "LLM_UNAVAILABLE"


class LLMOutputError(EasyModeError):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "LLM_BAD_OUTPUT"

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(message, details={"raw": raw[:200]} if raw else {})


class PlanGenerationError(EasyModeError):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "PLAN_GENERATION_FAILED"


class NotFoundError(EasyModeError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


async def easymode_exception_handler(request: Request, exc: EasyModeError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s: %s", exc.code, exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())
