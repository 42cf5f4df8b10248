"""Error codes and the single exception type raised across the service."""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    MISSING_PARAMETER = "MISSING_PARAMETER"
    REMOTE_UNAVAILABLE = "REMOTE_UNAVAILABLE"
    LIBRARY_NOT_FOUND = "LIBRARY_NOT_FOUND"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    REMOTE_ERROR = "REMOTE_ERROR"
    QUOTA_EXHAUSTED = "QUOTA_EXHAUSTED"
    PRO_REQUIRED = "PRO_REQUIRED"
    NOT_ACTIVATED = "NOT_ACTIVATED"
    INSTALL_FAILED = "INSTALL_FAILED"


class TemplateProxyError(Exception):
    """Request-fatal error surfaced to the caller as a structured response.

    ``data`` carries extra fields merged into the response payload
    (e.g. ``left`` for quota errors).
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        recoverable: bool = False,
        data: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable
        self.data = data or {}

    def to_payload(self) -> dict[str, Any]:
        return {
            **self.data,
            "code": self.code.value,
            "message": self.message,
            "recoverable": self.recoverable,
        }
