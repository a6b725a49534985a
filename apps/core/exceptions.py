"""Domain error base class and its REST rendering."""
from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class HostelError(Exception):
    """Raised when a hostel operation cannot be completed.

    ``errors`` optionally carries itemised problems (one per CSV row, for
    example) and is rendered next to ``detail``.
    """

    default_code = "hostel_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, code: str | None = None, errors: list | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.errors = errors or []


def api_exception_handler(exc, context):
    """Render :class:`HostelError` as ``{"detail", "code"}``; defer the rest to DRF."""

    if isinstance(exc, HostelError):
        view = context.get("view")
        logger.info(
            "%s rejected by %s: %s",
            exc.code,
            view.__class__.__name__ if view is not None else "unknown view",
            exc.message,
        )
        payload = {"detail": exc.message, "code": exc.code}
        if exc.errors:
            payload["errors"] = exc.errors
        return Response(payload, status=exc.status_code)
    return exception_handler(exc, context)
