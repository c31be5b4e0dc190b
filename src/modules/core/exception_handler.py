"""DRF exception handler rendering every error in one envelope.

Shape::

    {
        "type": "validation_error" | "client_error" | "not_found" |
                "conflict" | "contention" | "server_error",
        "errors": [{"code": "...", "detail": "...", "attr": "field" | null}]
    }

DRF's own exceptions (authentication, permission, throttling, serializer
validation) are flattened into the same list; domain errors raised by the
Service Layer carry their own ``kind``, ``code`` and ``http_status``.
"""

from __future__ import annotations

from typing import Any, Iterator

import structlog
from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from modules.core.exceptions import ContentionError, DomainError, PersistenceError

logger = structlog.get_logger(__name__)

RETRY_AFTER_SECONDS = 1


def api_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    if isinstance(exc, DomainError):
        return _domain_error_response(exc, context)

    response = drf_exception_handler(exc, context)
    if response is None:
        # Unhandled: let Django's 500 machinery log and render it.
        return None

    if isinstance(exc, exceptions.ValidationError):
        error_type = "validation_error"
        errors = list(_flatten(exc.detail))
    else:
        error_type = (
            "server_error" if response.status_code >= 500 else "client_error"
        )
        detail = getattr(exc, "detail", str(exc))
        code = getattr(detail, "code", None) or getattr(exc, "default_code", "error")
        errors = [{"code": code, "detail": str(detail), "attr": None}]

    response.data = {"type": error_type, "errors": errors}
    return response


def _domain_error_response(exc: DomainError, context: dict[str, Any]) -> Response:
    view = context.get("view")
    log = logger.bind(
        error_code=exc.code,
        error_kind=exc.kind,
        view=view.__class__.__name__ if view is not None else None,
    )
    if isinstance(exc, PersistenceError):
        log.error("api.persistence_error", detail=exc.detail)
        detail = "The request could not be completed."
    else:
        log.info("api.domain_error", detail=exc.detail)
        detail = exc.detail

    response = Response(
        {
            "type": exc.kind,
            "errors": [{"code": exc.code, "detail": detail, "attr": None}],
        },
        status=exc.http_status,
    )
    if isinstance(exc, ContentionError):
        response["Retry-After"] = str(RETRY_AFTER_SECONDS)
    return response


def _flatten(detail: Any, attr: str | None = None) -> Iterator[dict[str, Any]]:
    """Walk nested serializer errors producing dotted ``attr`` paths."""
    if isinstance(detail, dict):
        for key, value in detail.items():
            if key == "non_field_errors":
                child = attr
            else:
                child = f"{attr}.{key}" if attr else str(key)
            yield from _flatten(value, child)
    elif isinstance(detail, list):
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                yield from _flatten(value, f"{attr}.{index}" if attr else str(index))
            else:
                yield from _flatten(value, attr)
    else:
        yield {
            "code": getattr(detail, "code", "invalid"),
            "detail": str(detail),
            "attr": attr,
        }

