"""Shared response utilities for Lambda handlers."""

from __future__ import annotations

import json
import os
from dataclasses import asdict
from typing import Any
from typing import Mapping
from typing import Optional

from pydantic import BaseModel

from mfagate.exceptions import ValidationError
from mfagate.utils.parsers import get_header


def validate_content_type(
    event: Mapping[str, Any],
    required_methods: tuple[str, ...] = ("POST", "PUT", "PATCH"),
) -> None:
    """Validate Content-Type header for requests that require a body.

    Args:
        event: The Lambda event containing headers and method.
        required_methods: HTTP methods that require Content-Type validation.

    Raises:
        ValidationError: If Content-Type is missing or not application/json.
    """
    method = event.get("httpMethod", "")
    if method not in required_methods:
        return

    content_type = get_header(event.get("headers"), "content-type")
    if not content_type:
        raise ValidationError(
            "Content-Type header is required for requests with a body",
            field="Content-Type",
        )

    # Allow charset parameters like "application/json; charset=utf-8"
    if not content_type.lower().strip().startswith("application/json"):
        raise ValidationError(
            "Content-Type must be application/json",
            field="Content-Type",
        )


def get_security_headers() -> dict[str, str]:
    """Get security headers for all responses.

    Second-factor forms carry transaction ids and sign requests, so
    nothing may be cached.
    """
    return {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Cache-Control": "no-store, no-cache, must-revalidate",
        "Pragma": "no-cache",
    }


_DEFAULT_CORS_ORIGINS = [
    "http://localhost",
    "http://localhost:3000",
]


def get_cors_headers(
    event: Optional[Mapping[str, Any]] = None,
) -> dict[str, str]:
    """Get CORS headers for the response.

    Args:
        event: The Lambda event containing the request origin header.

    Returns:
        Dictionary of CORS headers to include in the response.
    """
    allowed_origins_env = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if allowed_origins_env:
        allowed_origins = [
            origin.strip()
            for origin in allowed_origins_env.split(",")
            if origin.strip()
        ]
    else:
        allowed_origins = _DEFAULT_CORS_ORIGINS

    request_origin = get_header(event.get("headers"), "origin") if event else None

    if request_origin and request_origin in allowed_origins:
        allow_origin = request_origin
    elif allowed_origins:
        allow_origin = allowed_origins[0]
    else:
        allow_origin = "*"

    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": (
            "Content-Type,Authorization,Accept-Language,X-Amz-Date,X-Amz-Security-Token"
        ),
        "Access-Control-Allow-Methods": "POST,OPTIONS",
    }


def json_response(
    status_code: int,
    body: Any,
    headers: Optional[dict[str, str]] = None,
    event: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Create a JSON API Gateway response.

    Args:
        status_code: HTTP status code.
        body: Response body (dict, Pydantic model, or dataclass).
        headers: Optional additional headers to include.
        event: Optional Lambda event for CORS origin detection.

    Returns:
        API Gateway response dictionary.
    """
    response_headers = {
        "Content-Type": "application/json",
    }
    response_headers.update(get_security_headers())
    response_headers.update(get_cors_headers(event))

    if headers:
        response_headers.update(headers)

    payload = _serialize_body(body)

    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": json.dumps(payload, default=str),
    }


def _serialize_body(body: Any) -> Any:
    if isinstance(body, BaseModel):
        return body.model_dump()

    if hasattr(body, "__dataclass_fields__"):
        return asdict(body)

    return body
