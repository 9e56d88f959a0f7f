"""Lambda entrypoint for the MFA challenge-response API."""

from __future__ import annotations

from typing import Any
from typing import Mapping

from mfagate.api.mfa import lambda_handler as _handler


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Delegate to the MFA API handler."""
    return _handler(event, context)
