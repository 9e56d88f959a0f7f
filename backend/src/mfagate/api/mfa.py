"""MFA API handlers.

Routes handled:
    POST /v1/mfa/start     - Start the second-factor step after primary login
    POST /v1/mfa/respond   - Submit the second-factor form

The caller is already authenticated with the primary factor; username and
groups come from the API Gateway authorizer. Each attempt's progress lives
in DynamoDB under an attempt id handed back by ``start``.
"""

from __future__ import annotations

import json
import os
import time
from typing import Any
from typing import Callable
from typing import Mapping
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from mfagate.api.schemas import MfaResponse
from mfagate.api.schemas import RespondRequest
from mfagate.api.schemas import StartRequest
from mfagate.auth.challenge import BackendClient
from mfagate.auth.evaluator import evaluate
from mfagate.auth.forms import FormSubmission
from mfagate.auth.forms import Outcome
from mfagate.auth.initiator import PrimaryAuthContext
from mfagate.auth.initiator import initiate
from mfagate.config import Configuration
from mfagate.exceptions import AppError
from mfagate.exceptions import AuthenticationError
from mfagate.exceptions import BackendError
from mfagate.exceptions import ValidationError
from mfagate.services.groups import resolve_groups
from mfagate.services.privacyidea import PrivacyIdeaClient
from mfagate.services.session_store import DynamoDBSessionNotes
from mfagate.services.session_store import new_attempt_id
from mfagate.utils.logging import clear_request_context
from mfagate.utils.logging import configure_logging
from mfagate.utils.logging import get_logger
from mfagate.utils.logging import log_response
from mfagate.utils.logging import mask_pii
from mfagate.utils.logging import set_request_context
from mfagate.utils.parsers import get_header
from mfagate.utils.responses import json_response
from mfagate.utils.responses import validate_content_type

configure_logging()
logger = get_logger(__name__)

NotesFactory = Callable[[str, str], Any]


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Route MFA requests."""

    started = time.perf_counter()
    request_id = event.get("requestContext", {}).get("requestId", "")
    set_request_context(req_id=request_id)

    try:
        response = _route(event)
    finally:
        clear_request_context()

    log_response(
        logger,
        response["statusCode"],
        (time.perf_counter() - started) * 1000,
    )
    return response


def _route(event: Mapping[str, Any]) -> dict[str, Any]:
    method = event.get("httpMethod", "")
    path = event.get("path", "").rstrip("/")

    if method == "OPTIONS":
        return json_response(204, {}, event=event)
    if method != "POST":
        return json_response(405, {"error": "Method not allowed"}, event=event)

    if path.endswith("/mfa/start"):
        return _safe(
            lambda config: _handle_start(
                event,
                config,
                PrivacyIdeaClient(config),
                DynamoDBSessionNotes.create,
            ),
            event,
        )
    if path.endswith("/mfa/respond"):
        return _safe(
            lambda config: _handle_respond(
                event,
                config,
                PrivacyIdeaClient(config),
                DynamoDBSessionNotes.open,
            ),
            event,
        )

    return json_response(404, {"error": "Not found"}, event=event)


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------


def _safe(
    handler: Callable[[Configuration], dict[str, Any]],
    event: Mapping[str, Any],
) -> dict[str, Any]:
    """Execute *handler* with common error handling."""
    try:
        validate_content_type(event)
        return handler(Configuration.from_env())
    except ValidationError as exc:
        logger.warning(f"Validation error: {exc.message}")
        return json_response(exc.status_code, exc.to_dict(), event=event)
    except BackendError as exc:
        logger.error(
            f"Authentication backend failure: {exc.message}",
            extra={"code": exc.code},
        )
        return json_response(
            exc.status_code,
            MfaResponse(status="failed", error=exc.message),
            event=event,
        )
    except AppError as exc:
        logger.warning(f"Request failed: {exc.message}")
        return json_response(exc.status_code, exc.to_dict(), event=event)
    except Exception:
        logger.exception("Unexpected error in MFA handler")
        return json_response(500, {"error": "Internal server error"}, event=event)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_start(
    event: Mapping[str, Any],
    config: Configuration,
    client: BackendClient,
    notes_factory: NotesFactory,
) -> dict[str, Any]:
    """Run the first phase for the authenticated caller."""
    request = _parse_body(event, StartRequest)
    claims = _get_authorizer_claims(event)
    username = _get_username(claims)

    attempt_id = new_attempt_id()
    set_request_context(corr_id=attempt_id)

    primary = PrimaryAuthContext(
        username=username,
        password=request.password,
        accept_language=get_header(event.get("headers"), "accept-language"),
        groups=resolve_groups(
            claims, username, os.getenv("COGNITO_USER_POOL_ID") or None
        ),
    )
    logger.info(f"MFA start for {mask_pii(username)}")

    notes = notes_factory(attempt_id, username)
    outcome = initiate(primary, config, client, notes)
    _finish(notes, outcome)
    return _outcome_response(outcome, attempt_id, event)


def _handle_respond(
    event: Mapping[str, Any],
    config: Configuration,
    client: BackendClient,
    notes_opener: NotesFactory,
) -> dict[str, Any]:
    """Run the second phase for one form submission."""
    request = _parse_body(event, RespondRequest)
    username = _get_username(_get_authorizer_claims(event))
    set_request_context(corr_id=request.attempt_id)

    # Fails unless the caller started this attempt
    notes = notes_opener(request.attempt_id, username)
    form = FormSubmission.from_mapping(request.form)
    outcome = evaluate(username, form, config, client, notes)
    _finish(notes, outcome)
    return _outcome_response(outcome, request.attempt_id, event)


def _finish(notes: Any, outcome: Outcome) -> None:
    """Persist the attempt, or drop it once the outcome is final."""
    if outcome.is_terminal:
        notes.delete()
    else:
        notes.flush()


def _outcome_response(
    outcome: Outcome,
    attempt_id: str,
    event: Mapping[str, Any],
) -> dict[str, Any]:
    render = outcome.render
    body = MfaResponse(
        status=outcome.status.value,
        attempt_id=None if outcome.is_terminal else attempt_id,
        form=render.to_dict() if render else None,
        error=render.error if render else None,
        failure=outcome.failure,
    )
    return json_response(200, body, event=event)


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


def _parse_body(event: Mapping[str, Any], schema: Any) -> Any:
    raw = event.get("body") or "{}"
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        field_name = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(
            first.get("msg", "Invalid request body"),
            field=field_name or None,
        ) from exc


def _get_authorizer_claims(event: Mapping[str, Any]) -> dict[str, Any]:
    """Extract the caller's claims.

    Supports both:
    - Lambda authorizers (context fields directly in authorizer)
    - Cognito User Pool authorizers (claims nested under authorizer.claims)
    """
    authorizer = event.get("requestContext", {}).get("authorizer", {}) or {}
    claims = authorizer.get("claims")
    if isinstance(claims, Mapping):
        return dict(claims)
    return dict(authorizer)


def _get_username(claims: Mapping[str, Any]) -> str:
    username: Optional[str] = (
        claims.get("cognito:username")
        or claims.get("username")
        or claims.get("userName")
    )
    if not username:
        raise AuthenticationError("Primary authentication context is missing")
    return str(username)
