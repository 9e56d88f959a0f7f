"""Second phase of an MFA attempt: evaluate one form submission.

Exactly one verification path is chosen per submission, based on the
mode the form was in:

1. cancel field present: abort the attempt
2. push mode: poll the transaction, finalize once it was answered
3. WebAuthn sign response present: verify it (needs the origin)
4. otherwise verify the submitted OTP, unless the user only switched
   the token type
"""

from __future__ import annotations

from typing import Optional

from mfagate.auth.challenge import BackendClient
from mfagate.auth.challenge import ChallengeResult
from mfagate.auth.forms import FAILURE_INVALID_CREDENTIALS
from mfagate.auth.forms import FormSubmission
from mfagate.auth.forms import Outcome
from mfagate.auth.forms import RenderState
from mfagate.auth.polling import clamp_counter
from mfagate.auth.polling import poll_interval
from mfagate.auth.session import SessionNotes
from mfagate.auth.session import SessionState
from mfagate.auth.session import discard
from mfagate.config import TOKEN_TYPE_PUSH
from mfagate.config import Configuration
from mfagate.utils.logging import get_logger
from mfagate.utils.logging import hash_for_correlation
from mfagate.utils.logging import mask_pii
from mfagate.utils.translations import AUTHENTICATION_FAILED_MESSAGE
from mfagate.utils.translations import DEFAULT_OTP_MESSAGE
from mfagate.utils.translations import DEFAULT_PUSH_MESSAGE
from mfagate.utils.translations import NOT_VERIFIED_YET_MESSAGE

logger = get_logger(__name__)


def _verify(
    username: str,
    form: FormSubmission,
    state: SessionState,
    client: BackendClient,
) -> Optional[ChallengeResult]:
    """Make the one backend call this submission calls for, if any."""
    headers = state.language_headers

    if form.mode == TOKEN_TYPE_PUSH:
        if client.poll_transaction(state.transaction_id):
            # Answered on the device; finalize with an empty credential
            return client.validate_check(
                username, "", state.transaction_id, headers
            )
        return None

    if form.webauthn_sign_response:
        if not form.origin:
            logger.error("Origin is missing for WebAuthn authentication")
            return None
        return client.validate_check_webauthn(
            username,
            state.transaction_id,
            form.webauthn_sign_response,
            form.origin,
            headers,
        )

    if not form.mode_changed:
        # An empty transaction id verifies the OTP as a first factor
        return client.validate_check(
            username, form.otp, state.transaction_id, headers
        )

    return None


def evaluate(
    username: str,
    form: FormSubmission,
    config: Configuration,
    client: BackendClient,
    notes: SessionNotes,
) -> Outcome:
    """Evaluate one submission of the second-factor form.

    Returns:
        ``succeeded`` or ``cancelled`` when the attempt is over, otherwise
        a challenge outcome with the next form, classified as invalid
        credentials.

    Raises:
        BackendError: If the backend call fails.
    """
    if form.cancel:
        logger.info(f"Authentication cancelled by {mask_pii(username)}")
        discard(notes)
        return Outcome.cancelled()

    state = SessionState.load(notes)
    otp_message = form.otp_message
    failure_message = AUTHENTICATION_FAILED_MESSAGE
    did_trigger = False

    result = _verify(username, form, state, client)

    if result is not None:
        if result.success:
            logger.info(f"Second factor accepted for {mask_pii(username)}")
            discard(notes)
            return Outcome.succeeded()

        if result.has_challenges:
            otp_message = result.message
            state.transaction_id = result.transaction_id or state.transaction_id
            did_trigger = True
            logger.info(
                "Backend issued a new challenge",
                extra={
                    "transaction": hash_for_correlation(state.transaction_id or ""),
                    "triggered": sorted(result.triggered_token_types),
                },
            )
        else:
            failure_message += "\n" + result.message
            logger.warning(f"Second factor rejected for {mask_pii(username)}")

    state.auth_counter = clamp_counter(
        config.polling_intervals, state.auth_counter + 1
    )
    state.save(notes)

    error: Optional[str] = None
    if not form.mode_changed and not did_trigger:
        error = (
            NOT_VERIFIED_YET_MESSAGE
            if form.mode == TOKEN_TYPE_PUSH
            else failure_message
        )

    render = RenderState(
        poll_interval=poll_interval(config.polling_intervals, state.auth_counter),
        mode=form.mode,
        push_available=form.push_available,
        otp_available=form.otp_available,
        push_message=form.push_message or DEFAULT_PUSH_MESSAGE,
        otp_message=otp_message or DEFAULT_OTP_MESSAGE,
        enrollment_qr=form.enrollment_qr,
        webauthn_sign_request=form.webauthn_sign_request,
        ui_language=form.ui_language,
        error=error,
    )
    return Outcome.challenge(render, failure=FAILURE_INVALID_CREDENTIALS)
