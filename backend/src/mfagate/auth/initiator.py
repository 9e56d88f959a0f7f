"""First phase of an MFA attempt.

Runs once, right after the primary factor succeeded. Decides whether a
second factor is needed at all, which challenge to start, and whether to
enroll a token, then stores the session state and builds the first form.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Optional
from typing import Sequence

from mfagate.auth.challenge import BackendClient
from mfagate.auth.challenge import ChallengeResult
from mfagate.auth.forms import Outcome
from mfagate.auth.forms import RenderState
from mfagate.auth.polling import poll_interval
from mfagate.auth.session import SessionNotes
from mfagate.auth.session import SessionState
from mfagate.config import TOKEN_TYPE_OTP
from mfagate.config import TOKEN_TYPE_WEBAUTHN
from mfagate.config import Configuration
from mfagate.utils.logging import get_logger
from mfagate.utils.logging import mask_pii
from mfagate.utils.translations import default_messages
from mfagate.utils.translations import ui_language

logger = get_logger(__name__)


@dataclass(frozen=True)
class PrimaryAuthContext:
    """What the primary username/password step hands over."""

    username: str
    password: Optional[str] = field(default=None, repr=False)
    accept_language: Optional[str] = None
    groups: Sequence[str] = ()


def is_excluded(config: Configuration, groups: Sequence[str]) -> bool:
    return any(group in config.excluded_groups for group in groups)


def _first_call(
    context: PrimaryAuthContext,
    config: Configuration,
    client: BackendClient,
    headers: dict[str, str],
) -> Optional[ChallengeResult]:
    # Triggering through the service account wins over forwarding the password
    if config.trigger_challenge:
        return client.trigger_challenges(context.username, headers)
    if config.send_password:
        if context.password is None:
            logger.warning("Cannot forward the password because none was submitted")
            return None
        return client.validate_check(
            context.username, context.password, None, headers
        )
    return None


def initiate(
    context: PrimaryAuthContext,
    config: Configuration,
    client: BackendClient,
    notes: SessionNotes,
) -> Outcome:
    """Start the second-factor step for an authenticated user.

    Returns:
        ``Outcome.succeeded()`` for members of an excluded group, otherwise
        a challenge outcome carrying the first form.

    Raises:
        BackendError: If any backend call fails.
    """
    user = mask_pii(context.username)

    if is_excluded(config, context.groups):
        logger.info(f"Skipping second factor for excluded user {user}")
        return Outcome.succeeded()

    language = ui_language(context.accept_language)
    push_message, otp_message = default_messages(language)
    accept_language = context.accept_language or ""
    headers = {"Accept-Language": accept_language} if accept_language else {}

    result = _first_call(context, config, client, headers)

    transaction_id: Optional[str] = None
    push_available = False
    mode = TOKEN_TYPE_OTP
    sign_request = ""

    if result is not None:
        transaction_id = result.transaction_id or None

        if result.has_challenges:
            push_available = result.push_available
            if push_available:
                push_message = result.push_message

            otp_message = result.otp_message

            # Only the first sign request is offered to the browser
            if TOKEN_TYPE_WEBAUTHN in result.triggered_token_types:
                sign_requests = result.webauthn_sign_requests
                if sign_requests:
                    sign_request = sign_requests[0]

        if config.preferred_token_type in result.triggered_token_types:
            mode = config.preferred_token_type

        logger.info(
            f"Initial challenge for {user}",
            extra={
                "triggered": sorted(result.triggered_token_types),
                "mode": mode,
            },
        )

    # Enrollment is only attempted when nothing is in progress
    enrollment_qr = ""
    if config.enroll_token and not transaction_id:
        tokens = client.get_token_info(context.username)
        if not tokens:
            logger.info(f"Enrolling {config.enrolling_token_type} token for {user}")
            rollout = client.token_rollout(
                context.username, config.enrolling_token_type
            )
            enrollment_qr = rollout.qr_image

    state = SessionState(
        transaction_id=transaction_id,
        accept_language=accept_language,
        auth_counter=0,
    )
    state.save(notes)

    return Outcome.challenge(
        RenderState(
            poll_interval=poll_interval(config.polling_intervals, 0),
            mode=mode,
            push_available=push_available,
            # Always assume an OTP token
            otp_available=True,
            push_message=push_message,
            otp_message=otp_message,
            enrollment_qr=enrollment_qr,
            webauthn_sign_request=sign_request,
            ui_language=language,
        )
    )
