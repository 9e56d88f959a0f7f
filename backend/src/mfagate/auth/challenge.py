"""Challenge results and the backend contract the flow depends on.

Response bodies follow the privacyIDEA layout::

    {
        "result": {"status": true, "value": false},
        "detail": {
            "message": "...",
            "transaction_id": "...",
            "multi_challenge": [{"type": "push", "message": "...", ...}]
        }
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Mapping
from typing import Optional
from typing import Protocol

from mfagate.config import TOKEN_TYPE_PUSH
from mfagate.config import TOKEN_TYPE_WEBAUTHN
from mfagate.exceptions import BackendError


@dataclass(frozen=True)
class Challenge:
    """A single pending challenge issued by the backend."""

    transaction_id: str
    token_type: str
    message: str = ""
    serial: str = ""
    image: str = ""
    webauthn_sign_request: str = ""


@dataclass(frozen=True)
class ChallengeResult:
    """The backend's answer to a trigger or verify call."""

    success: bool
    message: str = ""
    transaction_id: Optional[str] = None
    challenges: tuple[Challenge, ...] = field(default_factory=tuple)

    @property
    def has_challenges(self) -> bool:
        return bool(self.challenges)

    @property
    def triggered_token_types(self) -> frozenset[str]:
        return frozenset(c.token_type for c in self.challenges)

    @property
    def push_available(self) -> bool:
        return TOKEN_TYPE_PUSH in self.triggered_token_types

    @property
    def push_message(self) -> str:
        return _join_messages(
            c for c in self.challenges if c.token_type == TOKEN_TYPE_PUSH
        )

    @property
    def otp_message(self) -> str:
        """Prompt for everything that is not push.

        Falls back to the top-level message, which carries the generic
        status text when only push challenges were triggered.
        """
        joined = _join_messages(
            c for c in self.challenges if c.token_type != TOKEN_TYPE_PUSH
        )
        return joined or self.message

    @property
    def webauthn_sign_requests(self) -> list[str]:
        return [
            c.webauthn_sign_request
            for c in self.challenges
            if c.token_type == TOKEN_TYPE_WEBAUTHN and c.webauthn_sign_request
        ]


@dataclass(frozen=True)
class TokenInfo:
    """A token the user already owns."""

    serial: str
    token_type: str
    active: bool = True


@dataclass(frozen=True)
class RolloutInfo:
    """Result of enrolling a new token."""

    serial: str
    qr_image: str = ""


class BackendClient(Protocol):
    """Operations the MFA flow needs from the authentication backend.

    ``headers`` carries the Accept-Language header to forward, when one
    is known.
    """

    def trigger_challenges(
        self, username: str, headers: Mapping[str, str]
    ) -> ChallengeResult: ...

    def validate_check(
        self,
        username: str,
        password: str,
        transaction_id: Optional[str],
        headers: Mapping[str, str],
    ) -> ChallengeResult: ...

    def validate_check_webauthn(
        self,
        username: str,
        transaction_id: Optional[str],
        sign_response: str,
        origin: str,
        headers: Mapping[str, str],
    ) -> ChallengeResult: ...

    def poll_transaction(self, transaction_id: Optional[str]) -> bool: ...

    def get_token_info(self, username: str) -> list[TokenInfo]: ...

    def token_rollout(self, username: str, token_type: str) -> RolloutInfo: ...


def _join_messages(challenges: Any) -> str:
    messages: list[str] = []
    for challenge in challenges:
        if challenge.message and challenge.message not in messages:
            messages.append(challenge.message)
    return ", ".join(messages)


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _result_section(body: Mapping[str, Any]) -> Mapping[str, Any]:
    result = body.get("result")
    if not isinstance(result, Mapping):
        raise BackendError("Malformed backend response: missing result")
    if not result.get("status", False):
        error = result.get("error") or {}
        raise BackendError(
            str(error.get("message") or "Backend reported an error"),
            code=str(error.get("code")) if error.get("code") is not None else None,
        )
    return result


def _parse_challenge(raw: Mapping[str, Any], fallback_tx: str) -> Challenge:
    attributes = raw.get("attributes") or {}
    sign_request = ""
    if isinstance(attributes, Mapping) and attributes.get("webAuthnSignRequest"):
        value = attributes["webAuthnSignRequest"]
        sign_request = value if isinstance(value, str) else json.dumps(value)
    return Challenge(
        transaction_id=str(raw.get("transaction_id") or fallback_tx),
        token_type=str(raw.get("type") or "").lower(),
        message=str(raw.get("message") or ""),
        serial=str(raw.get("serial") or ""),
        image=str(raw.get("image") or ""),
        webauthn_sign_request=sign_request,
    )


def parse_challenge_result(body: Mapping[str, Any]) -> ChallengeResult:
    """Build a ``ChallengeResult`` from a validate endpoint response.

    Raises:
        BackendError: If the body is malformed or reports an error.
    """
    result = _result_section(body)
    detail = body.get("detail") or {}
    transaction_id = str(detail.get("transaction_id") or "") or None
    challenges = tuple(
        _parse_challenge(raw, transaction_id or "")
        for raw in detail.get("multi_challenge") or []
        if isinstance(raw, Mapping)
    )
    return ChallengeResult(
        success=bool(result.get("value", False)),
        message=str(detail.get("message") or ""),
        transaction_id=transaction_id,
        challenges=challenges,
    )


def parse_poll_result(body: Mapping[str, Any]) -> bool:
    return bool(_result_section(body).get("value", False))


def parse_token_info(body: Mapping[str, Any]) -> list[TokenInfo]:
    value = _result_section(body).get("value") or {}
    tokens = (value.get("tokens") or []) if isinstance(value, Mapping) else []
    return [
        TokenInfo(
            serial=str(token.get("serial") or ""),
            token_type=str(token.get("tokentype") or "").lower(),
            active=bool(token.get("active", True)),
        )
        for token in tokens
        if isinstance(token, Mapping)
    ]


def parse_rollout_info(body: Mapping[str, Any]) -> RolloutInfo:
    _result_section(body)
    detail = body.get("detail") or {}
    googleurl = detail.get("googleurl") or {}
    return RolloutInfo(
        serial=str(detail.get("serial") or ""),
        qr_image=str(googleurl.get("img") or ""),
    )


def parse_auth_token(body: Mapping[str, Any]) -> str:
    value = _result_section(body).get("value") or {}
    token = value.get("token") if isinstance(value, Mapping) else None
    if not token:
        raise BackendError("Malformed backend response: missing auth token")
    return str(token)
