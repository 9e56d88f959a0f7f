"""privacyIDEA REST client.

Implements the backend operations the MFA flow needs on top of
``urllib.request``. Every call is stateless apart from the cached
service-account token used for the admin endpoints
(``/validate/triggerchallenge``, ``/token/``, ``/token/init``).

SECURITY NOTES:
- Passwords, OTP values, auth tokens and WebAuthn payloads are never logged
- Diagnostic request logging is only emitted when ``pi_do_log`` is set
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from typing import Any
from typing import Callable
from typing import Mapping
from typing import Optional
from urllib.parse import urlencode

from mfagate import __version__
from mfagate.auth.challenge import ChallengeResult
from mfagate.auth.challenge import RolloutInfo
from mfagate.auth.challenge import TokenInfo
from mfagate.auth.challenge import parse_auth_token
from mfagate.auth.challenge import parse_challenge_result
from mfagate.auth.challenge import parse_poll_result
from mfagate.auth.challenge import parse_rollout_info
from mfagate.auth.challenge import parse_token_info
from mfagate.config import CONFIG_SERVER
from mfagate.config import CONFIG_SERVICE_ACCOUNT
from mfagate.config import Configuration
from mfagate.exceptions import BackendError
from mfagate.exceptions import ConfigurationError
from mfagate.exceptions import ValidationError
from mfagate.utils.logging import get_gated_logger
from mfagate.utils.logging import mask_pii

USER_AGENT = f"mfagate/{__version__}"
DEFAULT_TIMEOUT = 10

ENDPOINT_AUTH = "/auth"
ENDPOINT_VALIDATE_CHECK = "/validate/check"
ENDPOINT_TRIGGER_CHALLENGE = "/validate/triggerchallenge"
ENDPOINT_POLL_TRANSACTION = "/validate/polltransaction"
ENDPOINT_TOKEN = "/token/"
ENDPOINT_TOKEN_INIT = "/token/init"

# Keys of the browser's WebAuthn sign response
_WEBAUTHN_REQUIRED = ("credentialid", "clientdata", "signaturedata", "authenticatordata")
_WEBAUTHN_OPTIONAL = ("userhandle", "assertionclientextensions")

UrlOpen = Callable[..., Any]


class PrivacyIdeaClient:
    """Backend client for a privacyIDEA-compatible server."""

    def __init__(
        self,
        config: Configuration,
        urlopen: Optional[UrlOpen] = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        if not config.server_url:
            raise ConfigurationError(CONFIG_SERVER)
        self.config = config
        self.timeout = timeout
        self._urlopen = urlopen or urllib.request.urlopen
        self._auth_token: Optional[str] = None
        self.logger = get_gated_logger(__name__, config.do_log)

    # ------------------------------------------------------------------
    # Validate endpoints
    # ------------------------------------------------------------------

    def trigger_challenges(
        self,
        username: str,
        headers: Mapping[str, str],
    ) -> ChallengeResult:
        params = self._user_params(username)
        body = self._send(
            "POST",
            ENDPOINT_TRIGGER_CHALLENGE,
            params,
            headers=self._with_auth(headers),
        )
        return parse_challenge_result(body)

    def validate_check(
        self,
        username: str,
        password: str,
        transaction_id: Optional[str],
        headers: Mapping[str, str],
    ) -> ChallengeResult:
        params = self._user_params(username)
        params["pass"] = password
        if transaction_id:
            params["transaction_id"] = transaction_id
        body = self._send("POST", ENDPOINT_VALIDATE_CHECK, params, headers=headers)
        return parse_challenge_result(body)

    def validate_check_webauthn(
        self,
        username: str,
        transaction_id: Optional[str],
        sign_response: str,
        origin: str,
        headers: Mapping[str, str],
    ) -> ChallengeResult:
        params = self._user_params(username)
        params["pass"] = ""
        if transaction_id:
            params["transaction_id"] = transaction_id
        params.update(_parse_sign_response(sign_response))

        request_headers = dict(headers)
        request_headers["Origin"] = origin
        body = self._send(
            "POST", ENDPOINT_VALIDATE_CHECK, params, headers=request_headers
        )
        return parse_challenge_result(body)

    def poll_transaction(self, transaction_id: Optional[str]) -> bool:
        if not transaction_id:
            self.logger.warning("Polling without a transaction id")
            return False
        body = self._send(
            "GET",
            ENDPOINT_POLL_TRANSACTION,
            {"transaction_id": transaction_id},
        )
        return parse_poll_result(body)

    # ------------------------------------------------------------------
    # Token endpoints (service account)
    # ------------------------------------------------------------------

    def get_token_info(self, username: str) -> list[TokenInfo]:
        body = self._send(
            "GET",
            ENDPOINT_TOKEN,
            self._user_params(username),
            headers=self._with_auth({}),
        )
        return parse_token_info(body)

    def token_rollout(self, username: str, token_type: str) -> RolloutInfo:
        params = self._user_params(username)
        params.update({"type": token_type, "genkey": "1"})
        body = self._send(
            "POST",
            ENDPOINT_TOKEN_INIT,
            params,
            headers=self._with_auth({}),
        )
        return parse_rollout_info(body)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _user_params(self, username: str) -> dict[str, str]:
        params = {"user": username}
        if self.config.realm:
            params["realm"] = self.config.realm
        return params

    def _with_auth(self, headers: Mapping[str, str]) -> dict[str, str]:
        result = dict(headers)
        result["Authorization"] = self._get_auth_token()
        return result

    def _get_auth_token(self) -> str:
        if self._auth_token:
            return self._auth_token
        if not self.config.has_service_account:
            raise ConfigurationError(CONFIG_SERVICE_ACCOUNT)

        params = {
            "username": self.config.service_account,
            "password": self.config.service_password,
        }
        if self.config.service_realm:
            params["realm"] = self.config.service_realm
        body = self._send("POST", ENDPOINT_AUTH, params)
        self._auth_token = parse_auth_token(body)
        return self._auth_token

    def _ssl_context(self) -> ssl.SSLContext:
        if self.config.verify_ssl:
            return ssl.create_default_context()
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context

    def _send(
        self,
        method: str,
        endpoint: str,
        params: Mapping[str, str],
        headers: Optional[Mapping[str, str]] = None,
    ) -> dict[str, Any]:
        """Send a form-encoded request and return the decoded JSON body.

        HTTP 4xx answers still carry a privacyIDEA result document and are
        parsed like successes; the parser raises on ``status: false``.

        Raises:
            BackendError: On transport failures, 5xx answers and bodies
                that are not JSON objects.
        """
        url = self.config.server_url + endpoint
        data: Optional[bytes] = None
        encoded = urlencode(params)
        if method == "GET":
            url = f"{url}?{encoded}" if encoded else url
        else:
            data = encoded.encode("utf-8")

        request_headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        }
        if data is not None:
            request_headers["Content-Type"] = "application/x-www-form-urlencoded"
        request_headers.update(headers or {})

        request = urllib.request.Request(
            url, data=data, headers=request_headers, method=method
        )

        user = params.get("user")
        self.logger.info(
            f"{method} {endpoint}",
            extra={"user": mask_pii(user)} if user else {},
        )

        try:
            with self._urlopen(
                request, timeout=self.timeout, context=self._ssl_context()
            ) as response:
                status = response.status
                raw = response.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as exc:
            status = exc.code
            try:
                raw = exc.read().decode("utf-8", errors="replace")
            except Exception:  # nosec B110 - best-effort body read
                raw = ""
        except (urllib.error.URLError, OSError) as exc:
            self.logger.error(f"{endpoint} unreachable: {type(exc).__name__}")
            raise BackendError(
                "Authentication backend is unreachable",
                code=type(exc).__name__,
                detail=str(exc),
            ) from exc

        self.logger.info(f"{endpoint} answered", extra={"http_status": status})

        if status >= 500:
            raise BackendError(
                f"Authentication backend failed with HTTP {status}",
                code=str(status),
            )

        try:
            body = json.loads(raw)
        except ValueError as exc:
            raise BackendError(
                "Authentication backend returned a non-JSON body",
                code=str(status),
            ) from exc
        if not isinstance(body, dict):
            raise BackendError(
                "Authentication backend returned an unexpected body",
                code=str(status),
            )
        return body


def _parse_sign_response(sign_response: str) -> dict[str, str]:
    """Split the browser's WebAuthn sign response into request fields.

    Raises:
        ValidationError: If the payload is not a JSON object with the
            required assertion fields.
    """
    try:
        payload = json.loads(sign_response)
    except ValueError as exc:
        raise ValidationError(
            "WebAuthn sign response is not valid JSON",
            field="webAuthnSignResponse",
        ) from exc
    if not isinstance(payload, dict):
        raise ValidationError(
            "WebAuthn sign response must be a JSON object",
            field="webAuthnSignResponse",
        )

    missing = [key for key in _WEBAUTHN_REQUIRED if not payload.get(key)]
    if missing:
        raise ValidationError(
            f"WebAuthn sign response is missing {', '.join(missing)}",
            field="webAuthnSignResponse",
        )

    fields = {key: str(payload[key]) for key in _WEBAUTHN_REQUIRED}
    for key in _WEBAUTHN_OPTIONAL:
        value = payload.get(key)
        if value:
            fields[key] = value if isinstance(value, str) else json.dumps(value)
    return fields
