"""Second-factor form fields, render state and attempt outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any
from typing import Mapping
from typing import Optional

from mfagate.config import TOKEN_TYPE_OTP
from mfagate.utils.parsers import first_value
from mfagate.utils.parsers import parse_bool
from mfagate.utils.translations import DEFAULT_LANGUAGE

FORM_CANCEL = "cancel"
FORM_MODE = "mode"
FORM_MODE_CHANGED = "modeChanged"
FORM_OTP = "otp"
FORM_PUSH_AVAILABLE = "pushAvailable"
FORM_OTP_AVAILABLE = "otpAvailable"
FORM_PUSH_MESSAGE = "pushMessage"
FORM_OTP_MESSAGE = "otpMessage"
FORM_POLL_INTERVAL = "pollInterval"
FORM_TOKEN_ENROLLMENT_QR = "tokenEnrollmentQR"
FORM_WEBAUTHN_SIGN_REQUEST = "webAuthnSignRequest"
FORM_WEBAUTHN_SIGN_RESPONSE = "webAuthnSignResponse"
FORM_WEBAUTHN_ORIGIN = "origin"
FORM_UI_LANGUAGE = "uiLanguage"


@dataclass(frozen=True)
class FormSubmission:
    """Fields posted back by the second-factor form."""

    cancel: bool = False
    mode: str = TOKEN_TYPE_OTP
    mode_changed: bool = False
    otp: str = ""
    push_available: bool = False
    otp_available: bool = False
    push_message: Optional[str] = None
    otp_message: Optional[str] = None
    enrollment_qr: str = ""
    webauthn_sign_request: str = ""
    webauthn_sign_response: str = ""
    origin: str = ""
    ui_language: str = DEFAULT_LANGUAGE

    @classmethod
    def from_mapping(cls, form: Mapping[str, Any]) -> "FormSubmission":
        """Parse decoded form parameters.

        Cancellation is signalled by the presence of the cancel field,
        whatever its value.
        """

        def value(name: str) -> Optional[str]:
            return first_value(form.get(name))

        return cls(
            cancel=FORM_CANCEL in form,
            mode=value(FORM_MODE) or TOKEN_TYPE_OTP,
            mode_changed=parse_bool(value(FORM_MODE_CHANGED)),
            otp=value(FORM_OTP) or "",
            push_available=parse_bool(value(FORM_PUSH_AVAILABLE)),
            otp_available=parse_bool(value(FORM_OTP_AVAILABLE)),
            push_message=value(FORM_PUSH_MESSAGE),
            otp_message=value(FORM_OTP_MESSAGE),
            enrollment_qr=value(FORM_TOKEN_ENROLLMENT_QR) or "",
            webauthn_sign_request=value(FORM_WEBAUTHN_SIGN_REQUEST) or "",
            webauthn_sign_response=value(FORM_WEBAUTHN_SIGN_RESPONSE) or "",
            origin=value(FORM_WEBAUTHN_ORIGIN) or "",
            ui_language=value(FORM_UI_LANGUAGE) or DEFAULT_LANGUAGE,
        )


@dataclass(frozen=True)
class RenderState:
    """Everything the renderer needs to draw the next form."""

    poll_interval: int
    mode: str
    push_available: bool
    otp_available: bool
    push_message: str
    otp_message: str
    enrollment_qr: str = ""
    webauthn_sign_request: str = ""
    ui_language: str = DEFAULT_LANGUAGE
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Attribute map keyed by form field name."""
        result: dict[str, Any] = {
            FORM_POLL_INTERVAL: self.poll_interval,
            FORM_TOKEN_ENROLLMENT_QR: self.enrollment_qr,
            FORM_MODE: self.mode,
            FORM_PUSH_AVAILABLE: self.push_available,
            FORM_OTP_AVAILABLE: self.otp_available,
            FORM_PUSH_MESSAGE: self.push_message,
            FORM_OTP_MESSAGE: self.otp_message,
            FORM_WEBAUTHN_SIGN_REQUEST: self.webauthn_sign_request,
            FORM_UI_LANGUAGE: self.ui_language,
        }
        if self.error:
            result["error"] = self.error
        return result


class OutcomeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    CANCELLED = "cancelled"
    CHALLENGE = "challenge"


FAILURE_INVALID_CREDENTIALS = "invalid_credentials"


@dataclass(frozen=True)
class Outcome:
    """Terminal or re-render result of one phase."""

    status: OutcomeStatus
    render: Optional[RenderState] = None
    failure: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not OutcomeStatus.CHALLENGE

    @classmethod
    def succeeded(cls) -> "Outcome":
        return cls(OutcomeStatus.SUCCEEDED)

    @classmethod
    def cancelled(cls) -> "Outcome":
        return cls(OutcomeStatus.CANCELLED)

    @classmethod
    def challenge(
        cls,
        render: RenderState,
        failure: Optional[str] = None,
    ) -> "Outcome":
        return cls(OutcomeStatus.CHALLENGE, render=render, failure=failure)
