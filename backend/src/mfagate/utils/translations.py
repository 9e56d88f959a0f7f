"""Message table for the second-factor form.

Only English and German prompts exist. Anything that is not German
falls back to English.
"""

from __future__ import annotations

from typing import Optional

DEFAULT_LANGUAGE = "en"

_PUSH_MESSAGES = {
    "en": "Please confirm the authentication on your mobile device!",
    "de": "Bitte bestätigen Sie die Authentifizierung auf Ihrem Smartphone!",
}

_OTP_MESSAGES = {
    "en": "Please enter the OTP!",
    "de": "Bitte geben Sie den OTP ein!",
}

DEFAULT_PUSH_MESSAGE = _PUSH_MESSAGES[DEFAULT_LANGUAGE]
DEFAULT_OTP_MESSAGE = _OTP_MESSAGES[DEFAULT_LANGUAGE]

AUTHENTICATION_FAILED_MESSAGE = "Authentication failed."
NOT_VERIFIED_YET_MESSAGE = "Authentication not verified yet."


def ui_language(accept_language: Optional[str]) -> str:
    """Pick the UI locale from an Accept-Language header value.

    Args:
        accept_language: Raw header value, possibly None.

    Returns:
        ``"de"`` when the header starts with ``de`` (any case), else ``"en"``.
    """
    if accept_language and accept_language.strip().lower().startswith("de"):
        return "de"
    return DEFAULT_LANGUAGE


def default_messages(language: str) -> tuple[str, str]:
    """Return the default ``(push_message, otp_message)`` for a locale."""
    if language not in _PUSH_MESSAGES:
        language = DEFAULT_LANGUAGE
    return _PUSH_MESSAGES[language], _OTP_MESSAGES[language]
