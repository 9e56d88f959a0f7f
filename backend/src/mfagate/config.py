"""Authenticator configuration.

The configuration arrives as a flat string map (the same keys whether
they come from an admin-managed map or from environment variables) and
is parsed once into an immutable value that both phases of an attempt
receive explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from dataclasses import field
from typing import Mapping
from typing import Optional

from mfagate.utils.logging import get_logger
from mfagate.utils.parsers import parse_bool
from mfagate.utils.parsers import parse_csv
from mfagate.utils.parsers import parse_int_list

logger = get_logger(__name__)

TOKEN_TYPE_OTP = "otp"
TOKEN_TYPE_PUSH = "push"
TOKEN_TYPE_WEBAUTHN = "webauthn"

DEFAULT_POLLING_INTERVALS: tuple[int, ...] = (4, 2, 2, 2, 3)
DEFAULT_POLLING_INTERVAL = 2

CONFIG_SERVER = "pi_server"
CONFIG_REALM = "pi_realm"
CONFIG_VERIFY_SSL = "pi_verify_ssl"
CONFIG_SERVICE_ACCOUNT = "pi_service_account"
CONFIG_SERVICE_PASS = "pi_service_pass"
CONFIG_SERVICE_REALM = "pi_service_realm"
CONFIG_TRIGGER_CHALLENGE = "pi_do_trigger_challenge"
CONFIG_SEND_PASSWORD = "pi_send_password"
CONFIG_EXCLUDED_GROUPS = "pi_exclude_groups"
CONFIG_ENROLL_TOKEN = "pi_enroll_token"
CONFIG_ENROLL_TOKEN_TYPE = "pi_enroll_token_type"
CONFIG_PREFERRED_TOKEN_TYPE = "pi_preferred_token_type"
CONFIG_POLLING_INTERVAL = "pi_polling_interval"
CONFIG_DO_LOG = "pi_do_log"

CONFIG_KEYS = (
    CONFIG_SERVER,
    CONFIG_REALM,
    CONFIG_VERIFY_SSL,
    CONFIG_SERVICE_ACCOUNT,
    CONFIG_SERVICE_PASS,
    CONFIG_SERVICE_REALM,
    CONFIG_TRIGGER_CHALLENGE,
    CONFIG_SEND_PASSWORD,
    CONFIG_EXCLUDED_GROUPS,
    CONFIG_ENROLL_TOKEN,
    CONFIG_ENROLL_TOKEN_TYPE,
    CONFIG_PREFERRED_TOKEN_TYPE,
    CONFIG_POLLING_INTERVAL,
    CONFIG_DO_LOG,
)

SERVICE_PASS_SECRET_ENV = "PI_SERVICE_PASS_SECRET_ARN"


@dataclass(frozen=True)
class Configuration:
    """Immutable authenticator settings for one attempt."""

    server_url: str = ""
    realm: str = ""
    verify_ssl: bool = False
    service_account: str = ""
    service_password: str = field(default="", repr=False)
    service_realm: str = ""
    trigger_challenge: bool = False
    send_password: bool = False
    excluded_groups: frozenset[str] = frozenset()
    enroll_token: bool = False
    enrolling_token_type: str = ""
    preferred_token_type: str = TOKEN_TYPE_OTP
    polling_intervals: tuple[int, ...] = DEFAULT_POLLING_INTERVALS
    do_log: bool = False

    def __post_init__(self) -> None:
        if not self.polling_intervals:
            object.__setattr__(
                self, "polling_intervals", DEFAULT_POLLING_INTERVALS
            )

    @property
    def has_service_account(self) -> bool:
        return bool(self.service_account and self.service_password)

    @classmethod
    def from_mapping(cls, config_map: Mapping[str, str]) -> "Configuration":
        """Parse a flat key-value configuration map.

        Malformed polling interval entries are replaced by the default
        interval; the rest of the parse never fails.
        """
        raw_intervals = config_map.get(CONFIG_POLLING_INTERVAL)
        if raw_intervals is None:
            intervals = DEFAULT_POLLING_INTERVALS
        else:
            intervals = tuple(
                parse_int_list(raw_intervals, fallback=DEFAULT_POLLING_INTERVAL)
            )

        return cls(
            server_url=(config_map.get(CONFIG_SERVER) or "").rstrip("/"),
            realm=config_map.get(CONFIG_REALM, ""),
            verify_ssl=parse_bool(config_map.get(CONFIG_VERIFY_SSL)),
            service_account=config_map.get(CONFIG_SERVICE_ACCOUNT, ""),
            service_password=config_map.get(CONFIG_SERVICE_PASS, ""),
            service_realm=config_map.get(CONFIG_SERVICE_REALM, ""),
            trigger_challenge=parse_bool(config_map.get(CONFIG_TRIGGER_CHALLENGE)),
            send_password=parse_bool(config_map.get(CONFIG_SEND_PASSWORD)),
            excluded_groups=frozenset(
                parse_csv(config_map.get(CONFIG_EXCLUDED_GROUPS))
            ),
            enroll_token=parse_bool(config_map.get(CONFIG_ENROLL_TOKEN)),
            # Token types are lower case on the backend side
            enrolling_token_type=config_map.get(CONFIG_ENROLL_TOKEN_TYPE, "").lower(),
            preferred_token_type=(
                config_map.get(CONFIG_PREFERRED_TOKEN_TYPE) or TOKEN_TYPE_OTP
            ).lower(),
            polling_intervals=intervals,
            do_log=parse_bool(config_map.get(CONFIG_DO_LOG)),
        )

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Configuration":
        """Build the configuration from upper-cased environment variables.

        When ``PI_SERVICE_PASS_SECRET_ARN`` is set the service-account
        password is read from Secrets Manager instead of ``PI_SERVICE_PASS``.
        """
        env = os.environ if environ is None else environ
        config_map = {
            key: env[key.upper()] for key in CONFIG_KEYS if key.upper() in env
        }

        secret_arn = env.get(SERVICE_PASS_SECRET_ENV)
        if secret_arn:
            from mfagate.services.secrets import get_service_password

            config_map[CONFIG_SERVICE_PASS] = get_service_password(secret_arn)

        config = cls.from_mapping(config_map)
        if config.trigger_challenge and not config.has_service_account:
            logger.warning(
                "Challenge triggering is enabled without a service account"
            )
        return config
