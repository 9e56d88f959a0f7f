"""Pytest configuration and fixtures for the MFA gateway tests.

Provides a recording fake of the authentication backend, in-memory
session notes and a configuration factory. No test talks to the network
or to AWS.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any
from typing import Callable
from typing import Mapping
from typing import Optional

import pytest

# Add backend source to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from mfagate.auth.challenge import Challenge  # noqa: E402
from mfagate.auth.challenge import ChallengeResult  # noqa: E402
from mfagate.auth.challenge import RolloutInfo  # noqa: E402
from mfagate.auth.challenge import TokenInfo  # noqa: E402
from mfagate.auth.session import InMemorySessionNotes  # noqa: E402
from mfagate.config import Configuration  # noqa: E402


class FakeBackend:
    """Backend double that records calls and replays queued answers."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.trigger_result: Optional[ChallengeResult] = None
        self.check_results: list[ChallengeResult] = []
        self.webauthn_result: Optional[ChallengeResult] = None
        self.poll_results: list[bool] = []
        self.tokens: list[TokenInfo] = []
        self.rollout = RolloutInfo(serial='TOTP0001', qr_image='data:image/png;base64,QR')

    @property
    def call_names(self) -> list[str]:
        return [name for name, _args in self.calls]

    def trigger_challenges(
        self, username: str, headers: Mapping[str, str]
    ) -> ChallengeResult:
        self.calls.append(('trigger_challenges', (username, dict(headers))))
        assert self.trigger_result is not None
        return self.trigger_result

    def validate_check(
        self,
        username: str,
        password: str,
        transaction_id: Optional[str],
        headers: Mapping[str, str],
    ) -> ChallengeResult:
        self.calls.append(
            ('validate_check', (username, password, transaction_id, dict(headers)))
        )
        return self.check_results.pop(0)

    def validate_check_webauthn(
        self,
        username: str,
        transaction_id: Optional[str],
        sign_response: str,
        origin: str,
        headers: Mapping[str, str],
    ) -> ChallengeResult:
        self.calls.append(
            (
                'validate_check_webauthn',
                (username, transaction_id, sign_response, origin, dict(headers)),
            )
        )
        assert self.webauthn_result is not None
        return self.webauthn_result

    def poll_transaction(self, transaction_id: Optional[str]) -> bool:
        self.calls.append(('poll_transaction', (transaction_id,)))
        return self.poll_results.pop(0)

    def get_token_info(self, username: str) -> list[TokenInfo]:
        self.calls.append(('get_token_info', (username,)))
        return list(self.tokens)

    def token_rollout(self, username: str, token_type: str) -> RolloutInfo:
        self.calls.append(('token_rollout', (username, token_type)))
        return self.rollout


def challenge_result(
    *token_types: str,
    success: bool = False,
    message: str = 'Please confirm',
    transaction_id: str = 'tx-1',
) -> ChallengeResult:
    """Build a result with one pending challenge per token type."""
    challenges = tuple(
        Challenge(
            transaction_id=transaction_id,
            token_type=token_type,
            message=f'{token_type} prompt',
            serial=f'{token_type.upper()}0001',
            webauthn_sign_request=(
                '{"challenge": "abc"}' if token_type == 'webauthn' else ''
            ),
        )
        for token_type in token_types
    )
    return ChallengeResult(
        success=success,
        message=message,
        transaction_id=transaction_id if challenges else None,
        challenges=challenges,
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def notes() -> InMemorySessionNotes:
    return InMemorySessionNotes()


@pytest.fixture
def make_config() -> Callable[..., Configuration]:
    """Factory for configurations built from flat config maps."""

    def _make(**overrides: str) -> Configuration:
        config_map = {'pi_server': 'https://pi.example.com'}
        config_map.update(overrides)
        return Configuration.from_mapping(config_map)

    return _make
