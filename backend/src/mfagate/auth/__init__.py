"""Second-factor challenge-response flow."""

from mfagate.auth.challenge import (
    BackendClient,
    Challenge,
    ChallengeResult,
    RolloutInfo,
    TokenInfo,
)
from mfagate.auth.evaluator import evaluate
from mfagate.auth.forms import (
    FormSubmission,
    Outcome,
    OutcomeStatus,
    RenderState,
)
from mfagate.auth.initiator import PrimaryAuthContext, initiate
from mfagate.auth.polling import poll_interval
from mfagate.auth.session import InMemorySessionNotes, SessionNotes, SessionState

__all__ = [
    "BackendClient",
    "Challenge",
    "ChallengeResult",
    "FormSubmission",
    "InMemorySessionNotes",
    "Outcome",
    "OutcomeStatus",
    "PrimaryAuthContext",
    "RenderState",
    "RolloutInfo",
    "SessionNotes",
    "SessionState",
    "TokenInfo",
    "evaluate",
    "initiate",
    "poll_interval",
]
