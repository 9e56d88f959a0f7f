"""DynamoDB-backed session notes.

One item per authentication attempt::

    {"attempt_id": S, "owner": S, "notes": M<S>, "expires_at": N}

Note changes are buffered and written as a single ``put_item`` by
``flush()``. ``expires_at`` is refreshed on every flush and used as the
table's TTL attribute, so abandoned attempts disappear on their own.
"""

from __future__ import annotations

import os
import time
import uuid
from typing import Any
from typing import Optional

from mfagate.exceptions import ConfigurationError
from mfagate.exceptions import SessionError
from mfagate.services.aws_clients import get_dynamodb_client
from mfagate.utils.logging import get_logger
from mfagate.utils.logging import mask_pii

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 600


def new_attempt_id() -> str:
    """Mint an unguessable identifier for a new attempt."""
    return uuid.uuid4().hex


def _ttl_seconds() -> int:
    raw = os.getenv("MFA_SESSION_TTL_SECONDS", "")
    try:
        value = int(raw) if raw else DEFAULT_TTL_SECONDS
    except ValueError:
        logger.warning(f"Ignoring invalid MFA_SESSION_TTL_SECONDS: {raw}")
        return DEFAULT_TTL_SECONDS
    return value if value > 0 else DEFAULT_TTL_SECONDS


class DynamoDBSessionNotes:
    """Session notes of one attempt, buffered locally until ``flush()``."""

    def __init__(
        self,
        attempt_id: str,
        owner: str,
        table_name: Optional[str] = None,
        client: Any = None,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        self.attempt_id = attempt_id
        self.owner = owner
        self.table_name = table_name or os.getenv("MFA_SESSION_TABLE", "")
        if not self.table_name:
            raise ConfigurationError("MFA_SESSION_TABLE")
        self._client = client or get_dynamodb_client()
        self.ttl_seconds = ttl_seconds or _ttl_seconds()
        self._notes: dict[str, str] = {}
        self._dirty = False

    @classmethod
    def create(
        cls, attempt_id: str, owner: str, **kwargs: Any
    ) -> "DynamoDBSessionNotes":
        """Start an empty attempt owned by ``owner``.

        Nothing is written until the first ``flush()``.
        """
        store = cls(attempt_id, owner, **kwargs)
        store._dirty = True
        return store

    @classmethod
    def open(
        cls, attempt_id: str, owner: str, **kwargs: Any
    ) -> "DynamoDBSessionNotes":
        """Load an existing, unexpired attempt started by ``owner``.

        Raises:
            SessionError: If no live record exists for ``attempt_id`` or it
                belongs to someone else.
        """
        store = cls(attempt_id, owner, **kwargs)
        response = store._client.get_item(
            TableName=store.table_name,
            Key={"attempt_id": {"S": attempt_id}},
            ConsistentRead=True,
        )
        item = response.get("Item")
        if not item:
            raise SessionError(attempt_id)

        if item.get("owner", {}).get("S") != owner:
            logger.warning(
                f"Attempt requested by {mask_pii(owner)} belongs to another user"
            )
            raise SessionError(attempt_id)

        expires_at = int(item.get("expires_at", {}).get("N", "0"))
        if expires_at and expires_at < int(time.time()):
            # TTL deletion is lazy, so expired items can still be returned
            raise SessionError(attempt_id)

        raw_notes = item.get("notes", {}).get("M", {})
        store._notes = {
            key: value.get("S", "") for key, value in raw_notes.items()
        }
        return store

    def get(self, note: str) -> Optional[str]:
        return self._notes.get(note)

    def set(self, note: str, value: str) -> None:
        if self._notes.get(note) != value:
            self._notes[note] = value
            self._dirty = True

    def remove(self, note: str) -> None:
        if note in self._notes:
            del self._notes[note]
            self._dirty = True

    def flush(self) -> None:
        """Write pending changes, if any, as one item."""
        if not self._dirty:
            return
        self._client.put_item(
            TableName=self.table_name,
            Item={
                "attempt_id": {"S": self.attempt_id},
                "owner": {"S": self.owner},
                "notes": {
                    "M": {key: {"S": value} for key, value in self._notes.items()}
                },
                "expires_at": {"N": str(int(time.time()) + self.ttl_seconds)},
            },
        )
        self._dirty = False

    def delete(self) -> None:
        """Remove the whole attempt record."""
        self._notes.clear()
        self._dirty = False
        self._client.delete_item(
            TableName=self.table_name,
            Key={"attempt_id": {"S": self.attempt_id}},
        )
