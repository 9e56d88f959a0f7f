"""Per-attempt session state carried between round-trips.

The surrounding session store only knows string notes. ``SessionState``
is the typed view over the three notes this flow owns; everything else
works on the record.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from typing import Protocol

NOTE_TRANSACTION_ID = "pi.transaction_id"
NOTE_ACCEPT_LANGUAGE = "pi.accept_language"
NOTE_AUTH_COUNTER = "pi.auth_counter"

SESSION_NOTES = (NOTE_TRANSACTION_ID, NOTE_ACCEPT_LANGUAGE, NOTE_AUTH_COUNTER)


class SessionNotes(Protocol):
    """String-keyed, string-valued notes isolated to one attempt."""

    def get(self, note: str) -> Optional[str]: ...

    def set(self, note: str, value: str) -> None: ...

    def remove(self, note: str) -> None: ...


class InMemorySessionNotes:
    """Dict-backed notes for tests and local runs."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self.notes: dict[str, str] = dict(initial or {})

    def get(self, note: str) -> Optional[str]:
        return self.notes.get(note)

    def set(self, note: str, value: str) -> None:
        self.notes[note] = value

    def remove(self, note: str) -> None:
        self.notes.pop(note, None)


@dataclass
class SessionState:
    """Typed record of one attempt's progress."""

    transaction_id: Optional[str] = None
    accept_language: str = ""
    auth_counter: int = 0

    @property
    def has_transaction(self) -> bool:
        return bool(self.transaction_id)

    @property
    def language_headers(self) -> dict[str, str]:
        """Accept-Language header to forward to the backend."""
        if not self.accept_language:
            return {}
        return {"Accept-Language": self.accept_language}

    @classmethod
    def load(cls, notes: SessionNotes) -> "SessionState":
        raw_counter = notes.get(NOTE_AUTH_COUNTER)
        try:
            counter = max(int(raw_counter), 0) if raw_counter else 0
        except ValueError:
            counter = 0
        return cls(
            transaction_id=notes.get(NOTE_TRANSACTION_ID) or None,
            accept_language=notes.get(NOTE_ACCEPT_LANGUAGE) or "",
            auth_counter=counter,
        )

    def save(self, notes: SessionNotes) -> None:
        notes.set(NOTE_AUTH_COUNTER, str(self.auth_counter))
        notes.set(NOTE_ACCEPT_LANGUAGE, self.accept_language)
        if self.transaction_id:
            notes.set(NOTE_TRANSACTION_ID, self.transaction_id)
        else:
            notes.remove(NOTE_TRANSACTION_ID)


def discard(notes: SessionNotes) -> None:
    """Drop everything this flow stored for the attempt."""
    for note in SESSION_NOTES:
        notes.remove(note)
