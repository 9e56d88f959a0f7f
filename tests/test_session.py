"""Tests for the typed session record over string notes."""

from __future__ import annotations

from mfagate.auth.session import NOTE_ACCEPT_LANGUAGE
from mfagate.auth.session import NOTE_AUTH_COUNTER
from mfagate.auth.session import NOTE_TRANSACTION_ID
from mfagate.auth.session import InMemorySessionNotes
from mfagate.auth.session import SessionState
from mfagate.auth.session import discard


class TestSessionState:
    """Tests for SessionState load/save."""

    def test_round_trips_through_notes(self) -> None:
        notes = InMemorySessionNotes()
        SessionState('tx-9', 'de-DE,de;q=0.9', 3).save(notes)
        assert notes.notes == {
            NOTE_TRANSACTION_ID: 'tx-9',
            NOTE_ACCEPT_LANGUAGE: 'de-DE,de;q=0.9',
            NOTE_AUTH_COUNTER: '3',
        }
        assert SessionState.load(notes) == SessionState('tx-9', 'de-DE,de;q=0.9', 3)

    def test_missing_notes_load_as_defaults(self) -> None:
        state = SessionState.load(InMemorySessionNotes())
        assert state.transaction_id is None
        assert state.accept_language == ''
        assert state.auth_counter == 0
        assert not state.has_transaction

    def test_bad_counter_loads_as_zero(self) -> None:
        notes = InMemorySessionNotes({NOTE_AUTH_COUNTER: 'many'})
        assert SessionState.load(notes).auth_counter == 0

    def test_empty_transaction_is_not_stored(self) -> None:
        notes = InMemorySessionNotes({NOTE_TRANSACTION_ID: 'old'})
        SessionState(None, 'en', 0).save(notes)
        assert NOTE_TRANSACTION_ID not in notes.notes

    def test_language_headers(self) -> None:
        assert SessionState(accept_language='de').language_headers == {
            'Accept-Language': 'de'
        }
        assert SessionState().language_headers == {}


class TestDiscard:
    """Tests for discard."""

    def test_removes_only_flow_notes(self) -> None:
        notes = InMemorySessionNotes({'other': 'keep'})
        SessionState('tx', 'en', 1).save(notes)
        discard(notes)
        assert notes.notes == {'other': 'keep'}
