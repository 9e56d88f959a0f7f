"""Tests for the DynamoDB-backed session notes."""

from __future__ import annotations

import time
from typing import Any

import pytest

from mfagate.auth.session import SessionState
from mfagate.auth.session import discard
from mfagate.exceptions import ConfigurationError
from mfagate.exceptions import SessionError
from mfagate.services.session_store import DynamoDBSessionNotes
from mfagate.services.session_store import new_attempt_id


class StubDynamoDB:
    """Minimal stand-in for the low-level DynamoDB client."""

    def __init__(self) -> None:
        self.items: dict[str, dict[str, Any]] = {}
        self.puts = 0

    def put_item(self, TableName: str, Item: dict[str, Any]) -> None:
        self.puts += 1
        self.items[Item['attempt_id']['S']] = Item

    def get_item(self, TableName: str, Key: dict[str, Any], ConsistentRead: bool) -> dict:
        item = self.items.get(Key['attempt_id']['S'])
        return {'Item': item} if item else {}

    def delete_item(self, TableName: str, Key: dict[str, Any]) -> None:
        self.items.pop(Key['attempt_id']['S'], None)


@pytest.fixture
def dynamodb() -> StubDynamoDB:
    return StubDynamoDB()


def _create(dynamodb: StubDynamoDB, attempt_id: str, owner: str = 'alice') -> DynamoDBSessionNotes:
    return DynamoDBSessionNotes.create(
        attempt_id, owner, table_name='sessions', client=dynamodb
    )


def _open(dynamodb: StubDynamoDB, attempt_id: str, owner: str = 'alice') -> DynamoDBSessionNotes:
    return DynamoDBSessionNotes.open(
        attempt_id, owner, table_name='sessions', client=dynamodb
    )


class TestDynamoDBSessionNotes:
    def test_requires_table_name(self, dynamodb, monkeypatch) -> None:
        monkeypatch.delenv('MFA_SESSION_TABLE', raising=False)
        with pytest.raises(ConfigurationError):
            DynamoDBSessionNotes('a1', 'alice', client=dynamodb)

    def test_flush_writes_once_and_reopens(self, dynamodb) -> None:
        notes = _create(dynamodb, 'a1')
        SessionState('tx-1', 'de', 2).save(notes)
        assert dynamodb.puts == 0

        notes.flush()
        assert dynamodb.puts == 1
        item = dynamodb.items['a1']
        assert item['owner'] == {'S': 'alice'}
        assert item['notes']['M']['pi.transaction_id'] == {'S': 'tx-1'}
        assert int(item['expires_at']['N']) > int(time.time())

        reopened = _open(dynamodb, 'a1')
        assert SessionState.load(reopened) == SessionState('tx-1', 'de', 2)

    def test_flush_without_changes_is_noop(self, dynamodb) -> None:
        notes = _create(dynamodb, 'a1')
        notes.set('pi.auth_counter', '1')
        notes.flush()

        reopened = _open(dynamodb, 'a1')
        reopened.set('pi.auth_counter', '1')
        reopened.flush()
        assert dynamodb.puts == 1

    def test_create_writes_empty_attempt_on_flush(self, dynamodb) -> None:
        _create(dynamodb, 'a1').flush()
        assert dynamodb.items['a1']['notes']['M'] == {}

    def test_other_owner_rejected(self, dynamodb) -> None:
        notes = _create(dynamodb, 'a1')
        notes.set('pi.transaction_id', 'tx-1')
        notes.flush()

        with pytest.raises(SessionError):
            _open(dynamodb, 'a1', owner='mallory')
        assert dynamodb.items['a1']['notes']['M'] == {'pi.transaction_id': {'S': 'tx-1'}}

    def test_unknown_attempt_raises(self, dynamodb) -> None:
        with pytest.raises(SessionError):
            _open(dynamodb, 'missing')

    def test_expired_attempt_raises(self, dynamodb) -> None:
        notes = _create(dynamodb, 'a2')
        notes.set('pi.auth_counter', '0')
        notes.flush()
        dynamodb.items['a2']['expires_at'] = {'N': str(int(time.time()) - 5)}
        with pytest.raises(SessionError):
            _open(dynamodb, 'a2')

    def test_remove_and_delete(self, dynamodb) -> None:
        notes = _create(dynamodb, 'a3')
        SessionState('tx', 'en', 1).save(notes)
        notes.flush()

        discard(notes)
        notes.flush()
        assert dynamodb.puts == 2
        assert dynamodb.items['a3']['notes']['M'] == {}

        notes.delete()
        assert 'a3' not in dynamodb.items

    def test_ttl_from_environment(self, dynamodb, monkeypatch) -> None:
        monkeypatch.setenv('MFA_SESSION_TTL_SECONDS', '60')
        notes = DynamoDBSessionNotes('a4', 'alice', table_name='sessions', client=dynamodb)
        assert notes.ttl_seconds == 60

    def test_invalid_ttl_falls_back(self, dynamodb, monkeypatch) -> None:
        monkeypatch.setenv('MFA_SESSION_TTL_SECONDS', 'soon')
        notes = DynamoDBSessionNotes('a5', 'alice', table_name='sessions', client=dynamodb)
        assert notes.ttl_seconds == 600


def test_new_attempt_ids_are_unique() -> None:
    assert new_attempt_id() != new_attempt_id()
