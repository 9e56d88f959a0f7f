"""Tests for group membership lookup."""

from __future__ import annotations

from typing import Any

from mfagate.services.groups import resolve_groups


class StubCognito:
    def __init__(self, pages: list[dict[str, Any]]) -> None:
        self.pages = pages
        self.calls: list[dict[str, Any]] = []

    def admin_list_groups_for_user(self, **params: Any) -> dict[str, Any]:
        self.calls.append(params)
        return self.pages[len(self.calls) - 1]


class TestResolveGroups:
    def test_uses_claim_string(self) -> None:
        claims = {'cognito:groups': 'admin,staff'}
        assert resolve_groups(claims, 'alice') == ['admin', 'staff']

    def test_uses_claim_list(self) -> None:
        claims = {'cognito:groups': ['admin', ' staff ']}
        assert resolve_groups(claims, 'alice') == ['admin', 'staff']

    def test_empty_claim_means_no_groups(self) -> None:
        cognito = StubCognito([])
        assert resolve_groups({'cognito:groups': ''}, 'alice', 'pool', cognito) == []
        assert cognito.calls == []

    def test_without_claim_or_pool(self) -> None:
        assert resolve_groups({}, 'alice') == []

    def test_pages_through_cognito(self) -> None:
        cognito = StubCognito(
            [
                {'Groups': [{'GroupName': 'staff'}], 'NextToken': 'n1'},
                {'Groups': [{'GroupName': 'robots'}]},
            ]
        )
        groups = resolve_groups({}, 'alice', 'pool-1', cognito)
        assert groups == ['staff', 'robots']
        assert cognito.calls[1] == {
            'UserPoolId': 'pool-1',
            'Username': 'alice',
            'NextToken': 'n1',
        }
