"""Group membership lookup for the MFA exclusion check."""

from __future__ import annotations

from typing import Any
from typing import Mapping
from typing import Optional

from mfagate.services.aws_clients import get_cognito_idp_client
from mfagate.utils.logging import get_logger
from mfagate.utils.logging import mask_pii
from mfagate.utils.parsers import parse_groups

logger = get_logger(__name__)

GROUPS_CLAIM = "cognito:groups"


def resolve_groups(
    claims: Mapping[str, Any],
    username: str,
    user_pool_id: Optional[str] = None,
    client: Any = None,
) -> list[str]:
    """Return the user's group names.

    The authorizer claim is used when present. Otherwise Cognito is asked
    directly, provided a user pool is configured.
    """
    if GROUPS_CLAIM in claims:
        return parse_groups(claims.get(GROUPS_CLAIM))

    if not user_pool_id:
        return []

    client = client or get_cognito_idp_client()
    groups: list[str] = []
    params: dict[str, Any] = {"UserPoolId": user_pool_id, "Username": username}
    while True:
        response = client.admin_list_groups_for_user(**params)
        groups.extend(
            group["GroupName"]
            for group in response.get("Groups", [])
            if group.get("GroupName")
        )
        next_token = response.get("NextToken")
        if not next_token:
            break
        params["NextToken"] = next_token

    logger.debug(
        f"Resolved {len(groups)} groups from Cognito for {mask_pii(username)}"
    )
    return groups
