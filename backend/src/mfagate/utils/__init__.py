"""Utility modules for the MFA gateway."""

from mfagate.utils.parsers import (
    first_value,
    get_header,
    parse_bool,
    parse_csv,
    parse_groups,
    parse_int,
    parse_int_list,
)
from mfagate.utils.responses import json_response
from mfagate.utils.logging import (
    configure_logging,
    get_gated_logger,
    get_logger,
    hash_for_correlation,
    mask_pii,
    set_request_context,
    clear_request_context,
)

__all__ = [
    "clear_request_context",
    "configure_logging",
    "first_value",
    "get_gated_logger",
    "get_header",
    "get_logger",
    "hash_for_correlation",
    "json_response",
    "mask_pii",
    "parse_bool",
    "parse_csv",
    "parse_groups",
    "parse_int",
    "parse_int_list",
    "set_request_context",
]
