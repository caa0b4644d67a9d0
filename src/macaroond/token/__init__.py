"""Bearer access tokens minted by the daemon after password login."""
from __future__ import annotations

from macaroond.token.access_token import GLOBAL_ACCESS, AccessToken, Operation
from macaroond.token.encoding import encode_token_set, parse_token_set

__all__ = [
    "AccessToken",
    "GLOBAL_ACCESS",
    "Operation",
    "encode_token_set",
    "parse_token_set",
]
