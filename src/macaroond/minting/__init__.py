"""Minting and checking macaroons against a root key store."""
from __future__ import annotations

from macaroond.minting.oven import (
    TIME_BEFORE,
    MacaroonIdentifier,
    Oven,
    parse_macaroon,
    serialize_macaroon,
    time_before_caveat,
)

__all__ = [
    "MacaroonIdentifier",
    "Oven",
    "TIME_BEFORE",
    "parse_macaroon",
    "serialize_macaroon",
    "time_before_caveat",
]
