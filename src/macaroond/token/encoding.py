"""Text encoding of access token sets.

A token set is carried in the ``Authorization`` header and in the
``MACAROON_ACCESS_TOKEN`` environment variable. :func:`encode_token_set`
produces unpadded base64url of a JSON array. :func:`parse_token_set` is
lenient and accepts:

- a JSON object holding a single token;
- a JSON array of tokens;
- standard or URL-safe base64 (padded or not) of either of the above.
"""
from __future__ import annotations

import base64
import binascii
import json

from macaroond.errors import InvalidTokenError
from macaroond.fileio import b64decode_any
from macaroond.token.access_token import AccessToken


def encode_token_set(tokens: list[AccessToken]) -> str:
    """Encode *tokens* as unpadded base64url JSON."""
    data = json.dumps([token.to_dict() for token in tokens], separators=(",", ":"))
    return base64.urlsafe_b64encode(data.encode("utf-8")).decode("ascii").rstrip("=")


def parse_token_set(text: str) -> list[AccessToken]:
    """Parse a token set in any of the accepted forms.

    On success the returned list always holds at least one token.

    Raises
    ------
    InvalidTokenError
        If *text* is empty, is not decodable, or holds no tokens.
    """
    text = text.strip()
    if not text:
        raise InvalidTokenError("no access tokens found")
    if text[0] in "[{":
        raw = text
    else:
        try:
            raw = b64decode_any(text).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
            raise InvalidTokenError("invalid base64 encoding of access token") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidTokenError(f"invalid access token JSON: {exc}") from exc

    if isinstance(data, dict):
        return [AccessToken.from_dict(data)]
    if not isinstance(data, list):
        raise InvalidTokenError("access token must be a JSON object or array")
    if not data:
        raise InvalidTokenError("empty access token array")
    tokens: list[AccessToken] = []
    for item in data:
        if not isinstance(item, dict):
            raise InvalidTokenError("access token array must hold objects")
        tokens.append(AccessToken.from_dict(item))
    return tokens


__all__ = ["encode_token_set", "parse_token_set"]
