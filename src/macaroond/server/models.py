"""Pydantic request/response models for the macaroond HTTP server.

Binary values (key ids and keys) travel as standard base64 strings.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AccessRequest(BaseModel):
    """Request body for POST /macaroon."""

    password: str = ""


class AccessResponse(BaseModel):
    """Response body for POST /macaroon."""

    macaroon: dict[str, object]


class SetPasswordRequest(BaseModel):
    """Request body for PUT /password."""

    model_config = ConfigDict(populate_by_name=True)

    old_password: str = Field(default="", alias="oldPassword")
    new_password: str = Field(alias="newPassword")


class NewRootKeyResponse(BaseModel):
    """Response body for POST /key."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    root_key: str = Field(alias="rootKey")


class FindRootKeyResponse(BaseModel):
    """Response body for GET /key/{id}."""

    model_config = ConfigDict(populate_by_name=True)

    root_key: str = Field(alias="rootKey")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    code: str
    detail: str = ""


__all__ = [
    "AccessRequest",
    "AccessResponse",
    "SetPasswordRequest",
    "NewRootKeyResponse",
    "FindRootKeyResponse",
    "ErrorResponse",
]
