"""Daemon-side custody of the password-sealed master key."""
from __future__ import annotations

from macaroond.custody.custodian import MASTER_KEY_FILENAME, CustodianState, MasterKeyCustodian

__all__ = ["CustodianState", "MASTER_KEY_FILENAME", "MasterKeyCustodian"]
