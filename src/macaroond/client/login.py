"""Interactive login against macaroond.

The daemon tells a fresh install apart from a wrong password only through
the error it returns for an empty password, so login starts with that
request and runs first-time setup when the daemon asks for it.
"""
from __future__ import annotations

import logging
from collections.abc import Callable

from macaroond.client.http import MacaroondClient
from macaroond.errors import InitialPasswordNeededError, MacaroondError
from macaroond.token.access_token import AccessToken

logger = logging.getLogger(__name__)

PromptFunc = Callable[[str], str]


class PasswordMismatchError(MacaroondError):
    """Raised when the two entries of a new password differ."""


def login(client: MacaroondClient, prompt: PromptFunc) -> AccessToken:
    """Obtain an access token, setting the initial password if needed.

    Parameters
    ----------
    client:
        Client pointed at the daemon.
    prompt:
        Reads a password from the user given a prompt message.

    Returns
    -------
    AccessToken
        A token granting global access.

    Raises
    ------
    PasswordMismatchError
        If the new password was entered differently twice.
    UnauthorizedError
        If the password is wrong.
    MacaroondError
        If the daemon accepts an empty password, which it never should.
    """
    try:
        client.access("")
    except InitialPasswordNeededError:
        logger.info("macaroond has no password yet; running first-time setup")
        password = prompt("New password")
        confirm = prompt("Confirm password")
        if password != confirm:
            raise PasswordMismatchError("passwords do not match")
        client.set_password("", password)
    except MacaroondError:
        password = prompt("Password")
    else:
        raise MacaroondError("unexpected success using empty password")
    return client.access(password)


def change_password(client: MacaroondClient, prompt: PromptFunc) -> None:
    """Change the daemon password after reading old and new values."""
    old_password = prompt("Old password")
    new_password = prompt("New password")
    if new_password != prompt("Confirm password"):
        raise PasswordMismatchError("passwords do not match")
    client.set_password(old_password, new_password)


__all__ = ["PasswordMismatchError", "change_password", "login"]
