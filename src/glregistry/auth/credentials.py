"""
Credential and challenge value types.

A credential is either the long-lived token the operator supplied (a GitLab
PAT, deploy token or CI job token, optionally with a username) or a
short-lived bearer token issued by the registry's token endpoint.
"""
from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Optional, Union

__all__ = [
    "LongLivedCredential",
    "ShortLivedCredential",
    "Credential",
    "AuthChallenge",
    "authorization_header",
]


@dataclass(frozen=True)
class LongLivedCredential:
    """Operator-supplied token, sent as Basic when a username is present, Bearer otherwise."""
    token: str = field(repr=False)
    username: Optional[str] = None

    @property
    def uses_basic(self) -> bool:
        return bool(self.username)


@dataclass(frozen=True)
class ShortLivedCredential:
    """Bearer token from a token endpoint. Expiry is unknown; a 401 is the only signal."""
    token: str = field(repr=False)


Credential = Union[LongLivedCredential, ShortLivedCredential]


@dataclass(frozen=True)
class AuthChallenge:
    """Parameters of a ``WWW-Authenticate: Bearer ...`` challenge."""
    realm: str
    service: Optional[str] = None
    scope: Optional[str] = None


def authorization_header(credential: Credential) -> str:
    """
    Render a credential as an ``Authorization`` header value.

    Examples:
        >>> authorization_header(ShortLivedCredential("abc"))
        'Bearer abc'

        >>> authorization_header(LongLivedCredential("pw", username="bob"))
        'Basic Ym9iOnB3'
    """
    if isinstance(credential, LongLivedCredential) and credential.uses_basic:
        raw = f"{credential.username}:{credential.token}".encode()
        return f"Basic {base64.b64encode(raw).decode()}"
    return f"Bearer {credential.token}"
