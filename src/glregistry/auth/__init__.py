"""
Registry authentication: credentials, challenge parsing, token negotiation
and the per-invocation session.
"""
from .challenge import parse_challenge
from .credentials import (
    AuthChallenge,
    Credential,
    LongLivedCredential,
    ShortLivedCredential,
    authorization_header,
)
from .negotiator import AuthNegotiator, registry_pull_scope
from .session import AuthSession

__all__ = [
    "AuthChallenge",
    "AuthNegotiator",
    "AuthSession",
    "Credential",
    "LongLivedCredential",
    "ShortLivedCredential",
    "authorization_header",
    "parse_challenge",
    "registry_pull_scope",
]
