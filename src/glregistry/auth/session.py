"""
Per-invocation authentication state.

AuthSession owns the single active credential for one command run. It is
passed explicitly to the fetcher; nothing about it is global.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from ..errors import AuthExchangeError, CredentialUnavailable
from .credentials import AuthChallenge, Credential, LongLivedCredential
from .negotiator import AuthNegotiator

__all__ = ["AuthSession"]

logger = logging.getLogger(__name__)


class AuthSession:
    """
    Holds the current credential and knows how to refresh it.

    Two modes:

    - token mode (``direct=False``): the credential is a short-lived bearer
      token obtained from the negotiator; ``invalidate()`` drops it and the
      next ``current_credential()`` call exchanges a fresh one.
    - direct mode (``direct=True``): the long-lived credential is used as-is
      and can never be refreshed.
    """

    def __init__(self, negotiator: Optional[AuthNegotiator], long_lived: LongLivedCredential, *,
                 challenge: Optional[AuthChallenge] = None, scope: Optional[str] = None):
        self.negotiator = negotiator
        self.long_lived = long_lived
        self.challenge = challenge
        self.scope = scope
        self.credential: Optional[Credential] = None

        if self.direct:
            self.credential = long_lived

    @property
    def direct(self) -> bool:
        """True when no token exchange takes place."""
        return self.negotiator is None or self.challenge is None

    @classmethod
    def establish(cls, negotiator: AuthNegotiator, long_lived: LongLivedCredential, *,
                  probe_url: str, scope: str,
                  realm_override: Optional[str] = None,
                  service_override: Optional[str] = None,
                  default_service: Optional[str] = None) -> AuthSession:
        """
        Build a session by discovery, operator overrides, or both.

        Discovery is skipped when both realm and service are overridden.
        Overrides always win over discovered values. When no realm is known
        afterwards the session runs in direct mode.

        Args:
            negotiator: Negotiator used for discovery and exchange
            long_lived: Operator-supplied credential
            probe_url: Endpoint probed for a challenge
            scope: Scope requested in every exchange
            realm_override: Realm forced by the operator
            service_override: Service forced by the operator
            default_service: Service used when neither challenge nor operator sets one
        """
        challenge: Optional[AuthChallenge] = None
        if realm_override and service_override:
            logger.info("Using operator-provided auth realm and service")
        else:
            challenge = negotiator.discover(probe_url, long_lived, default_service=default_service)

        if realm_override:
            logger.info(f"Overriding auth realm with {realm_override}")
            if challenge is None:
                challenge = AuthChallenge(realm=realm_override)
            else:
                challenge = replace(challenge, realm=realm_override)

        if challenge is not None:
            if service_override:
                logger.info(f"Overriding auth service with {service_override}")
                challenge = replace(challenge, service=service_override)
            elif not challenge.service and default_service:
                logger.warning(f"Auth service is not set, defaulting to '{default_service}'")
                challenge = replace(challenge, service=default_service)
            return cls(negotiator, long_lived, challenge=challenge, scope=scope)

        logger.warning("No token realm discovered or provided; using the supplied token directly")
        return cls(None, long_lived, scope=scope)

    def current_credential(self) -> Credential:
        """
        Return the active credential, exchanging for one if none is held.

        Raises:
            CredentialUnavailable: If the token exchange fails
        """
        if self.credential is None:
            logger.info("No active registry token, requesting one")
            try:
                self.credential = self.negotiator.exchange(self.challenge, self.long_lived, self.scope)
            except AuthExchangeError as e:
                raise CredentialUnavailable(f"Failed to obtain registry token: {e}") from e
        return self.credential

    def invalidate(self) -> None:
        """Discard the current short-lived credential. No-op in direct mode."""
        if not self.direct:
            self.credential = None
