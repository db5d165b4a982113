"""
Docker Registry v2 token auth negotiation.

Implements the two halves of the bearer token flow GitLab uses for both the
container registry and the package API:

1. discover: probe an endpoint and read the ``WWW-Authenticate`` challenge
2. exchange: trade the long-lived token for a short-lived bearer token

The halves are independent so either can be bypassed: anonymous-capable
endpoints skip the exchange, and operators who know the realm skip discovery.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

import httpx

from ..errors import AuthDiscoveryFailure, AuthExchangeError
from .challenge import parse_challenge
from .credentials import (
    AuthChallenge,
    LongLivedCredential,
    ShortLivedCredential,
    authorization_header,
)

__all__ = ["AuthNegotiator", "registry_pull_scope"]

logger = logging.getLogger(__name__)


def registry_pull_scope(image_path: str) -> str:
    """Token scope granting pull access to one repository."""
    return f"repository:{image_path}:pull"


class AuthNegotiator:
    """
    Discovers token realms and exchanges credentials for bearer tokens.

    The negotiator is stateless apart from the HTTP client; credential state
    lives in AuthSession.
    """

    def __init__(self, client: httpx.Client):
        self.client = client

    def discover(self, probe_url: str, long_lived: Optional[LongLivedCredential] = None,
                 default_service: Optional[str] = None) -> Optional[AuthChallenge]:
        """
        Probe an endpoint for a bearer token challenge.

        Args:
            probe_url: Endpoint expected to answer 401 with a challenge
                (``https://{registry}/v2/`` for registry flows)
            long_lived: Credential sent with the probe, if any
            default_service: Service filled in when the challenge omits it

        Returns:
            AuthChallenge, or None meaning "use the long-lived credential
            directly". Discovery never raises.
        """
        try:
            return self._discover(probe_url, long_lived, default_service)
        except AuthDiscoveryFailure as e:
            logger.warning(f"{e}; falling back to direct token authentication")
            return None

    def _discover(self, probe_url: str, long_lived: Optional[LongLivedCredential],
                  default_service: Optional[str]) -> Optional[AuthChallenge]:
        logger.info(f"Discovering authentication parameters from {probe_url}")
        headers = {}
        if long_lived is not None:
            headers["Authorization"] = authorization_header(long_lived)

        try:
            response = self.client.head(probe_url, headers=headers)
        except httpx.RequestError as e:
            raise AuthDiscoveryFailure(f"Auth discovery request to {probe_url} failed: {e}") from e

        status = response.status_code
        if status == 401:
            header = response.headers.get("WWW-Authenticate")
            if not header:
                raise AuthDiscoveryFailure(
                    f"Received 401 from {probe_url} without a WWW-Authenticate header"
                )
            logger.debug(f"WWW-Authenticate: {header}")

            challenge = parse_challenge(header)
            if challenge is None:
                raise AuthDiscoveryFailure(f"Could not parse realm from WWW-Authenticate header: {header}")

            logger.info(f"Discovered realm: {challenge.realm}")
            if challenge.service:
                logger.info(f"Discovered service: {challenge.service}")
            elif default_service:
                logger.warning(
                    f"Could not parse service from WWW-Authenticate header, defaulting to '{default_service}'"
                )
                challenge = replace(challenge, service=default_service)
            else:
                logger.warning("Could not parse service from WWW-Authenticate header")
            return challenge

        if 200 <= status < 300:
            logger.info(
                f"Received {status} from {probe_url}; endpoint does not require token auth, "
                "using the supplied token directly"
            )
            return None

        raise AuthDiscoveryFailure(f"Failed to discover auth params from {probe_url}: HTTP {status}")

    def exchange(self, challenge: Optional[AuthChallenge], long_lived: LongLivedCredential,
                 scope: str) -> ShortLivedCredential:
        """
        Exchange the long-lived credential for a short-lived bearer token.

        Performs ``GET {realm}?service={service}&scope={scope}`` authenticated
        with Basic (when a username is set) or Bearer.

        Args:
            challenge: Realm and service to use
            long_lived: Operator-supplied credential
            scope: Requested grant, e.g. ``repository:group/project/image:pull``

        Returns:
            ShortLivedCredential holding the issued token

        Raises:
            AuthExchangeError: If the realm is unset, the request fails, or
                no token field is present in the response
        """
        if challenge is None or not challenge.realm:
            raise AuthExchangeError("Token realm is not set; it was neither discovered nor provided")

        params = {}
        if challenge.service:
            params["service"] = challenge.service
        else:
            logger.warning("Token service is not set; the token request may be rejected")
        params["scope"] = scope

        logger.info(f"Requesting token from {challenge.realm} (service={challenge.service}, scope={scope})")
        headers = {
            "Authorization": authorization_header(long_lived),
            "Accept": "application/json",
        }

        try:
            response = self.client.get(challenge.realm, params=params, headers=headers)
        except httpx.RequestError as e:
            raise AuthExchangeError(f"Token request to {challenge.realm} failed: {e}") from e

        context = f"realm={challenge.realm} service={challenge.service} scope={scope}"
        if not response.is_success:
            raise AuthExchangeError(
                f"Token endpoint returned HTTP {response.status_code} ({context}): {response.text}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise AuthExchangeError(f"Token endpoint returned invalid JSON ({context}): {e}") from e

        token = None
        if isinstance(body, dict):
            token = body.get("token") or body.get("access_token")
        if not token or not isinstance(token, str):
            raise AuthExchangeError(f"No token found in token endpoint response ({context})")

        logger.info("Successfully obtained registry token")
        return ShortLivedCredential(token=token)
