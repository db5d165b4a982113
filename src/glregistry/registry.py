"""
Registry client for the OCI Distribution API.

Builds ``/v2/`` URLs for one repository and fetches manifests and blobs
through the ResilientFetcher, so every request shares one AuthSession.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

import httpx

from .auth import AuthNegotiator, AuthSession, LongLivedCredential, registry_pull_scope
from .fetcher import FetchResult, RequestContext, ResilientFetcher
from .media_types import ACCEPT_ANY_MANIFEST, ACCEPT_BLOB
from .settings import Settings

__all__ = ["RegistryClient", "base_url_for"]

logger = logging.getLogger(__name__)


def base_url_for(host: str, insecure: bool = False) -> str:
    """
    Normalize a host or URL into a base URL without trailing slash.

    Examples:
        >>> base_url_for("registry.gitlab.com")
        'https://registry.gitlab.com'

        >>> base_url_for("https://gitlab.example.com/")
        'https://gitlab.example.com'
    """
    host = host.strip()
    if "://" in host:
        host = host.split("://", 1)[1]
    host = host.rstrip("/")
    scheme = "http" if insecure else "https"
    return f"{scheme}://{host}"


class RegistryClient:
    """
    Container registry access for a single image repository.

    Usage:
        client = RegistryClient.connect(http, settings, "registry.gitlab.com",
                                        "group/project/image", credential)
        result = client.get_manifest("latest")
    """

    def __init__(self, base_url: str, image_path: str, session: AuthSession, fetcher: ResilientFetcher):
        """
        Args:
            base_url: Registry base URL (e.g., "https://registry.gitlab.com")
            image_path: Repository path (e.g., "group/project/image")
            session: Auth session shared by every request
            fetcher: Fetcher performing the requests
        """
        self.base_url = base_url
        self.image_path = image_path.strip("/")
        self.session = session
        self.fetcher = fetcher

    @classmethod
    def connect(cls, http: httpx.Client, settings: Settings, registry: str, image_path: str,
                long_lived: LongLivedCredential, *,
                realm_override: Optional[str] = None,
                service_override: Optional[str] = None) -> RegistryClient:
        """
        Discover registry auth and return a ready client.

        Probes ``/v2/`` for a challenge (unless both overrides are given) and
        scopes tokens to ``repository:<image_path>:pull``.
        """
        base_url = base_url_for(registry, settings.insecure)
        image_path = image_path.strip("/")
        negotiator = AuthNegotiator(http)
        session = AuthSession.establish(
            negotiator,
            long_lived,
            probe_url=f"{base_url}/v2/",
            scope=registry_pull_scope(image_path),
            realm_override=realm_override,
            service_override=service_override,
            default_service=settings.default_service,
        )
        if session.challenge is not None:
            logger.info(f"Using token realm {session.challenge.realm} (service {session.challenge.service})")
        fetcher = ResilientFetcher(http, http_retry=settings.http_retry)
        return cls(base_url, image_path, session, fetcher)

    def manifest_url(self, reference: str) -> str:
        return f"{self.base_url}/v2/{self.image_path}/manifests/{reference}"

    def blob_url(self, digest: str) -> str:
        return f"{self.base_url}/v2/{self.image_path}/blobs/{digest}"

    def get_manifest(self, reference: str, accept: Tuple[str, ...] = ACCEPT_ANY_MANIFEST) -> FetchResult:
        """
        Fetch a manifest by tag or digest into memory.

        Raises:
            HTTPStatusError: If the registry answers non-2xx
            CredentialUnavailable: If no token can be obtained
        """
        request = RequestContext(target_url=self.manifest_url(reference), accept_media_types=tuple(accept))
        return self.fetcher.fetch_with_retry(request, self.session)

    def get_blob(self, digest: str, output: Path, accept: Tuple[str, ...] = ACCEPT_BLOB) -> FetchResult:
        """Stream a blob to ``output``."""
        request = RequestContext(
            target_url=self.blob_url(digest),
            accept_media_types=tuple(accept),
            output_destination=Path(output),
        )
        return self.fetcher.fetch_with_retry(request, self.session)
