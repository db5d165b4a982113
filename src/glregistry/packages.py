"""
GitLab generic package upload.

Uploads one file to
``/api/v4/projects/{project}/packages/generic/{name}/{version}/{filename}``
with a PUT, authenticated either with a token exchanged at a discovered realm
or, when the API does not issue a challenge, with the supplied token directly.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import httpx

from .auth import AuthNegotiator, AuthSession, LongLivedCredential
from .errors import ConfigurationError
from .fetcher import RequestContext, ResilientFetcher
from .registry import base_url_for
from .settings import DEFAULT_PACKAGE_SCOPE, Settings

__all__ = [
    "PackageUpload",
    "UploadResult",
    "encode_segment",
    "package_probe_url",
    "package_upload_url",
    "upload_generic_package",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageUpload:
    """Coordinates of one generic package file."""
    gitlab_url: str
    project: str
    name: str
    version: str
    file_path: Path

    @property
    def filename(self) -> str:
        return self.file_path.name


@dataclass
class UploadResult:
    url: str
    status_code: int
    size: int
    attempts: int
    direct: bool


def encode_segment(value: str) -> str:
    """
    Percent-encode one URL path segment, slashes included.

    Examples:
        >>> encode_segment("mygroup/myproject")
        'mygroup%2Fmyproject'
    """
    return quote(value, safe="")


def package_probe_url(base_url: str, project: str) -> str:
    """Endpoint probed for an auth challenge before uploading."""
    return f"{base_url}/api/v4/projects/{encode_segment(project)}/packages"


def package_upload_url(base_url: str, project: str, name: str, version: str, filename: str) -> str:
    return (
        f"{base_url}/api/v4/projects/{encode_segment(project)}/packages/generic/"
        f"{encode_segment(name)}/{encode_segment(version)}/{encode_segment(filename)}"
    )


def upload_generic_package(http: httpx.Client, settings: Settings, upload: PackageUpload,
                           long_lived: LongLivedCredential, *,
                           scope: Optional[str] = None,
                           realm_override: Optional[str] = None,
                           service_override: Optional[str] = None) -> UploadResult:
    """
    Upload a file as a generic package.

    Args:
        http: HTTP client
        settings: Tool settings (timeouts, retries, default scope)
        upload: Package coordinates and local file
        long_lived: Operator-supplied token
        scope: Token scope (defaults to ``settings.package_scope``)
        realm_override: Token realm forced by the operator
        service_override: Token service forced by the operator

    Returns:
        UploadResult for the successful PUT

    Raises:
        ConfigurationError: If the file does not exist
        CredentialUnavailable: If a token exchange fails
        HTTPStatusError: If the upload is rejected
    """
    file_path = Path(upload.file_path)
    if not file_path.is_file():
        raise ConfigurationError(f"File to upload not found: {file_path}")

    scope = scope or settings.package_scope
    if scope == DEFAULT_PACKAGE_SCOPE:
        logger.warning(
            f"Requesting the broad '{scope}' token scope for a package upload; "
            "pass a narrower --scope if your GitLab instance supports one"
        )

    base_url = base_url_for(upload.gitlab_url, settings.insecure)
    session = AuthSession.establish(
        AuthNegotiator(http),
        long_lived,
        probe_url=package_probe_url(base_url, upload.project),
        scope=scope,
        realm_override=realm_override,
        service_override=service_override,
    )
    if session.direct:
        logger.info("Using direct token authentication")

    url = package_upload_url(base_url, upload.project, upload.name, upload.version, upload.filename)
    logger.info(f"Upload URL: {url}")

    fetcher = ResilientFetcher(http, http_retry=settings.http_retry)
    result = fetcher.fetch_with_retry(
        RequestContext(target_url=url, method="PUT", upload_path=file_path),
        session,
    )
    logger.info(f"File uploaded successfully (HTTP {result.status_code})")

    return UploadResult(
        url=url,
        status_code=result.status_code,
        size=file_path.stat().st_size,
        attempts=result.attempts,
        direct=session.direct,
    )
