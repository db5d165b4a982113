"""
Registry tool error classes.

Provides a clear taxonomy of the failures that can occur while talking to a
GitLab Container Registry or the generic package API. HTTP statuses and
httpx exceptions are mapped onto these so the CLI can report them uniformly.
"""
from __future__ import annotations

from typing import Mapping, Optional


class RegistryToolError(Exception):
    """Base class for all glregistry errors."""
    pass


class ConfigurationError(RegistryToolError):
    """
    Invalid or incomplete invocation.

    Raised when:
    - Mandatory arguments are missing
    - The file to upload does not exist
    - Settings fail validation
    """
    pass


class AuthDiscoveryFailure(RegistryToolError):
    """
    The probe endpoint did not yield a usable auth challenge.

    Never propagated out of discovery: it is logged as a warning and the
    caller falls back to using the long-lived credential directly.
    """
    pass


class AuthExchangeError(RegistryToolError):
    """
    Exchanging long-lived credentials for a bearer token failed.

    Raised when:
    - The realm is unset
    - The token endpoint answers with a non-2xx status
    - The response body holds neither ``token`` nor ``access_token``
    """
    pass


class CredentialUnavailable(AuthExchangeError):
    """No credential could be obtained for a fetch."""
    pass


class HTTPStatusError(RegistryToolError):
    """
    Non-2xx response from the registry or the package API.

    Carries the status, response headers and body so the CLI can print
    diagnostics. Header names are stored lower-cased.
    """

    def __init__(self, status_code: int, url: str, body: str = "",
                 headers: Optional[Mapping[str, str]] = None):
        self.status_code = status_code
        self.url = url
        self.body = body
        self.headers = {name.lower(): value for name, value in (headers or {}).items()}
        message = f"HTTP {status_code} from {url}"
        if status_code == 401:
            message += " (unauthorized: check the token, its scope and expiry)"
        super().__init__(message)


class TransportError(RegistryToolError):
    """Network failure (connection refused, DNS, exhausted timeouts)."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class ContentError(RegistryToolError):
    """
    Response or archive content is not what was expected.

    Raised when:
    - A JSON field is absent (no config digest in a manifest)
    - A manifest list has no entries
    - A requested archive path is unsafe
    """
    pass


class UnsupportedMediaType(ContentError):
    """Manifest media type is neither an image manifest nor a manifest list."""
    pass


class FileNotInArchive(ContentError):
    """Requested member is missing from a layer archive."""

    def __init__(self, member: str, archive: str):
        super().__init__(f"'{member}' not found in archive {archive}")
        self.member = member
        self.archive = archive


__all__ = [
    "RegistryToolError",
    "ConfigurationError",
    "AuthDiscoveryFailure",
    "AuthExchangeError",
    "CredentialUnavailable",
    "HTTPStatusError",
    "TransportError",
    "ContentError",
    "UnsupportedMediaType",
    "FileNotInArchive",
]
