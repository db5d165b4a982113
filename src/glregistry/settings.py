"""
Settings and configuration for glregistry.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables when the CLI context is built.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass

__all__ = ["Settings", "create_settings_from_env", "DEFAULT_REGISTRY_SERVICE", "DEFAULT_PACKAGE_SCOPE"]

# GitLab's container registry token service name
DEFAULT_REGISTRY_SERVICE = "container_registry"
# Generic package API scope, broader than an upload strictly needs
DEFAULT_PACKAGE_SCOPE = "api"


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings shared by all glregistry commands.

    HTTP Settings:
        http_timeout_s: HTTP request timeout in seconds
        http_retry: Extra attempts for timed-out requests (0=no retry)
        insecure: Use plain HTTP and skip TLS verification (local/dev only)
        user_agent: User-Agent header sent on every request

    Auth Settings:
        default_service: Token service used when a challenge omits it
        package_scope: Scope requested for generic package uploads

    Download Settings:
        platform_architecture: Architecture picked from manifest lists
        platform_os: OS picked from manifest lists
    """
    http_timeout_s: float = 30.0
    http_retry: int = 0
    insecure: bool = False
    user_agent: str = "glregistry/0.1.0"

    default_service: str = DEFAULT_REGISTRY_SERVICE
    package_scope: str = DEFAULT_PACKAGE_SCOPE

    platform_architecture: str = "amd64"
    platform_os: str = "linux"

    def __post_init__(self):
        """Validate settings on construction."""
        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.http_retry < 0:
            raise ValueError(f"http_retry must be non-negative, got {self.http_retry}")

        if not self.default_service:
            raise ValueError("default_service must not be empty")

        if not self.package_scope:
            raise ValueError("package_scope must not be empty")

        # Platform fields follow the OCI image-index platform vocabulary
        token_pattern = r"^[a-z0-9_]+$"
        if not re.match(token_pattern, self.platform_architecture):
            raise ValueError(f"Invalid platform_architecture: {self.platform_architecture}")
        if not re.match(token_pattern, self.platform_os):
            raise ValueError(f"Invalid platform_os: {self.platform_os}")


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - GLREGISTRY_HTTP_TIMEOUT (default: 30.0)
        - GLREGISTRY_HTTP_RETRY (default: 0)
        - GLREGISTRY_INSECURE (default: false)
        - GLREGISTRY_DEFAULT_SERVICE (default: container_registry)
        - GLREGISTRY_PACKAGE_SCOPE (default: api)
        - GLREGISTRY_PLATFORM_ARCH (default: amd64)
        - GLREGISTRY_PLATFORM_OS (default: linux)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    return Settings(
        http_timeout_s=get_float("GLREGISTRY_HTTP_TIMEOUT", 30.0),
        http_retry=get_int("GLREGISTRY_HTTP_RETRY", 0),
        insecure=str_to_bool(os.getenv("GLREGISTRY_INSECURE", "false")),
        default_service=os.getenv("GLREGISTRY_DEFAULT_SERVICE") or DEFAULT_REGISTRY_SERVICE,
        package_scope=os.getenv("GLREGISTRY_PACKAGE_SCOPE") or DEFAULT_PACKAGE_SCOPE,
        platform_architecture=os.getenv("GLREGISTRY_PLATFORM_ARCH") or "amd64",
        platform_os=os.getenv("GLREGISTRY_PLATFORM_OS") or "linux",
    )
