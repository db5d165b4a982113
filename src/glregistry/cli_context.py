"""
CLI Context for managing application dependencies.

Provides a clean way to manage CLI-level dependencies like settings and the
HTTP client, avoiding global state and enabling proper dependency injection.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from .settings import Settings, create_settings_from_env


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    Manages application-level dependencies (settings, HTTP client) that are
    initialized once and shared across a CLI command execution.

    ``transport`` lets tests route every request to an ``httpx.MockTransport``.
    """
    settings: Settings
    transport: Optional[httpx.BaseTransport] = None
    _client: Optional[httpx.Client] = None

    @classmethod
    def from_env(cls) -> CLIContext:
        """
        Create CLI context from environment variables.

        Returns:
            CLIContext with settings loaded from environment
        """
        return cls(settings=create_settings_from_env())

    @property
    def client(self) -> httpx.Client:
        """
        Get or create the HTTP client (lazy initialization).

        Redirects are followed, matching ``curl -L``; GitLab serves blobs
        through a redirect to object storage.
        """
        if self._client is None:
            t = self.settings.http_timeout_s
            self._client = httpx.Client(
                timeout=httpx.Timeout(connect=min(t, 10.0), read=t, write=t, pool=5.0),
                follow_redirects=True,
                verify=not self.settings.insecure,
                headers={"User-Agent": self.settings.user_agent},
                transport=self.transport,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
