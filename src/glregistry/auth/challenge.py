"""
WWW-Authenticate challenge parsing.
"""
from __future__ import annotations

import re
from typing import Dict, Optional

from .credentials import AuthChallenge

__all__ = ["parse_challenge", "challenge_params"]

# key="value" pairs; values may not contain quotes
_PARAM_RE = re.compile(r'([A-Za-z_][A-Za-z0-9_-]*)\s*=\s*"([^"]*)"')


def challenge_params(header: str) -> Dict[str, str]:
    """
    Extract every ``key="value"`` pair from a challenge header.

    Keys are lower-cased; the first occurrence of a key wins.
    """
    params: Dict[str, str] = {}
    for match in _PARAM_RE.finditer(header or ""):
        params.setdefault(match.group(1).lower(), match.group(2))
    return params


def parse_challenge(header: Optional[str], default_service: Optional[str] = None) -> Optional[AuthChallenge]:
    """
    Parse a ``WWW-Authenticate`` header into an AuthChallenge.

    Format: ``Bearer realm="...",service="...",scope="..."``. The scheme
    prefix is not checked; GitLab always answers with Bearer.

    Args:
        header: Raw header value (None or empty means no challenge)
        default_service: Service used when the header omits one

    Returns:
        AuthChallenge, or None when the header carries no realm
    """
    params = challenge_params(header or "")
    realm = params.get("realm")
    if not realm:
        return None
    return AuthChallenge(
        realm=realm,
        service=params.get("service") or default_service,
        scope=params.get("scope"),
    )
