"""
Path safety utilities for archive extraction.

Layer archives name their members relative to the image root, sometimes with
a leading ``./`` or ``/``. These helpers normalize such names and reject
requests that would escape the extraction directory.
"""
from __future__ import annotations

from pathlib import PurePosixPath


def normalize_member_name(name: str) -> str:
    """
    Normalize a tar member name for comparison.

    Examples:
        >>> normalize_member_name("./etc/os-release")
        'etc/os-release'

        >>> normalize_member_name("/etc/os-release")
        'etc/os-release'
    """
    return str(PurePosixPath("/", name.replace("\\", "/"))).lstrip("/")


def safe_relpath(path: str) -> str:
    """
    Validate and normalize a user-provided archive path.

    This function enforces the following safety rules:
    - No empty strings or "." (the image root is not a file)
    - No parent directory references ('..' components)

    Leading slashes are accepted and stripped since image paths are
    conventionally written absolute.

    Args:
        path: User-provided path string

    Returns:
        Normalized relative path safe for use

    Raises:
        ValueError: If path violates safety rules

    Examples:
        >>> safe_relpath("/usr/bin/env")
        'usr/bin/env'

        >>> safe_relpath("../secrets.txt")
        ValueError: unsafe path: ../secrets.txt
    """
    rel = PurePosixPath(path.replace("\\", "/"))
    if ".." in rel.parts:
        raise ValueError(f"unsafe path: {path}")
    s = normalize_member_name(path)
    if not s or s == ".":
        raise ValueError(f"unsafe path: {path}")
    return s
