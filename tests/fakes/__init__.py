"""Test doubles."""
from .fake_gitlab import FakeGitLab, sha256_digest

__all__ = ["FakeGitLab", "sha256_digest"]
