"""Root pytest configuration for glregistry tests."""
import pytest

from glregistry.auth import AuthNegotiator, LongLivedCredential
from glregistry.settings import Settings

from .fakes.fake_gitlab import FakeGitLab


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (may take significant time)"
    )


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Keep the developer's environment out of the tests."""
    for key in (
        "GLREGISTRY_TOKEN",
        "GLREGISTRY_HTTP_TIMEOUT",
        "GLREGISTRY_HTTP_RETRY",
        "GLREGISTRY_INSECURE",
        "GLREGISTRY_DEFAULT_SERVICE",
        "GLREGISTRY_PACKAGE_SCOPE",
        "GLREGISTRY_PLATFORM_ARCH",
        "GLREGISTRY_PLATFORM_OS",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings():
    """Standard test settings."""
    return Settings()


@pytest.fixture
def gitlab():
    """Fake GitLab in token mode at example.com."""
    return FakeGitLab()


@pytest.fixture
def http(gitlab):
    """httpx client wired to the fake GitLab."""
    with gitlab.client() as client:
        yield client


@pytest.fixture
def negotiator(http):
    return AuthNegotiator(http)


@pytest.fixture
def credential(gitlab):
    """Long-lived credential the fake GitLab accepts."""
    return LongLivedCredential(token=gitlab.long_lived_token)
