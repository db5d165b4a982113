"""
Tests for the ResilientFetcher state machine.

Responses are scripted per test so the exact number of registry requests
and token exchanges can be asserted.
"""
from __future__ import annotations

from typing import List

import httpx
import pytest

from glregistry.auth import AuthChallenge, AuthNegotiator, AuthSession, LongLivedCredential
from glregistry.errors import CredentialUnavailable, HTTPStatusError, TransportError
from glregistry.fetcher import RequestContext, ResilientFetcher

REALM = "https://example.com/jwt/auth"
TARGET = "https://example.com/v2/g/p/i/manifests/latest"


class ScriptedServer:
    """Token endpoint issuing jwt-N plus a target answering a fixed status sequence."""

    def __init__(self, statuses: List[int], body: bytes = b'{"ok": true}'):
        self.statuses = list(statuses)
        self.body = body
        self.target_requests: List[httpx.Request] = []
        self.token_requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/jwt/auth":
            self.token_requests.append(request)
            return httpx.Response(200, json={"token": f"jwt-{len(self.token_requests)}"})
        self.target_requests.append(request)
        status = self.statuses.pop(0)
        if 200 <= status < 300:
            return httpx.Response(status, content=self.body)
        headers = {"Docker-Distribution-Api-Version": "registry/2.0"}
        if status == 401:
            headers["WWW-Authenticate"] = f'Bearer realm="{REALM}",service="container_registry"'
        return httpx.Response(status, text=f"status {status}", headers=headers)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


def _token_session(http: httpx.Client) -> AuthSession:
    return AuthSession(
        AuthNegotiator(http),
        LongLivedCredential("glpat"),
        challenge=AuthChallenge(realm=REALM, service="container_registry"),
        scope="repository:g/p/i:pull",
    )


class TestFetchWithRetry:
    """Test the two-attempt policy."""

    def test_success_on_first_attempt(self):
        server = ScriptedServer([200])
        with server.client() as http:
            result = ResilientFetcher(http).fetch_with_retry(RequestContext(TARGET), _token_session(http))

        assert result.status_code == 200
        assert result.content == b'{"ok": true}'
        assert result.attempts == 1
        assert len(server.token_requests) == 1

    def test_401_then_200_refreshes_exactly_once(self):
        """Test [401, 200]: one refresh, 200 returned."""
        server = ScriptedServer([401, 200])
        with server.client() as http:
            result = ResilientFetcher(http).fetch_with_retry(RequestContext(TARGET), _token_session(http))

        assert result.status_code == 200
        assert result.attempts == 2
        assert len(server.target_requests) == 2
        # Initial exchange plus exactly one refresh
        assert len(server.token_requests) == 2
        assert server.target_requests[0].headers["Authorization"] == "Bearer jwt-1"
        assert server.target_requests[1].headers["Authorization"] == "Bearer jwt-2"

    def test_401_twice_fails_after_two_attempts(self):
        """Test [401, 401]: failure, never a third attempt."""
        server = ScriptedServer([401, 401, 200])
        with server.client() as http:
            with pytest.raises(HTTPStatusError) as exc_info:
                ResilientFetcher(http).fetch_with_retry(RequestContext(TARGET), _token_session(http))

        assert exc_info.value.status_code == 401
        assert len(server.target_requests) == 2
        assert len(server.token_requests) == 2
        # Header names are lower-cased
        assert exc_info.value.headers["www-authenticate"].startswith(f'Bearer realm="{REALM}"')
        assert exc_info.value.headers["docker-distribution-api-version"] == "registry/2.0"

    def test_401_in_direct_mode_is_not_retried(self):
        server = ScriptedServer([401, 200])
        with server.client() as http:
            session = AuthSession(None, LongLivedCredential("glpat"))
            with pytest.raises(HTTPStatusError) as exc_info:
                ResilientFetcher(http).fetch_with_retry(RequestContext(TARGET), session)

        assert exc_info.value.status_code == 401
        assert len(server.target_requests) == 1
        assert server.token_requests == []

    def test_direct_mode_sends_basic_with_username(self):
        server = ScriptedServer([200])
        with server.client() as http:
            session = AuthSession(None, LongLivedCredential("glpat", username="ci"))
            ResilientFetcher(http).fetch_with_retry(RequestContext(TARGET), session)

        assert server.target_requests[0].headers["Authorization"].startswith("Basic ")

    @pytest.mark.parametrize("status", [403, 404, 500])
    def test_other_errors_fail_immediately(self, status):
        """Test that non-401 failures are never retried."""
        server = ScriptedServer([status, 200])
        with server.client() as http:
            with pytest.raises(HTTPStatusError) as exc_info:
                ResilientFetcher(http).fetch_with_retry(RequestContext(TARGET), _token_session(http))

        assert exc_info.value.status_code == status
        assert exc_info.value.body == f"status {status}"
        assert exc_info.value.url == TARGET
        assert len(server.target_requests) == 1

    def test_404_after_refresh_reports_404(self):
        server = ScriptedServer([401, 404])
        with server.client() as http:
            with pytest.raises(HTTPStatusError) as exc_info:
                ResilientFetcher(http).fetch_with_retry(RequestContext(TARGET), _token_session(http))

        assert exc_info.value.status_code == 404

    def test_credential_unavailable_is_fatal(self):
        """Test that a failing token endpoint aborts before any target request."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(403, json={"message": "forbidden"})

        with httpx.Client(transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(CredentialUnavailable):
                ResilientFetcher(http).fetch_with_retry(RequestContext(TARGET), _token_session(http))

        assert [r.url.path for r in requests] == ["/jwt/auth"]

    def test_accept_header_joined(self):
        server = ScriptedServer([200])
        with server.client() as http:
            request = RequestContext(TARGET, accept_media_types=("application/a", "application/b"))
            ResilientFetcher(http).fetch_with_retry(request, _token_session(http))

        assert server.target_requests[0].headers["Accept"] == "application/a, application/b"


class TestOutputAndUpload:
    """Test file output and upload bodies."""

    def test_success_streams_to_file(self, tmp_path):
        server = ScriptedServer([200], body=b"layer-bytes")
        out = tmp_path / "nested" / "blob.tar"
        with server.client() as http:
            result = ResilientFetcher(http).fetch_with_retry(
                RequestContext(TARGET, output_destination=out), _token_session(http)
            )

        assert out.read_bytes() == b"layer-bytes"
        assert result.path == out
        assert result.content is None

    def test_failure_writes_nothing(self, tmp_path):
        server = ScriptedServer([500])
        out = tmp_path / "blob.tar"
        with server.client() as http:
            with pytest.raises(HTTPStatusError):
                ResilientFetcher(http).fetch_with_retry(
                    RequestContext(TARGET, output_destination=out), _token_session(http)
                )

        assert not out.exists()
        assert list(tmp_path.iterdir()) == []

    def test_upload_body_resent_after_refresh(self, tmp_path):
        """Test the file is re-read for the second attempt."""
        payload = tmp_path / "artifact.bin"
        payload.write_bytes(b"\x00\x01artifact")
        server = ScriptedServer([401, 201])

        with server.client() as http:
            result = ResilientFetcher(http).fetch_with_retry(
                RequestContext(TARGET, method="PUT", upload_path=payload), _token_session(http)
            )

        assert result.status_code == 201
        assert [r.method for r in server.target_requests] == ["PUT", "PUT"]
        assert all(r.content == b"\x00\x01artifact" for r in server.target_requests)


class TestTransientErrors:
    """Test tenacity-driven timeout retries."""

    def test_timeout_retried_when_configured(self, monkeypatch):
        monkeypatch.setattr("tenacity.nap.time.sleep", lambda seconds: None)
        calls = []

        def handler(request):
            if request.url.path == "/jwt/auth":
                return httpx.Response(200, json={"token": "t"})
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, content=b"ok")

        with httpx.Client(transport=httpx.MockTransport(handler)) as http:
            result = ResilientFetcher(http, http_retry=1).fetch_with_retry(RequestContext(TARGET), _token_session(http))

        assert result.content == b"ok"
        assert len(calls) == 2
        # Timeouts do not consume the 401 budget
        assert result.attempts == 1

    def test_network_error_becomes_transport_error(self):
        def handler(request):
            if request.url.path == "/jwt/auth":
                return httpx.Response(200, json={"token": "t"})
            raise httpx.ConnectError("refused", request=request)

        with httpx.Client(transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(TransportError):
                ResilientFetcher(http).fetch_with_retry(RequestContext(TARGET), _token_session(http))
