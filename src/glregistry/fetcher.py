"""
Authenticated fetch with a single credential refresh.

Registry bearer tokens are short-lived and opaque, so the client cannot know
when one expires. The first 401 is treated as "token expired": the session
drops the token, a fresh one is exchanged, and the request is sent again.
A second 401 is a real authorization problem and is never retried.
"""
from __future__ import annotations

import logging
import os
import tempfile
from contextlib import ExitStack
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Tuple

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .auth.credentials import Credential, authorization_header
from .auth.session import AuthSession
from .errors import HTTPStatusError, TransportError

__all__ = ["AttemptState", "RequestContext", "FetchResult", "ResilientFetcher"]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MiB
# Cap on response body kept for error diagnostics
MAX_ERROR_BODY = 64 * 1024


class AttemptState(Enum):
    ATTEMPT_1 = 1
    ATTEMPT_2 = 2


@dataclass(frozen=True)
class RequestContext:
    """
    One logical request, fixed for the whole fetch-with-retry cycle.

    target_url: Absolute URL
    accept_media_types: Joined into the Accept header (omitted when empty)
    output_destination: Stream a successful body to this file instead of memory
    method: HTTP method
    upload_path: File sent as the request body (re-opened on every attempt)
    """
    target_url: str
    accept_media_types: Tuple[str, ...] = ()
    output_destination: Optional[Path] = None
    method: str = "GET"
    upload_path: Optional[Path] = None


@dataclass
class FetchResult:
    status_code: int
    headers: httpx.Headers
    content: Optional[bytes] = None
    path: Optional[Path] = None
    attempts: int = 1

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "")


@dataclass
class _Outcome:
    status_code: int
    headers: httpx.Headers
    content: Optional[bytes]
    path: Optional[Path]

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


def write_stream_atomically(target_path: Path, chunks: Iterable[bytes]) -> None:
    """
    Stream chunks to a file via temp file + rename so failed downloads leave nothing behind.
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(prefix=".glregistry.tmp.", dir=target_path.parent)
    temp_path = Path(temp_path)
    try:
        with os.fdopen(fd, "wb") as out:
            for chunk in chunks:
                out.write(chunk)
        os.replace(temp_path, target_path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


class ResilientFetcher:
    """
    Sends requests with the session's current credential.

    State machine: ATTEMPT_1 -> ATTEMPT_2 (terminal). The only transition is
    a 401 at ATTEMPT_1 while the session can refresh (token mode).

    Timeouts are retried separately, ``http_retry`` extra times with
    exponential backoff; that budget is unrelated to the 401 refresh.
    """

    def __init__(self, client: httpx.Client, *, http_retry: int = 0):
        self.client = client
        self.http_retry = http_retry

    def fetch_with_retry(self, request: RequestContext, session: AuthSession) -> FetchResult:
        """
        Perform the request, refreshing the credential once on 401.

        Args:
            request: What to fetch and where to put it
            session: Credential holder for this invocation

        Returns:
            FetchResult for a 2xx response

        Raises:
            CredentialUnavailable: If no credential can be obtained
            HTTPStatusError: On any final non-2xx response
            TransportError: On network failure
        """
        outcome = None
        state = AttemptState.ATTEMPT_1
        for state in AttemptState:
            credential = session.current_credential()
            logger.info(f"{request.method} {request.target_url} (attempt {state.value})")
            outcome = self._send(request, credential)

            if outcome.is_success:
                return FetchResult(
                    status_code=outcome.status_code,
                    headers=outcome.headers,
                    content=outcome.content,
                    path=outcome.path,
                    attempts=state.value,
                )

            if outcome.status_code == 401 and state is AttemptState.ATTEMPT_1 and not session.direct:
                logger.warning(
                    f"Received 401 for {request.target_url}; token may be expired, refreshing and retrying"
                )
                session.invalidate()
                continue
            break

        if outcome.status_code == 401 and state is AttemptState.ATTEMPT_2:
            logger.error(f"Received 401 for {request.target_url} after token refresh, giving up")

        body = (outcome.content or b"")[:MAX_ERROR_BODY].decode("utf-8", errors="replace")
        raise HTTPStatusError(outcome.status_code, request.target_url, body, headers=outcome.headers)

    def _send(self, request: RequestContext, credential: Credential) -> _Outcome:
        retryer = Retrying(
            stop=stop_after_attempt(self.http_retry + 1),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(httpx.TimeoutException),
            reraise=True,
        )
        try:
            return retryer(self._send_once, request, credential)
        except httpx.RequestError as e:
            raise TransportError(f"Network error for {request.target_url}: {e}", url=request.target_url) from e

    def _send_once(self, request: RequestContext, credential: Credential) -> _Outcome:
        headers = {"Authorization": authorization_header(credential)}
        if request.accept_media_types:
            headers["Accept"] = ", ".join(request.accept_media_types)

        with ExitStack() as stack:
            content = None
            if request.upload_path is not None:
                content = stack.enter_context(open(request.upload_path, "rb"))

            response = stack.enter_context(
                self.client.stream(request.method, request.target_url, headers=headers, content=content)
            )

            if response.is_success and request.output_destination is not None:
                write_stream_atomically(request.output_destination, response.iter_bytes(CHUNK_SIZE))
                return _Outcome(response.status_code, response.headers, None, request.output_destination)

            body = response.read()
            return _Outcome(response.status_code, response.headers, body, None)
