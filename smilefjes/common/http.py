"""HTTP client with retries for downloads and single-shot JSON lookups."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType
from typing import Any

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential, wait_random

from smilefjes.common.constants import ERROR_BODY_PREVIEW_CHARS, USER_AGENT
from smilefjes.common.errors import StageError
from smilefjes.common.logging import log_event

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 20.0
    read: float = 60.0


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 5
    multiplier: float = 1.0
    max_wait: float = 30.0
    jitter: float = 1.0


@dataclass(frozen=True)
class LookupResponse:
    """Outcome of a single lookup call.

    ``payload`` is only set for 2xx responses. 404 is kept apart from other
    failures because the registry treats it as a definitive answer.
    """

    status_code: int
    payload: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def not_found(self) -> bool:
        return self.status_code == 404

    @property
    def transient(self) -> bool:
        return not self.ok and not self.not_found


class HttpRequestError(StageError):
    error_code = "HTTP_ERROR"


class RetryableHttpError(HttpRequestError):
    pass


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _headers(self, accept: str, headers: dict[str, str] | None) -> dict[str, str]:
        out = {"User-Agent": USER_AGENT, "Accept": accept}
        if headers:
            out.update(headers)
        return out

    def _raise_for_status_or_retry(self, response: requests.Response) -> None:
        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            raise RetryableHttpError(f"Retryable HTTP status: {status}")
        if status >= 400:
            raise HttpRequestError(f"HTTP status: {status}")

    def _download_text(self, url: str, timeout: TimeoutConfig | None) -> str:
        req_timeout = timeout or self.timeout
        response = self.session.request(
            method="GET",
            url=url,
            headers=self._headers("text/csv, text/plain, */*", None),
            timeout=(req_timeout.connect, req_timeout.read),
        )
        self._raise_for_status_or_retry(response)
        # Decode explicitly; servers often omit the charset for text/csv.
        return response.content.decode("utf-8-sig")

    def get_text(self, url: str, *, timeout: TimeoutConfig | None = None) -> str:
        @retry(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential(multiplier=self.retry.multiplier, max=self.retry.max_wait)
            + wait_random(0, self.retry.jitter),
            retry=retry_if_exception_type(RetryableHttpError),
            reraise=True,
        )
        def _wrapped() -> str:
            return self._download_text(url, timeout)

        return _wrapped()

    def lookup_json(
        self,
        url: str,
        *,
        service: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> LookupResponse:
        """Issue one GET and report the status instead of raising on it.

        Non-2xx responses other than 404 are logged with a truncated body.
        A 2xx response whose body is not JSON raises ``HttpRequestError``.
        """
        req_timeout = timeout or self.timeout
        response = self.session.request(
            method="GET",
            url=url,
            params=params,
            headers=self._headers("application/json", headers),
            timeout=(req_timeout.connect, req_timeout.read),
        )
        status = response.status_code
        if status == 404:
            return LookupResponse(status_code=status)
        if not 200 <= status < 300:
            log_event(
                logger,
                f"HTTP error {status} for {url} body: {response.text[:ERROR_BODY_PREVIEW_CHARS]}",
                level=logging.WARNING,
                service=service,
                event="HTTP_ERROR",
                status="error",
                status_code=status,
            )
            return LookupResponse(status_code=status)

        try:
            payload = response.json()
        except ValueError as exc:
            raise HttpRequestError(f"Invalid JSON payload from {url}") from exc
        return LookupResponse(status_code=status, payload=payload)
