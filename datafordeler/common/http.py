"""HTTP client for streaming remote source documents, with retried opening."""

from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import BinaryIO

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from datafordeler.common.constants import USER_AGENT
from datafordeler.common.errors import SourceError

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 20.0
    read: float = 120.0


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 5
    multiplier: float = 1.0
    max_wait: float = 30.0


class HttpRequestError(SourceError):
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

    @classmethod
    def from_config(cls, http_cfg: dict) -> "HttpClient":
        return cls(
            timeout=TimeoutConfig(**http_cfg["timeout"]),
            retry=RetryConfig(**http_cfg["retry"]),
        )

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

    def _headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        out = {"User-Agent": USER_AGENT, "Accept": "*/*"}
        if headers:
            out.update(headers)
        return out

    def _raise_for_status_or_retry(self, response: requests.Response) -> None:
        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            response.close()
            raise RetryableHttpError(f"Retryable HTTP status: {status}")
        if status >= 400:
            response.close()
            raise HttpRequestError(f"HTTP status: {status}")

    def _open(self, url: str, headers: dict[str, str] | None) -> requests.Response:
        try:
            response = self.session.request(
                method="GET",
                url=url,
                headers=self._headers(headers),
                timeout=(self.timeout.connect, self.timeout.read),
                stream=True,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise RetryableHttpError(f"Connection to {url} failed: {exc}") from exc
        self._raise_for_status_or_retry(response)
        return response

    def open_stream(self, url: str, *, headers: dict[str, str] | None = None) -> BinaryIO:
        """Open ``url`` and return its body as a forward-only binary stream.

        Only establishing the response is retried. Once bytes are handed out the
        stream is the caller's; a failure while reading it is not recovered.
        """

        @retry(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.retry.multiplier,
                max=self.retry.max_wait,
                jitter=1.0,
            ),
            retry=retry_if_exception_type(RetryableHttpError),
            reraise=True,
        )
        def _wrapped() -> requests.Response:
            return self._open(url, headers)

        response = _wrapped()
        response.raw.decode_content = True
        return response.raw
