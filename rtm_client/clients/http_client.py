"""
Signed, throttled HTTP access to the RTM REST endpoint.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Mapping

import requests

from rtm_client.config import RtmCredentials
from rtm_client.exceptions import (
    ApiError,
    HttpError,
    RateLimitedError,
    RequestTimeoutError,
    TransportError,
)
from rtm_client.rate_limit import (
    DEFAULT_TIMEOUT,
    MIN_REQUEST_INTERVAL,
    RequestThrottle,
    RetryPolicy,
    SleepStrategy,
    default_policy,
)
from rtm_client.signature import sign

logger = logging.getLogger(__name__)

REST_URL = "https://api.rememberthemilk.com/services/rest/"
AUTH_URL = "http://www.rememberthemilk.com/services/auth/"

HttpMethod = Literal["GET", "POST"]


class RtmHttpClient:
    """
    Executes signed requests and converts failures into domain exceptions.

    Every attempt, retries included, first waits for a throttle slot. Only the
    exception types named by the active :class:`RetryPolicy` are retried; the
    default policy retries HTTP 503 and nothing else.
    """

    def __init__(
        self,
        credentials: RtmCredentials,
        *,
        session: requests.Session | None = None,
        throttle: RequestThrottle | None = None,
        policy: RetryPolicy | None = None,
        sleep: SleepStrategy | None = None,
        rest_url: str = REST_URL,
        timeout: float = DEFAULT_TIMEOUT,
        min_interval: float = MIN_REQUEST_INTERVAL,
    ) -> None:
        self._credentials = credentials
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._throttle = throttle or RequestThrottle(min_interval=min_interval)
        self._policy = policy or default_policy(timeout)
        self._sleep = sleep or self._throttle.sleep
        self._rest_url = rest_url

    @property
    def credentials(self) -> RtmCredentials:
        return self._credentials

    def close(self) -> None:
        """Close the HTTP session if this client created it."""

        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "RtmHttpClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def sign(self, params: Mapping[str, str]) -> str:
        return sign(self._credentials.api_key, self._credentials.api_secret, params)

    def build_query(self, params: Mapping[str, str]) -> dict[str, str]:
        """Return query parameters with ``api_key`` and ``api_sig`` added."""

        query = {"api_key": self._credentials.api_key, **params}
        query["api_sig"] = self.sign(params)
        return query

    def execute(
        self,
        params: Mapping[str, str],
        *,
        http_method: HttpMethod = "GET",
        policy: RetryPolicy | None = None,
    ) -> dict[str, Any]:
        """
        Sign and send ``params``, retrying according to ``policy``.

        Args:
            params: Request parameters including ``method`` and ``format``
            http_method: GET for reads, POST for mutations
            policy: Retry policy overriding the client default

        Returns:
            The parsed response envelope

        Raises:
            RateLimitedError: HTTP 503 after the retry budget is spent
            HttpError: any other non-2xx status
            RequestTimeoutError: the request exceeded its timeout
            TransportError: the connection failed
            ApiError: the envelope reports ``stat="fail"``
        """
        policy = policy or self._policy
        query = self.build_query(params)
        api_method = params.get("method", "?")

        attempt = 0
        while True:
            try:
                return self._send(query, http_method, policy.timeout, api_method, attempt)
            except Exception as exc:
                if not policy.should_retry(exc, attempt):
                    raise
                delay = policy.calculate_delay(attempt)
                logger.warning(
                    "%s attempt %d/%d failed (%s); retrying in %.1fs",
                    api_method,
                    attempt + 1,
                    policy.max_attempts,
                    type(exc).__name__,
                    delay,
                )
                self._sleep(delay)
                attempt += 1

    def _send(
        self,
        query: Mapping[str, str],
        http_method: HttpMethod,
        timeout: float,
        api_method: str,
        attempt: int,
    ) -> dict[str, Any]:
        with self._throttle.request_slot():
            logger.debug("%s %s (attempt %d)", http_method, api_method, attempt + 1)
            try:
                response = self._session.request(
                    http_method, self._rest_url, params=query, timeout=timeout
                )
            except requests.Timeout as exc:
                raise RequestTimeoutError(timeout) from exc
            except requests.RequestException as exc:
                raise TransportError(f"Request to RTM failed: {exc}") from exc

        if response.status_code == 503:
            raise RateLimitedError()
        if not 200 <= response.status_code < 300:
            raise HttpError(
                f"RTM returned HTTP {response.status_code} for {api_method}.",
                status=response.status_code,
            )
        return self._parse_envelope(response, api_method)

    @staticmethod
    def _parse_envelope(response: requests.Response, api_method: str) -> dict[str, Any]:
        try:
            envelope = response.json()
        except ValueError as exc:
            raise ApiError(f"Response to {api_method} was not valid JSON.") from exc

        rsp = envelope.get("rsp") if isinstance(envelope, dict) else None
        if not isinstance(rsp, dict):
            raise ApiError(f"Response to {api_method} has no 'rsp' envelope.")

        if rsp.get("stat") != "ok":
            err = rsp.get("err") or {}
            raise ApiError(
                err.get("msg") or f"{api_method} failed.",
                code=_to_int(err.get("code")),
            )
        return envelope


def _to_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
