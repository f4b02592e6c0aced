"""HTTP(S) metric source for REST and XML management APIs.

Connection errors and timeouts are retried with exponential backoff
(tenacity); HTTP error statuses are mapped onto the SourceError family and
never retried.

Example usage:
    with HttpSource("https://api.example.com", headers={"Authorization": "Bearer x"}) as api:
        droplets = api.get_json("/v2/droplets", params={"page": 1})
        total = api.fetch("total", "/v2/droplets#meta.total")
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional

import httpx
import structlog
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from device_probes.exceptions import (
    AuthFailure,
    ConnectionFailed,
    MalformedResponse,
    NotFound,
    SourceError,
    Timeout,
)
from device_probes.models import MetricValue

logger = structlog.get_logger(__name__)


def create_retry_decorator(
    max_attempts: int = 2,
    min_wait: float = 1,
    max_wait: float = 10,
    log_level: int = logging.WARNING,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Create a tenacity retry decorator with exponential backoff.

    Retries on connection and timeout errors only.

    Args:
        max_attempts: Total attempts including the first one.
        min_wait: Minimum wait time in seconds between attempts.
        max_wait: Maximum wait time in seconds between attempts.
        log_level: Log level for retry attempt messages.

    Returns:
        A tenacity retry decorator.
    """
    stdlib_logger = logging.getLogger(__name__)

    return retry(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
        before_sleep=before_sleep_log(stdlib_logger, log_level),
        reraise=True,
    )


def resolve_key(data: Any, dotted_key: str) -> Any:
    """Walk ``a.b.0.c`` through nested dicts and lists.

    Raises:
        NotFound: A path element is missing.
    """
    current = data
    for part in dotted_key.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            raise NotFound(message=f"Key '{dotted_key}' not found in response")
    return current


class HttpSource:
    """Metric source over an httpx client.

    Attributes:
        base_url: Base URL every request path is joined to.
    """

    def __init__(
        self,
        base_url: str,
        verify: bool = True,
        timeout: float = 10.0,
        retries: int = 1,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
        min_wait: float = 1,
    ) -> None:
        """Initialize the source.

        Args:
            base_url: Scheme, host and optional port (and path prefix).
            verify: Verify SSL certificates.
            timeout: Per-request timeout in seconds.
            retries: Extra attempts on connection errors and timeouts.
            headers: Headers sent with every request.
            transport: Custom httpx transport (tests use httpx.MockTransport).
            min_wait: Initial backoff between attempts in seconds.
        """
        self.base_url = base_url
        self._client = httpx.Client(
            base_url=base_url,
            verify=verify,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )
        self._retry = create_retry_decorator(max_attempts=retries + 1, min_wait=min_wait)

    def __enter__(self) -> "HttpSource":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request and map failures to SourceError.

        Raises:
            Timeout: No response after all attempts.
            ConnectionFailed: Host unreachable or TLS failure.
            AuthFailure: 401 or 403.
            NotFound: 404.
            SourceError: Any other error status.
        """
        try:
            response = self._retry(self._client.request)(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise Timeout(message=f"{method} {self.base_url}{path} timed out") from e
        except httpx.RequestError as e:
            raise ConnectionFailed(
                message=f"Cannot connect to {self.base_url}: {e}",
                hint="Check host and port, or set PROBE_VERIFY_SSL=false for self-signed certificates.",
            ) from e

        logger.debug(
            "http_response",
            method=method,
            path=path,
            status_code=response.status_code,
        )

        if response.status_code in (401, 403):
            raise AuthFailure(
                message=f"{method} {path} rejected with HTTP {response.status_code}",
                hint="Check the configured user name, password or API token.",
            )
        if response.status_code == 404:
            raise NotFound(message=f"{method} {path} returned HTTP 404")
        if response.status_code >= 400:
            raise SourceError(message=f"{method} {path} failed with HTTP {response.status_code}")
        return response

    def get_json(self, path: str, **kwargs: Any) -> Any:
        """GET ``path`` and decode the JSON body.

        Raises:
            MalformedResponse: The body is not JSON.
        """
        response = self.request("GET", path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(message=f"GET {path} did not return JSON") from e

    def fetch(self, name: str, query: str) -> MetricValue:
        """Fetch ``path#dotted.key`` from a JSON endpoint.

        Without a ``#`` the whole body is the value.
        """
        path, _, dotted_key = query.partition("#")
        if not dotted_key:
            response = self.request("GET", path)
            return MetricValue(name=name, raw_value=response.text.strip())

        value = resolve_key(self.get_json(path), dotted_key)
        if isinstance(value, (dict, list)) or value is None:
            raise MalformedResponse(message=f"'{dotted_key}' in {path} is not a scalar")
        return MetricValue(name=name, raw_value=str(value))
