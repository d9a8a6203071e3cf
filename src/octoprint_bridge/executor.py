"""HTTP request execution against the OctoPrint REST API.

How to use the most important parts:
- `RequestExecutor`: The protocol the rest of the bridge talks to. Anything with an async `execute`
  and `fetch_binary` can stand in (tests use in-memory fakes).
- `OctoPrintExecutor`: The real implementation on top of a pooled `requests.Session`. Blocking calls
  run in a worker thread so the event loop keeps serving timers and commands.
"""

import asyncio
import errno
import typing

import pydantic
import requests
import structlog
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from octoprint_bridge import consts, exceptions
from octoprint_bridge.__version__ import __version__

if typing.TYPE_CHECKING:
    from octoprint_bridge.config import Settings

__all__ = ["ApiResponse", "OctoPrintExecutor", "RequestExecutor"]

logger = structlog.get_logger(__name__)

_SETUP_ERRORS = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidHeader,
)


class ApiResponse(pydantic.BaseModel):
    """Status code and decoded body of an accepted response."""

    status: int
    body: typing.Any = None


class RequestExecutor(typing.Protocol):
    """Protocol for issuing single requests against the printer's base URL."""

    async def execute(self, method: str, path: str, body: dict[str, typing.Any] | None = None) -> ApiResponse:
        """Send one request.

        Args:
            method: HTTP method ("GET" or "POST").
            path: Path relative to the base URL (e.g. "/api/version").
            body: Optional JSON body.

        Returns:
            The response, if its status is one of `consts.ACCEPTED_STATUSES`.

        Raises:
            exceptions.PrinterApiError: The server answered with any other status.
            exceptions.PrinterNetworkError: No response was received.
            exceptions.RequestSetupError: The request could not be built.
        """
        ...

    async def fetch_binary(self, url: str) -> bytes:
        """Download an absolute URL and return the raw body."""
        ...


class OctoPrintExecutor:
    """`RequestExecutor` backed by `requests`.

    Usage Example:
    ```python
        >>> executor = OctoPrintExecutor("http://octopi.local:80", api_key="ABC")
        >>> response = await executor.execute("GET", "/api/version")
        >>> response.body["server"]
        '1.10.2'
    ```
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = consts.DEFAULT_TIMEOUT,
        verify: bool = True,
    ) -> None:
        """Initializes the executor.

        Args:
            base_url: Root URL of the OctoPrint instance (scheme, host and port).
            api_key: Application or user API key sent as ``X-Api-Key``.
            timeout: Per-request timeout in seconds.
            verify: Verify TLS certificates. Disable to accept self-signed certificates.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._verify = verify
        self._last_error_code: str | None = None
        self._session = requests.Session()

        # Only idempotent queries are retried, and only on gateway errors
        retries = Retry(
            total=2,
            connect=0,
            read=0,
            backoff_factor=0.5,
            status_forcelist=[502, 503, 504],
            allowed_methods={"GET"},
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retries)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

        self._session.headers.update(
            {
                "User-Agent": f"octoprint-bridge/{__version__}",
                "Accept": "application/json",
                consts.API_KEY_HEADER: api_key,
            }
        )

    @classmethod
    def from_settings(cls, settings: "Settings") -> "OctoPrintExecutor":
        """Build an executor from bridge settings."""
        api_key = settings.api_key.get_secret_value() if settings.api_key else ""
        return cls(
            settings.base_url,
            api_key=api_key,
            timeout=settings.timeout,
            verify=not settings.allow_self_signed,
        )

    @property
    def base_url(self) -> str:
        """Root URL requests are sent to."""
        return self._base_url

    async def execute(self, method: str, path: str, body: dict[str, typing.Any] | None = None) -> ApiResponse:
        """Send one request without blocking the event loop."""
        return await asyncio.to_thread(self._request, method, path, body)

    async def fetch_binary(self, url: str) -> bytes:
        """Download an absolute URL (thumbnails) without blocking the event loop."""
        return await asyncio.to_thread(self._download, url)

    def close(self) -> None:
        """Release pooled connections."""
        self._session.close()

    def _request(self, method: str, path: str, body: dict[str, typing.Any] | None) -> ApiResponse:
        """Blocking request with error classification and log de-duplication."""
        url = f"{self._base_url}/{path.lstrip('/')}"

        if body is not None:
            logger.debug("API Request", method=method, url=url, body=body)
        else:
            logger.debug("API Request", method=method, url=url)

        response = self._send(method, url, json=body)
        data = _decode(response)

        if response.status_code not in consts.ACCEPTED_STATUSES:
            logger.warning("Unexpected response status", url=url, status_code=response.status_code, body=data)
            raise exceptions.PrinterApiError(
                message=f"Request failed: {response.reason}",
                status_code=response.status_code,
                response_body=data,
            )

        logger.debug("API Response", url=url, status_code=response.status_code, body=data)
        # no error - forget the last transport error
        self._last_error_code = None
        return ApiResponse(status=response.status_code, body=data)

    def _download(self, url: str) -> bytes:
        """Blocking binary download."""
        response = self._send("GET", url)
        if response.status_code != 200:
            logger.warning("Unexpected response status", url=url, status_code=response.status_code)
            raise exceptions.PrinterApiError(
                message=f"Download failed: {response.reason}",
                status_code=response.status_code,
                response_body=None,
            )
        logger.debug("Downloaded binary", url=url, content_type=response.headers.get("Content-Type"))
        return response.content

    def _send(self, method: str, url: str, **kwargs: typing.Any) -> requests.Response:
        """Issue the request and map `requests` failures onto bridge exceptions."""
        kwargs.setdefault("timeout", self._timeout)
        try:
            return self._session.request(method, url, verify=self._verify, **kwargs)
        except _SETUP_ERRORS as e:
            logger.error("Request setup failed", url=url, error=str(e))
            raise exceptions.RequestSetupError(f"Could not send request to {url}: {e}") from e
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            code = _error_code(e)
            # avoid spamming of the same error when stuck in a reconnection loop
            if code == self._last_error_code:
                logger.debug("OctoPrint unreachable", url=url, code=code, error=str(e))
            else:
                logger.info("OctoPrint unreachable", url=url, code=code, error=str(e))
                self._last_error_code = code
            raise exceptions.PrinterNetworkError(f"Failed to connect to OctoPrint: {e}", error_code=code) from e
        except requests.exceptions.RequestException as e:
            logger.error("Request failed", url=url, error=str(e))
            raise exceptions.RequestSetupError(f"Request to {url} failed: {e}") from e


def _decode(response: requests.Response) -> typing.Any:
    """Decode a JSON body, falling back to text (``None`` for empty bodies)."""
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text[:500]


def _error_code(exc: BaseException) -> str:
    """Find a short, stable code for a transport failure (e.g. ``ECONNREFUSED``)."""
    if isinstance(exc, requests.exceptions.Timeout):
        return "ETIMEDOUT"

    seen: set[int] = set()
    pending: list[typing.Any] = [exc]
    while pending:
        current = pending.pop()
        if not isinstance(current, BaseException) or id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, OSError) and current.errno in errno.errorcode:
            return errno.errorcode[current.errno]
        pending.extend([current.__cause__, current.__context__, getattr(current, "reason", None), *current.args])

    return type(exc).__name__
