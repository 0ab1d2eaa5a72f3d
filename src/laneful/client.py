"""HTTP client for the Laneful email API."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from laneful import __version__
from laneful.exceptions import ApiError, ConfigurationError, HttpError, ValidationError
from laneful.models import Email

if TYPE_CHECKING:
    from laneful.config import LanefulConfig

logger = structlog.get_logger()

API_VERSION = "v1"
DEFAULT_TIMEOUT = 30.0
USER_AGENT = f"laneful-python/{__version__}"

# Response bodies quoted in error messages are cut to this many characters.
_MAX_BODY_EXCERPT = 500


def _truncate(body: str) -> str:
    if len(body) > _MAX_BODY_EXCERPT:
        return body[:_MAX_BODY_EXCERPT] + "..."
    return body


class LanefulClient:
    """Client for sending email through the Laneful API.

    Usage:
        with LanefulClient("https://acme.send.laneful.net", token) as client:
            client.send_email(email)
    """

    def __init__(
        self,
        base_url: str | None,
        auth_token: str | None,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: The account's API base URL.
            auth_token: Bearer token.
            timeout: Request timeout in seconds (ignored with http_client).
            http_client: Preconfigured httpx.Client, e.g. with a custom transport.

        Raises:
            ConfigurationError: If base_url or auth_token is empty.
        """
        if base_url is None or not base_url.strip():
            raise ConfigurationError("Base URL cannot be empty")
        if auth_token is None or not auth_token.strip():
            raise ConfigurationError("Auth token cannot be empty")

        self.base_url = base_url.strip()
        self._auth_token = auth_token.strip()
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=httpx.Timeout(timeout))

    @classmethod
    def from_config(cls, config: LanefulConfig) -> LanefulClient:
        return cls(config.base_url, config.auth_token, timeout=config.timeout)

    def __enter__(self) -> LanefulClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            self._http.close()

    def __repr__(self) -> str:
        return f"LanefulClient(base_url={self.base_url!r})"

    def send_email(self, email: Email) -> dict[str, Any]:
        """Send a single email.

        Returns:
            Decoded API response.
        """
        return self.send_emails([email])

    def send_emails(self, emails: Iterable[Email]) -> dict[str, Any]:
        """Send several emails in one request.

        Raises:
            ValidationError: If the list is empty or holds something other than Email.
            ApiError: If the API rejects the request.
            HttpError: If the request could not be completed or decoded.
        """
        emails = list(emails) if emails is not None else []
        if not emails:
            raise ValidationError("Emails list cannot be empty")
        for email in emails:
            if not isinstance(email, Email):
                raise ValidationError(
                    f"Expected Email instance, got {type(email).__name__}"
                )

        url = self._build_url("/email/send")
        body = {"emails": [email.to_payload() for email in emails]}
        logger.debug("Sending emails", count=len(emails), url=url)

        try:
            response = self._http.post(url, json=body, headers=self._default_headers())
        except httpx.HTTPError as e:
            logger.warning("Email API request failed", url=url, error=str(e))
            raise HttpError(f"HTTP request failed: {e}", 0) from e

        return self._handle_response(response)

    def _build_url(self, endpoint: str) -> str:
        base = self.base_url.rstrip("/")
        endpoint = endpoint if endpoint.startswith("/") else f"/{endpoint}"
        return f"{base}/{API_VERSION}{endpoint}"

    def _default_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._auth_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        status = response.status_code
        url = str(response.request.url)

        if status == 404:
            raise HttpError(
                f"API endpoint not found (404). Check your base URL. Requested: {url}",
                status,
            )

        text = response.text
        try:
            data = response.json()
        except ValueError as e:
            raise HttpError(
                f"Failed to decode JSON response: {e}. "
                f"Response body: {_truncate(text)}. URL: {url}",
                0 if status in (200, 201, 202) else status,
            ) from e

        if status in (200, 201, 202):
            logger.debug("Email API request succeeded", status=status)
            return data if isinstance(data, dict) else {"data": data}

        if not isinstance(data, dict):
            data = {}
        error = data.get("error") or "Unknown API error"
        details = data.get("details") or ""
        message = f"{error} - {details}" if details else str(error)
        logger.warning("Email API returned an error", status=status, error=message)
        raise ApiError(f"API request failed to {url}", status, message)
