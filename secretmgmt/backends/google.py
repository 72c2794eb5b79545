"""Authenticated access to Google Cloud REST APIs."""

import logging
import subprocess
from typing import Any, Dict, Optional

import requests

from ..utils.errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)

GOOGLE_CLOUD_API = "https://www.googleapis.com"
GOOGLE_KMS_API = "https://cloudkms.googleapis.com"


class GoogleApiSession:
    """Issues JSON requests against Google Cloud APIs with a bearer token."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize API session.

        Args:
            access_token: OAuth token; obtained from gcloud when not given
            timeout: Per-request timeout in seconds
            session: Optional requests session
        """
        self._access_token = access_token
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def access_token(self) -> str:
        if not self._access_token:
            self._access_token = self._fetch_gcloud_token()
        return self._access_token

    def _fetch_gcloud_token(self) -> str:
        try:
            result = subprocess.run(
                ["gcloud", "auth", "print-access-token"],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ConfigurationError(
                "gcloud is not available to obtain an access token",
                suggestions=["Install the Google Cloud SDK", "Or export GOOGLE_OAUTH_ACCESS_TOKEN"],
            ) from e
        except subprocess.TimeoutExpired as e:
            raise TransportError(
                f"gcloud did not return an access token within {self.timeout}s",
                response=e.stderr if isinstance(e.stderr, str) else None,
            ) from e

        token = result.stdout.strip()
        if result.returncode != 0 or not token:
            raise TransportError("Unable to obtain access token from gcloud", response=result.stderr)
        return token

    def request(
        self,
        method: str,
        url: str,
        allow_not_found: bool = False,
        **kwargs,
    ) -> Optional[requests.Response]:
        """
        Send a request and check its status.

        Args:
            method: HTTP method
            url: Absolute URL
            allow_not_found: Return None on HTTP 404 instead of failing
            **kwargs: Passed to requests

        Returns:
            Optional[requests.Response]: Response, or None for an allowed 404

        Raises:
            TransportError: On connection failures and unexpected statuses
        """
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {self.access_token}"

        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        if allow_not_found and response.status_code == 404:
            return None

        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"{method} {url} returned HTTP {response.status_code}",
                response=response.text,
            )

        return response

    def request_json(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """Send a request and parse the JSON object it returns."""
        response = self.request(method, url, **kwargs)
        try:
            document = response.json()
        except ValueError as e:
            raise TransportError(f"Unable to parse response from {url}", response=response.text) from e

        if not isinstance(document, dict):
            raise TransportError(f"Unexpected response from {url}", response=response.text)

        return document
