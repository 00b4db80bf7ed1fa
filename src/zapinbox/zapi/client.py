"""Z-API HTTP client.

Security: the instance token travels in the query string, so URLs are only
logged through redact_url().
"""

from typing import Any

import requests

from zapinbox.config import Settings
from zapinbox.observability.logging import get_logger
from zapinbox.observability.redaction import redact_url, safe_log_context

logger = get_logger(__name__)

USER_AGENT = "zapinbox-backfill/1.0"


class UpstreamError(Exception):
    """Raised when a Z-API call fails or returns a non-JSON body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ZapiClient:
    """Thin GET-JSON wrapper around one Z-API instance."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json", "User-Agent": USER_AGENT})

    @classmethod
    def from_settings(cls, settings: Settings) -> "ZapiClient":
        return cls(settings.zapi_base, settings.zapi_token, timeout=settings.http_timeout)

    def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET base_url + path and decode the JSON body.

        Raises:
            UpstreamError: On network errors, non-2xx status or bad JSON.
        """
        url = f"{self.base_url}{path}"
        query = {"token": self.token}
        query.update({k: v for k, v in (params or {}).items() if v is not None})

        try:
            response = self.session.get(url, params=query, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"request to {path} failed: {type(e).__name__}") from e

        if not response.ok:
            logger.warning(
                "zapi request rejected",
                extra={
                    "extra_fields": safe_log_context(
                        path=path, status=response.status_code, url=redact_url(url)
                    )
                },
            )
            raise UpstreamError(
                f"ZAPI {response.status_code} on {path}", status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                f"ZAPI returned non-JSON body on {path}", status_code=response.status_code
            ) from e
