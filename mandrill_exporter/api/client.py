from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests
import structlog
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError, model_validator
from requests import Response

from mandrill_exporter import __version__
from mandrill_exporter.config.settings import DEFAULT_API_URL


logger = structlog.get_logger(__name__)


class UpstreamError(Exception):
    pass


class UpstreamTransportError(UpstreamError):
    """The provider could not be reached (connection failure, timeout)."""


class UpstreamParseError(UpstreamError):
    """The response body is not a JSON array of tag records."""


class UpstreamAPIError(UpstreamError):
    """The provider answered with an HTTP error status."""

    def __init__(self, status_code: int, name: str = "", message: str = "") -> None:
        self.status_code = status_code
        self.name = name
        self.message = message
        detail = f"{name}: {message}" if name or message else "no error details"
        super().__init__(f"Mandrill API returned HTTP {status_code} ({detail})")


class TagStatistic(BaseModel):
    """Aggregate sending statistics of one Mandrill tag."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    tag: str = ""
    sent: int = 0
    hard_bounces: int = 0
    soft_bounces: int = 0
    rejects: int = 0
    complaints: int = 0
    unsubs: int = 0
    opens: int = 0
    clicks: int = 0
    unique_opens: int = 0
    unique_clicks: int = 0
    reputation: int = 0

    @model_validator(mode="before")
    @classmethod
    def _normalize_keys(cls, data: Any) -> Any:
        # Keys match case-insensitively ("Sent", "Unique_opens"); null means absent
        if not isinstance(data, dict):
            return data
        normalized: Dict[str, Any] = {}
        for key, value in data.items():
            if value is None:
                continue
            normalized.setdefault(str(key).lower(), value)
        return normalized


_tag_list = TypeAdapter(List[TagStatistic])


class MandrillClient:
    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        # An empty key is sent as-is; Mandrill rejects it with Invalid_Key
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout_seconds

    def fetch_tag_statistics(self) -> List[TagStatistic]:
        """Fetch the statistics of every tag in a single request.

        Returns:
            Tag records in the order Mandrill listed them.

        Raises:
            UpstreamTransportError: If the request could not be completed.
            UpstreamAPIError: If Mandrill answered with an error status.
            UpstreamParseError: If the body is not a list of tag records.
        """
        logger.debug("mandrill_request", url=self.api_url)
        resp = self._post({"key": self.api_key})
        if resp.status_code >= 400:
            raise self._api_error(resp)

        payload = self._parse_json(resp)
        if not isinstance(payload, list):
            raise UpstreamParseError(
                f"Expected a JSON array of tags, got {type(payload).__name__}"
            )
        try:
            return _tag_list.validate_python(payload)
        except ValidationError as e:
            raise UpstreamParseError(f"Invalid tag record: {e}") from e

    def _post(self, body: Dict[str, Any]) -> Response:
        # New session per call: concurrent scrapes share no connection state
        with requests.Session() as session:
            session.headers.update(
                {
                    "Content-Type": "application/json; charset=utf-8",
                    "User-Agent": f"mandrill-exporter/{__version__}",
                }
            )
            try:
                return session.post(self.api_url, json=body, timeout=self.timeout)
            except requests.RequestException as e:
                raise UpstreamTransportError(f"Request to {self.api_url} failed: {e}") from e

    @staticmethod
    def _api_error(resp: Response) -> UpstreamAPIError:
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            return UpstreamAPIError(
                resp.status_code,
                name=str(body.get("name", "")),
                message=str(body.get("message", "")),
            )
        return UpstreamAPIError(resp.status_code, message=resp.reason or "")

    @staticmethod
    def _parse_json(resp: Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamParseError(f"Invalid JSON response: {e}") from e
