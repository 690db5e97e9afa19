"""API module for the Mandrill exporter.

Provides the Mandrill tags/list client.
"""

from mandrill_exporter.api.client import (
    MandrillClient,
    TagStatistic,
    UpstreamAPIError,
    UpstreamError,
    UpstreamParseError,
    UpstreamTransportError,
)

__all__ = [
    "MandrillClient",
    "TagStatistic",
    "UpstreamError",
    "UpstreamTransportError",
    "UpstreamParseError",
    "UpstreamAPIError",
]
