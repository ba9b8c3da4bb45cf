"""HTTP layer of the Data API SDK."""

from .http_client import DataAPIHttpClient
from .transport import HttpxTransport, Transport, TransportResponse

__all__ = ["DataAPIHttpClient", "HttpxTransport", "Transport", "TransportResponse"]
