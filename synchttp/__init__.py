"""synchttp public API.

A blocking HTTP client built over an asynchronous transport.  Requests are
described with :class:`HTTPRequest` (endpoint, method, payload, headers) and
sent with :meth:`HTTPClient.send`, or with the :func:`send` shortcut for a
one-off call."""

from .builder import RequestBuilder
from .client import HTTPClient, HTTPClientInterface
from .codecs import PropertyListCodec
from .request import (
    Endpoint,
    HTTPMethod,
    HTTPRequest,
    NoPayload,
    Payload,
    URLEncodedPayload,
    WireRequest,
    XMLPayload,
)
from .response import HTTPResponse, ResponseMetadata
from .timeouts import Timeout, TimeoutTypes
from .transport import H11Transport, Transport, TransportTask
from .errors import (
    SyncHTTPError,
    RequestError,
    SerializationError,
    ResponseError,
    InvalidResponse,
    RequestTimeout,
)

__version__ = "0.1.0"


def send(request: HTTPRequest, timeout: TimeoutTypes = None) -> HTTPResponse:
    """Send a single request using a short-lived :class:`HTTPClient`."""
    with HTTPClient(timeout=timeout) as client:
        return client.send(request)


__all__ = [
    "Endpoint",
    "HTTPMethod",
    "HTTPRequest",
    "NoPayload",
    "Payload",
    "URLEncodedPayload",
    "XMLPayload",
    "WireRequest",
    "HTTPResponse",
    "ResponseMetadata",
    "RequestBuilder",
    "PropertyListCodec",
    "HTTPClient",
    "HTTPClientInterface",
    "H11Transport",
    "Transport",
    "TransportTask",
    "Timeout",
    "SyncHTTPError",
    "RequestError",
    "SerializationError",
    "ResponseError",
    "InvalidResponse",
    "RequestTimeout",
    "send",
    "__version__",
]
