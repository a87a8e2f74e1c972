from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import urlparse


class HTTPMethod(str, Enum):
    GET = "GET"
    POST = "POST"


@dataclass(frozen=True)
class Endpoint:
    """An absolute URL a request is addressed to."""

    url: str

    def __post_init__(self) -> None:
        parsed = urlparse(self.url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"Invalid URL: {self.url}")


@dataclass(frozen=True)
class NoPayload:
    """No body and no query parameters."""


@dataclass(frozen=True)
class URLEncodedPayload:
    """
    Ordered key/value pairs, sent as the query string for GET and as a
    form-encoded body for POST.
    """

    pairs: Iterable[Tuple[str, Any]] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "pairs", tuple((str(k), v) for k, v in self.pairs))


@dataclass(frozen=True)
class XMLPayload:
    """A property-list value serialized as an XML body."""

    value: Any


Payload = Union[NoPayload, URLEncodedPayload, XMLPayload]


@dataclass(frozen=True)
class HTTPRequest:
    endpoint: Endpoint
    method: HTTPMethod = HTTPMethod.GET
    payload: Payload = field(default_factory=NoPayload)
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.endpoint, str):
            object.__setattr__(self, "endpoint", Endpoint(self.endpoint))
        object.__setattr__(self, "method", HTTPMethod(self.method))
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))


@dataclass
class WireRequest:
    """A fully resolved request, ready to be handed to a transport."""

    url: str
    method: str
    body: Optional[bytes] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def set_header(self, name: str, value: str) -> None:
        """Set ``name`` to ``value``, replacing any header that differs only in case."""
        lowered = name.lower()
        for existing in [k for k in self.headers if k.lower() == lowered]:
            del self.headers[existing]
        self.headers[name] = value

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        lowered = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lowered:
                return v
        return default
