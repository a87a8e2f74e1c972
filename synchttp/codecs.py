"""
Encoders used when turning a payload into wire bytes.

``encode_query`` renders form pairs as a percent-encoded query string and
``PropertyListCodec`` serializes property-list values as XML.  The request
builder accepts any object with a ``serialize`` method in place of the
latter.
"""
import plistlib
from typing import Any, Iterable, Protocol, Tuple
from urllib.parse import quote, urlencode

from .errors import SerializationError


class Codec(Protocol):
    def serialize(self, value: Any) -> bytes:
        ...


def describe(value: Any) -> str:
    """Textual form of a query value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_query(pairs: Iterable[Tuple[str, Any]]) -> str:
    """Percent-encode ``pairs`` in order, e.g. ``[("q", "a b")]`` -> ``q=a%20b``."""
    return urlencode([(k, describe(v)) for k, v in pairs], quote_via=quote)


class PropertyListCodec:
    """Serialize property-list values (dict, list, str, int, float, bool, bytes, datetime) to XML."""

    def __init__(self, sort_keys: bool = True) -> None:
        self.sort_keys = sort_keys

    def serialize(self, value: Any) -> bytes:
        try:
            return plistlib.dumps(value, fmt=plistlib.FMT_XML, sort_keys=self.sort_keys)
        except (TypeError, ValueError, OverflowError) as exc:
            raise SerializationError(f"Cannot serialize {type(value).__name__} as a property list: {exc}") from exc


__all__ = ["Codec", "PropertyListCodec", "describe", "encode_query"]
