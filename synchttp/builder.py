from typing import Optional
from urllib.parse import urlparse, urlunparse

from .codecs import Codec, PropertyListCodec, encode_query
from .errors import SerializationError
from .request import HTTPMethod, HTTPRequest, NoPayload, URLEncodedPayload, WireRequest, XMLPayload

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
XML_CONTENT_TYPE = "application/xml"


class RequestBuilder:
    """
    Turns an :class:`HTTPRequest` into a :class:`WireRequest`.

    Headers implied by the payload are set first; the caller's headers are
    applied afterwards and win on a (case-insensitive) collision.
    """

    def __init__(self, codec: Optional[Codec] = None) -> None:
        self.codec = codec or PropertyListCodec()

    def build(self, request: HTTPRequest) -> WireRequest:
        wire = WireRequest(url=request.endpoint.url, method=request.method.value)
        payload = request.payload

        if isinstance(payload, NoPayload):
            wire.body = None
        elif isinstance(payload, URLEncodedPayload):
            wire.set_header("Content-Type", FORM_CONTENT_TYPE)
            if payload.pairs:
                query = self._encode_query(payload)
                if request.method is HTTPMethod.GET:
                    wire.url = self._replace_query(wire.url, query)
                elif request.method is HTTPMethod.POST:
                    wire.body = self._encode_body(query)
        elif isinstance(payload, XMLPayload):
            wire.set_header("Content-Type", XML_CONTENT_TYPE)
            try:
                wire.body = self.codec.serialize(payload.value)
            except SerializationError:
                raise
            except Exception as exc:
                raise SerializationError(f"Failed to serialize XML payload: {exc}") from exc
        else:
            raise TypeError(f"Unsupported payload: {payload!r}")

        for name, value in request.headers.items():
            wire.set_header(name, value)
        return wire

    @staticmethod
    def _replace_query(url: str, query: str) -> str:
        parsed = urlparse(url)
        return urlunparse(parsed._replace(query=query))

    @staticmethod
    def _encode_query(payload: URLEncodedPayload) -> str:
        try:
            return encode_query(payload.pairs)
        except UnicodeEncodeError as exc:
            raise SerializationError(f"Cannot percent-encode form pairs: {exc}") from exc

    @staticmethod
    def _encode_body(query: str) -> bytes:
        try:
            return query.encode("utf-8", errors="strict")
        except UnicodeEncodeError as exc:
            raise SerializationError(f"Form body is not valid UTF-8: {exc}") from exc


__all__ = ["RequestBuilder", "FORM_CONTENT_TYPE", "XML_CONTENT_TYPE"]
