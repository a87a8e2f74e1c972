import logging
import threading
from typing import Optional, Protocol

from .builder import RequestBuilder
from .errors import InvalidResponse, RequestTimeout
from .logging import get_logger
from .request import HTTPRequest
from .response import HTTPResponse, ResponseMetadata
from .timeouts import Timeout, TimeoutTypes
from .transport import H11Transport, Transport


class HTTPClientInterface(Protocol):
    def send(self, request: HTTPRequest) -> HTTPResponse:
        ...


class _Outcome:
    """What the completion handler reported for one call."""

    __slots__ = ("data", "response", "error", "abandoned")

    def __init__(self) -> None:
        self.data: Optional[bytes] = None
        self.response: Optional[object] = None
        self.error: Optional[BaseException] = None
        self.abandoned = False


class HTTPClient:
    """
    Blocking HTTP client on top of an asynchronous transport.

    :meth:`send` builds the wire request, starts it on the transport and
    parks the calling thread until the transport's completion handler fires.
    Each call owns its outcome and its signal, so concurrent calls from
    different threads do not interact.

    Without a ``timeout`` the wait is unbounded: a transport that never
    completes blocks the caller forever.  With one, :class:`RequestTimeout`
    is raised once ``timeout.total`` seconds have passed.

    Example:
        with HTTPClient(timeout=10) as client:
            resp = client.send(HTTPRequest(Endpoint("https://api.example.com/items")))
            print(resp.status_code, resp.text())
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        builder: Optional[RequestBuilder] = None,
        timeout: TimeoutTypes = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.timeout = Timeout.from_value(timeout)
        self._owns_transport = transport is None
        self.transport = transport if transport is not None else H11Transport(timeout=self.timeout)
        self.builder = builder or RequestBuilder()
        self.logger = logger or get_logger("client")

    def send(
        self,
        request: HTTPRequest,
        *,
        timeout: TimeoutTypes = None,
    ) -> HTTPResponse:
        wire = self.builder.build(request)
        deadline = Timeout.from_value(timeout).merge(self.timeout).total

        outcome = _Outcome()
        signal = threading.Event()
        lock = threading.Lock()

        def completion(
            data: Optional[bytes],
            response: Optional[object],
            error: Optional[BaseException],
        ) -> None:
            with lock:
                if outcome.abandoned:
                    self.logger.debug("Discarding completion for %s %s after deadline", wire.method, wire.url)
                    return
                if signal.is_set():
                    self.logger.warning("Ignoring repeated completion for %s %s", wire.method, wire.url)
                    return
                outcome.data, outcome.response, outcome.error = data, response, error
                signal.set()

        self.logger.debug("Dispatching %s %s", wire.method, wire.url)
        self.transport.start(wire, completion).resume()

        if not signal.wait(deadline):
            with lock:
                if not signal.is_set():
                    outcome.abandoned = True
                    raise RequestTimeout(deadline)

        if outcome.error is not None:
            self.logger.debug("%s %s failed: %r", wire.method, wire.url, outcome.error)
            raise outcome.error

        response = outcome.response
        if not isinstance(response, ResponseMetadata) or not isinstance(response.status_code, int):
            raise InvalidResponse(response)

        self.logger.debug("%s %s -> %s", wire.method, wire.url, response.status_code)
        return HTTPResponse(status_code=response.status_code, data=outcome.data)

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport:
            self.transport.close()  # type: ignore[attr-defined]

    def __enter__(self) -> "HTTPClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["HTTPClient", "HTTPClientInterface"]
