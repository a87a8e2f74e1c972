"""
Asynchronous transports and the task handle they hand back.

A transport's :meth:`start` builds an inert :class:`TransportTask`; nothing
happens on the network until :meth:`TransportTask.resume` is called.  When
the exchange finishes, the completion handler is invoked exactly once, from
the transport's own thread, with ``(data, response, error)``.
"""
import asyncio
import logging
import ssl
import threading
from concurrent.futures import CancelledError, Future
from typing import Callable, Optional, Protocol, Tuple

from .connection import Connection, resolve_target
from .errors import RequestError
from .logging import get_logger
from .request import WireRequest
from .response import ResponseMetadata
from .timeouts import Timeout, TimeoutTypes

CompletionHandler = Callable[[Optional[bytes], Optional[object], Optional[BaseException]], None]


class TransportTask:
    """Handle for a single transport operation."""

    def __init__(self, launch: Callable[[CompletionHandler], None], completion: CompletionHandler) -> None:
        self._launch = launch
        self._completion = completion
        self._lock = threading.Lock()
        self._started = False
        self._finished = False

    @property
    def started(self) -> bool:
        return self._started

    @property
    def finished(self) -> bool:
        return self._finished

    def resume(self) -> None:
        """Start the operation. Calling it again has no effect."""
        with self._lock:
            if self._started:
                return
            self._started = True
        self._launch(self._finish)

    def _finish(
        self,
        data: Optional[bytes],
        response: Optional[object],
        error: Optional[BaseException],
    ) -> None:
        with self._lock:
            if self._finished:
                return
            self._finished = True
        self._completion(data, response, error)


class Transport(Protocol):
    def start(self, request: WireRequest, completion: CompletionHandler) -> TransportTask:
        ...


class H11Transport:
    """
    Transport that runs every exchange on a private asyncio event loop.

    The loop lives on a daemon thread started with the first request. Each
    request gets its own :class:`Connection`, closed once the response has
    been read.
    """

    def __init__(
        self,
        timeout: TimeoutTypes = None,
        verify: bool = True,
        ssl_context: Optional[ssl.SSLContext] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.timeout = Timeout.from_value(timeout)
        self.verify = verify
        self.ssl_context = ssl_context
        self.logger = logger or get_logger("transport")
        self.closed = False
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    def start(self, request: WireRequest, completion: CompletionHandler) -> TransportTask:
        return TransportTask(lambda finish: self._launch(request, finish), completion)

    def _launch(self, request: WireRequest, finish: CompletionHandler) -> None:
        # Scheduling and close() share the lock, so no coroutine can be
        # queued behind the loop's stop callback.
        with self._lock:
            loop = self._ensure_loop()
            future = asyncio.run_coroutine_threadsafe(self._fetch(request), loop)

        def _done(fut: "Future[Tuple[bytes, ResponseMetadata]]") -> None:
            try:
                data, metadata = fut.result()
            except CancelledError:
                finish(None, None, RequestError("Transport closed before the request completed"))
                return
            except Exception as exc:
                finish(None, None, exc)
                return
            finish(data, metadata, None)

        future.add_done_callback(_done)

    async def _fetch(self, request: WireRequest) -> Tuple[bytes, ResponseMetadata]:
        scheme, host, port, _ = resolve_target(request.url)
        conn = Connection(
            (host, port),
            use_ssl=scheme == "https",
            ssl_context=self.ssl_context,
            timeout=self.timeout,
            verify=self.verify,
        )
        self.logger.debug("%s %s", request.method, request.url)
        try:
            data, metadata = await conn.send_request(request)
        finally:
            await conn.close()
        self.logger.debug("%s %s -> %s (%d bytes)", request.method, request.url, metadata.status_code, len(data))
        return data, metadata

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        """Return the running loop, starting it on first use. Caller holds ``self._lock``."""
        if self.closed:
            raise RequestError("Transport is closed")
        if self._loop is None:
            loop = asyncio.new_event_loop()
            thread = threading.Thread(
                target=self._run_loop,
                args=(loop,),
                name="synchttp-transport",
                daemon=True,
            )
            thread.start()
            self._loop, self._thread = loop, thread
        return self._loop

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        try:
            loop.run_forever()
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.close()

    def close(self) -> None:
        with self._lock:
            if self.closed:
                return
            self.closed = True
            loop, thread = self._loop, self._thread
            if loop is None or thread is None:
                return
            loop.call_soon_threadsafe(loop.stop)
        if thread is not threading.current_thread():
            thread.join()

    def __enter__(self) -> "H11Transport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["CompletionHandler", "H11Transport", "Transport", "TransportTask"]
