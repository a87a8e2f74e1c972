import asyncio
import ssl
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

import h11

from .errors import RequestError, ResponseError
from .request import WireRequest
from .response import ResponseMetadata
from .timeouts import Timeout

READ_BUFFER_SIZE = 65536
DEFAULT_PORTS = {"http": 80, "https": 443}


def _ssl_context(verify: bool = True) -> ssl.SSLContext:
    context = ssl.create_default_context()
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def resolve_target(url: str) -> Tuple[str, str, int, str]:
    """Split ``url`` into ``(scheme, host, port, target)``."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        raise RequestError(f"Invalid URL: {url}")
    port = parsed.port or DEFAULT_PORTS.get(parsed.scheme, 80)
    target = parsed.path or "/"
    if parsed.query:
        target += f"?{parsed.query}"
    return parsed.scheme, parsed.hostname, port, target


def host_header(scheme: str, host: str, port: int) -> str:
    """Value of the ``Host`` header; IPv6 literals are bracketed, default ports omitted."""
    if ":" in host:
        host = f"[{host}]"
    if port == DEFAULT_PORTS.get(scheme):
        return host
    return f"{host}:{port}"


class Connection:
    """
    Single-use async HTTP/1.1 connection built on asyncio streams and h11.

    One request/response exchange is performed, after which the connection
    must be closed.
    """

    def __init__(
        self,
        addr: Tuple[str, int],
        use_ssl: bool = False,
        ssl_context: Optional[ssl.SSLContext] = None,
        timeout: Optional[Timeout] = None,
        verify: bool = True,
    ) -> None:
        self.addr = addr
        self.use_ssl = use_ssl
        if use_ssl:
            self.ssl_context = ssl_context or _ssl_context(verify)
        else:
            self.ssl_context = None
        timeout = timeout or Timeout()
        self.connect_timeout = timeout.connect
        self.read_timeout = timeout.read
        self.write_timeout = timeout.write
        self.reader: asyncio.StreamReader
        self.writer: asyncio.StreamWriter
        self.h11_conn = h11.Connection(h11.CLIENT)
        self.closed = False
        self._connected = False

    async def connect(self) -> None:
        if self._connected:
            return
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(
                    self.addr[0],
                    self.addr[1],
                    ssl=self.ssl_context if self.use_ssl else None,
                    server_hostname=self.addr[0] if self.use_ssl else None,
                ),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise RequestError(f"Connect timeout to {self.addr[0]}:{self.addr[1]}") from exc
        except OSError as exc:
            raise RequestError(f"Failed to connect to {self.addr[0]}:{self.addr[1]}: {exc}") from exc
        self._connected = True

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._connected:
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except (OSError, ssl.SSLError):
                # Peer may already have dropped the socket
                pass

    async def _send_event(self, event: h11.Event) -> None:
        data = self.h11_conn.send(event)
        if data:
            self.writer.write(data)
            await asyncio.wait_for(self.writer.drain(), timeout=self.write_timeout)

    async def _read_event(self) -> h11.Event:
        while True:
            event = self.h11_conn.next_event()
            if event is h11.NEED_DATA:
                try:
                    chunk = await asyncio.wait_for(self.reader.read(READ_BUFFER_SIZE), timeout=self.read_timeout)
                except asyncio.TimeoutError as exc:
                    raise ResponseError("Read timeout") from exc
                self.h11_conn.receive_data(chunk)
                continue
            return event

    async def send_request(self, request: WireRequest) -> Tuple[bytes, ResponseMetadata]:
        """Send ``request`` and return the response body and metadata."""
        if self.closed:
            raise RequestError("Connection already closed")
        scheme, host, port, target = resolve_target(request.url)
        headers = self._prepare_headers(request, scheme, host, port)
        await self.connect()
        try:
            await self._send_event(
                h11.Request(
                    method=request.method.encode("ascii"),
                    target=target.encode("ascii"),
                    headers=headers,
                )
            )
            if request.body:
                await self._send_event(h11.Data(data=request.body))
            await self._send_event(h11.EndOfMessage())
        except (OSError, asyncio.TimeoutError, h11.LocalProtocolError, UnicodeEncodeError) as exc:
            raise RequestError(f"Failed to send request: {exc}") from exc

        try:
            return await self._read_response(request)
        except h11.RemoteProtocolError as exc:
            raise ResponseError(f"Malformed response: {exc}") from exc
        except OSError as exc:
            raise ResponseError(f"Failed to read response: {exc}") from exc

    @staticmethod
    def _prepare_headers(request: WireRequest, scheme: str, host: str, port: int) -> List[Tuple[str, str]]:
        lower_keys = {k.lower() for k in request.headers}
        headers: List[Tuple[str, str]] = []
        if "host" not in lower_keys:
            headers.append(("Host", host_header(scheme, host, port)))
        if request.body and "content-length" not in lower_keys:
            headers.append(("Content-Length", str(len(request.body))))
        headers.extend(request.headers.items())
        return headers

    async def _read_response(self, request: WireRequest) -> Tuple[bytes, ResponseMetadata]:
        while True:
            event = await self._read_event()
            if isinstance(event, h11.Response):
                break
            if isinstance(event, h11.InformationalResponse):
                continue
            if event is h11.ConnectionClosed:
                raise ResponseError("Connection closed before response")

        decoded_headers: Dict[str, str] = {}
        for k, v in event.headers:
            decoded_headers[k.decode("latin-1")] = v.decode("latin-1")

        body = bytearray()
        while True:
            body_event = await self._read_event()
            if isinstance(body_event, h11.Data):
                body.extend(body_event.data)
            elif isinstance(body_event, h11.EndOfMessage) or body_event is h11.ConnectionClosed:
                break

        metadata = ResponseMetadata(
            status_code=event.status_code,
            headers=decoded_headers,
            reason=event.reason.decode("ascii", errors="replace"),
            url=request.url,
        )
        return bytes(body), metadata
