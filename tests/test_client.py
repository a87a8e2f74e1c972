import threading
import time

import pytest

from synchttp import (
    Endpoint,
    HTTPClient,
    HTTPMethod,
    HTTPRequest,
    HTTPResponse,
    InvalidResponse,
    RequestTimeout,
    ResponseMetadata,
    SerializationError,
    TransportTask,
    URLEncodedPayload,
    XMLPayload,
)

ITEMS = Endpoint("https://api.example.com/items")


class FakeTransport:
    """
    Transport double that answers from a handler.

    ``handler(wire)`` returns the ``(data, response, error)`` triple to report.
    ``delay`` moves the completion onto another thread after sleeping.
    """

    def __init__(self, handler, delay=None, repeat=1):
        self.handler = handler
        self.delay = delay
        self.repeat = repeat
        self.requests = []
        self.threads = []

    def start(self, wire, completion):
        def launch(finish):
            self.requests.append(wire)
            outcome = self.handler(wire)
            if self.delay is None:
                for _ in range(self.repeat):
                    completion(*outcome)
                return

            def later():
                time.sleep(self.delay)
                for _ in range(self.repeat):
                    completion(*outcome)

            thread = threading.Thread(target=later, daemon=True)
            self.threads.append(thread)
            thread.start()

        return TransportTask(launch, completion)


def ok_handler(wire):
    return b"payload", ResponseMetadata(status_code=200, url=wire.url), None


def test_send_returns_status_and_data():
    client = HTTPClient(transport=FakeTransport(ok_handler))
    resp = client.send(HTTPRequest(ITEMS))
    assert resp == HTTPResponse(status_code=200, data=b"payload")
    assert resp.ok
    assert resp.text() == "payload"


def test_send_passes_built_request_to_transport():
    transport = FakeTransport(ok_handler)
    client = HTTPClient(transport=transport)
    client.send(HTTPRequest(ITEMS, HTTPMethod.POST, URLEncodedPayload([("q", "1")])))
    (wire,) = transport.requests
    assert wire.method == "POST"
    assert wire.url == ITEMS.url
    assert wire.body == b"q=1"
    assert wire.headers["Content-Type"] == "application/x-www-form-urlencoded"


def test_send_waits_for_completion_from_another_thread():
    transport = FakeTransport(lambda wire: (b"late", ResponseMetadata(status_code=201), None), delay=0.05)
    resp = HTTPClient(transport=transport).send(HTTPRequest(ITEMS))
    assert resp.status_code == 201
    assert resp.data == b"late"


def test_missing_body_is_preserved():
    transport = FakeTransport(lambda wire: (None, ResponseMetadata(status_code=204), None))
    resp = HTTPClient(transport=transport).send(HTTPRequest(ITEMS))
    assert resp.status_code == 204
    assert resp.data is None
    assert resp.text() == ""


def test_transport_error_is_raised_unchanged():
    error = ConnectionResetError("peer went away")
    transport = FakeTransport(lambda wire: (None, None, error), delay=0.01)
    with pytest.raises(ConnectionResetError) as excinfo:
        HTTPClient(transport=transport).send(HTTPRequest(ITEMS))
    assert excinfo.value is error


def test_error_wins_over_response():
    error = RuntimeError("tls failure")
    transport = FakeTransport(lambda wire: (b"x", ResponseMetadata(status_code=200), error))
    with pytest.raises(RuntimeError) as excinfo:
        HTTPClient(transport=transport).send(HTTPRequest(ITEMS))
    assert excinfo.value is error


@pytest.mark.parametrize("metadata", [None, object(), {"status_code": 200}])
def test_non_http_metadata_raises_invalid_response(metadata):
    transport = FakeTransport(lambda wire: (b"x", metadata, None))
    with pytest.raises(InvalidResponse) as excinfo:
        HTTPClient(transport=transport).send(HTTPRequest(ITEMS))
    assert excinfo.value.response is metadata


def test_metadata_without_integer_status_raises_invalid_response():
    metadata = ResponseMetadata(status_code=None)
    transport = FakeTransport(lambda wire: (b"x", metadata, None))
    with pytest.raises(InvalidResponse):
        HTTPClient(transport=transport).send(HTTPRequest(ITEMS))


def test_build_failure_never_reaches_transport():
    transport = FakeTransport(ok_handler)
    request = HTTPRequest(ITEMS, HTTPMethod.POST, XMLPayload({"bad": object()}))
    with pytest.raises(SerializationError):
        HTTPClient(transport=transport).send(request)
    assert transport.requests == []


def test_error_raised_while_starting_propagates():
    class FailingTransport:
        def start(self, wire, completion):
            raise OSError("cannot start")

    with pytest.raises(OSError, match="cannot start"):
        HTTPClient(transport=FailingTransport()).send(HTTPRequest(ITEMS))


def test_repeated_completion_keeps_first_outcome():
    calls = iter([200, 500])

    def handler(wire):
        return b"", ResponseMetadata(status_code=next(calls)), None

    resp = HTTPClient(transport=FakeTransport(handler, repeat=2)).send(HTTPRequest(ITEMS))
    assert resp.status_code == 200


def test_task_reports_completion_once():
    seen = []
    task = TransportTask(lambda finish: (finish(b"a", None, None), finish(b"b", None, None)), lambda *a: seen.append(a))
    assert not task.started
    task.resume()
    task.resume()
    assert task.started and task.finished
    assert seen == [(b"a", None, None)]


def test_deadline_raises_request_timeout():
    class SilentTransport:
        def start(self, wire, completion):
            return TransportTask(lambda finish: None, completion)

    client = HTTPClient(transport=SilentTransport(), timeout=0.05)
    started = time.monotonic()
    with pytest.raises(RequestTimeout) as excinfo:
        client.send(HTTPRequest(ITEMS))
    assert time.monotonic() - started >= 0.04
    assert excinfo.value.timeout == 0.05


def test_per_call_timeout_overrides_client_default():
    transport = FakeTransport(ok_handler, delay=0.5)
    client = HTTPClient(transport=transport)
    with pytest.raises(RequestTimeout):
        client.send(HTTPRequest(ITEMS), timeout=0.05)
    # The late completion must be discarded quietly.
    transport.threads[0].join()


def test_concurrent_sends_are_independent():
    def handler(wire):
        code = int(wire.url.rsplit("=", 1)[1])
        return str(code).encode(), ResponseMetadata(status_code=code), None

    client = HTTPClient(transport=FakeTransport(handler, delay=0.01))
    results = {}
    errors = []

    def worker(code):
        try:
            request = HTTPRequest(ITEMS, HTTPMethod.GET, URLEncodedPayload([("code", code)]))
            results[code] = client.send(request)
        except Exception as exc:  # pragma: no cover - surfaced below
            errors.append(exc)

    codes = list(range(200, 232))
    threads = [threading.Thread(target=worker, args=(code,)) for code in codes]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    for code in codes:
        assert results[code].status_code == code
        assert results[code].data == str(code).encode()


def test_injected_transport_is_not_closed():
    class ClosableTransport(FakeTransport):
        closed = False

        def close(self):
            self.closed = True

    transport = ClosableTransport(ok_handler)
    with HTTPClient(transport=transport) as client:
        client.send(HTTPRequest(ITEMS))
    assert not transport.closed
