"""
Example of sending requests with synchttp.

Every call blocks until the transport reports back, even though the
network exchange itself runs on a background event loop.
"""

import logging

from synchttp import Endpoint, HTTPClient, HTTPMethod, HTTPRequest, URLEncodedPayload, XMLPayload

if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)

    with HTTPClient(timeout=10) as client:
        # Query string for GET
        resp = client.send(
            HTTPRequest(
                Endpoint("https://httpbin.org/get"),
                HTTPMethod.GET,
                URLEncodedPayload([("q", "python"), ("page", 1)]),
            )
        )
        print(f"Status: {resp.status_code}")
        print(f"Response: {resp.text()}")

        # Form body for POST
        resp2 = client.send(
            HTTPRequest(
                Endpoint("https://httpbin.org/post"),
                HTTPMethod.POST,
                URLEncodedPayload([("name", "widget")]),
            )
        )
        print(f"POST Status: {resp2.status_code}")

        # Property list body
        resp3 = client.send(
            HTTPRequest(
                Endpoint("https://httpbin.org/post"),
                HTTPMethod.POST,
                XMLPayload({"name": "widget", "count": 2}),
                headers={"Accept": "application/json"},
            )
        )
        print(f"XML Status: {resp3.status_code}")
