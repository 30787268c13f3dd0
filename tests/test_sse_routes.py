import asyncio

import pytest

from main import create_app


def _connect_scope(name):
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": "/sse/connect",
        "raw_path": b"/sse/connect",
        "root_path": "",
        "query_string": f"memberName={name}".encode(),
        "headers": [(b"host", b"testserver")],
        "server": ("testserver", 80),
        "client": ("test", 1),
    }


@pytest.mark.asyncio
async def test_broken_transport_before_streaming_releases_registry_entry(services):
    app = create_app(services)
    request_sent = False
    never = asyncio.Event()

    async def receive():
        nonlocal request_sent
        if not request_sent:
            request_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await never.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        raise OSError("connection reset")

    with pytest.raises(Exception):
        await asyncio.wait_for(app(_connect_scope("alice"), receive, send), timeout=2)

    assert not await services.registry.is_connected("alice")


@pytest.mark.asyncio
async def test_client_disconnect_releases_registry_entry(services):
    app = create_app(services)
    sent = []
    first_frame = asyncio.Event()
    request_sent = False

    async def receive():
        nonlocal request_sent
        if not request_sent:
            request_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await first_frame.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        sent.append(message)
        if message["type"] == "http.response.body" and message.get("body"):
            first_frame.set()

    await asyncio.wait_for(app(_connect_scope("bob"), receive, send), timeout=2)

    assert sent[0]["type"] == "http.response.start"
    assert sent[0]["status"] == 200
    bodies = b"".join(m.get("body", b"") for m in sent if m["type"] == "http.response.body")
    assert bodies.startswith(b"event: connect\ndata: connected!\n\n")
    assert not await services.registry.is_connected("bob")
