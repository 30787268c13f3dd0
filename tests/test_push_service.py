import json

import httpx
import pytest

from core.errors import PushDeliveryError
from models.member import PushMessage
from services.push_service import PushService

MESSAGE = PushMessage(token="tok-1", title="HOXY.. 내 옆에 F1가?", body="alice님 주변에 F1가 있어요❤️")


@pytest.mark.asyncio
async def test_posts_fcm_message_with_bearer_key():
    captured = {}

    def handler(request: httpx.Request):
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"name": "projects/x/messages/1"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    service = PushService("https://push.example/send", "secret", client=client)
    result = await service.send(MESSAGE)
    await client.aclose()

    assert result["published"] is True
    assert captured["auth"] == "Bearer secret"
    assert captured["body"] == {
        "message": {
            "token": "tok-1",
            "notification": {"title": MESSAGE.title, "body": MESSAGE.body},
        }
    }


@pytest.mark.asyncio
async def test_http_error_becomes_push_delivery_error():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(503)))
    service = PushService("https://push.example/send", client=client)
    with pytest.raises(PushDeliveryError):
        await service.send(MESSAGE)
    await client.aclose()
    assert service.recent_notifications() == []


@pytest.mark.asyncio
async def test_fallback_records_without_endpoint(push_service):
    result = await push_service.send(MESSAGE)
    assert result["published"] is False
    assert push_service.recent_notifications()[-1]["token"] == "tok-1"


@pytest.mark.asyncio
async def test_empty_token_is_rejected(push_service):
    with pytest.raises(PushDeliveryError):
        await push_service.send(PushMessage(token="", title="t", body="b"))


@pytest.mark.asyncio
async def test_history_keeps_only_most_recent_pushes():
    service = PushService(history_size=20)
    for i in range(1000):
        await service.send(PushMessage(token=f"tok-{i}", title="t", body="b"))

    recent = service.recent_notifications()
    assert len(service.sent_notifications) == 20
    assert [p["token"] for p in recent] == [f"tok-{i}" for i in range(980, 1000)]
