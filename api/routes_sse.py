# api/routes_sse.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from api.deps import get_services
from core.container import AppServices
from core.errors import DeliveryError
from services.connection_registry import ConnectionRegistry, EventChannel

logger = logging.getLogger(__name__)

router = APIRouter()


class EventStreamResponse(StreamingResponse):
    """
    SSE response bound to a registered channel. The registry entry is removed
    however sending ends, including when the peer is gone before the body
    starts and the frame generator never runs.
    """

    def __init__(self, registry: ConnectionRegistry, channel: EventChannel, idle_timeout: float):
        super().__init__(
            channel.stream(idle_timeout=idle_timeout),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )
        self.registry = registry
        self.channel = channel

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            # only evicts the entry if a newer connection has not replaced it
            await self.registry.remove(self.channel.member_name, self.channel)


@router.get("/connect")
async def connect(
    member_name: str = Query(..., alias="memberName", min_length=1),
    services: AppServices = Depends(get_services),
):
    """
    Open the live event stream for a member.

    The first frame is `event: connect` / `data: connected!`. A second
    connection for the same name supersedes this one.
    """
    registry = services.registry
    channel = registry.open_channel(member_name)
    try:
        await registry.register(member_name, channel)
    except DeliveryError as e:
        logger.error("SSE connect failed for %s: %s", member_name, e)
        raise HTTPException(status_code=503, detail="Could not open event stream")

    return EventStreamResponse(registry, channel, services.settings.SSE_IDLE_TIMEOUT_SECONDS)
