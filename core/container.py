# core/container.py
"""
Component wiring.

Every collaborator is built once here and passed explicitly; the resulting
AppServices lives on app.state for the lifetime of the process. Tests build
their own AppServices around in-memory stores and doubles.
"""
import logging
from dataclasses import dataclass

from config.settings import Settings
from core import db
from infra.redis_client import RedisClient
from services.connection_registry import ConnectionRegistry
from services.member_db_service import FanclubDBStore, MemberDBStore
from services.member_service import MemberService
from services.member_store import FanclubStore, InMemoryFanclubStore, InMemoryMemberStore, MemberStore
from services.proximity_index import ProximityIndex
from services.proximity_pipeline import ProximityPipeline
from services.push_service import PushService
from services.throttle_store import ThrottleStore
from workers.event_dispatcher import EventDispatcher

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    settings: Settings
    redis_client: RedisClient
    members: MemberStore
    fanclubs: FanclubStore
    registry: ConnectionRegistry
    throttle: ThrottleStore
    push: PushService
    pipeline: ProximityPipeline
    dispatcher: EventDispatcher
    member_service: MemberService

    async def startup(self):
        await self.redis_client.connect()
        await db.create_tables()
        await self.dispatcher.start()
        logger.info("Services started (radius=%sm, cooldown=%ss)",
                    self.pipeline.radius_m, self.pipeline.cooldown_seconds)

    async def shutdown(self):
        await self.dispatcher.stop()
        await self.registry.close_all()
        await self.push.aclose()
        await self.redis_client.disconnect()
        await db.dispose_engine()


def build_services(
    settings: Settings,
    members: MemberStore | None = None,
    fanclubs: FanclubStore | None = None,
    redis_client: RedisClient | None = None,
    push: PushService | None = None,
) -> AppServices:
    if members is None or fanclubs is None:
        session_maker = db.init_engine()
        if session_maker is not None:
            members = members or MemberDBStore(session_maker)
            fanclubs = fanclubs or FanclubDBStore(session_maker)
        else:
            members = members or InMemoryMemberStore()
            fanclubs = fanclubs or InMemoryFanclubStore()

    redis_client = redis_client or RedisClient(settings.REDIS_URL)
    push = push or PushService(settings.FCM_ENDPOINT, settings.FCM_SERVER_KEY,
                               timeout=settings.PUSH_TIMEOUT_SECONDS,
                               history_size=settings.PUSH_HISTORY_SIZE)
    registry = ConnectionRegistry(max_pending=settings.SSE_MAX_PENDING_EVENTS)
    throttle = ThrottleStore(redis_client, ttl_seconds=settings.PUSH_COOLDOWN_SECONDS)
    index = ProximityIndex(members)

    pipeline = ProximityPipeline(
        members, fanclubs, index, registry, throttle, push,
        radius_m=settings.PROXIMITY_RADIUS_METERS,
        cooldown_seconds=settings.PUSH_COOLDOWN_SECONDS,
    )
    dispatcher = EventDispatcher(pipeline.handle, max_queue=settings.EVENT_QUEUE_SIZE,
                                 workers=settings.EVENT_WORKERS)
    member_service = MemberService(members, fanclubs, index, redis_client, dispatcher.publish,
                                   session_ttl=settings.SESSION_TTL_SECONDS)

    return AppServices(
        settings=settings,
        redis_client=redis_client,
        members=members,
        fanclubs=fanclubs,
        registry=registry,
        throttle=throttle,
        push=push,
        pipeline=pipeline,
        dispatcher=dispatcher,
        member_service=member_service,
    )
