# services/proximity_pipeline.py
"""
Proximity event pipeline.

Reacts to LocationUpdated / StatusUpdated after the write path has already
persisted the member:

- StatusUpdated: online same-fanclub neighbours with a live connection get an
  immediate status event. Neighbours without a connection are skipped.
- LocationUpdated: offline same-fanclub neighbours get a push, at most once
  per cooldown per recipient.

Only the member name and the changed field are taken from the event; the rest
of the record is re-read from the store, since location and status events
may be handled in either order. Every failure is contained here: a bad
recipient is logged and skipped, and handle() never raises back to the
dispatcher.
"""
import logging

from core.errors import DeliveryError, PushDeliveryError
from models.member import (
    LocationUpdated,
    Member,
    MemberEvent,
    PushMessage,
    StatusEventPayload,
    StatusUpdated,
)
from services.connection_registry import ConnectionRegistry, SendResult
from services.member_store import FanclubStore, MemberStore
from services.proximity_index import ProximityIndex
from services.push_service import PushService
from services.throttle_store import ThrottleStore

logger = logging.getLogger(__name__)

PUSH_TITLE_TEMPLATE = "HOXY.. 내 옆에 {fanclub}가?"
PUSH_BODY_TEMPLATE = "{member}님 주변에 {fanclub}가 있어요❤️"


class ProximityPipeline:
    def __init__(
        self,
        members: MemberStore,
        fanclubs: FanclubStore,
        index: ProximityIndex,
        registry: ConnectionRegistry,
        throttle: ThrottleStore,
        push: PushService,
        radius_m: float = 2.0,
        cooldown_seconds: int = 3600,
    ):
        self.members = members
        self.fanclubs = fanclubs
        self.index = index
        self.registry = registry
        self.throttle = throttle
        self.push = push
        self.radius_m = radius_m
        self.cooldown_seconds = cooldown_seconds

    async def handle(self, event: MemberEvent) -> int:
        """Route one event. Returns the number of notifications delivered."""
        try:
            if isinstance(event, StatusUpdated):
                return await self.on_status_updated(event)
            if isinstance(event, LocationUpdated):
                return await self.on_location_updated(event)
            logger.warning("Ignoring unknown event type %s", type(event).__name__)
            return 0
        except Exception:
            logger.exception("Proximity handling failed for %s event of %s", event.kind, event.member.name)
            return 0

    async def _fresh(self, event_member: Member) -> Member | None:
        current = await self.members.get(event_member.name)
        if current is None:
            logger.info("Member %s no longer exists, dropping event", event_member.name)
        return current

    async def on_status_updated(self, event: StatusUpdated) -> int:
        subject = await self._fresh(event.member)
        if subject is None:
            return 0
        online = event.member.online

        neighbours = await self.index.find_near(subject.location, self.radius_m, exclude_name=subject.name)
        targets = [m for m in neighbours if m.fanclub_id == subject.fanclub_id and m.online]

        payload = StatusEventPayload(subject_name=subject.name, subject_online=online)
        delivered = 0
        for target in targets:
            try:
                result = await self.registry.send(target.name, subject.name, payload)
            except DeliveryError as e:
                logger.warning("Status event for %s -> %s failed: %s", subject.name, target.name, e)
                continue
            if result is SendResult.DELIVERED:
                delivered += 1
            else:
                logger.debug("%s has no live connection, skipping status event", target.name)
        logger.info("StatusUpdated %s online=%s: %d/%d neighbours notified",
                    subject.name, online, delivered, len(targets))
        return delivered

    async def on_location_updated(self, event: LocationUpdated) -> int:
        subject = await self._fresh(event.member)
        if subject is None:
            return 0
        location = event.member.location

        fanclub = await self.fanclubs.get(subject.fanclub_id)
        if fanclub is None:
            logger.warning("Fanclub %s of %s not found, no pushes sent", subject.fanclub_id, subject.name)
            return 0

        neighbours = await self.index.find_near(location, self.radius_m, exclude_name=subject.name)
        targets = [m for m in neighbours if m.fanclub_id == subject.fanclub_id and not m.online]

        pushed = 0
        for target in targets:
            if await self.throttle.was_recently_notified(target.name, self.cooldown_seconds):
                logger.debug("%s was pushed within %ss, skipping", target.name, self.cooldown_seconds)
                continue
            message = PushMessage(
                token=target.push_token or "",
                title=PUSH_TITLE_TEMPLATE.format(fanclub=fanclub.name),
                body=PUSH_BODY_TEMPLATE.format(member=subject.name, fanclub=fanclub.name),
            )
            try:
                await self.push.send(message)
            except PushDeliveryError as e:
                logger.warning("Push to %s about %s failed: %s", target.name, subject.name, e)
                continue
            await self.throttle.record_notified(target.name)
            pushed += 1
        logger.info("LocationUpdated %s: %d/%d offline neighbours pushed", subject.name, pushed, len(targets))
        return pushed
