# services/member_service.py
import logging
from typing import Callable, List

from core.errors import ConflictError, NotFoundError
from infra.redis_client import RedisClient, session_key
from models.member import Fanclub, GeoPoint, LocationUpdated, Member, MemberEvent, StatusUpdated
from services.member_store import FanclubStore, MemberStore
from services.proximity_index import ProximityIndex

logger = logging.getLogger(__name__)


class MemberService:
    """
    Write path and synchronous queries for members.

    Updates are persisted first, then the matching event is handed to
    `publish` (the dispatcher). Missing members surface as NotFoundError here;
    the asynchronous side never sees it.
    """

    def __init__(self, members: MemberStore, fanclubs: FanclubStore, index: ProximityIndex,
                 redis_client: RedisClient, publish: Callable[[MemberEvent], object],
                 session_ttl: int = 300):
        self.members = members
        self.fanclubs = fanclubs
        self.index = index
        self.redis_client = redis_client
        self.publish = publish
        self.session_ttl = session_ttl

    async def get_member(self, name: str) -> Member:
        member = await self.members.get(name)
        if member is None:
            raise NotFoundError(f"Member '{name}' does not exist")
        return member

    async def list_members(self) -> List[Member]:
        return await self.members.list_all()

    async def add_member(self, name: str, fanclub_id: str, push_token: str | None,
                         location: GeoPoint, profile_url: str | None = None) -> Member:
        if await self.members.exists(name):
            raise ConflictError(f"Member '{name}' already exists")
        await self.get_fanclub(fanclub_id)
        member = Member(
            name=name,
            fanclub_id=fanclub_id,
            location=location,
            push_token=push_token,
            profile_url=profile_url,
        )
        await self.members.save(member)
        await self.touch_session(name)
        logger.info("Member %s joined fanclub %s", name, fanclub_id)
        return member

    async def touch_session(self, name: str) -> None:
        await self.redis_client.set(session_key(name), "true", ttl=self.session_ttl)

    async def get_near_members(self, name: str, point: GeoPoint, distance_m: float) -> List[Member]:
        """Online members within distance_m of point, excluding the requester."""
        member = await self.get_member(name)
        nearby = await self.index.find_near(point, distance_m, exclude_name=member.name)
        return [m for m in nearby if m.online]

    async def update_location(self, name: str, point: GeoPoint) -> Member:
        member = await self.get_member(name)
        member.location = point
        await self.members.save(member)
        await self.touch_session(name)
        self.publish(LocationUpdated(member=member))
        return member

    async def update_status(self, name: str, online: bool) -> Member:
        member = await self.get_member(name)
        member.online = online
        await self.members.save(member)
        self.publish(StatusUpdated(member=member))
        return member

    async def add_points(self, name: str, points: int) -> Member:
        member = await self.get_member(name)
        member.points += points
        await self.members.save(member)
        return member

    async def get_fanclub_id(self, name: str) -> str:
        return (await self.get_member(name)).fanclub_id

    # --- fanclubs ---
    async def get_fanclub(self, fanclub_id: str) -> Fanclub:
        fanclub = await self.fanclubs.get(fanclub_id)
        if fanclub is None:
            raise NotFoundError(f"Fanclub '{fanclub_id}' does not exist")
        return fanclub

    async def add_fanclub(self, fanclub_id: str, name: str) -> Fanclub:
        if await self.fanclubs.get(fanclub_id) is not None:
            raise ConflictError(f"Fanclub '{fanclub_id}' already exists")
        return await self.fanclubs.save(Fanclub(id=fanclub_id, name=name))
