# services/member_store.py
"""
Member and fanclub stores.

MemberStore / FanclubStore describe what the rest of the service needs from
the durable store. The in-memory versions below are the default for local
development and tests; services/member_db_service.py provides the MySQL ones.
Lookups return None for a missing record; turning that into NotFoundError is
the caller's decision.
"""
import logging
from typing import Dict, List, Optional, Protocol

from models.member import Fanclub, GeoPoint, Member

logger = logging.getLogger(__name__)


class MemberStore(Protocol):
    async def get(self, name: str) -> Optional[Member]: ...
    async def exists(self, name: str) -> bool: ...
    async def save(self, member: Member) -> Member: ...
    async def list_all(self) -> List[Member]: ...
    async def find_near(self, point: GeoPoint, radius_m: float) -> List[Member]: ...


class FanclubStore(Protocol):
    async def get(self, fanclub_id: str) -> Optional[Fanclub]: ...
    async def save(self, fanclub: Fanclub) -> Fanclub: ...


class InMemoryMemberStore:
    def __init__(self):
        self.members: Dict[str, Member] = {}

    async def get(self, name: str) -> Optional[Member]:
        member = self.members.get(name)
        return member.model_copy(deep=True) if member else None

    async def exists(self, name: str) -> bool:
        return name in self.members

    async def save(self, member: Member) -> Member:
        self.members[member.name] = member.model_copy(deep=True)
        return member

    async def list_all(self) -> List[Member]:
        return [m.model_copy(deep=True) for m in self.members.values()]

    async def find_near(self, point: GeoPoint, radius_m: float) -> List[Member]:
        return [
            m.model_copy(deep=True)
            for m in self.members.values()
            if point.distance_m(m.location) <= radius_m
        ]


class InMemoryFanclubStore:
    def __init__(self):
        self.fanclubs: Dict[str, Fanclub] = {}

    async def get(self, fanclub_id: str) -> Optional[Fanclub]:
        return self.fanclubs.get(fanclub_id)

    async def save(self, fanclub: Fanclub) -> Fanclub:
        self.fanclubs[fanclub.id] = fanclub
        return fanclub
