"""
Member and fanclub stores with MySQL backend.

Purpose:
- Durable replacement for the in-memory stores when USE_DB=true
- Point-radius queries: bounding-box prefilter in SQL, exact haversine in Python

Each call opens its own short-lived session from the session factory, because
the proximity pipeline runs on dispatcher tasks with no request scope.
"""
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from models.db_models import FanclubRow, MemberRow
from models.member import Fanclub, GeoPoint, Member
import logging

logger = logging.getLogger(__name__)


def near_query(point: GeoPoint, radius_m: float):
    """Bounding-box prefilter; longitude is split in two across the antimeridian."""
    min_lat, max_lat, _, _ = point.bounding_box(radius_m)
    lon_match = or_(*[MemberRow.lon.between(lo, hi) for lo, hi in point.longitude_ranges(radius_m)])
    return select(MemberRow).where(MemberRow.lat.between(min_lat, max_lat)).where(lon_match)


class MemberDBStore:
    """DB-backed member store using async SQLAlchemy."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def get(self, name: str) -> Optional[Member]:
        async with self.session_maker() as session:
            row = await session.get(MemberRow, name)
            return self._row_to_member(row) if row else None

    async def exists(self, name: str) -> bool:
        return await self.get(name) is not None

    async def save(self, member: Member) -> Member:
        """Insert or update the presence record (upsert by name)."""
        async with self.session_maker() as session:
            row = await session.get(MemberRow, member.name)
            if row is None:
                row = MemberRow(name=member.name)
                session.add(row)
            row.fanclub_id = member.fanclub_id
            row.lat = member.location.lat
            row.lon = member.location.lon
            row.online = member.online
            row.push_token = member.push_token
            row.profile_url = member.profile_url
            row.points = member.points
            await session.commit()
            logger.debug("Saved member %s", member.name)
        return member

    async def list_all(self) -> List[Member]:
        async with self.session_maker() as session:
            result = await session.execute(select(MemberRow))
            return [self._row_to_member(row) for row in result.scalars().all()]

    async def find_near(self, point: GeoPoint, radius_m: float) -> List[Member]:
        stmt = near_query(point, radius_m)
        async with self.session_maker() as session:
            result = await session.execute(stmt)
            candidates = [self._row_to_member(row) for row in result.scalars().all()]
        return [m for m in candidates if point.distance_m(m.location) <= radius_m]

    @staticmethod
    def _row_to_member(row: MemberRow) -> Member:
        return Member(
            name=row.name,
            fanclub_id=row.fanclub_id,
            location=GeoPoint(lat=row.lat, lon=row.lon),
            online=bool(row.online),
            push_token=row.push_token,
            profile_url=row.profile_url,
            points=row.points or 0,
        )


class FanclubDBStore:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def get(self, fanclub_id: str) -> Optional[Fanclub]:
        async with self.session_maker() as session:
            row = await session.get(FanclubRow, fanclub_id)
            return Fanclub(id=row.id, name=row.name) if row else None

    async def save(self, fanclub: Fanclub) -> Fanclub:
        async with self.session_maker() as session:
            row = await session.get(FanclubRow, fanclub.id)
            if row is None:
                row = FanclubRow(id=fanclub.id)
                session.add(row)
            row.name = fanclub.name
            await session.commit()
        return fanclub
