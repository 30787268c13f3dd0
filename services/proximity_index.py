# services/proximity_index.py
import logging
from typing import List, Optional

from models.member import GeoPoint, Member
from services.member_store import MemberStore

logger = logging.getLogger(__name__)


class ProximityIndex:
    """Shapes point-radius queries over the member store for the pipeline."""

    def __init__(self, members: MemberStore):
        self.members = members

    async def find_near(self, point: GeoPoint, radius_m: float, exclude_name: Optional[str] = None) -> List[Member]:
        """
        Members within radius_m of point. The store does not guarantee that
        the reference member is left out, so exclude_name is filtered here.
        """
        found = await self.members.find_near(point, radius_m)
        nearby = [m for m in found if m.name != exclude_name]
        logger.debug(
            "find_near lat=%s lon=%s radius=%sm exclude=%s -> %d",
            point.lat, point.lon, radius_m, exclude_name, len(nearby),
        )
        return nearby
