# models/member.py
import math
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

EARTH_RADIUS_M = 6371000.0


class GeoPoint(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)

    def distance_m(self, other: "GeoPoint") -> float:
        """Great-circle (haversine) distance in meters."""
        phi1 = math.radians(self.lat)
        phi2 = math.radians(other.lat)
        dphi = math.radians(other.lat - self.lat)
        dlambda = math.radians(other.lon - self.lon)
        a = (
            math.sin(dphi / 2) ** 2
            + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
        )
        return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    def bounding_box(self, radius_m: float) -> tuple[float, float, float, float]:
        """(min_lat, max_lat, min_lon, max_lon) enclosing a circle of radius_m."""
        dlat = math.degrees(radius_m / EARTH_RADIUS_M)
        cos_lat = max(math.cos(math.radians(self.lat)), 1e-12)
        dlon = math.degrees(radius_m / (EARTH_RADIUS_M * cos_lat))
        return self.lat - dlat, self.lat + dlat, self.lon - dlon, self.lon + dlon

    def longitude_ranges(self, radius_m: float) -> list[tuple[float, float]]:
        """
        The bounding box's longitude span as ranges inside [-180, 180]; a span
        crossing the antimeridian is split in two.
        """
        _, _, min_lon, max_lon = self.bounding_box(radius_m)
        if max_lon - min_lon >= 360:
            return [(-180.0, 180.0)]
        if min_lon < -180:
            return [(min_lon + 360, 180.0), (-180.0, max_lon)]
        if max_lon > 180:
            return [(min_lon, 180.0), (-180.0, max_lon - 360)]
        return [(min_lon, max_lon)]


class Fanclub(BaseModel):
    id: str
    name: str


class Member(BaseModel):
    """Presence record: current location, online flag, fanclub and push address."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    fanclub_id: str = Field(..., alias="fanclubId")
    location: GeoPoint
    online: bool = False
    push_token: Optional[str] = Field(None, alias="pushToken")
    profile_url: Optional[str] = Field(None, alias="profileUrl")
    points: int = 0


class EventKind(str, Enum):
    STATUS = "STATUS"


class StatusEventPayload(BaseModel):
    """Live event body sent to connected neighbours when a member goes on/offline."""
    model_config = ConfigDict(populate_by_name=True)

    subject_name: str = Field(..., alias="subjectName")
    subject_online: bool = Field(..., alias="subjectOnline")
    event_kind: EventKind = Field(EventKind.STATUS, alias="eventKind")


class PushMessage(BaseModel):
    token: str
    title: str
    body: str


# Inbound events emitted by the write path after the record is persisted.
class LocationUpdated(BaseModel):
    kind: Literal["location"] = "location"
    member: Member


class StatusUpdated(BaseModel):
    kind: Literal["status"] = "status"
    member: Member


MemberEvent = Union[LocationUpdated, StatusUpdated]
