from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from models.member import GeoPoint


class MemberCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    fanclub_id: str = Field(..., min_length=1, alias="fanclubId")
    push_token: Optional[str] = Field(None, alias="pushToken")
    location: GeoPoint
    profile_url: Optional[str] = Field(None, alias="profileUrl")


class FanclubCreate(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class LocationUpdate(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class StatusUpdate(BaseModel):
    online: bool


class PointsUpdate(BaseModel):
    points: int
