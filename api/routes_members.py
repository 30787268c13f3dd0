# api/routes_members.py
from fastapi import APIRouter, Depends, Query

from api.deps import get_member_service
from core.response import ok
from models.member import GeoPoint
from models.schemas import FanclubCreate, LocationUpdate, MemberCreate, PointsUpdate, StatusUpdate
from services.member_service import MemberService

router = APIRouter()


@router.post("/members", status_code=201)
async def add_member(payload: MemberCreate, service: MemberService = Depends(get_member_service)):
    """
    Register a member.

    - 201 Created: member saved (offline, 0 points)
    - 404: fanclubId does not exist
    - 409: name already taken
    """
    member = await service.add_member(
        payload.name, payload.fanclub_id, payload.push_token, payload.location, payload.profile_url
    )
    return ok(member)


@router.get("/members")
async def list_members(service: MemberService = Depends(get_member_service)):
    return ok(await service.list_members())


@router.get("/members/{name}")
async def get_member(name: str, service: MemberService = Depends(get_member_service)):
    return ok(await service.get_member(name))


@router.get("/members/{name}/near")
async def get_near_members(
    name: str,
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    distance: float = Query(100, gt=0, description="Search radius in meters"),
    service: MemberService = Depends(get_member_service),
):
    """Online members within `distance` meters of (lat, lon), requester excluded."""
    members = await service.get_near_members(name, GeoPoint(lat=lat, lon=lon), distance)
    return ok(members)


@router.patch("/members/{name}/location")
async def update_location(name: str, payload: LocationUpdate,
                          service: MemberService = Depends(get_member_service)):
    """Persist the new location; offline neighbours are notified in the background."""
    member = await service.update_location(name, GeoPoint(lat=payload.lat, lon=payload.lon))
    return ok(member)


@router.patch("/members/{name}/status")
async def update_status(name: str, payload: StatusUpdate,
                        service: MemberService = Depends(get_member_service)):
    member = await service.update_status(name, payload.online)
    return ok(member)


@router.patch("/members/{name}/points")
async def add_points(name: str, payload: PointsUpdate,
                     service: MemberService = Depends(get_member_service)):
    member = await service.add_points(name, payload.points)
    return ok(member)


@router.get("/members/{name}/fanclub")
async def get_fanclub_id(name: str, service: MemberService = Depends(get_member_service)):
    return ok({"fanclubId": await service.get_fanclub_id(name)})


@router.post("/fanclubs", status_code=201)
async def add_fanclub(payload: FanclubCreate, service: MemberService = Depends(get_member_service)):
    return ok(await service.add_fanclub(payload.id, payload.name))


@router.get("/fanclubs/{fanclub_id}")
async def get_fanclub(fanclub_id: str, service: MemberService = Depends(get_member_service)):
    return ok(await service.get_fanclub(fanclub_id))
