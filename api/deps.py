# api/deps.py
from fastapi import Request

from core.container import AppServices
from services.member_service import MemberService


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_member_service(request: Request) -> MemberService:
    return request.app.state.services.member_service
