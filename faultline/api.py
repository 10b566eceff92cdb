"""
JSON API handlers covered by the API exception advice.
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from .errors import NotFoundError, UserError
from .routing import ResolvingRoute

router = APIRouter(prefix="/api", route_class=ResolvingRoute, tags=["api"])


class MemberDto(BaseModel):
    member_id: str
    name: str


@router.get("/members/{member_id}")
async def get_member(member_id: str) -> MemberDto:
    """Return a member; a few reserved ids fail on purpose."""

    if member_id == "ex":
        raise RuntimeError("invalid user")
    if member_id == "bad":
        raise ValueError("bad input")
    if member_id == "user-ex":
        raise UserError("user error")
    if member_id == "missing":
        raise NotFoundError(f"member {member_id} not found")

    return MemberDto(member_id=member_id, name=f"hello {member_id}")
