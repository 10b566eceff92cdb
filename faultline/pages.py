"""
Handlers outside the API advice scope; their failures go to the global resolvers and error pages.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from .context import ResponseState, get_response_state
from .errors import BadRequestError, NotFoundError, ResponseStatusError, UserError
from .routing import ResolvingRoute

router = APIRouter(route_class=ResolvingRoute, tags=["pages"])


@router.get("/error-ex")
async def error_ex() -> None:
    raise RuntimeError("exception raised")


@router.get("/error-400")
async def error_400(response: ResponseState = Depends(get_response_state)) -> None:
    response.send_error(400, "400 error!")


@router.get("/error-404")
async def error_404(response: ResponseState = Depends(get_response_state)) -> None:
    response.send_error(404, "404 error!")


@router.get("/error-500")
async def error_500(response: ResponseState = Depends(get_response_state)) -> None:
    response.send_error(500)


@router.get("/members/{member_id}")
async def get_member_page(member_id: str) -> dict[str, str]:
    if member_id == "ex":
        raise RuntimeError("invalid user")
    if member_id == "bad":
        raise ValueError("bad input")
    if member_id == "user-ex":
        raise UserError("user error")
    if member_id == "missing":
        raise NotFoundError(f"member {member_id} not found")
    return {"member_id": member_id, "name": f"hello {member_id}"}


@router.get("/response-status-ex1")
async def response_status_ex1() -> str:
    raise BadRequestError()


@router.get("/response-status-ex2")
async def response_status_ex2() -> str:
    raise ResponseStatusError(404, "error.bad", cause=ValueError("wrapped"))


@router.get("/default-handler-ex")
async def default_handler_ex(data: int) -> str:
    return "ok"
