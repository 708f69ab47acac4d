"""
Isobel Dashboard - Auth Router
==============================

Hands every /api/auth/* request to the identity subsystem.
"""

from fastapi import APIRouter, Request
from starlette.responses import Response

from isobel.auth import from_starlette, get_auth_handler, to_starlette


router = APIRouter(prefix="/auth", tags=["Auth"])

AUTH_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"]


@router.api_route("", methods=AUTH_METHODS, include_in_schema=False)
@router.api_route("/{path:path}", methods=AUTH_METHODS, include_in_schema=False)
async def auth_catch_all(request: Request) -> Response:
    response = await get_auth_handler().handle(await from_starlette(request))
    return to_starlette(response)
