"""
Bare 200 answer for every OPTIONS request

CORSMiddleware answers browser preflights itself with a text body ("OK" or
the rejection reason). Clients of the registration endpoint expect an empty
200 for any OPTIONS request, so this middleware sits outside CORSMiddleware
and keeps only its Access-Control-* headers.
"""
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

BODY_HEADERS = ("content-length", "content-type")


class PreflightMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        if request.method != "OPTIONS":
            return response

        headers = {
            key: value
            for key, value in response.headers.items()
            if key.lower() not in BODY_HEADERS
        }
        return Response(status_code=200, headers=headers)
