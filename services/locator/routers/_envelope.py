"""Shared API envelope helpers for locator routers."""

import uuid

from fastapi import Request
from starlette.responses import JSONResponse


def request_id(request: Request) -> str:
    return getattr(request.state, "request_id", str(uuid.uuid4()))


def error_response(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message},
            "requestId": request_id(request),
        },
    )
