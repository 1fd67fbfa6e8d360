"""
API response envelope: {"success", "data", "message"}.

Routers return success_response(). Domain errors reach the client through
app_error_response(), registered as the AppError handler in app.main.
"""

from typing import Any

from fastapi.responses import JSONResponse

from app.core.errors import AppError


def success_response(data: Any = None, message: str = "Success") -> dict:
    return {"success": True, "data": data, "message": message}


def error_response(message: str = "Error", data: Any = None) -> dict:
    return {"success": False, "data": data, "message": message}


def app_error_response(exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_response(message=exc.message))
