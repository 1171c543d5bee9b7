# zomatify/api/__init__.py
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from zomatify.api.routers import health, orders, payments, vendors


def include_routers(app: FastAPI) -> None:
    app.include_router(health.router)
    app.include_router(payments.router)
    app.include_router(orders.router)
    app.include_router(vendors.router)


async def http_error_handler(request, exc: StarletteHTTPException):
    # every error body is {"error": ...}
    detail = "Method not allowed" if exc.status_code == 405 else exc.detail
    return JSONResponse(
        {"error": detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )
