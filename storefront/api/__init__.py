# storefront/api/__init__.py
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.api.routers import checkouts, cron, health, integrations, orders
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    # bledy ksztaltu requestu to InvalidInput (400), nie 422
    return JSONResponse(
        status_code=400,
        content={
            "detail": {
                "error": "InvalidInput",
                "message": "Invalid request",
                "fields": jsonable_encoder(exc.errors()),
            }
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": {"error": "InternalError", "message": "Internal server error"}},
    )


def create_app() -> FastAPI:
    app = FastAPI(title="Storefront Order Service", version="1.0.0")

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health.router)
    app.include_router(orders.router)
    app.include_router(checkouts.router)
    app.include_router(cron.router)
    app.include_router(integrations.router)
    return app
