from fastapi import Request, HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.core.exceptions import DeliveryError
from storefront.utils.logger import logger
from storefront.utils.safe_errors import safe_error_log


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"[Validation] {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Invalid request data.", "errors": jsonable_encoder(exc.errors())},
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def delivery_exception_handler(request: Request, exc: DeliveryError):
    if exc.status_code >= 500:
        logger.error(f"[DeliveryError] {request.method} {request.url.path}: {exc.code} {exc.message}")
    else:
        logger.info(f"[DeliveryError] {request.method} {request.url.path}: {exc.code} {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "code": exc.code,
            "category": exc.category,
            **({"details": exc.details} if exc.details else {}),
        },
    )


async def general_exception_handler(request: Request, exc: Exception):
    safe_error_log(exc, f"{request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An error occurred while processing the request."},
    )
