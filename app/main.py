from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from app.core.config import get_settings
from app.core.lifespan import lifespan
from app.api.v1.routers.products import router as products_router
from app.api.v1.routers.health import router as health_router
from app.core.logging import configure_logging
from app.domain.errors import CatalogError, UpstreamError

from fastapi.middleware.cors import CORSMiddleware
import logging

settings = get_settings()
configure_logging(level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- CORS -------
# ALLOWED_ORIGINS is a CSV, e.g. "https://shop.example.com,https://admin.example.com"
allowed_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)


# ------- Error envelope -------
def _error(status_code: int, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "status": status_code, "message": message, "data": None, "details": details or {}},
    )


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    if isinstance(exc, UpstreamError):
        logger.error("%s %s -> %s %s details=%s", request.method, request.url.path, exc.status_code, exc.message, exc.details)
    else:
        logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
    return _error(exc.status_code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]
    return _error(400, "Invalid request", {"errors": errors})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


# ------- Routes -------
app.include_router(health_router)
app.include_router(products_router)          # listing + single-product operations
