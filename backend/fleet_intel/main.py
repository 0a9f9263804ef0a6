import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fleet_intel.api.v1.router import api_router
from fleet_intel.config import get_analytics_profile, settings
from fleet_intel.errors import AppError
from fleet_intel.logging_config import setup_logging
from fleet_intel.services.gps_client import GPSApiError
from fleet_intel.services.insights import InsightsError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    # Fails startup on weights that don't sum to 1.0
    profile = get_analytics_profile()
    logger.info(
        "Starting %s (demo data: %s, AI configured: %s, speeding threshold: %.0f km/h)",
        settings.app_name, settings.use_demo_data, settings.ai_configured,
        profile.config.speeding_threshold_kmh,
    )
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_body(message: str, code: str, details=None) -> dict:
    return {"detail": message, "code": code, "details": details}


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    logger.debug("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.code, exc.details))


@app.exception_handler(GPSApiError)
async def gps_error_handler(request: Request, exc: GPSApiError):
    if exc.is_timeout:
        status, code = 504, "GPS_API_TIMEOUT"
    elif exc.status_code == 404:
        status, code = 404, "NOT_FOUND"
    else:
        status, code = 502, "GPS_API_ERROR"
    logger.warning("GPS provider error on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=status, content=_error_body(exc.message, code))


@app.exception_handler(InsightsError)
async def insights_error_handler(request: Request, exc: InsightsError):
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.code, exc.details))


app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
def health():
    return {"status": "ok"}
