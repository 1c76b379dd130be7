"""
FastAPI application for the push notification service
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import logging

from pushsvc.config import settings
from pushsvc.database import init_db
from pushsvc.api.preflight import PreflightMiddleware
from pushsvc.api.responses import api_response
from pushsvc.api.device_routes import router as device_router
from pushsvc.api.notification_routes import router as notification_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup / shutdown
    """
    logger.info(f"Starting {settings.APP_NAME}...")

    try:
        init_db()
        logger.info("✓ Database initialized")
    except Exception as e:
        logger.error(f"✗ Database initialization failed: {e}")
        raise

    yield

    logger.info(f"{settings.APP_NAME} stopped")


app = FastAPI(
    title=settings.APP_NAME,
    description="Device token registry and FCM HTTP v1 push delivery",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["*"],
)
# added last so it wraps CORSMiddleware
app.add_middleware(PreflightMiddleware)


def _validation_message(errors) -> str:
    missing = [str(e["loc"][-1]) for e in errors if e.get("type") == "missing" and e.get("loc")]
    if missing:
        return f"Missing required parameters: {', '.join(missing)}"

    if any(e.get("type") in ("json_invalid", "model_attributes_type", "dict_type") for e in errors):
        return "Invalid JSON body"

    first = errors[0] if errors else {}
    field = first.get("loc", ["body"])[-1]
    return f"Invalid {field}: {first.get('msg', 'invalid value')}"


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return api_response(400, _validation_message(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return api_response(exc.status_code, message)


@app.get("/health")
async def health_check():
    """Health check"""
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME
    }


app.include_router(device_router, prefix="/api")
app.include_router(notification_router, prefix="/api")


# Run with: uvicorn pushsvc.main:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pushsvc.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
