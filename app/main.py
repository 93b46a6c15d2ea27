# app/main.py
"""
FastAPI application entry point.
Includes security middleware, structured error handlers, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from app.routers import passes, mentor, hod, security, notifications, health
from app.database import create_tables
from app.config import settings
from app.errors import GatePassError, ErrorCode, InternalError
from app.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="SmartGatePass API",
    description="Campus gate pass workflow — student request, mentor + HOD approval, QR check at the gate.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (mobile app + dashboards) ───────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to app origins in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional shared API key between the identity gateway and this service.
    Health check and docs stay open. Set API_KEY in .env. Leave empty to disable.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}
        if request.url.path in open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"ok": False, "error": ErrorCode.UNAUTHENTICATED.value,
                         "message": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Error Handlers ───────────────────────────────────────────────────────────
@app.exception_handler(GatePassError)
async def gate_pass_error_handler(request: Request, exc: GatePassError):
    if exc.code is ErrorCode.INTERNAL:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = sorted({".".join(str(p) for p in err["loc"] if p != "body") for err in exc.errors()})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"ok": False, "error": ErrorCode.INVALID_INPUT.value,
                 "message": f"Invalid or missing fields: {', '.join(f for f in fields if f)}"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=InternalError().to_dict(),
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(passes.router,        prefix="/api/v1", tags=["🎫 Gate Passes"])
app.include_router(mentor.router,        prefix="/api/v1", tags=["🧑‍🏫 Mentor"])
app.include_router(hod.router,           prefix="/api/v1", tags=["🏛️ HOD"])
app.include_router(security.router,      prefix="/api/v1", tags=["🛡️ Security"])
app.include_router(notifications.router, prefix="/api/v1", tags=["🔔 Notifications"])
app.include_router(health.router,        prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 SmartGatePass backend starting up...")
    create_tables()
    logger.info("✅ Database tables ready")
    logger.info(f"🎫 Quota: {settings.QUOTA_LIMIT} passes per {settings.QUOTA_PERIOD} ({settings.CAMPUS_TIMEZONE})")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 SmartGatePass backend shutting down...")
