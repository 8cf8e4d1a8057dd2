# app/main.py
"""
FastAPI application entry point.
Includes security middleware, global error handlers, and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from app.routers import attendance, badges, rules, health
from app.config import settings
from app.context import AppContext
from app.services.errors import AttendanceError, ErrorCode
from app.utils.logger import get_logger
import time

logger = get_logger(__name__)

app = FastAPI(
    title="Conference Attendance API",
    description="Zone check-in/out, recognized attendance minutes, badge issuance.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (attendee badge pages are served from another origin) ───────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to the event site in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth for staff endpoints.
    Attendee badge polling and live projection stay open — attendees hold only a token.
    The key comes from the running AppContext settings (API_KEY in .env).
    Leave empty to disable auth.
    """
    open_prefixes = ("/api/v1/badges/", "/api/v1/health", "/docs", "/redoc", "/openapi.json")

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        is_open = path.startswith(self.open_prefixes) and not path.endswith(("/issue", "/reissue"))
        context = getattr(request.app.state, "context", None)
        expected = context.settings.API_KEY if context is not None else None
        if is_open or path.endswith("/live") or not expected:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != expected:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Domain Error Handler ─────────────────────────────────────────────────────
ERROR_STATUS = {
    ErrorCode.ALREADY_CHECKED_IN: status.HTTP_409_CONFLICT,
    ErrorCode.NOT_CHECKED_IN: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_IN_ZONE: status.HTTP_409_CONFLICT,
    ErrorCode.TOKEN_NOT_REISSUABLE: status.HTTP_409_CONFLICT,
    ErrorCode.VOUCHER_EXPIRED: status.HTTP_409_CONFLICT,
    ErrorCode.UNKNOWN_ZONE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.INVALID_RULE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.RECORD_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TOKEN_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.STORAGE_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@app.exception_handler(AttendanceError)
async def attendance_error_handler(request: Request, exc: AttendanceError):
    code = ERROR_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST)
    if code >= 500:
        logger.error(f"{request.url.path}: {exc}")
    else:
        logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=code, content={"code": exc.code.value, "detail": exc.message})


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(attendance.router, prefix="/api/v1", tags=["🚪 Attendance"])
app.include_router(badges.router,     prefix="/api/v1", tags=["🪪 Badges"])
app.include_router(rules.router,      prefix="/api/v1", tags=["🗓️  Rules"])
app.include_router(health.router,     prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Attendance backend starting up...")
    if getattr(app.state, "context", None) is None:
        app.state.context = AppContext.from_settings(settings)
    app.state.context.init_schema()
    logger.info("✅ Database tables ready")
    logger.info(f"🕒 Event timezone {settings.EVENT_TIMEZONE} | missing-rule policy={settings.MISSING_RULE_POLICY}")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Attendance backend shutting down...")
    context = getattr(app.state, "context", None)
    if context is not None:
        context.close()
        app.state.context = None
