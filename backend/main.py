import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from core.rate_limit import limiter
from core.responses import error_response, success_response
from core.security import init_firebase
from database import connect_db, close_db

# Routers
from routers import parcels, payments, riders, users

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await connect_db()
    init_firebase()
    logger.info("ProFirst API started")
    yield
    # Shutdown
    await close_db()
    logger.info("ProFirst API stopped")


app = FastAPI(
    title="ProFirst API",
    description="Parcel delivery backend: orders, riders, tracking, payments",
    version="1.0.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else settings.CLIENT_DOMAINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error envelope ────────────────────────────────────────────────────────────
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return error_response(f"Too many requests: {exc.detail}", 429)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        # no route matched
        return error_response(f"Not Found - {request.url.path}", 404)
    return error_response(str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return error_response("Invalid request", 400)
    first = errors[0]
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid value")
    return error_response(f"{field}: {message}" if field else message, 400)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response("Internal server error", 500)


# Routers
app.include_router(parcels.router, prefix="/api/parcels", tags=["Parcels"])
app.include_router(riders.router, prefix="/api/rider", tags=["Riders"])
app.include_router(users.router, prefix="/api/user", tags=["Users"])
app.include_router(payments.router, prefix="/api/payment", tags=["Payments"])


@app.get("/", tags=["Health"])
async def root():
    return success_response("Go Ahead, ProFirst", {"app": "profirst", "version": "1.0.0"})


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "app": "profirst", "version": "1.0.0"}
