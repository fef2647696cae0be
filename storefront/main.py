import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

# Local imports
from . import cache, database
from .auth import RefreshTokenRegistry
from .config import settings
from .logging_config import setup_logging
from .routers import admin, auth, banners, cart, categories, orders, products, reviews
from .services import accounts
from .utils import error_response, success_response

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    await database.init_models()
    async with database.SessionLocal() as db:
        await accounts.ensure_admin(db)
    app.state.token_registry = RefreshTokenRegistry(cache.client, settings.REFRESH_TOKEN_EXPIRE_DAYS * 86400)
    logger.info("%s started", settings.APP_NAME)
    yield
    await database.engine.dispose()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


# --- Error envelope ---
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = getattr(exc, "code", None)
    if code is None:
        code = "NOT_FOUND" if exc.status_code == status.HTTP_404_NOT_FOUND else None
    return error_response(str(exc.detail), exc.status_code, code, getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg')}" if field else "Invalid request"
    return error_response(message, status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR")


for module in (auth, products, cart, orders, categories, reviews, banners, admin):
    app.include_router(module.router, prefix=API_PREFIX)


@app.get("/")
async def root():
    return success_response({"name": settings.APP_NAME, "docs": "/docs"}, "API is running")


@app.get(f"{API_PREFIX}/health")
async def health():
    return success_response({"status": "ok"}, "Healthy")
