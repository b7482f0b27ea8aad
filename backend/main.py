"""Backend application entrypoint for the Mirage hosting service."""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Callable

import sentry_sdk
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from cache import Cache
from config import Settings, get_settings
from database import check_database_connection, init_db
from dependencies import get_db
from routes.account_routes import router as account_router
from routes.admin_routes import router as admin_router
from routes.analytics_routes import router as analytics_router
from routes.auth_routes import router as auth_router
from routes.moderator_routes import router as moderator_router
from routes.pages_routes import router as pages_router
from routes.report_routes import router as report_router
from services.discord_service import DiscordNotifier, create_discord_client
from services.session_guard import load_session_account, resolve_request_identity
from sessions import RedisSessionStore, ServerSessionMiddleware
from templating import render, templates
from utils.network import client_ip


def configure_logging(settings: Settings) -> logging.Logger:
	"""Configure application-wide structured logging."""
	logging.basicConfig(
		level=getattr(logging, settings.log_level.upper(), logging.INFO),
		format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
	)
	logger = logging.getLogger("mirage")
	logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
	return logger


def configure_error_tracking(app_settings: Settings) -> bool:
	"""Initialise Sentry when a DSN is configured."""
	if not app_settings.SENTRY_DSN:
		return False
	sentry_sdk.init(
		dsn=app_settings.SENTRY_DSN,
		environment=app_settings.environment,
		release=app_settings.app_version,
		traces_sample_rate=0.0,
		send_default_pii=False,
	)
	return True


settings = get_settings()
logger = configure_logging(settings)
error_tracking_enabled = configure_error_tracking(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
	"""Manage startup and shutdown lifecycle events."""
	logger.info("Starting server | app=%s | version=%s", settings.app_name, settings.app_version)
	init_db()
	logger.info("Database metadata initialization completed")

	notifier: DiscordNotifier = app.state.notifier
	if settings.discord_token and notifier.client is None:
		create_discord_client(notifier)
		await notifier.start(settings.discord_token)
	elif not settings.discord_token:
		logger.warning("Discord notifications disabled | reason=no_token")
	yield
	await notifier.close()
	logger.info("Shutting down server | app=%s", settings.app_name)


def add_request_context_middleware(app: FastAPI) -> None:
	"""Attach request context middleware for tracing and access logging."""

	@app.middleware("http")
	async def inject_request_context(request: Request, call_next: Callable):
		request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
		request.state.request_id = request_id
		start = time.perf_counter()

		response = await call_next(request)

		elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
		response.headers["X-Request-ID"] = request_id
		response.headers["X-Response-Time-ms"] = str(elapsed_ms)

		logger.info(
			"request_complete | request_id=%s | method=%s | path=%s | status=%s | latency_ms=%s",
			request_id,
			request.method,
			request.url.path,
			response.status_code,
			elapsed_ms,
		)
		return response


def add_session_middleware(app: FastAPI, app_settings: Settings, redis_client: Redis) -> None:
	"""Attach the Redis-backed server-side session store."""
	store = RedisSessionStore(redis_client, max_age_seconds=app_settings.SESSION_MAX_AGE_SECONDS)
	app.add_middleware(
		ServerSessionMiddleware,
		store=store,
		secret_key=app_settings.secret,
		session_cookie=app_settings.SESSION_COOKIE_NAME,
		https_only=app_settings.environment == "production",
	)


def add_session_guard_middleware(app: FastAPI, app_settings: Settings) -> None:
	"""Resolve the request identity before routing: suspension and IP binding checks."""

	@app.middleware("http")
	async def session_guard(request: Request, call_next: Callable):
		request.state.identity = await resolve_request_identity(
			session=request.scope.get("session"),
			load_account=load_session_account,
			client_ip=client_ip(request, app_settings.TRUST_PROXY),
			user_agent=request.headers.get("user-agent", ""),
			notifier=request.app.state.notifier,
		)
		return await call_next(request)


def register_exception_handlers(app: FastAPI) -> None:
	"""Register global exception handlers."""

	@app.exception_handler(StarletteHTTPException)
	async def http_exception_handler(request: Request, exc: StarletteHTTPException):
		if exc.status_code == status.HTTP_404_NOT_FOUND and request.method == "GET":
			return render(request, "errors/404.html", status_code=status.HTTP_404_NOT_FOUND)
		request_id = getattr(request.state, "request_id", "unknown")
		return JSONResponse(
			status_code=exc.status_code,
			content={
				"error": {
					"type": "http_error",
					"message": exc.detail,
					"request_id": request_id,
				}
			},
			headers=getattr(exc, "headers", None),
		)

	@app.exception_handler(RequestValidationError)
	async def validation_exception_handler(request: Request, exc: RequestValidationError):
		request_id = getattr(request.state, "request_id", "unknown")
		return JSONResponse(
			status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
			content={
				"error": {
					"type": "validation_error",
					"message": "Request payload validation failed.",
					"details": exc.errors(),
					"request_id": request_id,
				}
			},
		)

	@app.exception_handler(Exception)
	async def unhandled_exception_handler(request: Request, exc: Exception):
		request_id = getattr(request.state, "request_id", "unknown")
		logger.exception("unhandled_exception | request_id=%s", request_id)
		event_id = sentry_sdk.capture_exception(exc) if error_tracking_enabled else None
		return render(
			request,
			"errors/500.html",
			{"sentry": event_id, "request_id": request_id},
			status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		)


def register_routes(app: FastAPI) -> None:
	"""Register all feature routers."""
	app.include_router(pages_router)
	app.include_router(auth_router)
	app.include_router(account_router)
	app.include_router(moderator_router)
	app.include_router(admin_router)
	app.include_router(analytics_router)
	app.include_router(report_router)


def create_app(redis_client: Redis | None = None, notifier: DiscordNotifier | None = None) -> FastAPI:
	"""Create and configure FastAPI application instance."""
	app = FastAPI(
		title=settings.app_name,
		version=settings.app_version,
		lifespan=lifespan,
		docs_url=None,
		redoc_url=None,
	)

	redis_client = redis_client if redis_client is not None else Redis.from_url(settings.REDIS_URL)
	app.state.redis = redis_client
	app.state.cache = Cache(redis_client, ttl_seconds=settings.CACHE_TTL_SECONDS)
	app.state.notifier = notifier if notifier is not None else DiscordNotifier(settings)
	app.state.templates = templates
	app.state.started_at = time.time()
	app.state.instance_id = str(uuid.uuid4())

	# added innermost first: request context wraps sessions, which wrap the guard
	add_session_guard_middleware(app, settings)
	add_session_middleware(app, settings, redis_client)
	add_request_context_middleware(app)
	register_exception_handlers(app)
	register_routes(app)

	@app.get("/health", tags=["system"], summary="Service health check")
	def health_check(db: Session = Depends(get_db)) -> dict[str, object]:
		"""Return runtime and dependency health status."""
		_ = db
		db_ok = check_database_connection()
		try:
			redis_ok = bool(app.state.redis.ping())
		except RedisError:
			redis_ok = False
		healthy = db_ok and redis_ok

		return {
			"status": "healthy" if healthy else "degraded",
			"environment": settings.environment,
			"version": settings.app_version,
			"instance_id": app.state.instance_id,
			"database": {"connected": db_ok},
			"redis": {"connected": redis_ok},
			"discord": {"ready": app.state.notifier.ready},
			"uptime_seconds": int(time.time() - app.state.started_at),
		}

	return app


app = create_app()
