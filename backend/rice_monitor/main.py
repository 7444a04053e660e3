from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import os
import time

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from .auth import get_current_user
from .config import Settings
from .database import Base, build_engine, build_session_factory
from .errors import error_body, install_error_handlers
from .identity import GoogleIdentityVerifier, IdentityVerifier
from .storage import BlobStore, LocalBlobStore, build_blob_store
from .tokens import TokenService
from .routes import auth, users, fields, submissions, images, analytics

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
PUBLIC_PATHS = {
    f"{API_PREFIX}/auth/google",
    f"{API_PREFIX}/auth/refresh",
}

REQUEST_COUNT = Counter("request_count", "Total requests", ["method", "endpoint"])
REQUEST_LATENCY = Histogram(
    "request_latency_seconds", "Request latency", ["endpoint"]
)


def _depends_on(dependant, target) -> bool:
    for dep in dependant.dependencies:
        if dep.call is target or _depends_on(dep, target):
            return True
    return False


def audit_routes(app: FastAPI) -> None:
    """Refuse to start if a non-public API route skips the bearer-token gate."""
    for route in app.routes:
        if isinstance(route, APIRoute) and route.path.startswith("/api") and route.path not in PUBLIC_PATHS:
            if not _depends_on(route.dependant, get_current_user):
                raise RuntimeError(f"Route {route.path} missing authentication")


def create_app(
    settings: Settings | None = None,
    *,
    blob_store: BlobStore | None = None,
    identity_verifier: IdentityVerifier | None = None,
) -> FastAPI:
    """Composition root: build the shared clients once and hand them to the routes."""
    settings = settings or Settings.from_env()

    if settings.sentry_dsn:
        sentry_sdk.init(dsn=settings.sentry_dsn, integrations=[FastApiIntegration()])

    engine = build_engine(settings.database_url)
    store = blob_store or build_blob_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Base.metadata.create_all(bind=engine)
        logger.info("rice monitor api %s ready (project %s)", settings.version, settings.project_id)
        yield
        store.close()
        engine.dispose()

    app = FastAPI(title="Rice Monitor API", version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.token_service = TokenService(settings.jwt_secret)
    app.state.identity_verifier = identity_verifier or GoogleIdentityVerifier(settings.google_client_id)
    app.state.blob_store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Authorization"],
    )

    app.state.limiter = auth.limiter
    app.add_exception_handler(
        RateLimitExceeded,
        lambda r, e: JSONResponse(error_body("rate_limited", "Too Many Requests"), status_code=429),
    )
    if not settings.testing:
        app.add_middleware(SlowAPIMiddleware)
    install_error_handlers(app)

    @app.middleware("http")
    async def record_metrics(request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        endpoint = request.url.path
        REQUEST_COUNT.labels(request.method, endpoint).inc()
        REQUEST_LATENCY.labels(endpoint).observe(time.time() - start)
        return response

    @app.get("/metrics")
    def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health")
    def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": settings.version,
        }

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(fields.router)
    app.include_router(submissions.router)
    app.include_router(images.router)
    app.include_router(analytics.router)

    if isinstance(store, LocalBlobStore):
        os.makedirs(store.upload_dir, exist_ok=True)
        app.mount("/media", StaticFiles(directory=store.upload_dir), name="media")

    audit_routes(app)
    return app
