import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from eventsite.config import settings
from eventsite.core.context import create_context
from eventsite.core.exceptions import (
    NotAuthorizedError, ParseFailureError, ProjectNotFoundError, TransientFetchError
)
from eventsite.modules.access import routes as access_routes
from eventsite.modules.auth import routes as auth_routes
from eventsite.modules.editor import routes as editor_routes
from eventsite.modules.members import routes as members_routes
from eventsite.modules.navigation import routes as navigation_routes
from eventsite.modules.projects import routes as projects_routes
from eventsite.modules.registrations import routes as registrations_routes
from eventsite.modules.site_settings import routes as settings_routes
from eventsite.modules.users import routes as users_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.state.context = None
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(ProjectNotFoundError)
async def project_not_found_handler(request: Request, exc: ProjectNotFoundError):
    return JSONResponse(status_code=404, content={
        "detail": "Project not found",
        "redirect_to": settings.projects_redirect_path,
    })


@app.exception_handler(NotAuthorizedError)
async def not_authorized_handler(request: Request, exc: NotAuthorizedError):
    return JSONResponse(status_code=403, content={
        "detail": exc.message or "Access denied",
        "redirect_to": settings.projects_redirect_path,
    })


@app.exception_handler(TransientFetchError)
async def transient_fetch_handler(request: Request, exc: TransientFetchError):
    logger.warning("Backend failure: %s", exc.message)
    return JSONResponse(status_code=503, content={"detail": "Backend temporarily unavailable"})


@app.exception_handler(ParseFailureError)
async def parse_failure_handler(request: Request, exc: ParseFailureError):
    return JSONResponse(status_code=422, content={"detail": exc.message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(projects_routes.router, prefix="/api/v1")
app.include_router(access_routes.router, prefix="/api/v1")
app.include_router(members_routes.router, prefix="/api/v1")
app.include_router(settings_routes.router, prefix="/api/v1")
app.include_router(navigation_routes.router, prefix="/api/v1")
app.include_router(editor_routes.router, prefix="/api/v1")
app.include_router(registrations_routes.router, prefix="/api/v1")
app.include_router(users_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup")
    # Tests install their own context before startup
    if app.state.context is None:
        app.state.context = await create_context()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown")
    if app.state.context is not None:
        await app.state.context.close()


@app.get("/")
async def root():
    return {"message": "Welcome to eventsite-backend", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: the service context exists once startup has connected to Supabase."""
    return {"status": "ready" if app.state.context is not None else "starting"}
