"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cmms import __version__
from cmms.core.config import settings
from cmms.core.middleware import setup_middleware
from cmms.core.exceptions import AccessDenied, CMMSError
from cmms.rbac.enforcement import access_denied_response

from cmms.api.rbac import router as rbac_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("cmms")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting CMMS Platform API")
    if settings.RBAC_INIT_ON_STARTUP:
        from cmms.db.session import SessionLocal
        from cmms.db.seeds.seed_rbac import initialize_rbac

        async with SessionLocal() as db:
            if await initialize_rbac(db):
                logger.info("RBAC catalog ready")
            else:
                logger.warning("RBAC catalog could not be initialized")

    yield

    logger.info("Shutting down CMMS Platform API")


def create_app() -> FastAPI:
    app = FastAPI(
        title="CMMS Platform API",
        description="Facilities maintenance management: access control",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Middleware
    setup_middleware(app)

    @app.exception_handler(AccessDenied)
    async def access_denied_handler(request: Request, exc: AccessDenied):
        return access_denied_response(exc)

    # Exception handler for custom CMMS errors
    @app.exception_handler(CMMSError)
    async def cmms_exception_handler(request: Request, exc: CMMSError):
        return JSONResponse(
            status_code=400,
            content={"detail": exc.message},
        )

    # Register routers
    app.include_router(rbac_router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": __version__,
            "docs": "/docs",
        }

    @app.get("/api/health")
    async def health():
        """Quick health check endpoint."""
        return {"status": "ok"}

    return app


app = create_app()
