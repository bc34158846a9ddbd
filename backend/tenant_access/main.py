import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tenant_access.core.config import settings
from tenant_access.core.logging import configure_logging
import tenant_access.models  # noqa: F401  # force model registration

from tenant_access.api.v1.tenant_members import router as tenant_members_router
from tenant_access.api.v1.tenant_invitations import router as tenant_invitations_router

logger = logging.getLogger(__name__)


def create_application() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Tenant Access API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        return {"status": "ok", "service": "tenant-access"}

    # Routers
    app.include_router(tenant_members_router, prefix="/api/v1")
    app.include_router(tenant_invitations_router, prefix="/api/v1")

    logger.info("Application created (environment=%s)", settings.ENVIRONMENT)
    return app


app = create_application()
