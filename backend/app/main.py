from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import get_settings
from .core.db import session_scope
from .core.errors import TenantNotResolved
from .core.logging import configure_logging
from .api.routes_directory import router as directory_router
from .api.routes_admin import router as admin_router
from .services.tenancy import ensure_default_tenant

settings = get_settings()
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Unmatched hosts fall back to the default tenant, so it must exist
    with session_scope() as db:
        ensure_default_tenant(db)
    yield


app = FastAPI(title="Annuaire Pro API", lifespan=lifespan)

# CORS:
# - In prod, FRONTEND_ORIGIN is required (comma-separated, one per tenant
#   site) and we never fall back to "*".
# - In non-prod, wide-open CORS unless FRONTEND_ORIGIN narrows it.
if settings.ENV.lower() == "prod":
    if not settings.FRONTEND_ORIGIN:
        raise RuntimeError(
            "FRONTEND_ORIGIN must be set in production; refusing to start with wide-open CORS."
        )
    origins = [o.strip() for o in settings.FRONTEND_ORIGIN.split(",") if o.strip()]
elif settings.CORS_ALLOW_ALL_ORIGINS or not settings.FRONTEND_ORIGIN:
    origins = ["*"]
else:
    origins = [o.strip() for o in settings.FRONTEND_ORIGIN.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    allow_credentials=False,
)


@app.exception_handler(TenantNotResolved)
async def tenant_not_resolved_handler(request: Request, exc: TenantNotResolved):
    logger.error(
        "Tenant resolution failed: %s",
        exc,
        extra={"host": request.headers.get("host"), "step": "resolve_tenant"},
    )
    return JSONResponse(status_code=503, content={"detail": "Site not configured"})


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(directory_router, prefix=settings.API_PREFIX)
app.include_router(admin_router, prefix=settings.API_PREFIX)
