import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import CORS_ORIGINS, DATABASE_URL, SUPER_ADMIN_EMAIL, SUPER_ADMIN_PASSWORD
from app.core.database import Base, SessionLocal, engine
from app.core.errors import register_exception_handlers
from app.core.logging_setup import configure_logging
from app.core.startup_checks import ensure_migrations_applied, validate_database_environment
from app.middleware.observability import ObservabilityMiddleware
from app.middleware.session import SessionMiddleware
import app.models  # garante que os models são importados antes do create_all

from app.services.admin_bootstrap import BOOTSTRAP_PREFIX, ensure_users_table, upsert_super_admin
from app.routers.auth import router as auth_router
from app.routers.invites import router as invites_router
from app.routers.promotions import restaurant_router as restaurant_promotions_router, router as promotions_router
from app.routers.claims import redemptions_router, router as claims_router
from app.routers.restaurant import router as restaurant_router
from app.routers.admin_auth import router as admin_auth_router
from app.routers.admin_users import router as admin_users_router
from app.routers.admin_organizations import router as admin_organizations_router
from app.routers.admin_audit import router as admin_audit_router
from app.routers.admin import router as admin_router
from app.routers.internal_metrics import router as internal_metrics_router

configure_logging()

logger = logging.getLogger(__name__)
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(
    os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini"))
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Shift Perks API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)
app.add_middleware(SessionMiddleware)
register_exception_handlers(app)


def _bootstrap_super_admin() -> None:
    if not SUPER_ADMIN_EMAIL or not SUPER_ADMIN_PASSWORD:
        logger.info("%s skipped: configure SUPER_ADMIN_EMAIL and SUPER_ADMIN_PASSWORD.", BOOTSTRAP_PREFIX)
        return

    ensure_users_table(engine)
    db = SessionLocal()
    try:
        # Não sobrescreve a senha de um admin existente a cada restart.
        admin, created = upsert_super_admin(
            db,
            email=SUPER_ADMIN_EMAIL,
            password=SUPER_ADMIN_PASSWORD,
            reset_password=False,
        )
        logger.info(
            "%s %s id=%s email=%s",
            BOOTSTRAP_PREFIX,
            "created" if created else "exists",
            admin.id,
            admin.email,
        )
    finally:
        db.close()


def _startup_tasks() -> None:
    try:
        validate_database_environment()
        # Em SQLite (dev/test) o schema vem do metadata; nos demais, das migrations.
        if DATABASE_URL.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
        ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
        _bootstrap_super_admin()
    except Exception:
        logger.exception("%s ERROR startup failed", BOOTSTRAP_PREFIX)
        raise


# Routers
app.include_router(auth_router)
app.include_router(invites_router)
app.include_router(promotions_router)
app.include_router(restaurant_promotions_router)
app.include_router(claims_router)
app.include_router(redemptions_router)
app.include_router(restaurant_router)
app.include_router(admin_auth_router)
app.include_router(admin_users_router)
app.include_router(admin_organizations_router)
app.include_router(admin_audit_router)
app.include_router(admin_router)
app.include_router(internal_metrics_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
