import os
from dotenv import load_dotenv

# Carrega o .env da raiz do projeto
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./shift_perks.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_STAGE = ENV_NORMALIZED in {"stage", "staging", "homolog"}
IS_PROD = ENV_NORMALIZED in {"prod", "production"}
PUBLIC_APP_URL = os.getenv("PUBLIC_APP_URL", "http://localhost:5000").strip().rstrip("/")

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:5000",
        "http://127.0.0.1:5000",
    ]

# Sessions (cookie assinado)
SESSION_SECRET = os.getenv("SESSION_SECRET", "dev-session-secret" if IS_DEV else "")
SESSION_MAX_AGE_SECONDS = int(os.getenv("SESSION_MAX_AGE_SECONDS", "604800"))
SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE", "0" if IS_DEV else "1")
SESSION_COOKIE_HTTPONLY = _env_flag("SESSION_COOKIE_HTTPONLY", "1")
SESSION_COOKIE_SAMESITE = os.getenv(
    "SESSION_COOKIE_SAMESITE",
    "lax",
).strip().lower()
if SESSION_COOKIE_SAMESITE not in {"lax", "strict", "none"}:
    SESSION_COOKIE_SAMESITE = "lax"
SESSION_COOKIE_DOMAIN = os.getenv("SESSION_COOKIE_DOMAIN", "").strip() or None

# Claims
CLAIM_TTL_HOURS = int(os.getenv("CLAIM_TTL_HOURS", "24"))
CLAIM_CODE_BYTES = int(os.getenv("CLAIM_CODE_BYTES", "4"))
CLAIM_CODE_MAX_ATTEMPTS = int(os.getenv("CLAIM_CODE_MAX_ATTEMPTS", "5"))
# Quando ligado, um worker só pode ter um claim ativo por promoção.
CLAIM_POLICY_SINGLE_ACTIVE = _env_flag("CLAIM_POLICY_SINGLE_ACTIVE", "0")

# Invites
ADMIN_INVITE_MAX_USES = int(os.getenv("ADMIN_INVITE_MAX_USES", "1"))
WORKER_INVITE_MAX_USES = int(os.getenv("WORKER_INVITE_MAX_USES", "50"))
WORKER_INVITE_TTL_DAYS = int(os.getenv("WORKER_INVITE_TTL_DAYS", "30"))

# Bootstrap do super admin
SUPER_ADMIN_EMAIL = os.getenv("SUPER_ADMIN_EMAIL", "").strip().lower()
SUPER_ADMIN_PASSWORD = os.getenv("SUPER_ADMIN_PASSWORD", "").strip()
DEV_BOOTSTRAP_ALLOW = _env_flag("DEV_BOOTSTRAP_ALLOW", "0")
