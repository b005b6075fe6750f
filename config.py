import os

import structlog

logger = structlog.get_logger(__name__)

NODE_ENV = os.getenv("NODE_ENV", "development")

MONGODB_URI = os.getenv("MONGODB_URI")
DATABASE_NAME = os.getenv("DATABASE_NAME", "urban_echo")

STRAPI_URL = os.getenv("NEXT_PUBLIC_STRAPI_URL", "http://localhost:1337")
STRAPI_TOKEN = os.getenv("NEXT_PUBLIC_STRAPI_TOKEN") or os.getenv("STRAPI_TOKEN")
CMS_TIMEOUT = float(os.getenv("CMS_TIMEOUT", "10"))

SITE_URL = os.getenv("SITE_URL", "http://localhost:8000")
ERROR_REPORT_URL = f"{SITE_URL.rstrip('/')}/api/errors"

SECRET_KEY = os.getenv("SECRET_KEY", "supersecretkey")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))

CRITICAL_VARS = {
    "development": ["MONGODB_URI", "NEXT_PUBLIC_STRAPI_URL"],
    "production": ["MONGODB_URI", "SITE_URL", "NEXT_PUBLIC_STRAPI_URL", "NEXT_PUBLIC_STRAPI_TOKEN"],
}


def is_production() -> bool:
    return NODE_ENV == "production"


def is_development() -> bool:
    return NODE_ENV == "development"


def validate_environment(env: str = NODE_ENV):
    """Log which critical variables are set; refuse to start production without them."""
    required = CRITICAL_VARS.get(env, CRITICAL_VARS["development"])
    missing = [name for name in required if not os.getenv(name)]
    logger.info(
        "environment_checked",
        env=env,
        required=required,
        missing=missing,
    )
    if missing:
        logger.error("environment_missing_variables", missing=missing)
        if env == "production":
            raise RuntimeError("Missing critical environment variables: " + ", ".join(missing))
    return missing
