"""
Django settings for the storehub multi-tenant commerce backend.

Everything deployment-specific is read from the environment; the defaults
are only suitable for local development and the test suite.
"""
import os
from pathlib import Path

from corsheaders.defaults import default_headers

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "storehub-dev-key-replace-before-deployment")

DEBUG = os.environ.get("DJANGO_DEBUG", "1") == "1"

ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "corsheaders",
    "rest_framework",
    "core",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "storehub.urls"
WSGI_APPLICATION = "storehub.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("STOREHUB_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# The request principal is built explicitly by core.auth.authenticate(),
# so DRF gets no authentication classes of its own.
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "UNAUTHENTICATED_USER": None,
    "EXCEPTION_HANDLER": "core.errors.api_exception_handler",
}

# Identity tokens are issued elsewhere; we only verify them.
JWT_SECRET = os.environ.get("JWT_SECRET", "dev-secret-change-me")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")

DEFAULT_CURRENCY = os.environ.get("STOREHUB_DEFAULT_CURRENCY", "BDT")

# A storefront checkout that reserved an Idempotency-Key but never finished
# releases it after this many seconds.
IDEMPOTENCY_PENDING_TTL_SECONDS = int(os.environ.get("STOREHUB_IDEMPOTENCY_TTL", "300"))

# The storefront is served from other origins. Any origin is accepted unless
# STOREHUB_CORS_ORIGINS narrows it to a comma-separated list.
CORS_ALLOWED_ORIGINS = [o for o in os.environ.get("STOREHUB_CORS_ORIGINS", "").split(",") if o]
CORS_ALLOW_ALL_ORIGINS = not CORS_ALLOWED_ORIGINS
CORS_ALLOW_HEADERS = (*default_headers, "idempotency-key")

# Product media lives in S3. Without a bucket, media cleanup is a no-op.
AWS_REGION = os.environ.get("AWS_REGION", "")
AWS_S3_BUCKET = os.environ.get("AWS_S3_BUCKET", "")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "storehub": {
            "handlers": ["console"],
            "level": os.environ.get("LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
