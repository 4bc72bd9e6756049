from pathlib import Path
import os
from dotenv import load_dotenv
from django.core.exceptions import ImproperlyConfigured

# -----------------------------------------------------
# Helpers
# -----------------------------------------------------
def env(name: str, default=None, *, required: bool = False):
    val = os.getenv(name, default)
    if required and (val is None or (isinstance(val, str) and val.strip() == "")):
        raise ImproperlyConfigured(f"Missing required environment variable: {name}")
    return val

def env_bool(name: str, default: bool = False) -> bool:
    return str(os.getenv(name, str(default))).lower() in {"1", "true", "yes", "on"}

# -----------------------------------------------------
# Paths & basics
# -----------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

DEBUG = env_bool("DEBUG", False)

# In production (DEBUG=False) you must set a strong secret in .env
SECRET_KEY = env("DJANGO_SECRET_KEY", "dev-only-secret-key-change-me", required=not DEBUG)

# Keep hosts explicit by default
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost").split(",") if h.strip()]

# -----------------------------------------------------
# Applications
# -----------------------------------------------------
INSTALLED_APPS = [
    # Third-party
    "rest_framework",

    # Local
    "hls",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "sermon_hls.urls"

WSGI_APPLICATION = "sermon_hls.wsgi.application"

# -----------------------------------------------------
# Database (Postgres if DB_* env vars set, else SQLite)
# -----------------------------------------------------
if os.getenv("DB_HOST"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": env("DB_NAME", "sermon_hls"),
            "USER": env("DB_USER", "sermon_hls"),
            "PASSWORD": env("DB_PASSWORD", ""),
            "HOST": env("DB_HOST", "127.0.0.1"),
            "PORT": env("DB_PORT", "5432"),
            "CONN_MAX_AGE": int(env("DB_CONN_MAX_AGE", "60")),  # keep-alive
            "OPTIONS": {
                **({"sslmode": os.getenv("DB_SSLMODE")} if os.getenv("DB_SSLMODE") else {})
            },
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

# -----------------------------------------------------
# Internationalization
# -----------------------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

# -----------------------------------------------------
# Django REST Framework
# -----------------------------------------------------
# Storage push deliveries are unauthenticated service traffic; no sessions.
REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "UNAUTHENTICATED_USER": None,
}

# -----------------------------------------------------
# Logging
# -----------------------------------------------------
LOG_LEVEL = env("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "hls": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}

# -----------------------------------------------------
# Celery / Redis
# -----------------------------------------------------
CELERY_BROKER_URL = env("CELERY_BROKER_URL", "redis://127.0.0.1:6379/0")
CELERY_RESULT_BACKEND = env("CELERY_RESULT_BACKEND", "redis://127.0.0.1:6379/0")
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_ALWAYS_EAGER = env_bool("CELERY_TASK_ALWAYS_EAGER", False)
CELERY_TASK_TIME_LIMIT = int(env("CELERY_TASK_TIME_LIMIT", "540"))  # seconds
# One encoder process per worker slot; renditions are already serialized per job.
CELERY_WORKER_PREFETCH_MULTIPLIER = 1

# -----------------------------------------------------
# Default PK type
# -----------------------------------------------------
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------------------
# Object storage (S3-compatible endpoint of the upload bucket)
# -----------------------------------------------------
STORAGE_ENDPOINT_URL = os.getenv("STORAGE_ENDPOINT_URL") or "https://storage.googleapis.com"
STORAGE_REGION = os.getenv("STORAGE_REGION", "auto")
STORAGE_ACCESS_KEY = os.getenv("STORAGE_ACCESS_KEY")          # HMAC key id
STORAGE_SECRET_KEY = os.getenv("STORAGE_SECRET_KEY")          # HMAC secret
STORAGE_DOWNLOAD_HOST = os.getenv("STORAGE_DOWNLOAD_HOST", "firebasestorage.googleapis.com")

# -----------------------------------------------------
# HLS pipeline
# -----------------------------------------------------
# Catalog callback; checked per job so a missing value never blocks startup.
SERVER_API_URL = env("SERVER_API_URL")
HLS_CALLBACK_SECRET = env("HLS_CALLBACK_SECRET")
HLS_HTTP_TIMEOUT = float(env("HLS_HTTP_TIMEOUT", "30"))

HLS_CRF = env("HLS_CRF", "22")
HLS_PRESET = env("HLS_PRESET", "veryfast")
HLS_SEGMENT_SECONDS = env("HLS_SEGMENT_SECONDS", "6")
HLS_MAX_BITRATES = {
    "360p": env("HLS_VBR_360", "700k"),
    "540p": env("HLS_VBR_540", "1200k"),
    "720p": env("HLS_VBR_720", "2200k"),
    "1080p": env("HLS_VBR_1080", "4200k"),
}

HLS_OUTPUT_PREFIX = env("HLS_OUTPUT_PREFIX", "sermons/hls").strip("/")
HLS_LOOKUP_ATTEMPTS = int(env("HLS_LOOKUP_ATTEMPTS", "6"))
HLS_LOOKUP_INTERVAL = float(env("HLS_LOOKUP_INTERVAL", "5"))
HLS_THUMBNAIL_OFFSET = float(env("HLS_THUMBNAIL_OFFSET", "5"))
HLS_THUMBNAIL_MAX_EDGE = int(env("HLS_THUMBNAIL_MAX_EDGE", "1280"))

FFMPEG_BIN = env("FFMPEG_BIN", "ffmpeg")
FFPROBE_BIN = env("FFPROBE_BIN", "ffprobe")
