"""
Django settings for the cluster event notifier.

Every deploy-time knob is read from the environment.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


IS_TESTING = "pytest" in sys.modules or (len(sys.argv) > 1 and sys.argv[1] == "test")

SECRET_KEY = os.environ.get("SECRET_KEY", "dev-insecure-change-me")
DEBUG = _env_bool("DEBUG", False)
ALLOWED_HOSTS = [h.strip() for h in os.environ.get("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "scheduler",
    "events",
    "notifiers",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("DATABASE_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.BasicAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.IsAuthenticated"],
    "DEFAULT_RENDERER_CLASSES": ["config.renderers.EnvelopeJSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "EXCEPTION_HANDLER": "config.exception_handler.custom_exception_handler",
}

# Notifier engine (normalized by notifiers.engine.config.normalize_engine_config)
NOTIFIER_ENGINE = {
    "rate_limit_per_sec": _env_float("NOTIFIER_RATE_LIMIT_PER_SEC", 1.0),
    "rate_limit_burst": _env_int("NOTIFIER_RATE_LIMIT_BURST", 10),
    "dedup_retention_seconds": _env_int("NOTIFIER_DEDUP_RETENTION_SECONDS", 300),
    "dedup_shards": _env_int("NOTIFIER_DEDUP_SHARDS", 16),
    "dedup_scope": os.environ.get("NOTIFIER_DEDUP_SCOPE", "global"),
    "cycle_timeout_seconds": _env_int("NOTIFIER_CYCLE_TIMEOUT_SECONDS", 60),
    "status_history": os.environ.get("NOTIFIER_STATUS_HISTORY", "overwrite"),
    "recent_events_limit": _env_int("NOTIFIER_RECENT_EVENTS_LIMIT", 50),
    "reconcile_interval_seconds": _env_int("NOTIFIER_RECONCILE_INTERVAL_SECONDS", 30),
}
NOTIFIER_RECONCILE_ON_CHANGE = _env_bool("NOTIFIER_RECONCILE_ON_CHANGE", True)

EVENTS_RETENTION_SECONDS = _env_int("EVENTS_RETENTION_SECONDS", 3600)

SCHEDULER_ENABLED = _env_bool("SCHEDULER_ENABLED", True)
# Per-task overrides, e.g. {"notifiers_reconcile": {"failure_backoff_base_seconds": 30}}
SCHEDULER_TASK_OVERRIDES: dict = {}

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "httpx": {"handlers": ["console"], "level": "WARNING", "propagate": False},
    },
}
