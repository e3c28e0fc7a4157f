"""
Django settings for the built data sync tool.

Every BUILTDATA_* value can be overridden from the environment.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "builtdata-sync-insecure-key")
DEBUG = os.environ.get("DJANGO_DEBUG", "false").lower() == "true"
ALLOWED_HOSTS: list[str] = []

INSTALLED_APPS = [
    "builtdata",
]

# Nothing is persisted; the tool only works on files.
DATABASES: dict = {}

USE_TZ = True
TIME_ZONE = "UTC"

# Shared storage root for all projects' built data
BUILTDATA_SYNC_ROOT = os.environ.get("BUILTDATA_SYNC_ROOT") or None

# Tracked source assets that have a built data artifact
BUILTDATA_ASSET_EXTENSIONS = [
    ext.strip()
    for ext in os.environ.get("BUILTDATA_ASSET_EXTENSIONS", ".umap").split(",")
    if ext.strip()
]
BUILTDATA_ARTIFACT_EXTENSION = os.environ.get("BUILTDATA_ARTIFACT_EXTENSION", "uasset")

# "size_mtime" or "sha256"
BUILTDATA_EQUIVALENCE = os.environ.get("BUILTDATA_EQUIVALENCE", "size_mtime")
BUILTDATA_MTIME_TOLERANCE = float(os.environ.get("BUILTDATA_MTIME_TOLERANCE", "1.0"))

BUILTDATA_GIT_EXECUTABLE = os.environ.get("BUILTDATA_GIT_EXECUTABLE", "git")

BUILTDATA_LOG_LEVEL = os.environ.get("BUILTDATA_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "{levelname} {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "loggers": {
        "builtdata": {
            "handlers": ["console"],
            "level": BUILTDATA_LOG_LEVEL,
            "propagate": False,
        },
    },
}

# Celery
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "amqp://guest@localhost//")
CELERY_TASK_ALWAYS_EAGER = os.environ.get("CELERY_TASK_ALWAYS_EAGER", "false").lower() == "true"
