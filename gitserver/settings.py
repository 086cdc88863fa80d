import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "insecure-development-key")
DEBUG = os.environ.get("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h]

INSTALLED_APPS = [
    "repo_browser",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "gitserver.urls"
WSGI_APPLICATION = "gitserver.wsgi.application"

# repositories are read straight from disk, nothing is stored in a database
DATABASES = {}

USE_TZ = True
TIME_ZONE = "UTC"

GIT_SERVER = {
    "REPOSITORY_ROOTS": [
        p for p in os.environ.get("GIT_SERVER_ROOTS", str(BASE_DIR / "repositories")).split(os.pathsep) if p
    ],
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "repo_browser": {
            "handlers": ["console"],
            "level": os.environ.get("GIT_SERVER_LOG_LEVEL", "INFO"),
        },
    },
}
