"""Test settings - uses SQLite for fast local testing."""
import os
import tempfile

os.environ.setdefault("SECRET_KEY", "test-only-secret-key-not-for-production-use-0123456789abcdef")
os.environ.setdefault("DEBUG", "True")

from .base import *  # noqa: E402,F401,F403

DEBUG = True

# Period boundaries are computed in local time.
TIME_ZONE = "Asia/Tokyo"
CELERY_TIMEZONE = TIME_ZONE

# SQLite for tests (no PostgreSQL dependency). The test database is a file so
# that the batch runner's worker threads share it; IMMEDIATE transactions make
# concurrent writers wait on each other instead of failing.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.path.join(tempfile.gettempdir(), "membership.sqlite3"),
        "OPTIONS": {
            "transaction_mode": "IMMEDIATE",
            "timeout": 20,
        },
        "TEST": {
            "NAME": os.path.join(tempfile.gettempdir(), "test_membership.sqlite3"),
        },
    }
}

# Faster password hashing in tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Disable Redis cache in tests
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# Disable Celery in tests
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_RESULT_BACKEND = "cache+memory://"

# Keep the batch on the calling thread unless a test asks for workers.
ASSESSMENT_MAX_WORKERS = 1

# Disable logging noise during tests
LOGGING["handlers"].pop("file")  # noqa: F405
LOGGING["root"]["level"] = "WARNING"  # noqa: F405
LOGGING["loggers"]["membership"]["handlers"] = ["console"]  # noqa: F405
LOGGING["loggers"]["membership"]["level"] = "WARNING"  # noqa: F405
