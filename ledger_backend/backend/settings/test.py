# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS
- In-memory sqlite (select_for_update is a no-op there; row locking is
  exercised on Postgres only)
- Fast password hashing
- Throttling off so API tests never hit rate limits
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING, REST_FRAMEWORK

DEBUG = False
TESTING = True

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": (),
}

LOGGING = {
    **LOGGING,
    "root": {"handlers": ["console"], "level": "WARNING"},
}
LOGGING["loggers"] = {
    **LOGGING["loggers"],
    "accounting": {"handlers": ["console"], "level": "WARNING", "propagate": False},
}
