# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS (pytest-django / CI)

- In-memory SQLite, fast hashing
- Oversell allowed unless a test overrides INVENTORY
- Domain loggers quietened to ERROR so expected failure paths don't flood output
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING, REST_FRAMEWORK

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

INVENTORY = {
    "OVERSELL_POLICY": "allow",
    "DEFAULT_CURRENCY": "BRL",
}

REST_FRAMEWORK = {**REST_FRAMEWORK, "DEFAULT_THROTTLE_CLASSES": ()}

for _name in ("products", "purchases", "sales", "accounting"):
    LOGGING["loggers"][_name]["level"] = "ERROR"
