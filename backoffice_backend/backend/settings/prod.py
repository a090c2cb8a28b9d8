# backend/settings/prod.py
"""
PRODUCTION SETTINGS

Fails closed: the process refuses to start unless the secret key, hosts,
a Postgres DATABASE_URL and https-only CORS/CSRF origins are configured,
and unless OVERSELL_POLICY is one of the known values.
"""

from __future__ import annotations

from django.core.exceptions import ImproperlyConfigured

from .base import *  # noqa: F403
from .base import BASE_DIR, INVENTORY, MIDDLEWARE, env


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ImproperlyConfigured(message)


def _https_origins(name: str) -> list[str]:
    origins = env.list(name, default=[])
    _require(bool(origins), f"{name} must be set in production.")
    for origin in origins:
        _require(origin.startswith("https://"), f"{name} must be https:// in production ({origin}).")
        _require(
            "localhost" not in origin and "127.0.0.1" not in origin,
            f"Remove local origins from {name} in production.",
        )
    return origins


DEBUG = False

SECRET_KEY = (env("SECRET_KEY", default="") or "").strip()
_require(
    bool(SECRET_KEY) and SECRET_KEY != "dev-insecure-change-me",
    "SECRET_KEY must be set to a strong value in production.",
)

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=[])
_require(bool(ALLOWED_HOSTS), "ALLOWED_HOSTS must be set in production.")

# Lot consumption relies on row locks; SQLite has none.
_database_url = (env("DATABASE_URL", default="") or "").strip()
_require(bool(_database_url), "DATABASE_URL must be set in production (Postgres).")
_require(
    _database_url.startswith(("postgres://", "postgresql://", "pgsql://")),
    "Production requires a Postgres DATABASE_URL.",
)
DATABASES = {"default": env.db("DATABASE_URL")}
DATABASES["default"]["CONN_MAX_AGE"] = env.int("DB_CONN_MAX_AGE", default=60)
DATABASES["default"]["ATOMIC_REQUESTS"] = False

_policy = (env("OVERSELL_POLICY", default="") or "").strip().lower()
_require(_policy in ("allow", "reject"), "OVERSELL_POLICY must be 'allow' or 'reject' in production.")
INVENTORY = {**INVENTORY, "OVERSELL_POLICY": _policy}

# Static files via WhiteNoise
STATIC_ROOT = env("STATIC_ROOT", default=str(BASE_DIR / "staticfiles"))
MIDDLEWARE.insert(1, "whitenoise.middleware.WhiteNoiseMiddleware")
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# Behind a TLS-terminating proxy
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=True)
SECURE_HSTS_SECONDS = env.int("SECURE_HSTS_SECONDS", default=3600)
SECURE_HSTS_INCLUDE_SUBDOMAINS = env.bool("SECURE_HSTS_INCLUDE_SUBDOMAINS", default=True)
SECURE_HSTS_PRELOAD = env.bool("SECURE_HSTS_PRELOAD", default=False)

SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
SESSION_COOKIE_HTTPONLY = True
CSRF_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = "Lax"
CSRF_COOKIE_SAMESITE = "Lax"

SECURE_CONTENT_TYPE_NOSNIFF = True
SECURE_REFERRER_POLICY = "same-origin"
SECURE_CROSS_ORIGIN_OPENER_POLICY = "same-origin"
X_FRAME_OPTIONS = "DENY"

# JWT in the Authorization header; no cross-site cookies.
CORS_ALLOWED_ORIGINS = _https_origins("CORS_ALLOWED_ORIGINS")
CSRF_TRUSTED_ORIGINS = _https_origins("CSRF_TRUSTED_ORIGINS")
CORS_ALLOW_CREDENTIALS = False
