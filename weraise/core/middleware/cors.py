"""CORS and refresh-origin configuration."""

from weraise.core.config import settings


def get_cors_config() -> dict:
    """Return CORS middleware kwargs for FastAPI."""
    return {
        "allow_origins": settings.allowed_origins_list,
        "allow_credentials": True,
        "allow_methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        "allow_headers": [
            "Authorization",
            "Content-Type",
            "X-Request-Id",
        ],
    }


def validate_origin(origin: str) -> bool:
    """Check an Origin header against the allowlist.

    In development a missing origin (curl, tests) is accepted; elsewhere the
    origin must be listed in ALLOWED_ORIGINS or be the frontend itself.
    """
    if not origin:
        return settings.ENVIRONMENT == "development"
    if origin in settings.allowed_origins_list:
        return True
    return origin == settings.FRONTEND_URL.rstrip("/")
