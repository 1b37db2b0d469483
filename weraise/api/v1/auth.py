"""Authentication endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from jose import JWTError

from weraise.core.config import settings
from weraise.core.middleware.cors import validate_origin
from weraise.services.auth_service import refresh_cognito_token

logger = logging.getLogger(__name__)

router = APIRouter()

REFRESH_COOKIE_PATH = "/api/v1/auth/refresh"
REFRESH_COOKIE_MAX_AGE = 2592000  # 30 days


@router.post("/refresh")
async def refresh_token(request: Request):
    """Refresh the access token using the httpOnly refresh cookie.

    - Origin validation (allowlist)
    - Content-Type enforcement (application/json)
    - POST-only (enforced by router)
    """
    # 1. Origin validation
    origin = request.headers.get("origin", "")
    if not validate_origin(origin):
        raise HTTPException(status_code=403, detail="Invalid origin")

    # 2. Content-Type enforcement
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("application/json"):
        raise HTTPException(status_code=415, detail="Unsupported media type")

    # 3. Extract refresh token from cookie
    refresh_token_value = request.cookies.get("refresh_token")
    if not refresh_token_value:
        raise HTTPException(status_code=401, detail="No refresh token")

    # 4. Call Cognito (or mock)
    try:
        new_tokens = await refresh_cognito_token(refresh_token_value)
    except (JWTError, KeyError) as exc:
        raise HTTPException(status_code=401, detail="Refresh token invalid or expired") from exc
    except Exception as exc:
        logger.warning("Token refresh rejected: %s", type(exc).__name__)
        raise HTTPException(status_code=401, detail="Refresh token invalid or expired") from exc

    # 5. Build response with new refresh cookie
    response = JSONResponse(
        content={"access_token": new_tokens["access_token"]},
        status_code=200,
    )

    if "refresh_token" in new_tokens:
        response.set_cookie(
            key="refresh_token",
            value=new_tokens["refresh_token"],
            httponly=True,
            secure=settings.ENVIRONMENT != "development",
            samesite="strict",
            path=REFRESH_COOKIE_PATH,
            max_age=REFRESH_COOKIE_MAX_AGE,
        )

    return response
