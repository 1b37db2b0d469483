"""Cognito token refresh (real + mock modes)."""

import asyncio
import logging

from weraise.core.config import settings

logger = logging.getLogger(__name__)


async def refresh_cognito_token(refresh_token: str) -> dict:
    """Exchange a refresh token for a new access token.

    Returns ``{"access_token": ..., "refresh_token"?: ...}``. A new refresh
    token is only present when the identity provider rotated it.
    """
    if settings.COGNITO_MOCK:
        return _mock_refresh(refresh_token)

    return await asyncio.to_thread(_real_cognito_refresh, refresh_token)


def _real_cognito_refresh(refresh_token: str) -> dict:
    """Call Cognito REFRESH_TOKEN_AUTH."""
    import boto3

    client = boto3.client("cognito-idp", region_name=settings.COGNITO_REGION)

    response = client.initiate_auth(
        ClientId=settings.COGNITO_CLIENT_ID,
        AuthFlow="REFRESH_TOKEN_AUTH",
        AuthParameters={"REFRESH_TOKEN": refresh_token},
    )

    result = response["AuthenticationResult"]
    tokens: dict[str, str] = {"access_token": result["AccessToken"]}

    # Cognito may or may not return a new refresh token (rotation)
    if "RefreshToken" in result:
        tokens["refresh_token"] = result["RefreshToken"]

    return tokens


def _mock_refresh(refresh_token: str) -> dict:
    """Verify a mock refresh token and mint a rotated pair for the same subject."""
    from weraise.core.security import (
        create_mock_access_token,
        create_mock_refresh_token,
        decode_mock_refresh_token,
    )

    claims = decode_mock_refresh_token(refresh_token)
    sub = claims["sub"]
    email = claims.get("email", f"{sub}@placeholder.local")
    logger.info("Rotated mock refresh token for sub=%s", sub)
    return {
        "access_token": create_mock_access_token(sub=sub, email=email),
        "refresh_token": create_mock_refresh_token(sub=sub, email=email),
    }
