"""FastAPI dependency chain: DB session → JWT → User, plus injected services."""

from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from weraise.core.exceptions import ForbiddenError
from weraise.core.security import decode_access_token
from weraise.db.session import async_session_factory
from weraise.models.user import User
from weraise.services.notifications import EmailNotifier, Notifier
from weraise.services.paypal import PaymentProvider, PayPalClient

bearer_scheme = HTTPBearer(auto_error=False)

_payment_provider: PayPalClient | None = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session. Commits on success, rolls back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_user_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict:
    """Extract and verify the Bearer token, returning JWT claims."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    try:
        claims = await decode_access_token(credentials.credentials)
    except JWTError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {e}") from e

    return claims


async def get_current_user(
    claims: dict = Depends(get_current_user_claims),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve cognito_sub from JWT claims to a User row.

    Auto-provisions the user if they exist in Cognito but not yet in our DB.
    """
    cognito_sub = claims.get("sub")
    if not cognito_sub:
        raise HTTPException(status_code=401, detail="Token missing sub claim")

    result = await db.execute(select(User).where(User.cognito_sub == cognito_sub))
    user = result.scalar_one_or_none()

    if user is None:
        # Auto-provision: create user from JWT claims
        email = claims.get("email", f"{cognito_sub}@placeholder.local")
        full_name = claims.get("name", claims.get("email", "Unknown"))
        user = User(
            cognito_sub=cognito_sub,
            email=email,
            full_name=full_name,
        )
        db.add(user)
        await db.flush()

    if not user.is_active:
        raise HTTPException(status_code=403, detail="User account is deactivated")

    return user


async def require_creator(user: User = Depends(get_current_user)) -> User:
    """Reject callers who have not enabled creator features."""
    if not user.is_creator:
        raise ForbiddenError("Creator account required")
    return user


def get_payment_provider() -> PaymentProvider:
    """Process-wide PayPal client (keeps its OAuth token cached between requests)."""
    global _payment_provider
    if _payment_provider is None:
        _payment_provider = PayPalClient()
    return _payment_provider


def get_notifier() -> Notifier:
    return EmailNotifier()
