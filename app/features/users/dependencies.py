"""
FastAPI dependencies for authentication.
"""
from typing import Annotated
from datetime import datetime, timezone
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from app.core.database.engine import get_db
from app.core.errors import InvalidToken, NotFound
from app.features.permissions.models import Actor
from app.features.users.models import User
from app.features.users.auth import extract_token, verify_jwt_token, get_appwrite_user, retrieve_claims
from app.utils import get_logger


log = get_logger(__name__)
security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Actor:
    """
    Identify the actor making the request.
    
    This dependency:
    1. Extracts JWT from Authorization header
    2. Verifies JWT and fetches the account (with its claims) from Appwrite
    3. Looks up or creates user in local database
    4. Updates last_signed_in timestamp
    
    Usage:
        @router.get("/groups")
        async def list_groups(actor: Actor = Depends(get_current_actor)):
            ...
    """
    token = extract_token(credentials.credentials if credentials else None)
    
    # Verify JWT and get payload
    payload = verify_jwt_token(token)
    appwrite_user_id = payload.get("userId") or payload.get("sub")
    
    if not appwrite_user_id:
        raise InvalidToken("Invalid token payload")
    
    account = await get_appwrite_user(appwrite_user_id)
    claims = retrieve_claims(account)
    
    result = await db.execute(
        select(User).where(User.appwrite_id == appwrite_user_id)
    )
    user = result.scalar_one_or_none()
    
    # If user doesn't exist locally, mirror the Appwrite account
    if user is None:
        user = User(
            appwrite_id=appwrite_user_id,
            email=account.get("email", ""),
            name=account.get("name") or "Unknown",
            phone=account.get("phone") or None,
        )
        db.add(user)
        log.info("Registered user for Appwrite account %s", appwrite_user_id)
    
    user.last_signed_in = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(user)
    
    return Actor(id=user.id, is_groot=claims["groot"])


async def get_current_user(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> User:
    """Load the user record of the requesting actor."""
    user = await db.get(User, actor.id)
    if user is None:
        raise NotFound("User not found")
    return user


def get_authorization_header(request: Request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"
