"""
FastAPI dependencies for authentication.
"""
from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.features.users.auth import verify_jwt_token, get_session_account, account_field
from app.features.users.schemas import Identity


security = HTTPBearer()


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Identity:
    """
    Get the current authenticated identity from the bearer JWT.
    
    This dependency:
    1. Extracts JWT from Authorization header
    2. Rejects malformed or expired tokens
    3. Verifies the session with Appwrite
    4. Rejects blocked accounts
    
    Usage:
        @router.get("/me")
        async def get_me(identity: Identity = Depends(get_current_identity)):
            return identity
    """
    token = credentials.credentials
    
    payload = verify_jwt_token(token)
    user_id = payload.get("userId")
    
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    
    account = await get_session_account(token)
    
    if account_field(account, "$id", "id") != user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token does not match session account",
        )
    
    if account_field(account, "status") is False:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is blocked",
        )
    
    return Identity(
        id=user_id,
        email=account_field(account, "email") or None,
        name=account_field(account, "name") or None,
    )


def get_authorization_header(request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"
