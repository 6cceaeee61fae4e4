"""
Authentication utilities for Appwrite session JWT verification.
"""
from typing import Any

import jwt
from fastapi import HTTPException, status
from starlette.concurrency import run_in_threadpool
from appwrite.client import Client
from appwrite.services.account import Account
from appwrite.exception import AppwriteException

from app.core import config
from app.utils import get_logger

log = get_logger(__name__)


def verify_jwt_token(token: str) -> dict:
    """
    Decode an Appwrite JWT and return its payload.
    
    The signature is checked by Appwrite itself in ``get_session_account``;
    here we only reject malformed or expired tokens before calling out.
    
    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": True}
        )
        
        return payload
        
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


def session_client(token: str) -> Client:
    """Build an Appwrite client acting as the session that owns ``token``."""
    client = Client()
    client.set_endpoint(config.APPWRITE_ENDPOINT)
    client.set_project(config.APPWRITE_PROJECT_ID)
    client.set_jwt(token)
    return client


def account_field(account: Any, key: str, attribute: str | None = None) -> Any:
    """Read a field from an Appwrite account, whether returned as dict or model."""
    if isinstance(account, dict):
        return account.get(key)
    return getattr(account, attribute or key, None)


async def get_session_account(token: str) -> Any:
    """
    Ask Appwrite for the account behind a session JWT.
    
    This is the server-side verification of the token: Appwrite rejects forged
    or revoked JWTs.
    
    Raises:
        HTTPException: 401 if Appwrite does not accept the token
    """
    try:
        return await run_in_threadpool(Account(session_client(token)).get)
    except AppwriteException as e:
        log.info("Appwrite rejected session token: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )
