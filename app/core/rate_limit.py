"""
Request rate limiting, keyed by the caller's Authorization header.
"""
from slowapi import Limiter

from app.features.users.dependencies import get_authorization_header

limiter = Limiter(key_func=get_authorization_header)
