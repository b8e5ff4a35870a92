"""
Shared slowapi limiter.

Keyed on the Authorization header so authenticated clients are limited per token;
unauthenticated routes such as login pass key_func=get_remote_address.
"""
from slowapi import Limiter

from app.features.users.dependencies import get_authorization_header


limiter = Limiter(key_func=get_authorization_header)
