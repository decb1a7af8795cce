"""Authentication for Chamby.

The booking core only asks "who is signed in right now?" through
``AuthService``; token handling lives in the provider and middleware.
"""

from chamby.auth.models import UserIdentity
from chamby.auth.session import AuthService, AuthSession

__all__ = [
    "AuthService",
    "AuthSession",
    "UserIdentity",
]
