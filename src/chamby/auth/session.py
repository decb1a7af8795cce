"""Current-user access for the booking core."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from chamby.auth.models import UserIdentity


@runtime_checkable
class AuthService(Protocol):
    """Protocol for resolving the signed-in user."""

    def get_current_user(self) -> UserIdentity | None: ...


class AuthSession:
    """Mutable holder for the user of one browsing session."""

    def __init__(self, user: UserIdentity | None = None) -> None:
        self._user = user

    def get_current_user(self) -> UserIdentity | None:
        return self._user

    def sign_in(self, user: UserIdentity) -> None:
        self._user = user

    def sign_out(self) -> None:
        self._user = None
