"""Authentication provider Protocol and mock implementation."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

import yaml

from chamby.auth.models import AuthCredentials, AuthResult, TokenValidation, UserIdentity
from chamby.core.config import AuthConfig

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_DEFAULT_FIXTURES_PATH = _PROJECT_ROOT / "config" / "auth_fixtures.yml"


def resolve_fixtures_path(configured: str | Path) -> Path:
    path = Path(configured)
    if path.is_absolute() or path.exists():
        return path
    return _PROJECT_ROOT / path


@runtime_checkable
class AuthProvider(Protocol):
    """Protocol for authentication providers."""

    def authenticate(self, credentials: AuthCredentials) -> AuthResult: ...

    def validate_token(self, token: str) -> TokenValidation: ...

    def revoke_token(self, token: str) -> bool: ...


class MockAuthProvider:
    """Passwordless sign-in against the customers listed in a YAML file.

    Customers sign in with a one-time code. A fixture entry may pin the code
    it expects; entries without one take any code, as a stand-in for a code
    delivered by SMS or email.
    """

    def __init__(
        self,
        fixtures_path: str | Path | None = None,
        token_expiry_minutes: int = 60,
    ) -> None:
        self._customers: dict[str, UserIdentity] = {}
        self._pinned_codes: dict[str, str] = {}
        self._sessions: dict[str, tuple[UserIdentity, datetime]] = {}
        self._token_ttl = timedelta(minutes=token_expiry_minutes)
        self._load_fixtures(Path(fixtures_path) if fixtures_path else _DEFAULT_FIXTURES_PATH)

    def _load_fixtures(self, path: Path) -> None:
        if not path.exists():
            logger.warning("No auth fixtures at %s, nobody can sign in", path)
            return
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        for entry in data.get("users", []):
            username = entry["username"]
            self._customers[username] = UserIdentity(
                id=str(entry.get("id", username)),
                display_name=entry.get("display_name", username),
                email=entry.get("email"),
            )
            if entry.get("code"):
                self._pinned_codes[username] = str(entry["code"])
        logger.info("Loaded %d customers from %s", len(self._customers), path)

    @property
    def users(self) -> dict[str, UserIdentity]:
        return dict(self._customers)

    def authenticate(self, credentials: AuthCredentials) -> AuthResult:
        customer = self._customers.get(credentials.username)
        if customer is None:
            return AuthResult(success=False, error="No customer account for that username")

        code = (credentials.code or "").strip()
        if not code:
            return AuthResult(success=False, error="Enter the one-time code we sent you")
        pinned = self._pinned_codes.get(credentials.username)
        if pinned is not None and code != pinned:
            return AuthResult(success=False, error="That one-time code is not valid")

        token = uuid.uuid4().hex
        self._sessions[token] = (customer, datetime.now(timezone.utc) + self._token_ttl)
        return AuthResult(success=True, token=token, user=customer)

    def validate_token(self, token: str) -> TokenValidation:
        entry = self._sessions.get(token)
        if entry is None:
            return TokenValidation(valid=False)
        customer, expires_at = entry
        if datetime.now(timezone.utc) >= expires_at:
            self._sessions.pop(token, None)
            return TokenValidation(valid=False)
        return TokenValidation(valid=True, user=customer, expires_at=expires_at)

    def revoke_token(self, token: str) -> bool:
        return self._sessions.pop(token, None) is not None


def create_auth_provider(config: AuthConfig) -> AuthProvider:
    """Create an auth provider from configuration.

    Raises:
        ValueError: If the configured provider is unknown.
    """
    if config.provider == "mock":
        return MockAuthProvider(
            fixtures_path=resolve_fixtures_path(config.fixtures_path),
            token_expiry_minutes=config.token_expiry_minutes,
        )
    raise ValueError(f"Unknown auth provider: {config.provider!r}")
