"""GitHub App credentials and signed app assertions (JWT)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

from jose import jwt
from jose.exceptions import JOSEError

from app.core.config import Settings
from app.core.errors import ConfigError

ASSERTION_LIFETIME = timedelta(seconds=600)
CLOCK_SKEW_BACKDATE = timedelta(seconds=60)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def load_private_key(raw: str | None = None, path: str | None = None) -> str:
    """Load a PEM private key from a raw string or, failing that, a file path."""
    if raw and raw.strip():
        return raw.replace("\\n", "\n")
    if path:
        key_path = Path(path.strip().strip('"')).expanduser()
        if key_path.is_file():
            try:
                return key_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise ConfigError(f"GitHub App private key file unreadable: {key_path}") from exc
        raise ConfigError(f"GitHub App private key file not found: {key_path}")
    raise ConfigError(
        "GitHub App private key not found. Set GITHUB_APP_PRIVATE_KEY or GITHUB_APP_PRIVATE_KEY_PATH"
    )


@dataclass(frozen=True)
class AppCredential:
    app_id: str
    private_key: str = field(repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppCredential":
        errors: list[str] = []
        if not settings.github_app_id:
            errors.append("GITHUB_APP_ID is required")
        if not settings.github_app_private_key and not settings.github_app_private_key_path:
            errors.append("GITHUB_APP_PRIVATE_KEY or GITHUB_APP_PRIVATE_KEY_PATH is required")
        if errors:
            raise ConfigError("GitHub App configuration errors:\n" + "\n".join(errors))
        private_key = load_private_key(settings.github_app_private_key, settings.github_app_private_key_path)
        return cls(app_id=str(settings.github_app_id), private_key=private_key)


@dataclass(frozen=True)
class SignedAssertion:
    token: str = field(repr=False)
    issued_at: datetime
    expires_at: datetime


class CredentialProvider:
    """Signs short-lived app JWTs used to list installations and mint tokens."""

    def __init__(self, credential: AppCredential, *, clock: Callable[[], datetime] = _now) -> None:
        if not credential.app_id:
            raise ConfigError("GITHUB_APP_ID is required for GitHub App authentication")
        if not credential.private_key:
            raise ConfigError("GitHub App private key is empty")
        self._credential = credential
        self._clock = clock

    @property
    def app_id(self) -> str:
        return self._credential.app_id

    def sign(self) -> SignedAssertion:
        issued_at = self._clock().replace(microsecond=0)
        expires_at = issued_at + ASSERTION_LIFETIME
        claims = {
            "iat": int((issued_at - CLOCK_SKEW_BACKDATE).timestamp()),
            "exp": int(expires_at.timestamp()),
            "iss": self._credential.app_id,
        }
        try:
            token = jwt.encode(claims, self._credential.private_key, algorithm="RS256")
        except JOSEError as exc:
            raise ConfigError(f"GitHub App private key is unreadable: {exc}") from exc
        return SignedAssertion(token=token, issued_at=issued_at, expires_at=expires_at)
