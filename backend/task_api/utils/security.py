from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from ..config import Settings
from ..models.user import Role
from .errors import ExpiredToken, InvalidToken

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt."""
    raw = password.encode("utf-8")
    if len(raw) > BCRYPT_MAX_BYTES:
        raise ValueError(f"password exceeds {BCRYPT_MAX_BYTES} bytes")
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    raw = password.encode("utf-8")
    if len(raw) > BCRYPT_MAX_BYTES:
        # could never have been stored, and must not match on its prefix
        return False
    try:
        return bcrypt.checkpw(raw, password_hash.encode("utf-8"))
    except ValueError:
        # stored value is not a bcrypt hash
        return False


@dataclass(frozen=True)
class Identity:
    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


class TokenService:
    """Issues and verifies signed, time-limited identity tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl: timedelta = timedelta(hours=24)):
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(settings.jwt_secret, settings.jwt_algorithm, settings.token_ttl)

    def issue(self, user_id: str, role: str, now: datetime | None = None) -> str:
        issued = now or datetime.now(timezone.utc)
        claims = {
            "sub": str(user_id),
            "role": role,
            "iat": int(issued.timestamp()),
            "exp": int((issued + self.ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Identity:
        """
        Decode `token` and return the identity it carries.

        Raises ExpiredToken past expiry and InvalidToken for anything else
        wrong with it (signature, format, missing claims).
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise ExpiredToken()
        except JWTError:
            raise InvalidToken()

        subject = payload.get("sub")
        role = payload.get("role")
        if not subject or not role or "exp" not in payload:
            raise InvalidToken()
        return Identity(id=subject, role=role)
