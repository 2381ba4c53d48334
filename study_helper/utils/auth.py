"""
Password hashing and bearer token handling.

Passwords are hashed with bcrypt through passlib. Tokens are HS256 JWTs signed
with the process-wide secret from settings; rotating the secret invalidates
every outstanding token. Tokens cannot be revoked before they expire.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import jwt, JWTError
from passlib.context import CryptContext

from study_helper.core.errors import TokenExpired, TokenMalformed

logger = logging.getLogger(__name__)


class PasswordHasher:
    def __init__(self, rounds: int = 10):
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash_password(self, password: str) -> str:
        # bcrypt generates a fresh random salt per call and embeds it in the hash
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        try:
            return self.pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            # Stored value is not a recognizable hash
            logger.warning("[AUTH] Stored password hash could not be parsed")
            return False


@dataclass(frozen=True)
class TokenClaims:
    account_id: int
    issued_at: datetime
    expires_at: datetime


def _aware_utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(days=30),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self.secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime
        self.clock = clock or _aware_utcnow

    def issue(self, account_id: int) -> str:
        now = self.clock()
        to_encode = {
            "sub": str(account_id),
            "iat": int(now.timestamp()),
            "exp": int((now + self.lifetime).timestamp()),
        }
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Decode and validate a token.

        Raises TokenExpired when the signature is valid but ``exp`` has passed,
        and TokenMalformed for every other problem (bad signature, garbage input,
        missing or non-numeric ``sub``). Expiry is judged against this service's
        clock, not the wall clock.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            logger.warning("[AUTH] Token verification failed: %s", e)
            raise TokenMalformed()

        # "sub" is the only subject field we issue or accept
        subject = payload.get("sub")
        try:
            account_id = int(subject)
        except (TypeError, ValueError):
            logger.warning("[AUTH] Token has no usable subject")
            raise TokenMalformed()
        if account_id <= 0:
            raise TokenMalformed()

        try:
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (KeyError, TypeError, ValueError):
            raise TokenMalformed()

        if expires_at < self.clock():
            raise TokenExpired()

        return TokenClaims(account_id=account_id, issued_at=issued_at, expires_at=expires_at)
