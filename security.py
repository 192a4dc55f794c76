"""
Password hashing and signed tokens.

Access and reset tokens are signed with ``jwt_secret``; refresh tokens with
``refresh_token_secret``. Every token carries the user id in the ``userId``
claim and its purpose in ``type``.
"""
import uuid
from datetime import timedelta
from typing import Optional

import jwt
from passlib.hash import bcrypt

from config import Settings
from database import utcnow
from errors import AuthenticationError

ALGORITHM = "HS256"

ACCESS = "access"
REFRESH = "refresh"
RESET = "reset"


def hash_password(password: str) -> str:
    return bcrypt.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.verify(password, password_hash)
    except ValueError:
        # malformed hash in storage
        return False


class TokenSigner:
    """Signs and verifies the three token types for one Settings instance."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _sign(self, user_id: str, token_type: str, secret: str, lifetime: timedelta) -> str:
        now = utcnow()
        payload = {
            "userId": user_id,
            "type": token_type,
            "iat": now,
            "exp": now + lifetime,
            # unique per call so two tokens issued in the same second differ
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, secret, algorithm=ALGORITHM)

    def access_token(self, user_id: str) -> str:
        return self._sign(user_id, ACCESS, self.settings.jwt_secret,
                          timedelta(minutes=self.settings.access_token_ttl_minutes))

    def refresh_token(self, user_id: str) -> str:
        return self._sign(user_id, REFRESH, self.settings.refresh_token_secret,
                          timedelta(days=self.settings.refresh_token_ttl_days))

    def reset_token(self, user_id: str) -> str:
        return self._sign(user_id, RESET, self.settings.jwt_secret,
                          timedelta(minutes=self.settings.access_token_ttl_minutes))

    def verify(self, token: str, token_type: str) -> str:
        """Return the userId claim, or raise AuthenticationError."""
        secret = self.settings.refresh_token_secret if token_type == REFRESH else self.settings.jwt_secret
        try:
            payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
        except jwt.PyJWTError as exc:
            raise AuthenticationError("Invalid or expired token", error=str(exc))
        if payload.get("type") != token_type or not payload.get("userId"):
            raise AuthenticationError("Invalid or expired token")
        return payload["userId"]
