"""
Auth Token Issuer.

Each user holds exactly one valid refresh token, stored on the user document.
Issuing tokens (signup, login, refresh) overwrites it, so a token that has
been rotated away is rejected even before it expires. Refresh rotates on use.
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import to_object_id
from errors import AuthenticationError, DuplicateError, ForbiddenError, NotFoundError, ValidationError
from logger import get_logger
from schemas import User
from security import ACCESS, REFRESH, RESET, TokenSigner, hash_password, verify_password

logger = get_logger("auth")

INVALID_CREDENTIALS = "Invalid credentials"


class AuthService:
    def __init__(self, db: Database, signer: TokenSigner, mailer=None, frontend_url: str = ""):
        self.users = db["user"]
        self.signer = signer
        self.mailer = mailer
        self.frontend_url = frontend_url.rstrip("/")

    def _user(self, user_id: str) -> Optional[dict]:
        try:
            return self.users.find_one({"_id": to_object_id(user_id)})
        except ValidationError:
            return None

    def issue_tokens(self, user_id: str) -> dict:
        access_token = self.signer.access_token(user_id)
        refresh_token = self.signer.refresh_token(user_id)
        self.users.update_one({"_id": to_object_id(user_id)}, {"$set": {"refresh_token": refresh_token}})
        return {"accessToken": access_token, "refreshToken": refresh_token}

    def signup(self, username: str, email: str, password: str) -> dict:
        if not username or not email or not password:
            raise ValidationError("All fields are required")
        email = email.strip().lower()
        if self.users.find_one({"email": email}):
            raise DuplicateError("User already exists")
        user = User(username=username, email=email, password_hash=hash_password(password))
        try:
            user_id = self.users.insert_one(user.model_dump()).inserted_id
        except DuplicateKeyError:
            raise DuplicateError("User already exists")
        logger.info("Registered user %s", user_id)
        return self.issue_tokens(str(user_id))

    def login(self, email: str, password: str) -> dict:
        if not email or not password:
            raise ValidationError("Email and password are required")
        user = self.users.find_one({"email": email.strip().lower()})
        if not user or not verify_password(password, user.get("password_hash")):
            logger.warning("Rejected login attempt for %s", email)
            raise AuthenticationError(INVALID_CREDENTIALS)
        return self.issue_tokens(str(user["_id"]))

    def refresh(self, refresh_token: str) -> dict:
        if not refresh_token:
            raise ValidationError("Refresh token is required")
        try:
            user_id = self.signer.verify(refresh_token, REFRESH)
        except AuthenticationError:
            raise AuthenticationError("Invalid or expired refresh token")
        user = self._user(user_id)
        if not user or user.get("refresh_token") != refresh_token:
            logger.warning("Rejected stale or unknown refresh token for user %s", user_id)
            raise AuthenticationError("Invalid refresh token")
        return self.issue_tokens(user_id)

    def forgot_password(self, email: str) -> None:
        if not email:
            raise ValidationError("Email is required")
        user = self.users.find_one({"email": email.strip().lower()})
        if not user:
            raise NotFoundError("User not found")
        token = self.signer.reset_token(str(user["_id"]))
        minutes = self.signer.settings.access_token_ttl_minutes
        self.mailer.send(
            to=user["email"],
            subject="Password Reset Request",
            text=(
                f"Click this link to reset your password: {self.frontend_url}/reset-password/{token}\n\n"
                f"This link expires in {minutes} minutes."
            ),
        )
        logger.info("Sent password reset link to user %s", user["_id"])

    def reset_password(self, token: str, new_password: str) -> None:
        if not token or not new_password:
            raise ValidationError("Token and new password are required")
        try:
            user_id = self.signer.verify(token, RESET)
        except AuthenticationError:
            raise AuthenticationError("Invalid or expired token")
        user = self._user(user_id)
        if not user:
            raise AuthenticationError("Invalid token")
        self.users.update_one({"_id": user["_id"]}, {"$set": {"password_hash": hash_password(new_password)}})
        logger.info("Password reset for user %s", user_id)


bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user_id(request: Request,
                        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> str:
    """Resolve the bearer access token to a user id (401 missing, 403 invalid)."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise AuthenticationError("No token provided")
    signer: TokenSigner = request.app.state.signer
    try:
        return signer.verify(credentials.credentials, ACCESS)
    except AuthenticationError:
        raise ForbiddenError("Invalid token")
