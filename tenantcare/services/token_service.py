import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt
from pydantic import ValidationError

from tenantcare.config.settings import Settings, get_settings
from tenantcare.core.exceptions import UnauthenticatedError
from tenantcare.models.auth import NO_TENANT_LOCATOR, TokenClaims

logger = logging.getLogger(__name__)


class TokenService:
    """
    Password hashing and caller identity tokens.

    Tokens are HS256 JWTs carrying the caller id (`sub`), role and the
    store locator of the clinic the caller belongs to.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

        self.SECRET_KEY = self.settings.JWT_SECRET_KEY
        self.ALGORITHM = self.settings.JWT_ALGORITHM
        self.ACCESS_TOKEN_EXPIRE_MINUTES = self.settings.ACCESS_TOKEN_EXPIRE_MINUTES

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Check a password against its bcrypt hash"""
        if not plain_password or not hashed_password:
            return False
        try:
            return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError:
            # Stored value is not a bcrypt hash
            logger.warning("Password check against a malformed hash")
            return False

    def get_password_hash(self, password: str) -> str:
        """Hash a password with a fresh salt"""
        hash_bytes = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
        return hash_bytes.decode("utf-8")

    def create_access_token(
        self,
        user_id: str,
        role: str,
        store_locator: Optional[str],
        email: Optional[str] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a signed access token.

        Args:
            user_id: Id of the caller inside its clinic (or the super-admin id)
            role: Caller role
            store_locator: Locator of the caller's clinic; "none" when it has none
            email: Caller email, informational
            expires_delta: Lifetime override

        Returns:
            Encoded JWT
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.ACCESS_TOKEN_EXPIRE_MINUTES))

        to_encode: Dict[str, Any] = {
            "sub": user_id,
            "role": role,
            "store_locator": store_locator or NO_TENANT_LOCATOR,
            "exp": expire,
            "iat": now,
            "token_type": "access",
        }
        if email:
            to_encode["email"] = email

        return jwt.encode(to_encode, self.SECRET_KEY, algorithm=self.ALGORITHM)

    def decode_token(self, token: str) -> TokenClaims:
        """
        Decode and validate a token.

        Raises:
            UnauthenticatedError: Malformed, expired or badly signed token.
        """
        try:
            payload = jwt.decode(token, self.SECRET_KEY, algorithms=[self.ALGORITHM])
        except JWTError as e:
            raise UnauthenticatedError("Invalid or expired token, please log in again") from e

        try:
            claims = TokenClaims.model_validate(payload)
        except ValidationError as e:
            raise UnauthenticatedError("Invalid token claims, please log in again") from e

        if claims.token_type != "access":
            raise UnauthenticatedError("Access token required")
        return claims
