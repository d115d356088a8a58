"""
Password hashing and bearer tokens.

Tokens are stateless HS256 JWTs carrying the user id and name. They are
checked by signature and expiry only; there is no revocation list.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

import settings
from errors import AuthError, InvalidToken, TokenExpired

logger = logging.getLogger(__name__)

if settings.SECRET_KEY == settings.DEFAULT_SECRET_KEY:
    logger.warning("SECRET_KEY is not set; using the development signing key")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


class TokenData(BaseModel):
    user_id: str
    name: Optional[str] = None


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def create_access_token(user_id: str, name: Optional[str], expires_delta: Optional[timedelta] = None) -> str:
    issued_at = datetime.now(timezone.utc)
    expire = issued_at + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": str(user_id), "name": name, "iat": issued_at, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> TokenData:
    """
    Verify a token and return the identity it carries.

    Raises:
        TokenExpired: the token is past its expiry.
        InvalidToken: the token is malformed, badly signed or has no subject.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise TokenExpired("Token expired.")
    except JWTError:
        raise InvalidToken("Invalid token.")

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidToken("Invalid token.")
    return TokenData(user_id=user_id, name=payload.get("name"))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenData:
    if credentials is None or not credentials.credentials:
        raise AuthError("No token provided.")
    try:
        return decode_access_token(credentials.credentials)
    except InvalidToken as e:
        logger.warning(f"Rejected bearer token: {e.message}")
        raise
