"""
Credentials and session tokens

Passwords are hashed with bcrypt; sessions are HS256 JWTs carrying
`userId`, `email` and `adminObjectId`.
"""
import logging
from datetime import timedelta
from typing import Optional

import bcrypt
import jwt
from fastapi import Header
from pydantic import BaseModel, Field

import config
from database import now
from errors import InvalidToken, MissingToken

logger = logging.getLogger(__name__)


class Identity(BaseModel):
    user_id: str = Field(..., alias="userId")
    email: str
    admin_object_id: str = Field(..., alias="adminObjectId")


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # stored value is not a bcrypt hash
        return False


def issue_token(user_id: str, email: str, admin_object_id: str, ttl: Optional[timedelta] = None) -> str:
    issued = now()
    payload = {
        "userId": str(user_id),
        "email": email,
        "adminObjectId": str(admin_object_id),
        "iat": issued,
        "exp": issued + (ttl if ttl is not None else timedelta(days=config.TOKEN_TTL_DAYS)),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str) -> Identity:
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
        return Identity.model_validate(payload)
    except jwt.PyJWTError as e:
        logger.debug("Rejected token: %s", e)
        raise InvalidToken()
    except ValueError:
        # well signed but missing identity claims
        raise InvalidToken()


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


def current_identity(authorization: Optional[str] = Header(None)) -> Identity:
    """FastAPI dependency for protected routes."""
    token = bearer_token(authorization)
    if not token:
        raise MissingToken()
    return decode_token(token)
