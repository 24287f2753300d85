from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import logging
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from core.config import settings
from core.errors import AuthError, OwnershipError
from schemas.auth import Principal


bearer_scheme = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)


def create_access_token(subject: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = subject.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def decode_access_token(token: str) -> Principal:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        logger.warning("auth.jwt_error")
        raise AuthError("Could not validate credentials")
    try:
        return Principal(user_id=str(payload.get("sub") or ""), role=payload.get("role"))
    except ValidationError:
        logger.warning("auth.invalid_claims", extra={"role": payload.get("role")})
        raise AuthError("Could not validate credentials")


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    if credentials is None or not credentials.credentials:
        raise AuthError()
    principal = decode_access_token(credentials.credentials)
    if not principal.user_id:
        logger.error("auth.token_missing_subject")
        raise AuthError("Could not validate credentials")
    return principal


async def get_current_patient(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != "patient":
        raise AuthError()
    return principal


async def get_current_staff(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_staff:
        raise OwnershipError("Staff access required")
    return principal
