from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel
import logging

from ..errors import AuthenticationRequired
from ..policy import AuthorizationPolicy, Caller, get_policy
from ..settings import settings

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)


class Me(BaseModel):
	id: str
	is_admin: bool


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	if expires_delta is None:
		expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
	return datetime.now(timezone.utc) + expires_delta


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	expire = _resolve_expiry(expires_delta)
	to_encode.update({"exp": expire})
	encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
	return encoded_jwt


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Caller:
	if credentials is None or not credentials.credentials:
		raise AuthenticationRequired()
	try:
		payload = jwt.decode(credentials.credentials, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError as e:
		logger.info(f"Rejected bearer token: {e}")
		raise AuthenticationRequired()
	user_id: str | None = payload.get("sub")
	if not user_id:
		raise AuthenticationRequired()
	return Caller(id=user_id)


@router.get("/me", response_model=Me)
async def me(user: Caller = Depends(get_current_user), policy: AuthorizationPolicy = Depends(get_policy)):
	return Me(id=user.id, is_admin=policy.is_privileged(user))
