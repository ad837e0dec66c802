from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from passlib.context import CryptContext
from .config import Settings
from .errors import UnauthorizedError


def make_password_context(settings: Settings) -> CryptContext:
    return CryptContext(schemes=['bcrypt'], deprecated='auto', bcrypt__rounds=settings.bcrypt_work_factor)


class TokenIssuer:
    """Signs bearer tokens carrying the authenticated username."""

    def __init__(self, settings: Settings):
        self._secret = settings.secret_key
        self._algorithm = settings.jwt_algorithm
        self._expire_minutes = settings.access_token_expire_minutes

    def issue(self, username: str) -> str:
        to_encode = {'username': username}
        if self._expire_minutes:
            to_encode['exp'] = datetime.now(timezone.utc) + timedelta(minutes=self._expire_minutes)
        return jwt.encode(to_encode, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> Optional[dict]:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError:
            return None
        if not isinstance(payload.get('username'), str):
            return None
        return payload


bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    if credentials is None:
        raise UnauthorizedError('Missing bearer token')
    payload = request.app.state.tokens.decode(credentials.credentials)
    if payload is None:
        raise UnauthorizedError('Invalid token')
    return {'username': payload['username']}
