from datetime import datetime, timedelta, timezone
from typing import List

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel


class TokenData(BaseModel):
    sub: str
    roles: List[str]

    @property
    def user_id(self) -> int:
        return int(self.sub)


bearer = HTTPBearer()


def create_token(secret: str, user_id: int, roles: List[str], ttl_minutes: int = 120) -> str:
    now = datetime.now(timezone.utc)
    payload = {"sub": str(user_id), "roles": roles, "iat": int(now.timestamp()), "exp": int((now + timedelta(minutes=ttl_minutes)).timestamp())}
    return jwt.encode(payload, secret, algorithm="HS256")


def get_current_user(request: Request, creds: HTTPAuthorizationCredentials = Depends(bearer)) -> TokenData:
    secret = request.app.state.settings.APP_SECRET.get_secret_value()
    try:
        payload = jwt.decode(creds.credentials, secret, algorithms=["HS256"])
        int(payload["sub"])  # identities are numeric user ids
        return TokenData(sub=payload["sub"], roles=payload.get("roles", []))
    except (jwt.PyJWTError, KeyError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")


def require_roles(*required: str):
    def checker(user: TokenData = Depends(get_current_user)):
        roles = set(user.roles)
        if not roles.intersection(set(required)):
            raise HTTPException(status_code=403, detail="Insufficient role")
        return user
    return checker
