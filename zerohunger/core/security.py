from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError, ExpiredSignatureError
from pydantic import ValidationError

from zerohunger.core.config import settings
from zerohunger.core.errors import Unauthorized
from zerohunger.models.actors import Actor, actor_from_claims

# Tokens are minted by the identity service; tokenUrl only feeds the OpenAPI docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")

def create_token(sub: str, role: str, minutes: Optional[int] = None) -> str:
    """Dev/test helper: sign a token the way the identity service does."""
    payload: Dict[str, Any] = {
        "sub": sub,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes or settings.access_ttl_min),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)

def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

async def get_current_actor(token: str = Depends(oauth2_scheme)) -> Actor:
    data = decode_token(token)
    try:
        return actor_from_claims(str(data["sub"]), str(data["role"]))
    except (KeyError, ValidationError):
        raise HTTPException(status_code=401, detail="Token does not name a known role")

def require_role(*roles: str):
    async def checker(actor=Depends(get_current_actor)):
        if actor.role not in roles:
            raise Unauthorized(f"Role {actor.role} is not authorized for this route")
        return actor
    return checker
