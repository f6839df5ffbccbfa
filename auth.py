"""Bearer-token and admin-role gates used as FastAPI dependencies."""

from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pymongo.database import Database

from database import USERS, get_db, sanitize
from errors import Forbidden, Unauthorized
from identity import IdentityProvider, get_identity_provider

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_email(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> str:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("unauthorized access", detail="Missing bearer token")
    return provider.verify_token(credentials.credentials)


def require_admin(
    email: str = Depends(get_current_email),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    user = db[USERS].find_one({"email": email})
    if not user or user.get("role") != "admin":
        raise Forbidden("forbidden access", detail="Admin role required")
    return sanitize(user)
