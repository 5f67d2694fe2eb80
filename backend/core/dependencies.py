from typing import Optional
from fastapi import Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from core.security import verify_id_token
from core.exceptions import credentials_exception, forbidden_exception, not_found_exception
from core.utils import normalize_email
from database import db
from models.common import UserRole

bearer_scheme = HTTPBearer(auto_error=False)


class Identity(BaseModel):
    """Caller as asserted by the Firebase ID token."""
    uid:   str
    email: str


class AuthContext(BaseModel):
    """Identity resolved against the users collection."""
    identity: Identity
    user_id:  str
    role:     UserRole

    @property
    def email(self) -> str:
        return self.identity.email

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    if not credentials:
        raise credentials_exception("No token provided")
    claims = await run_in_threadpool(verify_id_token, credentials.credentials)
    if not claims:
        raise credentials_exception()

    uid = claims.get("uid") or claims.get("sub")
    email = claims.get("email")
    if not uid or not email:
        raise credentials_exception("Unauthorized: no user email found")
    return Identity(uid=uid, email=normalize_email(email))


async def get_auth_context(identity: Identity = Depends(get_identity)) -> AuthContext:
    user = await db.users.find_one({"email": normalize_email(identity.email)}, {"_id": 0})
    if not user:
        raise not_found_exception("User")
    return AuthContext(identity=identity, user_id=user["user_id"], role=user["role"])


def require_role(*roles: UserRole):
    """
    Dependency checking that the caller holds one of the given roles.
    Usage: Depends(require_role(UserRole.RIDER, UserRole.ADMIN))
    """
    allowed = [r.value for r in roles]

    async def _check(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if ctx.role.value not in allowed:
            raise forbidden_exception(f"Access denied: {' or '.join(allowed)} only")
        return ctx
    return _check


require_admin = require_role(UserRole.ADMIN)
require_rider = require_role(UserRole.RIDER)
require_rider_or_admin = require_role(UserRole.RIDER, UserRole.ADMIN)
