"""
User service: login-time upsert, role management, search.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from pymongo import ReturnDocument

from core.dependencies import Identity
from core.exceptions import bad_request_exception, not_found_exception
from core.security import new_id
from core.utils import icontains, normalize_email
from database import db
from models.common import UserRole
from models.user import User

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10


async def touch_user(identity: Identity, name: Optional[str] = None) -> tuple:
    """Creates the user on first login, otherwise bumps last_login. Returns (user, created)."""
    now = datetime.now(timezone.utc)
    email = normalize_email(identity.email)
    existing = await db.users.find_one_and_update(
        {"email": email},
        {"$set": {"last_login": now}},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )
    if existing:
        return existing, False

    doc = User(
        user_id=new_id("usr"),
        email=email,
        name=(name or "").strip() or email.split("@")[0],
        role=UserRole.USER,
        created_at=now,
        last_login=now,
    ).model_dump()
    await db.users.insert_one(doc)
    logger.info(f"New user {doc['user_id']} ({email})")
    return {k: v for k, v in doc.items() if k != "_id"}, True


async def search_users(search: Optional[str]) -> List[dict]:
    if not search or not search.strip():
        raise bad_request_exception("Search query is required")
    cursor = db.users.find(
        {"$or": [{"email": icontains(search)}, {"name": icontains(search)}]},
        {"_id": 0},
        sort=[("created_at", -1)],
        limit=SEARCH_LIMIT,
    )
    return await cursor.to_list(length=SEARCH_LIMIT)


async def set_role(user_id: str, role: UserRole) -> dict:
    updated = await db.users.find_one_and_update(
        {"user_id": user_id},
        {"$set": {"role": role.value}},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise not_found_exception("User")
    logger.info(f"User {user_id} role -> {role.value}")
    return updated


async def set_role_by_email(email: str, role: UserRole) -> dict:
    updated = await db.users.find_one_and_update(
        {"email": normalize_email(email)},
        {"$set": {"role": role.value}},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise not_found_exception("User")
    logger.info(f"User {updated['user_id']} role -> {role.value}")
    return updated


async def get_role(email: Optional[str]) -> str:
    if not email or not email.strip():
        raise bad_request_exception("Email is required")
    user = await db.users.find_one({"email": normalize_email(email)}, {"_id": 0, "role": 1})
    if not user:
        raise not_found_exception("User")
    return user["role"]
