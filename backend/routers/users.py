"""
Router user: login-time registration, role lookup and admin role management.
"""
from typing import Optional

from fastapi import APIRouter, Depends

from core.dependencies import AuthContext, Identity, get_identity, require_admin
from core.responses import success_response
from models.common import UserRole
from models.user import UserUpsert
from services import user_service

router = APIRouter()


@router.post("", summary="Register on first login, else bump last login")
async def touch_user(body: UserUpsert, identity: Identity = Depends(get_identity)):
    user, created = await user_service.touch_user(identity, body.name)
    if created:
        return success_response("New user created successfully", user, 201)
    return success_response("User already exists, last login updated", user)


@router.get("/search", summary="Search users by name or email (admin)")
async def search_users(
    search: Optional[str] = None,
    _admin: AuthContext = Depends(require_admin),
):
    users = await user_service.search_users(search)
    return success_response("Users fetched successfully", users)


@router.patch("/make-admin/{user_id}", summary="Promote a user to admin (admin)")
async def make_admin(user_id: str, _admin: AuthContext = Depends(require_admin)):
    user = await user_service.set_role(user_id, UserRole.ADMIN)
    return success_response("User promoted to admin successfully", user)


@router.patch("/remove-admin/{user_id}", summary="Remove the admin role (admin)")
async def remove_admin(user_id: str, _admin: AuthContext = Depends(require_admin)):
    user = await user_service.set_role(user_id, UserRole.USER)
    return success_response("Admin role removed successfully", user)


@router.get("/role", summary="Role of a user by email")
async def user_role(email: Optional[str] = None, _identity: Identity = Depends(get_identity)):
    role = await user_service.get_role(email)
    return success_response("User role fetched successfully", {"role": role})
