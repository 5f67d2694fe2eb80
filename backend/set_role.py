import asyncio
import sys

from fastapi import HTTPException

from database import close_db, connect_db
from models.common import UserRole
from services.user_service import set_role_by_email


async def force_role(email: str, role: UserRole):
    await connect_db()
    try:
        user = await set_role_by_email(email, role)
        print(f"Role updated: {user['email']} is now '{user['role']}'")
    except HTTPException:
        print(f"User {email} not found.")
        print("Log in once through the app with this account first.")
    finally:
        await close_db()


if __name__ == "__main__":
    roles = [r.value for r in UserRole]
    if len(sys.argv) < 3 or sys.argv[2] not in roles:
        print("Usage : python set_role.py <email> <role>")
        print(f"Roles : {', '.join(roles)}")
        print("Example : python set_role.py admin@profirst.com admin")
        sys.exit(1)

    asyncio.run(force_role(sys.argv[1], UserRole(sys.argv[2])))
