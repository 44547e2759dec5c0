from enum import Enum
from typing import Annotated, Callable

from fastapi import Depends, HTTPException
from starlette import status
from realty.services.auth_service import get_current_user

CurrentUser = Annotated[dict, Depends(get_current_user)]


class Permission(str, Enum):
    MANAGE_PROPERTIES = "manage:properties"
    MANAGE_IMAGES = "manage:images"
    MANAGE_DOCUMENTS = "manage:documents"
    MANAGE_CONTENT = "manage:content"
    RUN_MAINTENANCE = "run:maintenance"


# Map role strings (as embedded in JWT) to allowed permissions
ROLE_PERMISSIONS: dict[str, list[Permission]] = {
    "editor": [
        Permission.MANAGE_CONTENT,
    ],
    "admin": [
        Permission.MANAGE_PROPERTIES,
        Permission.MANAGE_IMAGES,
        Permission.MANAGE_DOCUMENTS,
        Permission.MANAGE_CONTENT,
        Permission.RUN_MAINTENANCE,
    ],
}


def require_permission(required: Permission) -> Callable[..., dict]:
    def dependency(current_user: CurrentUser) -> dict:
        if not current_user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not authenticate user",
            )

        role = current_user.get("role")
        if role is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not authenticate user",
            )

        allowed = ROLE_PERMISSIONS.get(role, [])
        if required not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

        return current_user

    return dependency
