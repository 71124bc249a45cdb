"""Role-Based Access Control (RBAC) utilities."""

from enum import Enum
from typing import Annotated, Any, Optional

from fastapi import Depends, HTTPException, Request, status

from digital_menu.core.security import COOKIE_ACCESS_NAME, decode_access_token


class UserRole(str, Enum):
    """User roles for RBAC."""

    OWNER = "owner"
    MANAGER = "manager"
    STAFF = "staff"


# Role hierarchy: owner > manager > staff
ROLE_HIERARCHY = {
    UserRole.OWNER: 3,
    UserRole.MANAGER: 2,
    UserRole.STAFF: 1,
}


class TokenData:
    """Decoded token data.

    Attributes:
        user_id: The user's id in the auth service.
        email: The user's email address.
        role: The user's role (owner/manager/staff).
    """

    def __init__(self, user_id: int, email: str, role: UserRole, full_name: str = ""):
        self.user_id = user_id
        self.id = user_id
        self.email = email
        self.role = role
        self.full_name = full_name or email.split("@")[0]


def _token_payload(request: Request) -> Optional[dict[str, Any]]:
    """Read the JWT from the Authorization header, falling back to the cookie."""
    payload = None

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    if payload is None:
        cookie_token = request.cookies.get(COOKIE_ACCESS_NAME)
        if cookie_token:
            payload = decode_access_token(cookie_token)

    return payload


def _principal(payload: dict[str, Any]) -> Optional[TokenData]:
    user_id = payload.get("sub")
    email = payload.get("email")
    role = payload.get("role")
    if user_id is None or email is None or role is None:
        return None
    try:
        user_role = UserRole(role)
        return TokenData(
            user_id=int(user_id), email=email, role=user_role,
            full_name=payload.get("full_name", "") or "",
        )
    except ValueError:
        return None


async def get_current_user(request: Request) -> TokenData:
    """Get the current authenticated user from the JWT token."""
    payload = _token_payload(request)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    principal = _principal(payload)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return principal


def require_role(minimum_role: UserRole):
    """Dependency to require a minimum role level."""

    async def role_checker(
        current_user: Annotated[TokenData, Depends(get_current_user)]
    ) -> TokenData:
        user_level = ROLE_HIERARCHY.get(current_user.role, 0)
        required_level = ROLE_HIERARCHY.get(minimum_role, 0)

        if user_level < required_level:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role {minimum_role.value} or higher",
            )
        return current_user

    return role_checker


# Common role dependencies
RequireManager = Annotated[TokenData, Depends(require_role(UserRole.MANAGER))]
RequireStaff = Annotated[TokenData, Depends(require_role(UserRole.STAFF))]
