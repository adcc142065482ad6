import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from db.models import UserDoc
from .config import EDITOR_ROLES
from .jwt_handler import decode_token

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> UserDoc:
    if credentials is None:
        raise _unauthorized("Missing authentication token")

    try:
        payload = decode_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid token")

    if payload.get("type") != "access":
        raise _unauthorized("Invalid token type")

    email = payload.get("sub")
    if not email:
        raise _unauthorized("Invalid token payload")

    user = await UserDoc.find_one(UserDoc.email == email)
    if not user:
        raise _unauthorized("User not found")
    return user


async def require_editor_or_admin(
    current_user: UserDoc = Depends(get_current_user),
) -> UserDoc:
    if current_user.role not in EDITOR_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Editor or admin access required",
        )
    return current_user


def organization_of(user: UserDoc) -> str:
    """The organization a request acts on: the user's first membership."""
    if not user.organization_ids:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User does not belong to an organization",
        )
    return user.organization_ids[0]
