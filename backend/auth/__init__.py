from .config import (
    JWT_SECRET_KEY,
    JWT_ALGORITHM,
    ACCESS_TOKEN_EXPIRE_MINUTES,
    EDITOR_ROLES,
    validate_auth_config,
)
from .jwt_handler import create_access_token, decode_token
from .dependencies import (
    get_current_user,
    require_editor_or_admin,
    organization_of,
)

__all__ = [
    "JWT_SECRET_KEY",
    "JWT_ALGORITHM",
    "ACCESS_TOKEN_EXPIRE_MINUTES",
    "EDITOR_ROLES",
    "validate_auth_config",
    "create_access_token",
    "decode_token",
    "get_current_user",
    "require_editor_or_admin",
    "organization_of",
]
