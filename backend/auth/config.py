import os
from dotenv import load_dotenv

load_dotenv()

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Roles allowed to change schedules, rules and time off
EDITOR_ROLES = ("admin", "editor")


def validate_auth_config() -> None:
    if not JWT_SECRET_KEY:
        raise RuntimeError(
            "Missing required environment variable: JWT_SECRET_KEY. "
            "Please set it in your .env file."
        )
