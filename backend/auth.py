"""
API key authentication for the bet simulator.

Keys come from API_KEY_USER1..API_KEY_USER5; the key in slot N identifies
bettor ``userN``, which is also the ``users.id`` of that bettor's balance row.
Users listed in ADMIN_USERS may run settlement and voids.
"""

import os
from typing import Dict, FrozenSet, Optional

from dotenv import load_dotenv
from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

load_dotenv()

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)

MAX_USERS = 5
DEV_API_KEY = "dev-key-insecure"


def get_valid_api_keys() -> Dict[str, str]:
    """Map each configured key to its user id."""
    keys = {
        os.environ[f"API_KEY_USER{slot}"]: f"user{slot}"
        for slot in range(1, MAX_USERS + 1)
        if os.getenv(f"API_KEY_USER{slot}")
    }
    if keys:
        return keys

    if os.getenv("ENVIRONMENT") == "development":
        return {DEV_API_KEY: "dev_user"}
    raise ValueError("No API keys configured: set API_KEY_USER1 in the environment")


def get_admin_users() -> FrozenSet[str]:
    raw = os.getenv("ADMIN_USERS", "user1")
    return frozenset(name.strip() for name in raw.split(",") if name.strip())


VALID_API_KEYS = get_valid_api_keys()
ADMIN_USERS = get_admin_users()


def user_for_key(api_key: Optional[str]) -> Optional[str]:
    if not api_key:
        return None
    return VALID_API_KEYS.get(api_key)


async def verify_api_key(api_key: str = Security(API_KEY_HEADER)) -> str:
    """
    FastAPI dependency returning the caller's user id.

    Example:
        @app.get("/api/users/me")
        async def me(user: str = Depends(verify_api_key)): ...
    """
    user = user_for_key(api_key)
    if user is None:
        detail = "Invalid API key" if api_key else "Missing 'X-API-Key' header"
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "ApiKey"},
        )
    return user


async def verify_admin_api_key(user: str = Security(verify_api_key)) -> str:
    if user not in ADMIN_USERS:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"{user} is not allowed to settle or void bets",
        )
    return user
