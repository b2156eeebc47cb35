from datetime import datetime, timedelta
from typing import Iterable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from stuwork.config import ACCESS_TOKEN_EXPIRE_DAYS, ALGORITHM, SECRET_KEY
from stuwork.database import get_db, parse_object_id
from stuwork.utils.errors import ForbiddenError, UnauthorizedError

# Bearer token "paste box"; we raise our own 401 when it is missing.
security = HTTPBearer(auto_error=False)


def create_access_token(user_id, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a session token carrying the user id."""
    expire = datetime.utcnow() + (expires_delta or timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS))
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: Optional[str]) -> str:
    """Return the user id from a session token or raise UnauthorizedError."""
    if not token:
        raise UnauthorizedError("No token provided")
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise UnauthorizedError("Invalid token")
    user_id = payload.get("sub")
    if user_id is None:
        raise UnauthorizedError("Invalid token")
    return user_id


async def get_user_from_token(token: Optional[str]) -> dict:
    """Resolve a session token to the stored user (password included)."""
    user_id = parse_object_id(decode_access_token(token))
    if user_id is None:
        raise UnauthorizedError("Invalid token")

    db = get_db()
    user = await db.users.find_one({"_id": user_id})
    if user is None:
        raise UnauthorizedError("User not found")
    return user


async def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)):
    token = credentials.credentials if credentials else None
    return await get_user_from_token(token)


def authorize(
    user: dict,
    roles: Iterable[str],
    owner_id=None,
    message: str = "Access forbidden",
    owner_message: str = "You can only manage your own resources",
) -> None:
    """
    Single authorization predicate for every protected operation.

    The caller's role must be in ``roles`` and, when ``owner_id`` is given,
    the caller must own the resource. Raises ForbiddenError otherwise.
    """
    role = (user.get("role") or "").lower()
    if role not in roles:
        raise ForbiddenError(message)
    if owner_id is not None and str(owner_id) != str(user["_id"]):
        raise ForbiddenError(owner_message)
