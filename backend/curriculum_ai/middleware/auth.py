"""Bearer-token authentication and role guards for the API.

Tokens carry the user id (``sub``) and the role the account had when the
token was issued. A token whose role no longer matches the account is
rejected, so a role change forces a fresh login.
"""

from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from curriculum_ai.config import settings
from curriculum_ai.database import get_db
from curriculum_ai.models.user import User

ROLES = ("teacher", "student")

bearer_scheme = HTTPBearer()


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


def issue_token(user: User) -> str:
    """Signed access token for ``user``, valid for ACCESS_TOKEN_EXPIRE_MINUTES."""
    expires = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": user.id, "role": user.role, "exp": expires}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> dict:
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise _unauthorized("Invalid or expired token")
    if not claims.get("sub"):
        raise _unauthorized("Invalid token payload")
    return claims


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    claims = decode_token(credentials.credentials)
    user = db.query(User).filter(User.id == claims["sub"]).first()
    if not user:
        raise _unauthorized("User not found")
    if claims.get("role") != user.role:
        raise _unauthorized("Token role is out of date, please sign in again")
    return user


def require_role(role: str):
    """Dependency factory: the current user, or 403 unless they hold ``role``."""
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role:
            raise HTTPException(status_code=403, detail=f"{role.title()} role required")
        return current_user

    return dependency


require_teacher = require_role("teacher")
require_student = require_role("student")
