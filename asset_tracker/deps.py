import uuid

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from sqlalchemy.orm import Session
from asset_tracker.core.db import SessionLocal
from asset_tracker.core.config import settings
from asset_tracker.models.enums import Role
from asset_tracker.models.user import User

bearer = HTTPBearer()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_current_user(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    token = creds.credentials
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
        user_id = payload.get("sub")
        if not user_id:
            raise HTTPException(status_code=401, detail="Invalid token")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        user = db.get(User, uuid.UUID(user_id))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User inactive or not found")
    return user

def require_roles(*roles: Role):
    """Route guard: the caller's role must be one of ``roles`` (admin always passes)."""
    allowed = {r.value for r in roles} | {Role.ADMIN.value}

    def guard(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=403,
                detail=f"Access denied. Required roles: {', '.join(sorted(allowed))}",
            )
        return user

    return guard
