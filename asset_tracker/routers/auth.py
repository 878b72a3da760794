import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from asset_tracker.deps import get_db
from asset_tracker.models.user import User
from asset_tracker.schemas.auth import LoginIn, TokenOut
from asset_tracker.schemas.user import UserOut
from asset_tracker.core.security import verify_password, create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.username == payload.username).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User inactive or not found")

    token = create_access_token(str(user.id))
    logger.info(f"[Auth] {user.username} logged in")
    return TokenOut(access_token=token, user=UserOut.model_validate(user))
