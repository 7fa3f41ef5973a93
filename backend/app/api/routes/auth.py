from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.security import verify_password, create_access_token
from app.core.config import settings
from app.models.user import User
from app.api.dependencies import get_current_user
from app.schemas.user import UserSummary, user_summary_from
from app.services.user_repository import user_repository
from app.services.user_service import user_service

router = APIRouter(prefix="/auth", tags=["auth"])


class Token(BaseModel):
    access_token: str
    token_type: str


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """Login with username and password and get an access token"""
    user = user_repository.find_one_by_username(db, form_data.username.lower())

    # Generic error message prevents username enumeration
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Accounts must follow their activation link before logging in
    if not user.activated:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is not activated"
        )

    access_token = create_access_token(
        user.username,
        user_repository.load_authorities(db, user),
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserSummary)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get current user information, including its authorities"""
    return user_summary_from(current_user, user_repository.load_authorities(db, current_user))


@router.get("/activate")
async def activate_account(key: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    """Activate the account that received this key by email"""
    user = user_service.activate_registration(db, key)
    if user is None:
        raise HTTPException(status_code=404, detail="No user was found for this activation key")
    return {"message": "Account activated", "username": user.username}
