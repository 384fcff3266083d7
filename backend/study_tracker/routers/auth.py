"""Auth router: registration, login, and profile."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from study_tracker.database import get_db
from study_tracker.models.user import User, DEFAULT_PROFILE_SETTINGS
from study_tracker.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    TokenResponse,
    ProfileUpdate,
    UserResponse,
)
from study_tracker.middleware.auth import (
    hash_password,
    verify_password,
    create_access_token,
    get_current_user,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])

MIN_PASSWORD_LENGTH = 6


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        avatar_url=user.avatar_url,
        settings={**DEFAULT_PROFILE_SETTINGS, **(user.settings or {})},
        created_at=user.created_at.isoformat(),
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account and return an access token for it."""
    email = req.email.strip().lower()
    if not email or "@" not in email:
        raise HTTPException(status_code=400, detail="A valid email is required")
    if len(req.password.strip()) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )

    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        email=email,
        password_hash=hash_password(req.password),
        full_name=(req.full_name or "").strip() or None,
        settings=dict(DEFAULT_PROFILE_SETTINGS),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    return TokenResponse(access_token=create_access_token({"sub": user.id, "type": "access"}))


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    """Login and get JWT token."""
    user = db.query(User).filter(User.email == req.email.strip().lower()).first()
    if not user or not verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    return TokenResponse(access_token=create_access_token({"sub": user.id, "type": "access"}))


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return _user_to_response(current_user)


@router.patch("/me", response_model=UserResponse)
def update_me(
    req: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update profile fields; settings are merged into the stored ones."""
    if req.full_name is not None:
        current_user.full_name = req.full_name.strip() or None
    if req.avatar_url is not None:
        current_user.avatar_url = req.avatar_url or None
    if req.settings is not None:
        current_user.settings = {**(current_user.settings or {}), **req.settings}
    db.commit()
    db.refresh(current_user)
    return _user_to_response(current_user)
