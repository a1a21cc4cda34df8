"""Auth router — registration, login, and user info."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from curriculum_ai.database import get_db
from curriculum_ai.models.user import User
from curriculum_ai.schemas.auth import RegisterRequest, LoginRequest, TokenResponse, UserResponse
from curriculum_ai.middleware.auth import (
    ROLES,
    get_current_user,
    hash_password,
    issue_token,
    verify_password,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        role=user.role,
        full_name=user.full_name,
        created_at=user.created_at.isoformat(),
    )


@router.post("/register", response_model=UserResponse, status_code=201)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new teacher or student."""
    if req.role not in ROLES:
        raise HTTPException(status_code=400, detail="Role must be 'student' or 'teacher'")
    if len(req.password) < 6:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")

    email = req.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        email=email,
        password_hash=hash_password(req.password),
        role=req.role,
        full_name=req.full_name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return _user_to_response(user)


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    """Login and get JWT token."""
    user = db.query(User).filter(User.email == req.email.strip().lower()).first()
    if not user or not verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    return TokenResponse(access_token=issue_token(user))


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return _user_to_response(current_user)
