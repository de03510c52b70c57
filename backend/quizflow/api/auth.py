"""
Auth routes: register (role USER, plan FREE), login (JWT), GET /auth/me.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quizflow.api.deps import get_current_user
from quizflow.database import get_db
from quizflow.models.user import User
from quizflow.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from quizflow.services.auth import create_access_token, hash_password, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _user_response(user: User) -> UserResponse:
    return UserResponse(id=str(user.id), email=user.email, name=user.name, role=user.role, plan=user.plan)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new user on the FREE plan."""
    email = data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    user = User(
        email=email,
        password_hash=hash_password(data.password),
        name=(data.name or "").strip() or None,
        role="USER",
        plan="FREE",
    )
    try:
        db.add(user)
        db.commit()
    except IntegrityError as e:
        # concurrent registration with the same email
        db.rollback()
        logger.warning("Register IntegrityError: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    db.refresh(user)
    logger.info("User registered: id=%s", user.id)
    return _user_response(user)


@router.post("/login", response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    """Login with email/password; returns JWT."""
    user = db.query(User).filter(User.email == data.email.lower()).first()
    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    token = create_access_token(user.id, user.email, user.role, user.plan)
    return TokenResponse(access_token=token)


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return _user_response(current_user)
