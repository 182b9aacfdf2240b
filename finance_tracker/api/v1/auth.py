"""/v1/auth - registration, login and caller lookup"""

import logging
import uuid

import bcrypt
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from finance_tracker.api.dependencies import get_current_user_id, get_request_id
from finance_tracker.api.v1.schemas import LoginRequest, RegisterRequest, UserResponse
from finance_tracker.domain.exceptions import AuthenticationError, ConflictError
from finance_tracker.infrastructure.database.repositories import UserRepository
from finance_tracker.infrastructure.database.session import atomic, get_db

router = APIRouter()


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))


@router.post("/auth/register", response_model=UserResponse, status_code=201)
def register(body: RegisterRequest, request: Request, db: Session = Depends(get_db)):
    """Create a user; emails are unique regardless of case"""
    users = UserRepository(db)
    with atomic(db):
        if users.get_by_email(body.email) is not None:
            raise ConflictError("Email already registered")
        user = users.create_user(body.email, hash_password(body.password), body.name)

    logging.info("User registered", extra={"request_id": get_request_id(request), "user_id": str(user.id)})
    return UserResponse.model_validate(user)


@router.post("/auth/login", response_model=UserResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    """
    Check credentials and return the user.

    The returned id is what clients send back in the X-User-ID header.
    """
    user = UserRepository(db).get_by_email(body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    return UserResponse.model_validate(user)


@router.get("/auth/me", response_model=UserResponse)
def me(user_id: uuid.UUID = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return UserResponse.model_validate(UserRepository(db).get_by_id(user_id))
