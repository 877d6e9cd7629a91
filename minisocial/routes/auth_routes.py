from fastapi import APIRouter, Depends, status

from minisocial.controllers import auth_controller
from minisocial.dependencies import get_user_store
from minisocial.models.user_model import AuthResponse, LoginRequest, SignupRequest

router = APIRouter(tags=["Auth"])


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(data: SignupRequest, users=Depends(get_user_store)):
    """Register a new user and return a bearer token"""
    return auth_controller.register_user(data, users)


@router.post("/login", response_model=AuthResponse)
def login(data: LoginRequest, users=Depends(get_user_store)):
    """Login and get JWT token"""
    return auth_controller.authenticate_user(data, users)
