import logging

from minisocial.auth import issue_token
from minisocial.db import hash_password, verify_password
from minisocial.errors import AuthError, ConflictError, ValidationError
from minisocial.models.user_model import AuthResponse, LoginRequest, SignupRequest

logger = logging.getLogger(__name__)


def _auth_response(user: dict) -> AuthResponse:
    return AuthResponse(
        id=user["user_id"],
        username=user["username"],
        email=user["email"],
        token=issue_token(user["user_id"], user["username"]),
    )


def register_user(data: SignupRequest, users) -> AuthResponse:
    if not data.username or not data.email or not data.password:
        raise ValidationError("Please enter all fields")

    if users.find_by_email(data.email):
        raise ConflictError("User already exists")

    user = users.create(
        username=data.username.strip(),
        email=data.email,
        password_hash=hash_password(data.password),
    )
    logger.info("Registered user %s", user["user_id"])
    return _auth_response(user)


def authenticate_user(data: LoginRequest, users) -> AuthResponse:
    if not data.email or not data.password:
        raise ValidationError("Please provide email and password")

    user = users.find_by_email(data.email)
    # same answer whether the email is unknown or the password is wrong
    if not user or not verify_password(data.password, user["password"]):
        logger.warning("Failed login attempt for %s", data.email)
        raise AuthError("Invalid credentials")

    return _auth_response(user)
