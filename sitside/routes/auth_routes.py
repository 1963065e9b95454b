from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from sitside.auth import jwt_handler
from sitside.auth.dependencies import get_current_user
from sitside.database import get_db
from sitside.models.user import ROLE_PARENT, ROLE_STUDENT, User
from sitside.schemas import UserResponse
from sitside.services import users as user_service

router = APIRouter(tags=['auth'])


class RegisterRequest(BaseModel):
    email: str
    password: str
    first_name: str
    last_name: str
    phone: str
    role: str
    grade: int | None = None
    school: str | None = None
    bio: str | None = None
    hourly_rate: float | None = Field(default=None, allow_inf_nan=False)
    experience: str | None = None
    certifications: list[str] | None = None
    location: str | None = None
    availability: dict[str, dict[str, bool]] | None = None
    emergency_contact: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if '@' not in normalized or normalized.startswith('@') or normalized.endswith('@'):
            raise ValueError('A valid email address is required.')
        return normalized

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in (ROLE_STUDENT, ROLE_PARENT):
            raise ValueError('Invalid user type')
        return normalized


class LoginRequest(BaseModel):
    email: str
    password: str


class ProfileUpdateRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    bio: str | None = None
    hourly_rate: float | None = Field(default=None, allow_inf_nan=False)
    experience: str | None = None
    certifications: list[str] | None = None
    location: str | None = None
    availability: dict[str, dict[str, bool]] | None = None
    emergency_contact: str | None = None
    profile_image: str | None = None


class AuthResponse(BaseModel):
    token: str
    user: UserResponse
    message: str


class ProfileResponse(BaseModel):
    user: UserResponse
    message: str | None = None


class VerifyResponse(BaseModel):
    valid: bool
    user: UserResponse


@router.post('/register', response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    user = user_service.register_user(db, **data.model_dump())
    token = jwt_handler.create_access_token(user.id, user.role)
    return AuthResponse(
        token=token,
        user=UserResponse.model_validate(user),
        message='User registered successfully',
    )


@router.post('/login', response_model=AuthResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = user_service.authenticate(db, data.email, data.password)
    token = jwt_handler.create_access_token(user.id, user.role)
    return AuthResponse(
        token=token,
        user=UserResponse.model_validate(user),
        message='Login successful',
    )


@router.get('/me', response_model=ProfileResponse)
def me(current_user: User = Depends(get_current_user)):
    return ProfileResponse(user=UserResponse.model_validate(current_user))


@router.put('/profile', response_model=ProfileResponse)
def update_profile(
    data: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = user_service.update_profile(db, current_user.id, data.model_dump(exclude_unset=True))
    return ProfileResponse(user=UserResponse.model_validate(user), message='Profile updated successfully')


@router.get('/verify', response_model=VerifyResponse)
def verify(current_user: User = Depends(get_current_user)):
    return VerifyResponse(valid=True, user=UserResponse.model_validate(current_user))
