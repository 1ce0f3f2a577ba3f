from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator

from backend.auth.passwords import MAX_PASSWORD_BYTES
from backend.models.user import User


def _check_password_length(value: str | None) -> str | None:
    if value is not None and len(value.encode('utf-8')) > MAX_PASSWORD_BYTES:
        raise ValueError(f'Password must be {MAX_PASSWORD_BYTES} bytes or fewer.')
    return value


class UserCreate(BaseModel):
    username: str
    password: str
    # The registration form posts "tutor".
    is_tutor: bool = Field(False, validation_alias=AliasChoices('is_tutor', 'tutor'))
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    about: str | None = None
    rating: float | None = None
    grade: int | None = None

    class Config:
        extra = 'forbid'

    @field_validator('username')
    @classmethod
    def validate_username(cls, value: str) -> str:
        if not value.strip():
            raise ValueError('Username is required.')
        return value

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Password is required.')
        return _check_password_length(value)


class UserUpdate(BaseModel):
    username: str | None = None
    password: str | None = None
    is_tutor: bool | None = Field(None, validation_alias=AliasChoices('is_tutor', 'tutor'))
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    about: str | None = None
    rating: float | None = None
    grade: int | None = None

    class Config:
        extra = 'forbid'

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str | None) -> str | None:
        return _check_password_length(value)


class SubjectCreate(BaseModel):
    name: str

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError('Subject name is required.')
        return value


class ConnectionCreate(BaseModel):
    user_id: int

    class Config:
        extra = 'forbid'


class ReviewCreate(BaseModel):
    rating: float = Field(ge=0, le=10)
    content: str | None = None

    class Config:
        extra = 'forbid'


class LoginRequest(BaseModel):
    username: str
    password: str

    class Config:
        extra = 'forbid'


class SubjectResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class ConnectionResponse(BaseModel):
    id: int
    username: str
    first_name: str | None = None
    last_name: str | None = None
    is_tutor: bool
    rating: float | None = None

    class Config:
        from_attributes = True


class ReviewResponse(BaseModel):
    id: int
    user_id: int
    reviewer_id: int | None = None
    rating: float | None = None
    content: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    """A user as returned by the API; the password hash is never included."""

    id: int
    username: str
    is_tutor: bool
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    about: str | None = None
    rating: float | None = None
    grade: int | None = None
    picture: str | None = None
    subjects: list[SubjectResponse] = []
    connections: list[ConnectionResponse] = []
    reviews: list[ReviewResponse] = []

    class Config:
        from_attributes = True


class PictureResponse(BaseModel):
    filename: str


class MessageResponse(BaseModel):
    message: str


class TutorView(BaseModel):
    kind: Literal['tutor'] = 'tutor'
    id: int
    username: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    about: str | None = None
    picture: str | None = None
    rating: float | None = None
    subjects: list[SubjectResponse] = []
    connections: list[ConnectionResponse] = []
    reviews: list[ReviewResponse] = []


class StudentView(BaseModel):
    kind: Literal['student'] = 'student'
    id: int
    username: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    about: str | None = None
    picture: str | None = None
    grade: int | None = None
    subjects: list[SubjectResponse] = []
    connections: list[ConnectionResponse] = []


UserView = Annotated[Union[TutorView, StudentView], Field(discriminator='kind')]


def to_user_view(user: User) -> TutorView | StudentView:
    """Shape a user as a tutor or a student according to ``is_tutor``."""
    common = {
        'id': user.id,
        'username': user.username,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'email': user.email,
        'phone': user.phone,
        'about': user.about,
        'picture': user.picture,
        'subjects': [SubjectResponse.model_validate(subject) for subject in user.subjects],
        'connections': [ConnectionResponse.model_validate(other) for other in user.connections],
    }
    if user.is_tutor:
        return TutorView(
            rating=user.rating,
            reviews=[ReviewResponse.model_validate(review) for review in user.reviews],
            **common,
        )
    return StudentView(grade=user.grade, **common)
