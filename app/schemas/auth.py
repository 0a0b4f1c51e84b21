from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.core.security import BCRYPT_MAX_BYTES

MIN_PASSWORD_LENGTH = 8


class RegisterIn(BaseModel):
    email: EmailStr
    name: str = Field(max_length=120)
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: EmailStr) -> str:
        return str(value).strip().lower()

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name is required")
        return value.strip()

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise ValueError(f"password must be at most {BCRYPT_MAX_BYTES} bytes")
        return value

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "owner@toystore.example",
                "name": "Jane Owner",
                "password": "password123",
            }
        }
    )


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"email": "owner@toystore.example", "password": "password123"}
        }
    )


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AuthOut(TokenOut):
    user: UserOut
