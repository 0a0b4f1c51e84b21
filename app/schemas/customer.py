from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator, model_validator

from app.schemas.common import PaginationMeta


class CustomerCreateIn(BaseModel):
    name: str
    email: EmailStr
    phone: str | None = None
    address: str | None = None
    birth_date: date | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("name is required")
        return cleaned

    @field_validator("phone", "address")
    @classmethod
    def normalize_optional_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: EmailStr) -> EmailStr:
        return str(value).strip().lower()

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Ana Beatriz",
                "email": "ana.b@example.com",
                "phone": "+5511999990000",
                "address": "Rua das Flores, 10",
                "birth_date": "1992-05-01",
            }
        }
    )


class CustomerUpdateIn(BaseModel):
    name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None
    birth_date: date | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("name cannot be empty")
        return cleaned

    @field_validator("phone", "address")
    @classmethod
    def normalize_optional_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: EmailStr | None) -> EmailStr | None:
        if value is None:
            return None
        return str(value).strip().lower()

    @model_validator(mode="after")
    def validate_any_field_present(self) -> "CustomerUpdateIn":
        # name and email cannot be cleared, so a null for them changes nothing.
        provided = {
            field_name
            for field_name in self.model_fields_set
            if field_name not in {"name", "email"} or getattr(self, field_name) is not None
        }
        if not provided:
            raise ValueError("At least one field must be provided")
        return self


class CustomerOut(BaseModel):
    id: str
    name: str
    email: str
    phone: str | None = None
    address: str | None = None
    birth_date: date | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CustomerSaleOut(BaseModel):
    date: date
    amount: float


class CustomerListItemOut(CustomerOut):
    sales: list[CustomerSaleOut]
    total_sales: int
    total_amount: float
    missing_letter: str


class CustomerListOut(BaseModel):
    pagination: PaginationMeta
    items: list[CustomerListItemOut]
