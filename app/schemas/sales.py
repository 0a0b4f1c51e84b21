from datetime import datetime, date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.schemas.common import PaginationMeta


class SaleCreateIn(BaseModel):
    customer_id: str
    amount: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    sale_date: date

    @field_validator("customer_id")
    @classmethod
    def validate_customer_id(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("customer_id is required")
        return cleaned

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "customer_id": "customer-id-here",
                "amount": 149.9,
                "sale_date": "2024-01-02",
            }
        }
    )


class SaleUpdateIn(BaseModel):
    customer_id: str | None = None
    amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    sale_date: date | None = None

    @model_validator(mode="after")
    def validate_any_field_present(self) -> "SaleUpdateIn":
        provided = {
            field_name
            for field_name in self.model_fields_set
            if getattr(self, field_name) is not None
        }
        if not provided:
            raise ValueError("At least one field must be provided")
        return self


class SaleOut(BaseModel):
    id: str
    customer_id: str
    customer_name: str | None = None
    amount: float
    sale_date: date
    created_at: datetime
    updated_at: datetime


class SaleListOut(BaseModel):
    pagination: PaginationMeta
    items: list[SaleOut]


class DailySalesStatOut(BaseModel):
    date: date
    total_sales: int
    total_amount: float

    model_config = ConfigDict(from_attributes=True)


class CustomerStatOut(BaseModel):
    customer_id: str
    customer_name: str
    total_volume: float
    average_value: float
    total_sales: int
    exclusive_days: int

    model_config = ConfigDict(from_attributes=True)


class TopCustomersOut(BaseModel):
    highest_volume: CustomerStatOut | None = None
    highest_average: CustomerStatOut | None = None
    most_frequent: CustomerStatOut | None = None
    total_customers: int

    model_config = ConfigDict(from_attributes=True)
