from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.api_docs import error_responses
from app.core.deps import get_db
from app.core.id_utils import generate_record_id
from app.core.money import to_money
from app.core.observability import log_event
from app.core.security_current import get_current_owner_id
from app.models.customer import Customer
from app.models.sales import Sale
from app.schemas.common import PaginationMeta
from app.schemas.sales import (
    DailySalesStatOut,
    SaleCreateIn,
    SaleListOut,
    SaleOut,
    SaleUpdateIn,
    TopCustomersOut,
)
from app.services.sales_stats_service import get_daily_sales_stats, get_top_customers

router = APIRouter(prefix="/sales", tags=["sales"])


def _sale_out(sale: Sale, customer_name: str | None) -> SaleOut:
    return SaleOut(
        id=sale.id,
        customer_id=sale.customer_id,
        customer_name=customer_name,
        amount=float(to_money(sale.amount)),
        sale_date=sale.sale_date,
        created_at=sale.created_at,
        updated_at=sale.updated_at,
    )


def _ensure_customer(db: Session, *, owner_id: str, customer_id: str) -> Customer:
    customer = db.execute(
        select(Customer).where(Customer.id == customer_id, Customer.owner_id == owner_id)
    ).scalar_one_or_none()
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


def _sale_with_customer_or_404(db: Session, *, owner_id: str, sale_id: str) -> tuple[Sale, str | None]:
    row = db.execute(
        select(Sale, Customer.name)
        .outerjoin(
            Customer,
            (Customer.id == Sale.customer_id) & (Customer.owner_id == owner_id),
        )
        .where(Sale.id == sale_id, Sale.owner_id == owner_id)
    ).first()
    if not row:
        raise HTTPException(status_code=404, detail="Sale not found")
    sale, customer_name = row
    return sale, customer_name


@router.get(
    "/stats/daily",
    response_model=list[DailySalesStatOut],
    summary="Daily sales statistics",
    description="One entry per sale date with the number of sales and the summed amount, newest first.",
    responses={
        200: {
            "description": "Daily totals",
            "content": {
                "application/json": {
                    "example": [
                        {"date": "2024-01-02", "total_sales": 1, "total_amount": 200.0},
                        {"date": "2024-01-01", "total_sales": 2, "total_amount": 800.0},
                    ]
                }
            },
        },
        **error_responses(401, 500, path="/sales/stats/daily"),
    },
)
def daily_sales_stats(
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    return get_daily_sales_stats(db, owner_id)


@router.get(
    "/stats/top-customers",
    response_model=TopCustomersOut,
    summary="Top customers leaderboard",
    description=(
        "Customers with the highest sales volume, highest average sale value and most "
        "exclusive days (dates on which they were the only customer with a sale)."
    ),
    responses={
        200: {
            "description": "Leaderboard superlatives",
            "content": {
                "application/json": {
                    "example": {
                        "highest_volume": {
                            "customer_id": "customer-id",
                            "customer_name": "Ana Beatriz",
                            "total_volume": 700.0,
                            "average_value": 350.0,
                            "total_sales": 2,
                            "exclusive_days": 1,
                        },
                        "highest_average": None,
                        "most_frequent": None,
                        "total_customers": 2,
                    }
                }
            },
        },
        **error_responses(401, 500, path="/sales/stats/top-customers"),
    },
)
def top_customers(
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    return get_top_customers(db, owner_id)


@router.post(
    "",
    response_model=SaleOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create sale",
    responses=error_responses(401, 404, 422, 500, path="/sales"),
)
def create_sale(
    payload: SaleCreateIn,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    customer = _ensure_customer(db, owner_id=owner_id, customer_id=payload.customer_id)

    sale = Sale(
        id=generate_record_id(),
        owner_id=owner_id,
        customer_id=customer.id,
        amount=to_money(payload.amount),
        sale_date=payload.sale_date,
    )
    db.add(sale)
    db.commit()
    db.refresh(sale)
    log_event(
        "sale.create",
        owner_id=owner_id,
        sale_id=sale.id,
        customer_id=customer.id,
        amount=float(sale.amount),
    )
    return _sale_out(sale, customer.name)


@router.get(
    "",
    response_model=SaleListOut,
    summary="List sales",
    responses=error_responses(401, 422, 500, path="/sales"),
)
def list_sales(
    customer_id: str | None = Query(default=None, description="Only sales of this customer"),
    limit: int = Query(default=10, ge=1, le=200, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    count_stmt = select(func.count(Sale.id)).where(Sale.owner_id == owner_id)
    data_stmt = (
        select(Sale, Customer.name)
        .outerjoin(
            Customer,
            (Customer.id == Sale.customer_id) & (Customer.owner_id == owner_id),
        )
        .where(Sale.owner_id == owner_id)
    )
    if customer_id:
        count_stmt = count_stmt.where(Sale.customer_id == customer_id)
        data_stmt = data_stmt.where(Sale.customer_id == customer_id)

    total_count = int(db.execute(count_stmt).scalar_one())
    rows = db.execute(
        data_stmt.order_by(Sale.sale_date.desc(), Sale.created_at.desc(), Sale.id.desc())
        .offset(offset)
        .limit(limit)
    ).all()

    items = [_sale_out(sale, customer_name) for sale, customer_name in rows]
    return SaleListOut(
        pagination=PaginationMeta.build(
            total=total_count,
            limit=limit,
            offset=offset,
            count=len(items),
        ),
        items=items,
    )


@router.get(
    "/{sale_id}",
    response_model=SaleOut,
    summary="Get sale",
    responses=error_responses(401, 404, 500, path="/sales/{sale_id}"),
)
def get_sale(
    sale_id: str,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    sale, customer_name = _sale_with_customer_or_404(db, owner_id=owner_id, sale_id=sale_id)
    return _sale_out(sale, customer_name)


@router.patch(
    "/{sale_id}",
    response_model=SaleOut,
    summary="Update sale",
    responses=error_responses(401, 404, 422, 500, path="/sales/{sale_id}"),
)
def update_sale(
    sale_id: str,
    payload: SaleUpdateIn,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    sale, customer_name = _sale_with_customer_or_404(db, owner_id=owner_id, sale_id=sale_id)

    if payload.customer_id is not None and payload.customer_id != sale.customer_id:
        customer = _ensure_customer(db, owner_id=owner_id, customer_id=payload.customer_id)
        sale.customer_id = customer.id
        customer_name = customer.name
    if payload.amount is not None:
        sale.amount = to_money(payload.amount)
    if payload.sale_date is not None:
        sale.sale_date = payload.sale_date

    db.commit()
    db.refresh(sale)
    log_event("sale.update", owner_id=owner_id, sale_id=sale.id)
    return _sale_out(sale, customer_name)


@router.delete(
    "/{sale_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete sale",
    responses=error_responses(401, 404, 500, path="/sales/{sale_id}"),
)
def delete_sale(
    sale_id: str,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    sale, _ = _sale_with_customer_or_404(db, owner_id=owner_id, sale_id=sale_id)
    db.delete(sale)
    db.commit()
    log_event("sale.delete", owner_id=owner_id, sale_id=sale_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
