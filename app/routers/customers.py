from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.api_docs import error_responses
from app.core.deps import get_db
from app.core.id_utils import generate_record_id
from app.core.observability import log_event
from app.core.security_current import get_current_owner_id
from app.models.customer import Customer
from app.models.sales import Sale
from app.schemas.common import PaginationMeta
from app.schemas.customer import (
    CustomerCreateIn,
    CustomerListItemOut,
    CustomerListOut,
    CustomerOut,
    CustomerSaleOut,
    CustomerUpdateIn,
)
from app.services.customer_service import (
    CustomerSalesHistory,
    find_missing_letter,
    load_sales_history,
)

router = APIRouter(prefix="/customers", tags=["customers"])


def _customer_or_404(db: Session, *, owner_id: str, customer_id: str) -> Customer:
    customer = db.execute(
        select(Customer).where(Customer.id == customer_id, Customer.owner_id == owner_id)
    ).scalar_one_or_none()
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


def _email_exists_for_other_customer(
    db: Session,
    *,
    owner_id: str,
    email: str,
    customer_id: str | None = None,
) -> bool:
    stmt = select(Customer.id).where(
        Customer.owner_id == owner_id,
        func.lower(Customer.email) == email.lower(),
    )
    if customer_id:
        stmt = stmt.where(Customer.id != customer_id)
    return db.execute(stmt).scalar_one_or_none() is not None


def _commit_or_conflict(db: Session) -> None:
    # The pre-check can lose a race; uq_customers_owner_email is the final word.
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Email already exists for another customer") from None


def _list_item_out(customer: Customer, history: CustomerSalesHistory) -> CustomerListItemOut:
    return CustomerListItemOut(
        id=customer.id,
        name=customer.name,
        email=customer.email,
        phone=customer.phone,
        address=customer.address,
        birth_date=customer.birth_date,
        created_at=customer.created_at,
        updated_at=customer.updated_at,
        sales=[
            CustomerSaleOut(date=sale_date, amount=float(amount))
            for sale_date, amount in history.sales
        ],
        total_sales=history.total_sales,
        total_amount=float(history.total_amount),
        missing_letter=find_missing_letter(customer.name),
    )


@router.post(
    "",
    response_model=CustomerOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create customer",
    responses=error_responses(401, 409, 422, 500, path="/customers"),
)
def create_customer(
    payload: CustomerCreateIn,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    if _email_exists_for_other_customer(db, owner_id=owner_id, email=str(payload.email)):
        raise HTTPException(status_code=409, detail="Email already exists for another customer")

    customer = Customer(
        id=generate_record_id(),
        owner_id=owner_id,
        name=payload.name,
        email=str(payload.email),
        phone=payload.phone,
        address=payload.address,
        birth_date=payload.birth_date,
    )
    db.add(customer)
    _commit_or_conflict(db)
    db.refresh(customer)
    log_event("customer.create", owner_id=owner_id, customer_id=customer.id)
    return customer


@router.get(
    "",
    response_model=CustomerListOut,
    summary="List customers",
    description=(
        "Paginated customers, newest first, each with its sales history, totals "
        "and the first alphabet letter missing from its name."
    ),
    responses=error_responses(401, 422, 500, path="/customers"),
)
def list_customers(
    name: str | None = Query(default=None, description="Case-insensitive name filter"),
    email: str | None = Query(default=None, description="Case-insensitive email filter"),
    limit: int = Query(default=10, ge=1, le=200, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    count_stmt = select(func.count(Customer.id)).where(Customer.owner_id == owner_id)
    data_stmt = select(Customer).where(Customer.owner_id == owner_id)

    normalized_name = name.strip().lower() if name and name.strip() else None
    normalized_email = email.strip().lower() if email and email.strip() else None
    if normalized_name:
        name_filter = func.lower(Customer.name).contains(normalized_name, autoescape=True)
        count_stmt = count_stmt.where(name_filter)
        data_stmt = data_stmt.where(name_filter)
    if normalized_email:
        email_filter = func.lower(Customer.email).contains(normalized_email, autoescape=True)
        count_stmt = count_stmt.where(email_filter)
        data_stmt = data_stmt.where(email_filter)

    total_count = int(db.execute(count_stmt).scalar_one())
    customers = db.execute(
        data_stmt.order_by(Customer.created_at.desc(), Customer.id.desc()).offset(offset).limit(limit)
    ).scalars().all()

    history = load_sales_history(
        db,
        owner_id=owner_id,
        customer_ids=[customer.id for customer in customers],
    )
    items = [_list_item_out(customer, history[customer.id]) for customer in customers]

    return CustomerListOut(
        pagination=PaginationMeta.build(
            total=total_count,
            limit=limit,
            offset=offset,
            count=len(items),
        ),
        items=items,
    )


@router.get(
    "/{customer_id}",
    response_model=CustomerOut,
    summary="Get customer",
    responses=error_responses(401, 404, 500, path="/customers/{customer_id}"),
)
def get_customer(
    customer_id: str,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    return _customer_or_404(db, owner_id=owner_id, customer_id=customer_id)


@router.patch(
    "/{customer_id}",
    response_model=CustomerOut,
    summary="Update customer",
    responses=error_responses(401, 404, 409, 422, 500, path="/customers/{customer_id}"),
)
def update_customer(
    customer_id: str,
    payload: CustomerUpdateIn,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    customer = _customer_or_404(db, owner_id=owner_id, customer_id=customer_id)

    if payload.email and _email_exists_for_other_customer(
        db,
        owner_id=owner_id,
        email=str(payload.email),
        customer_id=customer.id,
    ):
        raise HTTPException(status_code=409, detail="Email already exists for another customer")

    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name") is None:
        changes.pop("name", None)
    if changes.get("email") is None:
        changes.pop("email", None)
    for field_name, value in changes.items():
        setattr(customer, field_name, str(value) if field_name == "email" else value)

    _commit_or_conflict(db)
    db.refresh(customer)
    log_event("customer.update", owner_id=owner_id, customer_id=customer.id, fields=sorted(changes))
    return customer


@router.delete(
    "/{customer_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete customer",
    description="Deletes the customer together with its sales.",
    responses=error_responses(401, 404, 500, path="/customers/{customer_id}"),
)
def delete_customer(
    customer_id: str,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
):
    customer = _customer_or_404(db, owner_id=owner_id, customer_id=customer_id)
    db.execute(
        delete(Sale).where(Sale.owner_id == owner_id, Sale.customer_id == customer.id)
    )
    db.delete(customer)
    db.commit()
    log_event("customer.delete", owner_id=owner_id, customer_id=customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
