import string
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.money import ZERO_MONEY, to_money
from app.models.sales import Sale


@dataclass
class CustomerSalesHistory:
    sales: list[tuple[date, Decimal]] = field(default_factory=list)
    total_amount: Decimal = ZERO_MONEY

    @property
    def total_sales(self) -> int:
        return len(self.sales)


def find_missing_letter(name: str) -> str:
    """First letter of the alphabet absent from ``name``, upper-cased; ``-`` for a pangram."""
    letters = {char for char in name.lower() if char in string.ascii_lowercase}
    for letter in string.ascii_lowercase:
        if letter not in letters:
            return letter.upper()
    return "-"


def load_sales_history(
    db: Session,
    *,
    owner_id: str,
    customer_ids: Sequence[str],
) -> dict[str, CustomerSalesHistory]:
    if not customer_ids:
        return {}

    rows = db.execute(
        select(Sale.customer_id, Sale.sale_date, Sale.amount)
        .where(
            Sale.owner_id == owner_id,
            Sale.customer_id.in_(list(customer_ids)),
        )
        .order_by(Sale.sale_date.desc(), Sale.created_at.desc())
    ).all()

    history = {customer_id: CustomerSalesHistory() for customer_id in customer_ids}
    for customer_id, sale_date, amount in rows:
        entry = history.setdefault(customer_id, CustomerSalesHistory())
        entry.sales.append((sale_date, to_money(amount)))
        entry.total_amount = to_money(entry.total_amount + to_money(amount))
    return history
