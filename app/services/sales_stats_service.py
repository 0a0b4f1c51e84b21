"""Owner-scoped sales reporting: daily totals and the top-customers leaderboard.

The query helpers below are the only places that touch the database. The
``build_*``/``count_*``/``pick_*`` functions are pure and operate on the rows
those helpers return, so every aggregation rule can be exercised without a
session.

Nothing in here raises a business error. Missing data degrades to ``None``,
``"Unknown"`` or zero; storage errors propagate unchanged to the caller.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.money import ZERO_MONEY, average_money, to_money
from app.core.observability import log_event
from app.models.customer import Customer
from app.models.sales import Sale

UNKNOWN_CUSTOMER_NAME = "Unknown"


@dataclass(frozen=True)
class DailySalesStat:
    date: date
    total_sales: int
    total_amount: Decimal


@dataclass(frozen=True)
class CustomerStat:
    customer_id: str
    customer_name: str
    total_volume: Decimal
    average_value: Decimal
    total_sales: int
    exclusive_days: int


@dataclass(frozen=True)
class TopCustomersReport:
    highest_volume: CustomerStat | None
    highest_average: CustomerStat | None
    most_frequent: CustomerStat | None
    total_customers: int


@dataclass(frozen=True)
class CustomerSalesGroup:
    customer_id: str
    total_sales: int
    total_amount: Decimal | None


# Store queries


def list_sales_grouped_by_date(db: Session, owner_id: str) -> list[tuple[date, int, Decimal | None]]:
    rows = db.execute(
        select(Sale.sale_date, func.count(Sale.id), func.sum(Sale.amount))
        .where(Sale.owner_id == owner_id)
        .group_by(Sale.sale_date)
        .order_by(Sale.sale_date.desc())
    ).all()
    return [(sale_date, int(count), total) for sale_date, count, total in rows]


def list_sales_grouped_by_customer(db: Session, owner_id: str) -> list[CustomerSalesGroup]:
    rows = db.execute(
        select(Sale.customer_id, func.count(Sale.id), func.sum(Sale.amount))
        .where(Sale.owner_id == owner_id)
        .group_by(Sale.customer_id)
        .order_by(Sale.customer_id.asc())
    ).all()
    return [
        CustomerSalesGroup(customer_id=customer_id, total_sales=int(count), total_amount=total)
        for customer_id, count, total in rows
    ]


def list_sale_dates_with_customer(db: Session, owner_id: str) -> list[tuple[date, str]]:
    return [
        (sale_date, customer_id)
        for sale_date, customer_id in db.execute(
            select(Sale.sale_date, Sale.customer_id)
            .where(Sale.owner_id == owner_id)
            .distinct()
        ).all()
    ]


def find_customer_names(db: Session, owner_id: str, customer_ids: Sequence[str]) -> dict[str, str]:
    if not customer_ids:
        return {}
    rows = db.execute(
        select(Customer.id, Customer.name).where(
            Customer.owner_id == owner_id,
            Customer.id.in_(list(customer_ids)),
        )
    ).all()
    return {customer_id: name for customer_id, name in rows}


def count_customers(db: Session, owner_id: str) -> int:
    return int(
        db.execute(
            select(func.count(Customer.id)).where(Customer.owner_id == owner_id)
        ).scalar_one()
    )


# Pure aggregation


def build_daily_sales_stats(rows: Iterable[tuple[date, int, Decimal | None]]) -> list[DailySalesStat]:
    """Fold ``(sale_date, count, sum)`` rows into one stat per date, newest first."""
    totals: dict[date, list] = {}
    for sale_date, count, total in rows:
        current = totals.setdefault(sale_date, [0, ZERO_MONEY])
        current[0] += int(count or 0)
        current[1] = to_money(current[1] + to_money(total))

    return [
        DailySalesStat(date=sale_date, total_sales=count, total_amount=total)
        for sale_date, (count, total) in sorted(totals.items(), key=lambda item: item[0], reverse=True)
    ]


def count_exclusive_days(pairs: Iterable[tuple[date, str]]) -> dict[str, int]:
    """Days on which a customer was the only one with a sale, keyed by customer id."""
    customers_by_date: dict[date, set[str]] = {}
    for sale_date, customer_id in pairs:
        customers_by_date.setdefault(sale_date, set()).add(customer_id)

    exclusive: dict[str, int] = {}
    for customer_ids in customers_by_date.values():
        if len(customer_ids) == 1:
            (only_customer,) = customer_ids
            exclusive[only_customer] = exclusive.get(only_customer, 0) + 1
    return exclusive


def build_customer_stats(
    groups: Iterable[CustomerSalesGroup],
    names: dict[str, str],
    exclusive_days: dict[str, int],
) -> list[CustomerStat]:
    stats: list[CustomerStat] = []
    for group in groups:
        name = names.get(group.customer_id)
        if name is None:
            log_event(
                "sales_stats.unknown_customer",
                level=logging.WARNING,
                customer_id=group.customer_id,
            )
            name = UNKNOWN_CUSTOMER_NAME

        total_volume = to_money(group.total_amount)
        stats.append(
            CustomerStat(
                customer_id=group.customer_id,
                customer_name=name,
                total_volume=total_volume,
                average_value=average_money(total_volume, group.total_sales),
                total_sales=group.total_sales,
                exclusive_days=exclusive_days.get(group.customer_id, 0),
            )
        )
    return stats


def pick_highest(stats: Iterable[CustomerStat], key: Callable[[CustomerStat], Decimal | int]) -> CustomerStat | None:
    """Linear fold; a later stat wins only when strictly greater, so ties keep the first."""
    best: CustomerStat | None = None
    for stat in stats:
        if best is None or key(stat) > key(best):
            best = stat
    return best


def build_top_customers_report(stats: Sequence[CustomerStat], total_customers: int) -> TopCustomersReport:
    if not stats:
        return TopCustomersReport(
            highest_volume=None,
            highest_average=None,
            most_frequent=None,
            total_customers=total_customers,
        )
    return TopCustomersReport(
        highest_volume=pick_highest(stats, lambda stat: stat.total_volume),
        highest_average=pick_highest(stats, lambda stat: stat.average_value),
        most_frequent=pick_highest(stats, lambda stat: stat.exclusive_days),
        total_customers=total_customers,
    )


# Entry points


def get_daily_sales_stats(db: Session, owner_id: str) -> list[DailySalesStat]:
    return build_daily_sales_stats(list_sales_grouped_by_date(db, owner_id))


def get_top_customers(db: Session, owner_id: str) -> TopCustomersReport:
    groups = list_sales_grouped_by_customer(db, owner_id)
    total_customers = count_customers(db, owner_id)
    if not groups:
        return build_top_customers_report([], total_customers)

    names = find_customer_names(db, owner_id, [group.customer_id for group in groups])
    exclusive_days = count_exclusive_days(list_sale_dates_with_customer(db, owner_id))
    stats = build_customer_stats(groups, names, exclusive_days)
    return build_top_customers_report(stats, total_customers)
