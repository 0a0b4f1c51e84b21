from datetime import date
from decimal import Decimal

from app.services.sales_stats_service import (
    CustomerSalesGroup,
    CustomerStat,
    UNKNOWN_CUSTOMER_NAME,
    build_customer_stats,
    build_daily_sales_stats,
    build_top_customers_report,
    count_exclusive_days,
    pick_highest,
)


def _stat(customer_id: str, *, volume: str, average: str, sales: int = 1, exclusive: int = 0) -> CustomerStat:
    return CustomerStat(
        customer_id=customer_id,
        customer_name=customer_id.upper(),
        total_volume=Decimal(volume),
        average_value=Decimal(average),
        total_sales=sales,
        exclusive_days=exclusive,
    )


def _report_for(sales: list[tuple[str, str, date]], names: dict[str, str], total_customers: int):
    groups: dict[str, list[Decimal]] = {}
    for customer_id, amount, _ in sales:
        groups.setdefault(customer_id, []).append(Decimal(amount))
    customer_groups = [
        CustomerSalesGroup(customer_id=customer_id, total_sales=len(amounts), total_amount=sum(amounts))
        for customer_id, amounts in sorted(groups.items())
    ]
    exclusive = count_exclusive_days((sale_date, customer_id) for customer_id, _, sale_date in sales)
    stats = build_customer_stats(customer_groups, names, exclusive)
    return stats, build_top_customers_report(stats, total_customers)


def test_daily_stats_sum_and_count_match_sales_and_dates_descend():
    rows = [
        (date(2024, 1, 1), 2, Decimal("800.00")),
        (date(2024, 1, 3), 1, Decimal("10.50")),
        (date(2024, 1, 2), 3, Decimal("0.25")),
    ]

    stats = build_daily_sales_stats(rows)

    assert [stat.date for stat in stats] == [date(2024, 1, 3), date(2024, 1, 2), date(2024, 1, 1)]
    assert sum(stat.total_sales for stat in stats) == 6
    assert sum(stat.total_amount for stat in stats) == Decimal("810.75")


def test_daily_stats_treat_missing_sum_as_zero_and_merge_duplicate_dates():
    rows = [
        (date(2024, 1, 1), 1, None),
        (date(2024, 1, 1), 2, Decimal("5")),
        (date(2024, 1, 2), 0, None),
    ]

    stats = build_daily_sales_stats(rows)

    assert len(stats) == 2
    assert stats[0].date == date(2024, 1, 2)
    assert stats[0].total_amount == Decimal("0.00")
    assert stats[1].total_sales == 3
    assert stats[1].total_amount == Decimal("5.00")


def test_daily_stats_empty_input():
    assert build_daily_sales_stats([]) == []


def test_exclusive_days_only_counts_dates_with_a_single_customer():
    pairs = [
        (date(2024, 1, 1), "a"),
        (date(2024, 1, 1), "b"),
        (date(2024, 1, 2), "a"),
        (date(2024, 1, 2), "a"),
        (date(2024, 1, 3), "b"),
    ]

    assert count_exclusive_days(pairs) == {"a": 1, "b": 1}


def test_single_customer_on_distinct_dates_owns_every_day():
    pairs = [(date(2024, 1, day), "solo") for day in range(1, 6)]
    assert count_exclusive_days(pairs) == {"solo": 5}


def test_two_customers_sharing_the_only_date_have_no_exclusive_days():
    stats, _ = _report_for(
        [("a", "10", date(2024, 1, 1)), ("b", "20", date(2024, 1, 1))],
        {"a": "Ana", "b": "Bruno"},
        total_customers=2,
    )

    assert [stat.exclusive_days for stat in stats] == [0, 0]


def test_reference_example_produces_expected_leaderboard():
    stats, report = _report_for(
        [
            ("a", "500", date(2024, 1, 1)),
            ("b", "300", date(2024, 1, 1)),
            ("a", "200", date(2024, 1, 2)),
        ],
        {"a": "Ana", "b": "Bruno"},
        total_customers=3,
    )

    stat_a, stat_b = stats
    assert stat_a.total_volume == Decimal("700.00")
    assert stat_a.total_sales == 2
    assert stat_a.average_value == Decimal("350.00")
    assert stat_a.exclusive_days == 1
    assert stat_b.total_volume == Decimal("300.00")
    assert stat_b.total_sales == 1
    assert stat_b.exclusive_days == 0

    assert report.highest_volume is stat_a
    assert report.highest_average is stat_a
    assert report.most_frequent is stat_a
    assert report.total_customers == 3


def test_average_matches_volume_over_count_and_exclusive_days_bounded():
    sales = [
        ("a", "10.00", date(2024, 2, 1)),
        ("a", "10.01", date(2024, 2, 1)),
        ("a", "10.01", date(2024, 2, 2)),
        ("b", "99.99", date(2024, 2, 2)),
        ("b", "0.01", date(2024, 2, 3)),
    ]
    stats, _ = _report_for(sales, {"a": "Ana", "b": "Bruno"}, total_customers=2)

    distinct_dates = {
        customer_id: {sale_date for cid, _, sale_date in sales if cid == customer_id}
        for customer_id in ("a", "b")
    }
    for stat in stats:
        assert abs(stat.total_volume / stat.total_sales - stat.average_value) <= Decimal("0.005")
        assert stat.exclusive_days <= len(distinct_dates[stat.customer_id])


def test_missing_customer_name_falls_back_to_unknown():
    stats = build_customer_stats(
        [CustomerSalesGroup(customer_id="ghost", total_sales=2, total_amount=Decimal("40"))],
        names={},
        exclusive_days={"ghost": 2},
    )

    assert stats[0].customer_name == UNKNOWN_CUSTOMER_NAME
    assert stats[0].total_volume == Decimal("40.00")
    assert stats[0].average_value == Decimal("20.00")


def test_null_sum_and_zero_count_yield_zero_not_none():
    stats = build_customer_stats(
        [CustomerSalesGroup(customer_id="a", total_sales=0, total_amount=None)],
        names={"a": "Ana"},
        exclusive_days={},
    )

    assert stats[0].total_volume == Decimal("0.00")
    assert stats[0].average_value == Decimal("0.00")
    assert stats[0].exclusive_days == 0


def test_empty_stats_report_nulls_with_real_customer_count():
    report = build_top_customers_report([], total_customers=4)

    assert report.highest_volume is None
    assert report.highest_average is None
    assert report.most_frequent is None
    assert report.total_customers == 4


def test_pick_highest_keeps_first_on_ties():
    first = _stat("a", volume="100", average="50")
    second = _stat("b", volume="100", average="50")
    third = _stat("c", volume="90", average="90")

    assert pick_highest([first, second, third], lambda stat: stat.total_volume) is first
    assert pick_highest([second, first, third], lambda stat: stat.total_volume) is second
    assert pick_highest([first, second, third], lambda stat: stat.average_value) is third
    assert pick_highest([], lambda stat: stat.total_volume) is None


def test_superlatives_can_point_at_different_customers():
    big_spender = _stat("a", volume="1000", average="100", sales=10, exclusive=1)
    big_ticket = _stat("b", volume="500", average="500", sales=1, exclusive=0)
    regular = _stat("c", volume="300", average="30", sales=10, exclusive=7)

    report = build_top_customers_report([big_spender, big_ticket, regular], total_customers=5)

    assert report.highest_volume is big_spender
    assert report.highest_average is big_ticket
    assert report.most_frequent is regular
