from decimal import Decimal, ROUND_HALF_UP

MONEY_QUANT = Decimal("0.01")
ZERO_MONEY = Decimal("0.00")


def to_money(value: Decimal | int | float | str | None) -> Decimal:
    """Quantize to cents. A missing value (e.g. SUM over no rows) counts as zero."""
    if value is None:
        return ZERO_MONEY
    return Decimal(str(value)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def average_money(total: Decimal | None, count: int) -> Decimal:
    if not count:
        return ZERO_MONEY
    return to_money(to_money(total) / count)
