from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def round_money(value) -> float:
    """Round half-up to 2 decimal places; None counts as zero."""
    return float(Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP))
