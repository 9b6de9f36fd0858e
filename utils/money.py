from decimal import Decimal, ROUND_HALF_UP


def whole_pence(amount) -> int:
    """Round a (possibly fractional) pence amount half-up to an integer."""
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_pounds(pence: int) -> str:
    return f"£{pence / 100:.2f}"
