"""Fixed-point money helpers.

All amounts are ``Decimal`` values with exactly two fractional digits. They
are stored as text ("12.50") and parsed back without ever passing through a
binary float.
"""

from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation

from .exceptions import InvalidArgumentError

CENT = Decimal("0.01")

# Same range as a decimal(12, 2) column
MAX_AMOUNT = Decimal("9999999999.99")

# Wide enough that division of any storable amount keeps every digit we round
_DIVISION_CONTEXT = Context(prec=34, rounding=ROUND_HALF_UP)


def quantize(value: Decimal) -> Decimal:
    """Normalize a decimal to exactly two places using ROUND_HALF_UP."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(
    value: object,
    field: str = "amount",
    allow_negative: bool = False,
    allow_zero: bool = False,
) -> Decimal:
    """
    Parse user input into an exact two-place Decimal.

    Args:
        value: A str, int or Decimal. Floats are rejected outright.
        field: Field name reported in validation errors
        allow_negative: Accept values below zero (opening balances)
        allow_zero: Accept exactly zero

    Returns:
        The amount quantized to two decimal places

    Raises:
        InvalidArgumentError: If the value is malformed or out of range
    """
    if isinstance(value, (bool, float)):
        raise InvalidArgumentError(
            field, "must be given as a decimal string, not a float"
        )

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidArgumentError(field, "is required")
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise InvalidArgumentError(field, f"'{value}' is not a number") from None
    else:
        raise InvalidArgumentError(field, f"unsupported type {type(value).__name__}")

    if not amount.is_finite():
        raise InvalidArgumentError(field, "must be a finite number")

    # Checked before quantizing, which overflows the default context
    if abs(amount) > MAX_AMOUNT:
        raise InvalidArgumentError(field, f"must not exceed {MAX_AMOUNT}")

    exponent = amount.as_tuple().exponent
    if isinstance(exponent, int) and exponent < -2:
        # Trailing zeros beyond two places are harmless ("1.500")
        if amount != quantize(amount):
            raise InvalidArgumentError(field, "must have at most 2 decimal places")

    if amount == 0 and not allow_zero:
        raise InvalidArgumentError(field, "must be greater than zero")
    if amount < 0 and not allow_negative:
        raise InvalidArgumentError(field, "must be greater than zero")

    return quantize(amount)


def to_storage(value: Decimal) -> str:
    """Serialize an amount as text with exactly two fractional digits."""
    return f"{quantize(value):.2f}"


def from_storage(text: str) -> Decimal:
    """Parse a stored amount back to an exact Decimal."""
    return quantize(Decimal(text))


def equal_share(total: Decimal, count: int) -> Decimal:
    """
    Divide a total into ``count`` equal shares rounded to the cent.

    Each share is rounded independently, so the shares may not sum exactly
    to the total: 100.00 / 3 gives 33.33 three times.
    """
    if count <= 0:
        raise InvalidArgumentError("participants", "at least one is required")
    return quantize(_DIVISION_CONTEXT.divide(total, Decimal(count)))


def format_money(amount: Decimal, symbol: str = "₹", use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: (₹85.02)
    Positive amounts have spaces:      ₹85.02
    """
    abs_amount = abs(amount)
    if amount < 0:
        if use_color:
            return f"({symbol}[red]{abs_amount:,.2f}[/red])"
        return f"({symbol}{abs_amount:,.2f})"
    if use_color:
        return f" [green]{symbol}{abs_amount:,.2f}[/green] "
    return f" {symbol}{abs_amount:,.2f} "
