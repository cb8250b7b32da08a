"""
Decimal helpers: the single place that knows how many places each kind of number keeps.

Quantities, money, per-unit costs and conversion factors are all Decimal.
Floats are accepted at the edges and converted through str() so that
0.1 stays 0.1.

Examples:
    qty('2.5')          # Decimal('2.5000')
    money(7 * Decimal('1.255'))   # Decimal('8.79')
    display(Decimal('12.0000'))   # '12'
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

QUANTITY = Decimal('0.0001')
MONEY = Decimal('0.01')
UNIT_COST = Decimal('0.0001')
FACTOR = Decimal('0.0000000001')

ZERO = Decimal('0')


def to_decimal(value) -> Decimal:
    """
    Coerce int/float/str/Decimal into a finite Decimal.

    Raises:
        ValueError: value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"{value!r} is not a number") from exc
    if not result.is_finite():
        raise ValueError(f"{value!r} is not a finite number")
    return result


def qty(value) -> Decimal:
    return to_decimal(value).quantize(QUANTITY, rounding=ROUND_HALF_UP)


def money(value) -> Decimal:
    return to_decimal(value).quantize(MONEY, rounding=ROUND_HALF_UP)


def unit_cost(value) -> Decimal:
    return to_decimal(value).quantize(UNIT_COST, rounding=ROUND_HALF_UP)


def factor(value) -> Decimal:
    return to_decimal(value).quantize(FACTOR, rounding=ROUND_HALF_UP)


def display(value) -> str:
    """Human form without trailing zeros: Decimal('12.5000') -> '12.5'."""
    if not isinstance(value, Decimal):
        return str(value)
    normalized = value.normalize()
    if normalized == normalized.to_integral_value():
        normalized = normalized.quantize(Decimal('1'))
    return format(normalized, 'f')
