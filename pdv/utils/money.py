"""
pdv/utils/money.py
------------------
Decimal helpers for currency rounding and weight conversion.

All money in the PDV is Decimal, never float. Values that arrive as
float (JSON bodies, scale readings) go through str() first so that
0.1 stays 0.1 instead of 0.1000000000000000055511151231257827.
"""
from decimal import Decimal, ROUND_HALF_EVEN, InvalidOperation


CENT         = Decimal('0.01')
GRAM_STEP    = Decimal('0.001')
ZERO         = Decimal('0')
GRAMS_PER_KG = Decimal('1000')


def to_decimal(value) -> Decimal:
    """
    Convert int / float / str / Decimal to Decimal.
    Raises ValueError on garbage, NaN and Infinity.
    """
    if isinstance(value, bool):
        raise ValueError(f'Not a number: {value!r}')
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, TypeError):
            raise ValueError(f'Not a number: {value!r}') from None
    if not result.is_finite():
        raise ValueError(f'Not a finite number: {value!r}')
    return result


def round2(value) -> Decimal:
    """Round to cents, half-to-even (banker's rounding)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_EVEN)


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return max(low, min(value, high))


def kg_to_grams(weight_kg) -> Decimal:
    return to_decimal(weight_kg) * GRAMS_PER_KG


def grams_to_kg(weight_g) -> Decimal:
    return to_decimal(weight_g) / GRAMS_PER_KG


def price_per_kg(price_per_gram) -> Decimal:
    """Displayed rate for weighable products (R$/kg). Not rounded."""
    return to_decimal(price_per_gram) * GRAMS_PER_KG


def round_weight(weight_kg) -> Decimal:
    """Round a scale reading to whole grams (3 decimal places in kg)."""
    return to_decimal(weight_kg).quantize(GRAM_STEP, rounding=ROUND_HALF_EVEN)
