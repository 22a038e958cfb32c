"""Number parsing utilities for money and quantities."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENTS = Decimal('0.01')


def to_money(value) -> Decimal:
    """Quantize an already-numeric value to cents."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_money(value, allow_zero: bool = True) -> Decimal:
    """
    Parse a monetary amount coming from JSON or a form (e.g. 12.5, "12.50").

    Rules:
    - Decimal separator: dot (.) or comma (,)
    - At most 2 decimal digits once normalized
    - No negatives; zero only when allow_zero is set

    Raises:
        ValueError: if the value is invalid or empty.
    """
    if value is None or isinstance(value, bool):
        raise ValueError('Monto inválido')

    if isinstance(value, str):
        cleaned = value.strip().replace(',', '.')
        if not cleaned:
            raise ValueError('Monto inválido')
    else:
        cleaned = str(value)

    try:
        decimal_value = Decimal(cleaned)
    except (InvalidOperation, ValueError):
        raise ValueError('Monto inválido')

    if not decimal_value.is_finite():
        raise ValueError('Monto inválido')
    if decimal_value < 0:
        raise ValueError('El monto no puede ser negativo')
    if not allow_zero and decimal_value == 0:
        raise ValueError('El monto debe ser mayor a 0')
    if decimal_value != decimal_value.quantize(CENTS, rounding=ROUND_HALF_UP):
        raise ValueError('El monto admite como máximo 2 decimales')

    return decimal_value.quantize(CENTS)


def parse_whole(value, allow_zero: bool = False) -> int:
    """
    Parse a whole number of units (quantities sold, stock counts).

    Raises:
        ValueError: if the value is not a whole number, is negative, or is
        zero while allow_zero is not set.
    """
    if value is None or isinstance(value, bool):
        raise ValueError('Cantidad inválida')

    try:
        decimal_value = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError('Cantidad inválida')

    if not decimal_value.is_finite() or decimal_value != decimal_value.to_integral_value():
        raise ValueError('La cantidad debe ser un número entero')
    if decimal_value < 0 or (decimal_value == 0 and not allow_zero):
        raise ValueError('La cantidad debe ser mayor a 0')

    return int(decimal_value)


def parse_quantity(value) -> int:
    """Quantity sold on a line: a positive whole number of units."""
    return parse_whole(value)
