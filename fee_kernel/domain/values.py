"""
Values -- Decimal coercion helpers and the Money display value object.

Responsibility:
    Provides the numeric foundation for every fee computation: coercion of
    raw inputs (int, float, str, Decimal) into Decimal, NaN-safe reads for
    aggregation, and a Money value object used when totals are presented.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by the domain models, every engine, and the service layer.

Invariants enforced:
    - Floats never reach arithmetic: they are converted through ``str`` so
      ``0.1`` becomes ``Decimal("0.1")``.
    - ``safe_amount`` never returns NaN or None; both read as zero and the
      condition is logged with the field name for diagnosis.
    - Money amounts are Decimal and currency codes are three uppercase
      letters.

Failure modes:
    - ``to_decimal`` raises ValueError for values that cannot be read as a
      number at all (e.g. ``"abc"``) or that are infinite; NaN is a number here
      and is kept.
    - Money arithmetic across currencies raises ValueError.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from fee_kernel.logging_config import get_logger

logger = get_logger("domain.values")

ZERO = Decimal("0")
HUNDRED = Decimal("100")
_TWO_PLACES = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Convert a raw numeric input into Decimal.

    Preconditions:
        value is a Decimal, int, float, bool-free numeric string, or NaN.

    Postconditions:
        Returns a Decimal; float NaN becomes ``Decimal("NaN")``.

    Raises:
        ValueError: if the value cannot be interpreted as a number
            or is infinite.
    """
    if isinstance(value, Decimal):
        return _finite(value, value)
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    if isinstance(value, float) and math.isnan(value):
        return Decimal("NaN")
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid numeric value: {value!r}") from e
    return _finite(result, value)


def _finite(result: Decimal, raw: Any) -> Decimal:
    if result.is_infinite():
        raise ValueError(f"Infinite numeric value: {raw!r}")
    return result


def optional_decimal(value: Any) -> Decimal | None:
    """Like ``to_decimal`` but passes ``None`` (and blank strings) through."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return to_decimal(value)


def is_nan(value: Decimal | None) -> bool:
    return value is not None and value.is_nan()


def safe_amount(value: Decimal | None, field: str = "amount") -> Decimal:
    """
    Read an amount for aggregation, treating None and NaN as zero.

    Postconditions:
        Never returns NaN.  A NaN input emits a warning with ``field`` so
        the bad input can be traced without interrupting the calculation.
    """
    if value is None:
        return ZERO
    if value.is_nan():
        logger.warning("nan_amount_coerced", extra={"field": field})
        return ZERO
    return value


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """``amount * percent / 100`` without intermediate rounding."""
    return amount * (percent / HUNDRED)


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount paired with its currency.

    Contract:
        Used at presentation boundaries (summaries, CLI output).  Engines
        work in plain Decimal and wrap results only when a currency is known.

    Guarantees:
        - Immutable and hashable.
        - amount is always a Decimal; currency is an uppercase 3-letter code.
        - Arithmetic refuses to mix currencies.
    """

    amount: Decimal
    currency: str = "USD"

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", to_decimal(self.amount))
        code = (self.currency or "").upper().strip()
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"Invalid currency code: {self.currency!r}")
        object.__setattr__(self, "currency", code)

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str = "USD") -> Money:
        return cls(amount=to_decimal(amount), currency=currency)

    @classmethod
    def zero(cls, currency: str = "USD") -> Money:
        return cls(amount=ZERO, currency=currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == ZERO

    def round(self) -> Money:
        """Round to cents, half up."""
        return Money(
            amount=self.amount.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP),
            currency=self.currency,
        )

    def _check(self, other: Money) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot combine Money with {type(other).__name__}")
        if other.currency != self.currency:
            raise ValueError(
                f"Currency mismatch: {self.currency} and {other.currency}"
            )

    def __add__(self, other: Money) -> Money:
        self._check(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        self._check(other)
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"


_CURRENCY_SYMBOLS = {"USD": "$", "CAD": "$", "EUR": "€", "GBP": "£"}


def format_currency(value: Decimal | int | float | str | None, currency: str = "USD") -> str:
    """
    Format an amount for display, e.g. ``$1,234.56``.

    None, blank and NaN display as zero so an in-progress form never shows
    ``NaN``.
    """
    try:
        amount = safe_amount(optional_decimal(value), field="display")
    except ValueError:
        logger.warning("display_value_unreadable", extra={"value": repr(value)})
        amount = ZERO
    rounded = amount.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    symbol = _CURRENCY_SYMBOLS.get(currency.upper(), "")
    sign = "-" if rounded < ZERO else ""
    text = f"{abs(rounded):,.2f}"
    if symbol:
        return f"{sign}{symbol}{text}"
    return f"{sign}{text} {currency.upper()}"
