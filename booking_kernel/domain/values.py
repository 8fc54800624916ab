"""
Values -- Currency and Money for amounts due and allocated.

Responsibility:
    Money is the only representation of an amount anywhere in a booking:
    the down payment, each payment line, the remaining balance.  Loyalty
    points stay plain ints and become Money only through ConversionPolicy.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Amounts are finite Decimals.  Floats are refused outright, since a
      binary float cannot hold 0.10 AED exactly.
    - Currency codes must be in CurrencyRegistry.
    - Two amounts in different currencies never add, subtract or compare.
    - Nothing rounds implicitly; ``round()`` is called where a
      settlement-precision figure is needed.

Failure modes:
    - TypeError for float amounts or a non-Currency currency.
    - ValueError for unparseable or infinite amounts, unknown codes, and
      mixed-currency arithmetic.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from booking_kernel.domain.currency import CurrencyRegistry


def _to_decimal(value: Decimal | str | int) -> Decimal:
    if isinstance(value, float):
        raise TypeError("Money amounts must not be float; pass Decimal or str")
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Invalid amount: {value!r}") from e
    if not number.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return number


@dataclass(frozen=True, slots=True)
class Currency:
    """A registered ISO 4217 code, uppercased on construction."""

    code: str

    def __post_init__(self) -> None:
        normalized = (self.code or "").strip().upper()
        if not CurrencyRegistry.is_valid(normalized):
            raise ValueError(f"Invalid ISO 4217 currency code: {self.code}")
        object.__setattr__(self, "code", normalized)

    @property
    def decimal_places(self) -> int:
        return CurrencyRegistry.get_decimal_places(self.code)

    @property
    def rounding_tolerance(self) -> Decimal:
        """One minor unit (0.01 AED, 0.001 KWD)."""
        return CurrencyRegistry.get_rounding_tolerance(self.code)

    @property
    def name(self) -> str:
        info = CurrencyRegistry.get_info(self.code)
        return info.name if info else self.code

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


def _as_currency(currency: str | Currency) -> Currency:
    if isinstance(currency, Currency):
        return currency
    if isinstance(currency, str):
        return Currency(currency)
    raise TypeError(f"currency must be Currency or str, got {type(currency).__name__}")


@functools.total_ordering
@dataclass(frozen=True, slots=True, eq=True)
class Money:
    """
    A Decimal amount in one currency.

    Equality is numeric (``10`` equals ``10.00``) within the same currency;
    ordering across currencies raises.
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", _to_decimal(self.amount))
        object.__setattr__(self, "currency", _as_currency(self.currency))

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        return cls(amount=_to_decimal(amount), currency=_as_currency(currency))

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        return cls(amount=Decimal("0"), currency=_as_currency(currency))

    @property
    def is_zero(self) -> bool:
        return self.amount.is_zero()

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    def round(self, rounding: str = ROUND_HALF_UP) -> Money:
        """Quantize to the currency's minor unit."""
        exponent = Decimal(1).scaleb(-self.currency.decimal_places)
        return Money(self.amount.quantize(exponent, rounding=rounding), self.currency)

    def within(self, other: Money, tolerance: Decimal) -> bool:
        return abs(self._same(other, "compare").amount - other.amount) <= tolerance

    def clamp_non_negative(self) -> Money:
        return Money.zero(self.currency) if self.is_negative else self

    def _same(self, other: Money, verb: str) -> Money:
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot {verb} Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )
        return self

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self._same(other, "add").amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self._same(other, "subtract").amount - other.amount, self.currency)

    def __neg__(self) -> Money:
        return Money(-self.amount, self.currency)

    def __abs__(self) -> Money:
        return Money(abs(self.amount), self.currency)

    def __mul__(self, factor: Decimal | int | str) -> Money:
        if not isinstance(factor, (Decimal, int, str)) or isinstance(factor, bool):
            return NotImplemented
        return Money(self.amount * _to_decimal(factor), self.currency)

    __rmul__ = __mul__

    def __truediv__(self, divisor: Decimal | int | str) -> Money:
        if not isinstance(divisor, (Decimal, int, str)) or isinstance(divisor, bool):
            return NotImplemented
        return Money(self.amount / _to_decimal(divisor), self.currency)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self._same(other, "compare").amount < other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"


def money_sum(amounts, currency: str | Currency) -> Money:
    """Sum Money values, starting from zero in ``currency``."""
    return sum(amounts, Money.zero(currency))


def min_money(*amounts: Money) -> Money:
    if not amounts:
        raise ValueError("min_money() requires at least one amount")
    return min(amounts)
