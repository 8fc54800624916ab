"""
Module: booking_engines.conversion
Responsibility:
    Convert between loyalty points and settlement currency, and hold the
    payment policy (conversion, minimum redemption, tolerance and warning
    thresholds) that every allocation engine reads.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Compiled from configuration by ``booking_config``; never reads files.

Invariants enforced:
    - conversion_rate is a positive whole number of points per currency unit.
    - to_currency quantizes to the currency's minor unit; to_units rounds
      half-up to whole points. The two are inverses up to that rounding.
    - The minimum redemption is reported, never enforced by clamping.

Failure modes:
    - ConfigurationError for a non-positive rate, a negative minimum,
      a negative epsilon or a warning ratio outside [0, 1].
    - ValueError for negative points or a negative amount.

Usage:
    from booking_engines.conversion import ConversionPolicy

    policy = ConversionPolicy(conversion_rate=100, min_redemption=1000)
    policy.to_currency(20000)                 # Money("200.00", "AED")
    policy.to_units(Money.of("12.345", "AED")) # 1235
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from booking_kernel.domain.funding import FundingSource
from booking_kernel.domain.values import Currency, Money
from booking_kernel.exceptions import ConfigurationError

DEFAULT_CURRENCY = "AED"
DEFAULT_CONVERSION_RATE = 100
DEFAULT_MIN_REDEMPTION = 1000
DEFAULT_EPSILON = Decimal("0.01")


@dataclass(frozen=True)
class ConversionPolicy:
    """
    Points <-> currency conversion.

    Contract:
        ``conversion_rate`` points are worth one unit of ``currency``.
    Guarantees:
        - to_currency(p) is always in ``currency`` at its minor-unit precision.
        - to_units(to_currency(p)) == p whenever p / rate is representable
          at that precision (always true for the default rate of 100).
    """

    conversion_rate: int = DEFAULT_CONVERSION_RATE
    min_redemption: int = DEFAULT_MIN_REDEMPTION
    currency: Currency = field(default_factory=lambda: Currency(DEFAULT_CURRENCY))

    def __post_init__(self) -> None:
        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        if isinstance(self.conversion_rate, bool) or not isinstance(self.conversion_rate, int):
            raise ConfigurationError(
                "conversion_rate", f"must be an integer, got {self.conversion_rate!r}"
            )
        if self.conversion_rate <= 0:
            raise ConfigurationError(
                "conversion_rate", f"must be positive, got {self.conversion_rate}"
            )
        if self.min_redemption < 0:
            raise ConfigurationError(
                "min_redemption", f"cannot be negative, got {self.min_redemption}"
            )

    def to_currency(self, points: int) -> Money:
        if points < 0:
            raise ValueError(f"points cannot be negative, got {points}")
        value = Decimal(points) / Decimal(self.conversion_rate)
        return Money(amount=value, currency=self.currency).round()

    def to_units(self, amount: Money) -> int:
        if amount.currency != self.currency:
            raise ValueError(
                f"Cannot convert {amount.currency} to points; policy currency is {self.currency}"
            )
        if amount.is_negative:
            raise ValueError(f"amount cannot be negative, got {amount}")
        units = (amount.amount * Decimal(self.conversion_rate)).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
        return int(units)

    def meets_minimum(self, points: int) -> bool:
        return points >= self.min_redemption


def _check_ratio(name: str, value: Decimal) -> None:
    if not Decimal("0") <= value <= Decimal("1"):
        raise ConfigurationError(name, f"must be between 0 and 1, got {value}")


@dataclass(frozen=True)
class PaymentPolicy:
    """
    Everything the allocation engines need from configuration.

    ``epsilon`` is the tolerance for "fully allocated"; the ``*_warning_*``
    values only drive advisory warnings and never block a submission.
    """

    conversion: ConversionPolicy = field(default_factory=ConversionPolicy)
    epsilon: Decimal = DEFAULT_EPSILON
    default_method: FundingSource = FundingSource.CREDIT_CARD
    large_amount_threshold: Decimal = Decimal("1000000")
    credit_usage_warning_ratio: Decimal = Decimal("0.80")
    points_usage_warning_ratio: Decimal = Decimal("0.90")
    max_lines_before_warning: int = 5
    small_total_threshold: Decimal = Decimal("1")

    def __post_init__(self) -> None:
        if not isinstance(self.default_method, FundingSource):
            object.__setattr__(self, "default_method", FundingSource(self.default_method))
        if self.epsilon < 0:
            raise ConfigurationError("epsilon", f"cannot be negative, got {self.epsilon}")
        _check_ratio("credit_usage_warning_ratio", self.credit_usage_warning_ratio)
        _check_ratio("points_usage_warning_ratio", self.points_usage_warning_ratio)
        if self.max_lines_before_warning < 1:
            raise ConfigurationError(
                "max_lines_before_warning",
                f"must be at least 1, got {self.max_lines_before_warning}",
            )

    @property
    def currency(self) -> Currency:
        return self.conversion.currency

    @classmethod
    def default(cls, currency: str = DEFAULT_CURRENCY) -> PaymentPolicy:
        return cls(conversion=ConversionPolicy(currency=Currency(currency)))
