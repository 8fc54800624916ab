"""Settlement currencies accepted at the booking desk and their minor units."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    code: str
    decimal_places: int
    name: str

    @property
    def rounding_tolerance(self) -> Decimal:
        """One minor unit: 0.01 for AED, 0.001 for KWD, 1 for JPY."""
        return Decimal(1).scaleb(-self.decimal_places)


def _registry(*entries: tuple[str, int, str]) -> dict[str, CurrencyInfo]:
    return {code: CurrencyInfo(code, places, name) for code, places, name in entries}


class CurrencyRegistry:
    """
    Lookup of the currencies an obligation may be settled in.

    GCC currencies come first since every booking is settled locally;
    visitor currencies are kept for card charges quoted abroad.
    """

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = _registry(
        ("AED", 2, "UAE Dirham"),
        ("SAR", 2, "Saudi Riyal"),
        ("QAR", 2, "Qatari Riyal"),
        ("BHD", 3, "Bahraini Dinar"),
        ("KWD", 3, "Kuwaiti Dinar"),
        ("OMR", 3, "Omani Rial"),
        ("JOD", 3, "Jordanian Dinar"),
        ("EGP", 2, "Egyptian Pound"),
        ("USD", 2, "US Dollar"),
        ("EUR", 2, "Euro"),
        ("GBP", 2, "Pound Sterling"),
        ("INR", 2, "Indian Rupee"),
        ("PKR", 2, "Pakistani Rupee"),
        ("CNY", 2, "Chinese Yuan"),
        ("RUB", 2, "Russian Ruble"),
        ("CHF", 2, "Swiss Franc"),
        ("JPY", 0, "Japanese Yen"),
        ("KRW", 0, "South Korean Won"),
    )

    FALLBACK_DECIMAL_PLACES: ClassVar[int] = 2

    @classmethod
    def is_valid(cls, code: str) -> bool:
        return code in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        return cls._CURRENCIES.get(code)

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        info = cls._CURRENCIES.get(code)
        return info.decimal_places if info else cls.FALLBACK_DECIMAL_PLACES

    @classmethod
    def get_rounding_tolerance(cls, code: str) -> Decimal:
        return Decimal(1).scaleb(-cls.get_decimal_places(code))
