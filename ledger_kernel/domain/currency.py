"""Currency -- supported codes, minor units and precision-derived tolerance."""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar

from ledger_kernel.exceptions import InvalidCurrencyError


@dataclass(frozen=True)
class CurrencyInfo:
    """One ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def rounding_tolerance(self) -> Decimal:
        """One minor unit: 0.01 for AED, 0.001 for KWD, 1 for JPY."""
        return Decimal(1).scaleb(-self.decimal_places)


class CurrencyRegistry:
    """
    The set of currencies a ledger accepts.

    Contract:
        Balance checks and zero-filters use ``get_rounding_tolerance(code)``
        so 3-decimal currencies (KWD, BHD, OMR) are held to a 0.001 tolerance
        rather than a flat 0.01.
    """

    _CATALOG: ClassVar[dict[str, CurrencyInfo]] = {
        info.code: info
        for info in (
            CurrencyInfo("AED", 2, "UAE Dirham"),
            CurrencyInfo("SAR", 2, "Saudi Riyal"),
            CurrencyInfo("QAR", 2, "Qatari Riyal"),
            CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
            CurrencyInfo("BHD", 3, "Bahraini Dinar"),
            CurrencyInfo("OMR", 3, "Omani Rial"),
            CurrencyInfo("JOD", 3, "Jordanian Dinar"),
            CurrencyInfo("EGP", 2, "Egyptian Pound"),
            CurrencyInfo("INR", 2, "Indian Rupee"),
            CurrencyInfo("PKR", 2, "Pakistani Rupee"),
            CurrencyInfo("USD", 2, "US Dollar"),
            CurrencyInfo("EUR", 2, "Euro"),
            CurrencyInfo("GBP", 2, "Pound Sterling"),
            CurrencyInfo("CHF", 2, "Swiss Franc"),
            CurrencyInfo("CNY", 2, "Chinese Yuan"),
            CurrencyInfo("JPY", 0, "Japanese Yen"),
            CurrencyInfo("KRW", 0, "South Korean Won"),
        )
    }

    def __init__(self, supported: Iterable[str] | None = None):
        codes = [c.upper() for c in supported] if supported is not None else list(self._CATALOG)
        unknown = [c for c in codes if c not in self._CATALOG]
        if unknown:
            raise ValueError(f"Unknown currency codes: {', '.join(sorted(unknown))}")
        self._supported = tuple(codes)

    @classmethod
    def from_config(cls, config) -> "CurrencyRegistry":
        return cls(config.supported_currencies)

    def is_valid(self, code: str) -> bool:
        return isinstance(code, str) and code.upper() in self._supported

    def get_info(self, code: str) -> CurrencyInfo:
        return self._CATALOG[self.validate(code)]

    def get_decimal_places(self, code: str) -> int:
        return self.get_info(code).decimal_places

    def get_rounding_tolerance(self, code: str) -> Decimal:
        return self.get_info(code).rounding_tolerance

    def validate(self, code: str) -> str:
        """Return the normalized code or raise InvalidCurrencyError."""
        if not self.is_valid(code):
            raise InvalidCurrencyError(str(code))
        return code.upper()

    @property
    def supported_codes(self) -> tuple[str, ...]:
        return self._supported
