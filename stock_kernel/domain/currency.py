"""ISO 4217 codes the ledger can value stock in, with their minor-unit digits."""

from typing import ClassVar


def _codes(digits: int, *codes: str) -> dict[str, int]:
    return {code: digits for code in codes}


class CurrencyRegistry:
    """Lookup of known currency codes and their decimal places."""

    _MINOR_UNIT_DIGITS: ClassVar[dict[str, int]] = {
        **_codes(
            2,
            "USD", "EUR", "GBP", "CHF", "CAD", "AUD", "NZD", "SEK", "NOK",
            "DKK", "PLN", "CNY", "INR", "MXN", "BRL", "ZAR", "SGD", "HKD",
        ),
        **_codes(0, "JPY", "KRW", "CLP", "ISK", "VND"),
        **_codes(3, "BHD", "JOD", "KWD", "OMR", "TND"),
    }

    @staticmethod
    def normalize(code: object) -> str:
        return code.strip().upper() if isinstance(code, str) else ""

    @classmethod
    def is_valid(cls, code: object) -> bool:
        return cls.normalize(code) in cls._MINOR_UNIT_DIGITS

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        """
        Digits after the decimal point for ``code``.

        Raises:
            ValueError: If the code is not a known currency.
        """
        try:
            return cls._MINOR_UNIT_DIGITS[cls.normalize(code)]
        except KeyError:
            raise ValueError(f"Unknown ISO 4217 currency code: {code!r}") from None
