"""
Money Arithmetic

All amounts in the ledger are integers in minor currency units (cents).
Floating point is never used for storage or arithmetic; conversions to and
from major units go through Decimal.

Sign is unrestricted for internal calculations. Transaction-level amounts
must be strictly positive - direction is encoded by the from/to accounts.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from finance_tracker.config import get_settings
from finance_tracker.exceptions import ValidationError


MajorAmount = Union[int, str, Decimal, float]

_CENT = Decimal("0.01")
_CURRENCY_NOISE = re.compile(r"[\s,$€£¥₹]")
_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")


class ParsedAmount(BaseModel):
    """
    Result of parsing user-entered currency text.

    Either `value` holds the amount in cents, or `error` explains why the
    text is not a number. Never a silent zero.
    """
    model_config = ConfigDict(frozen=True)

    text: str
    value: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.value is not None


class Money:
    """
    Integer-cents helpers.

    Usage:
        cents = Money.to_minor_units("10.50")   # 1050
        Money.format(123456)                    # "$1,234.56"
        Money.parse("$1,234.56").value          # 123456
    """

    @staticmethod
    def is_valid_amount(value: object) -> bool:
        """A minor-unit amount is valid iff it is an integer (bools excluded)."""
        return isinstance(value, int) and not isinstance(value, bool)

    @staticmethod
    def is_valid_transaction_amount(value: object) -> bool:
        """Transaction amounts must be valid and strictly positive."""
        return Money.is_valid_amount(value) and value > 0

    @staticmethod
    def to_minor_units(major: MajorAmount) -> int:
        """
        Convert a major-unit amount (e.g. dollars) to cents.

        Rounds half-up to the nearest cent. Floats are converted through
        their shortest string repr so 10.1 becomes 1010, not 1009.

        Raises:
            ValidationError: if the value is not a finite number
        """
        if isinstance(major, bool):
            raise ValidationError.single(
                "amount", "INVALID_AMOUNT", "Amount must be a number"
            )
        try:
            if isinstance(major, float):
                decimal_value = Decimal(str(major))
            else:
                decimal_value = Decimal(major)
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError.single(
                "amount", "INVALID_AMOUNT", f"Amount {major!r} is not a number"
            )

        if not decimal_value.is_finite():
            raise ValidationError.single(
                "amount", "INVALID_AMOUNT", "Amount must be finite"
            )

        # quantize fails once the value needs more digits than the context holds
        try:
            cents = decimal_value.quantize(_CENT, rounding=ROUND_HALF_UP) * 100
        except InvalidOperation:
            raise ValidationError.single(
                "amount", "INVALID_AMOUNT", f"Amount {major!r} is too large"
            )
        return int(cents)

    @staticmethod
    def to_major_units(minor: int) -> Decimal:
        """Convert cents to a two-place Decimal major amount."""
        if not Money.is_valid_amount(minor):
            raise ValidationError.single(
                "amount", "INVALID_AMOUNT", "Amount must be an integer number of cents"
            )
        return (Decimal(minor) / 100).quantize(_CENT)

    @staticmethod
    def format(minor: int, symbol: Optional[str] = None) -> str:
        """
        Format cents as a currency string, e.g. 123456 -> "$1,234.56".

        Negative amounts put the sign before the symbol: "-$5.00".
        The symbol comes from LEDGER_CURRENCY_SYMBOL rather than the
        process locale, and grouping is always "," with a "." decimal point.
        """
        if symbol is None:
            symbol = get_settings().ledger.currency_symbol
        major = Money.to_major_units(minor)
        sign = "-" if major < 0 else ""
        return f"{sign}{symbol}{abs(major):,.2f}"

    @staticmethod
    def parse(text: str) -> ParsedAmount:
        """
        Parse currency text into cents.

        Strips currency symbols, thousands separators and whitespace.
        Accounting-style parentheses mean a negative amount.
        """
        if not isinstance(text, str):
            return ParsedAmount(text=repr(text), error="Input is not text")

        cleaned = _CURRENCY_NOISE.sub("", text)
        symbol = get_settings().ledger.currency_symbol
        if symbol:
            cleaned = cleaned.replace(symbol, "")

        negative = False
        if cleaned.startswith("(") and cleaned.endswith(")"):
            negative = True
            cleaned = cleaned[1:-1]

        if not _NUMBER.match(cleaned):
            return ParsedAmount(text=text, error=f"'{text}' is not a number")

        try:
            cents = Money.to_minor_units(Decimal(cleaned))
        except ValidationError as e:
            return ParsedAmount(text=text, error=e.issues[0].message)
        return ParsedAmount(text=text, value=-cents if negative else cents)

    @staticmethod
    def parse_strict(text: str) -> int:
        """Parse currency text, raising ValidationError when it is not a number."""
        parsed = Money.parse(text)
        if not parsed.ok:
            raise ValidationError.single("amount", "NOT_A_NUMBER", parsed.error)
        return parsed.value
