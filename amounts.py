from dataclasses import dataclass
import re
from typing import ClassVar

_DECIMAL = re.compile(r"(-)?(?=\.?\d)(\d*)(?:\.(\d*))?", re.ASCII)


@dataclass(frozen=True, order=True)
class Amount:
    """Fixed-point monetary amount with four decimal places.

    The value is stored as an integer number of ten-thousandths, so addition,
    subtraction and comparison are exact.
    """

    scaled: int

    PLACES: ClassVar[int] = 4
    FACTOR: ClassVar[int] = 10 ** 4
    MAX_DIGITS: ClassVar[int] = 28

    @classmethod
    def zero(cls) -> "Amount":
        return cls(0)

    @classmethod
    def parse(cls, text: str) -> "Amount":
        """Parse a plain decimal string such as ``"1.5"`` or ``"-0.0001"``.

        Raises ValueError for anything else (exponents, signs other than a
        leading minus, non-finite spellings), for more than four significant
        fractional digits, and for values with more than MAX_DIGITS integer
        digits.
        """
        match = _DECIMAL.fullmatch(text.strip())
        if match is None:
            raise ValueError(f"Invalid amount: {text!r}")

        sign, whole, fraction = match.groups()
        whole = whole.lstrip("0")
        fraction = (fraction or "").rstrip("0")
        if len(whole) > cls.MAX_DIGITS:
            raise ValueError(f"Amount {text!r} is out of range")
        if len(fraction) > cls.PLACES:
            raise ValueError(
                f"Amount {text!r} has more than {cls.PLACES} decimal places"
            )

        scaled = int((whole or "0") + fraction.ljust(cls.PLACES, "0"))
        return cls(-scaled if sign else scaled)

    def is_positive(self) -> bool:
        return self.scaled > 0

    def __add__(self, other: "Amount") -> "Amount":
        if not isinstance(other, Amount):
            return NotImplemented
        return Amount(self.scaled + other.scaled)

    def __sub__(self, other: "Amount") -> "Amount":
        if not isinstance(other, Amount):
            return NotImplemented
        return Amount(self.scaled - other.scaled)

    def __neg__(self) -> "Amount":
        return Amount(-self.scaled)

    def __str__(self) -> str:
        sign = "-" if self.scaled < 0 else ""
        whole, fraction = divmod(abs(self.scaled), self.FACTOR)
        return f"{sign}{whole}.{fraction:0{self.PLACES}d}"

    def __repr__(self) -> str:
        return f"Amount('{self}')"
