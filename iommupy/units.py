#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

"""
SI unit conversion of raw magnitudes.

Magnitudes are kept as exact rationals ([`Fraction`][fractions.Fraction])
all the way to the final text so that precision is only lost once, when the
number is rendered:

```python
>>> to_si("bps", Fraction(512, 65) * 10**9)
'7.88 Gbps'
>>> to_si("B", 512)
'512 B'
```
"""

import decimal
import fractions

from .types import NamedTuple, Optional, Rational, RationalLike

DEFAULT_PRECISION = 2

SECTOR_SIZE = 512

# (prefix, decimal exponent), largest first
SI_PREFIXES = (
    ("Q", 30),  # quetta
    ("R", 27),  # ronna
    ("Y", 24),  # yotta
    ("Z", 21),  # zetta
    ("E", 18),  # exa
    ("P", 15),  # peta
    ("T", 12),  # tera
    ("G", 9),  # giga
    ("M", 6),  # mega
    ("k", 3),  # kilo
)

EXPONENTS = dict(SI_PREFIXES)


def rational(value: RationalLike) -> fractions.Fraction:
    """
    Exact rational from an int, a Fraction or a text like "1.5" or "512/65".

    Raises:
        ValueError if the text is not a number
    """
    if isinstance(value, str):
        value = value.strip()
    return fractions.Fraction(value)


def format_number(value: RationalLike, precision: int = DEFAULT_PRECISION) -> str:
    """
    Render a rational with at most *precision* post-decimal digits.
    Trailing zeros and a trailing decimal point are removed.
    """
    value = rational(value)
    with decimal.localcontext() as context:
        context.prec = 100
        number = decimal.Decimal(value.numerator) / decimal.Decimal(value.denominator)
        quantum = decimal.Decimal(1).scaleb(-precision)
        text = f"{number.quantize(quantum, rounding=decimal.ROUND_HALF_UP):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return text


def to_si(unit: str, value: RationalLike, precision: int = DEFAULT_PRECISION) -> str:
    """
    Scale value to the largest SI prefix for which the scaled value is at
    least 1. Values below a kilo (including zero and negative values) are
    rendered unscaled.
    """
    value = rational(value)
    if value > 0:
        for prefix, exponent in SI_PREFIXES:
            scale = 10**exponent
            if value >= scale:
                return f"{format_number(value / scale, precision)} {prefix}{unit}"
    return f"{format_number(value, precision)} {unit}"


def scaled(value: RationalLike, prefix: str) -> fractions.Fraction:
    """value multiplied by the given SI prefix (ex: scaled(5, "G") is 5*10^9)"""
    return rational(value) * 10 ** EXPONENTS[prefix]


class Measure(NamedTuple):
    """A magnitude expressed in a base unit (ex: bytes or bits per second)"""

    value: Rational
    unit: str

    def format(self, precision: int = DEFAULT_PRECISION) -> str:
        return to_si(self.unit, self.value, precision)


def bits_per_second(value: RationalLike, prefix: str = "M") -> Optional[Measure]:
    """Measure in bps from a number of prefixed bits per second. None if not a number"""
    try:
        return Measure(scaled(value, prefix), "bps")
    except (TypeError, ValueError, ZeroDivisionError):
        return None


def sectors_to_bytes(sectors: RationalLike) -> Optional[Measure]:
    """Measure in bytes from a 512 byte sector count. None if not a number"""
    try:
        return Measure(rational(sectors) * SECTOR_SIZE, "B")
    except (TypeError, ValueError, ZeroDivisionError):
        return None
