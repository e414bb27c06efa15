#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

from fractions import Fraction

import pytest

from iommupy.units import Measure, bits_per_second, format_number, rational, scaled, sectors_to_bytes, to_si


@pytest.mark.parametrize(
    "value, precision, expected",
    [
        (Fraction(512, 65), 2, "7.88"),
        (Fraction(512, 65), 1, "7.9"),
        (Fraction(512, 65), 0, "8"),
        ("1.50", 2, "1.5"),
        ("2.000", 3, "2"),
        ("0.125", 2, "0.13"),
        ("-0.001", 2, "0"),
        (10, 2, "10"),
        ("121/2", 2, "60.5"),
    ],
)
def test_format_number(value, precision, expected):
    assert format_number(value, precision) == expected


@pytest.mark.parametrize(
    "unit, value, precision, expected",
    [
        ("B", 512, 2, "512 B"),
        ("B", 1000, 2, "1 kB"),
        ("B", 999, 2, "999 B"),
        ("B", 512110190592, 2, "512.11 GB"),
        ("bps", 5 * 10**9, 2, "5 Gbps"),
        ("bps", 4 * 10**9, 2, "4 Gbps"),
        ("bps", Fraction(512, 65) * 10**9, 2, "7.88 Gbps"),
        ("bps", Fraction(512, 65) * 10**9, 1, "7.9 Gbps"),
        ("bps", Fraction(512, 65) * 10**9, 0, "8 Gbps"),
        ("bps", 0, 2, "0 bps"),
        ("bps", -5000, 2, "-5000 bps"),
        ("B", 10**30, 2, "1 QB"),
        ("B", 10**33, 2, "1000 QB"),
    ],
)
def test_to_si(unit, value, precision, expected):
    assert to_si(unit, value, precision) == expected


def test_to_si_is_exact():
    # float arithmetic would give 7.877 or 7.876
    assert to_si("bps", Fraction(512, 65) * 10**9, 3) == "7.877 Gbps"
    assert to_si("bps", Fraction(320000, 33) * 10**6, 2) == "9.7 Gbps"


def test_rational():
    assert rational("512/65") == Fraction(512, 65)
    assert rational(" 1.5 ") == Fraction(3, 2)
    assert rational(7) == 7
    with pytest.raises(ValueError):
        rational("fast")


def test_scaled():
    assert scaled(5, "G") == 5 * 10**9
    assert scaled("1.5", "M") == 1_500_000
    assert scaled("6/5", "k") == 1200


def test_measure():
    assert Measure(512, "B").format() == "512 B"
    assert Measure(Fraction(1024, 65) * 10**9 * 4, "bps").format(1) == "63 Gbps"


def test_bits_per_second():
    assert bits_per_second("480") == Measure(480_000_000, "bps")
    assert bits_per_second("1.5") == Measure(1_500_000, "bps")
    assert bits_per_second(5, "G") == Measure(5 * 10**9, "bps")
    assert bits_per_second("unknown") is None
    assert bits_per_second("") is None
    assert bits_per_second(None) is None


def test_sectors_to_bytes():
    assert sectors_to_bytes("1") == Measure(512, "B")
    assert sectors_to_bytes("1000215216") == Measure(512110190592, "B")
    assert sectors_to_bytes("n/a") is None
    assert sectors_to_bytes(None) is None
