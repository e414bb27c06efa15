#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

from fractions import Fraction

import pytest

from iommupy.goodput import UNKNOWN_SPEED, pcie_goodput, sata_goodput, usb_goodput
from iommupy.units import Measure


@pytest.mark.parametrize(
    "label, lanes, expected",
    [
        ("2.5 GT/s PCIe", "1", "2 Gbps"),
        ("5.0 GT/s PCIe", "1", "4 Gbps"),
        ("8.0 GT/s PCIe", "1", "7.88 Gbps"),
        ("8.0 GT/s PCIe", "4", "31.51 Gbps"),
        ("16.0 GT/s PCIe", "16", "252.06 Gbps"),
        ("32.0 GT/s PCIe", "4", "126.03 Gbps"),
        ("64.0 GT/s PCIe", "2", "121 Gbps"),
        ("128.0 GT/s PCIe", "1", "121 Gbps"),
    ],
)
def test_pcie_goodput(label, lanes, expected):
    assert pcie_goodput(label, lanes).format() == expected


def test_pcie_goodput_is_exact():
    assert pcie_goodput("8.0 GT/s PCIe", "4") == Measure(Fraction(2048, 65) * 10**9, "bps")


@pytest.mark.parametrize(
    "label, lanes",
    [
        ("Unknown", "4"),
        (UNKNOWN_SPEED, "1"),
        ("8.0 GT/s PCIe", ""),
        ("8.0 GT/s PCIe", None),
        ("8.0 GT/s PCIe", "x4"),
        (None, "4"),
    ],
)
def test_pcie_goodput_unknown(label, lanes):
    assert pcie_goodput(label, lanes) is None


@pytest.mark.parametrize(
    "label, expected",
    [
        ("1.5", "1.2 Mbps"),
        ("12", "9.6 Mbps"),
        ("480", "400 Mbps"),
        ("5000", "4 Gbps"),
        ("10000", "9.7 Gbps"),
        ("20000", "19.39 Gbps"),
    ],
)
def test_usb_goodput(label, expected):
    assert usb_goodput(label).format() == expected


def test_usb_goodput_unknown():
    assert usb_goodput("40000") is None
    assert usb_goodput("") is None
    assert usb_goodput(None) is None


@pytest.mark.parametrize(
    "label, expected",
    [
        ("1.5 Gbps", "1.2 Gbps"),
        ("3.0 Gbps", "2.4 Gbps"),
        ("6.0 Gbps", "4.8 Gbps"),
    ],
)
def test_sata_goodput(label, expected):
    assert sata_goodput(label).format() == expected


def test_sata_goodput_unknown():
    assert sata_goodput(UNKNOWN_SPEED) is None
    assert sata_goodput(None) is None
