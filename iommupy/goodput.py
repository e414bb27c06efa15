#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

"""
Goodput: link throughput minus the physical layer encoding overhead.

Each table maps the raw link speed label, as reported by sysfs, to the
goodput as an exact rational. Unknown labels have no goodput.
"""

from .types import Optional
from .units import Measure, bits_per_second, rational

UNKNOWN_SPEED = "<unknown>"

# per lane, in Gbps
PCIE_GOODPUT = {
    "2.5 GT/s PCIe": "2",  # gen 1, 8b/10b
    "5.0 GT/s PCIe": "4",  # gen 2, 8b/10b
    "8.0 GT/s PCIe": "512/65",  # gen 3, 128b/130b
    "16.0 GT/s PCIe": "1024/65",  # gen 4, 128b/130b
    "32.0 GT/s PCIe": "2048/65",  # gen 5, 128b/130b
    "64.0 GT/s PCIe": "121/2",  # gen 6, 242b/256b
    "128.0 GT/s PCIe": "121",  # gen 7, 242b/256b
}

# in Mbps
USB_GOODPUT = {
    "1.5": "6/5",  # low speed, NRZI
    "12": "48/5",  # full speed, NRZI
    "480": "400",  # high speed, NRZI
    "5000": "4000",  # SuperSpeed, 8b/10b
    "10000": "320000/33",  # SuperSpeed+, 128b/132b
    "20000": "640000/33",  # SuperSpeed+ two lane, 128b/132b
}

# in Gbps
SATA_GOODPUT = {
    "1.5 Gbps": "1.2",  # revision 1, 8b/10b
    "3.0 Gbps": "2.4",  # revision 2, 8b/10b
    "6.0 Gbps": "4.8",  # revision 3, 8b/10b
}


def _key(label: Optional[str]) -> Optional[str]:
    return label.strip() if label else None


def pcie_goodput(label: Optional[str], lanes: Optional[str]) -> Optional[Measure]:
    """Goodput of a PCIe link with the given number of lanes"""
    per_lane = PCIE_GOODPUT.get(_key(label))
    if per_lane is None or not lanes:
        return None
    try:
        width = rational(lanes)
    except ValueError:
        return None
    return bits_per_second(width * rational(per_lane), "G")


def usb_goodput(label: Optional[str]) -> Optional[Measure]:
    """Goodput of a USB link from its speed in Mbps (ex: "480")"""
    goodput = USB_GOODPUT.get(_key(label))
    return None if goodput is None else bits_per_second(goodput, "M")


def sata_goodput(label: Optional[str]) -> Optional[Measure]:
    """Goodput of a SATA link from its speed label (ex: "6.0 Gbps")"""
    goodput = SATA_GOODPUT.get(_key(label))
    return None if goodput is None else bits_per_second(goodput, "G")
