#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

"""
External probe tools (lspci, lsusb, lsblk and setpci) and the parsers of
their output.

Availability of each tool is checked once. A tool which is missing or fails
gives "no data", never an exception.
"""

import json
import logging
import re
import shutil
import subprocess

from .inventory import BlockDevice, Capabilities, PciDetails, UsbListing
from .types import Iterable, Optional, Sequence

log = logging.getLogger(__name__)

REQUIRED_TOOLS = ("lspci",)

OPTIONAL_TOOLS = {
    "lsblk": "Some block device identifiers (e.g., serial numbers) may not be reported.",
    "lsusb": "USB buses cannot be enumerated.",
    "setpci": "PCI device identifiers cannot be reported.",
}

_CODED_NAME = re.compile(r"^(?P<name>.*?)\s*\[(?P<code>[0-9a-fA-F]{4})\]$")
_LSUSB_LINE = re.compile(
    r"^Bus\s+(?P<bus>\d+)\s+Device\s+(?P<device>\d+):\s+ID\s+(?P<code>[0-9a-fA-F]{4}:[0-9a-fA-F]{4})\s*(?P<description>.*)$"
)


class MissingToolError(RuntimeError):
    """A tool without which the inventory cannot be taken"""


def is_tool_available(name: str) -> bool:
    return shutil.which(name) is not None


def require_tools(tools: Sequence[str] = REQUIRED_TOOLS) -> None:
    """
    Raises:
        MissingToolError if any of the given tools is missing
    """
    missing = [tool for tool in tools if not is_tool_available(tool)]
    if missing:
        raise MissingToolError(f"missing required commands {', '.join(missing)}")


def detect_capabilities() -> Capabilities:
    """Check each probe tool once and warn about the optional ones which are missing"""
    available = {}
    for tool, consequence in OPTIONAL_TOOLS.items():
        available[tool] = is_tool_available(tool)
        if not available[tool]:
            log.warning("missing optional command %s. %s", tool, consequence)
    return Capabilities(
        pci_details=is_tool_available("lspci"),
        usb_devices=available["lsusb"],
        block_devices=available["lsblk"],
        pci_serial=available["setpci"],
    )


def run(*args: str) -> Optional[str]:
    """Output of the command or None if it cannot run or it fails"""
    try:
        result = subprocess.run(args, capture_output=True, text=True, check=False)
    except OSError as error:
        log.debug("could not run %s: %s", args[0], error)
        return None
    if result.returncode:
        log.debug("%s exited with %d: %s", " ".join(args), result.returncode, result.stderr.strip())
        return None
    return result.stdout


def split_coded_name(text: str) -> tuple[str, str]:
    """Splits "Intel Corporation [8086]" into ("Intel Corporation", "8086")"""
    match = _CODED_NAME.match(text.strip())
    if match is None:
        return text.strip(), ""
    return match["name"], match["code"].lower()


def parse_lspci(text: str) -> PciDetails:
    """Parse the output of `lspci -Dkvmmnns <slot>`"""
    fields = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        key = key.strip()
        if sep and key not in fields:
            fields[key] = value.strip()
    vendor, vendor_id = split_coded_name(fields.get("Vendor", ""))
    device, device_id = split_coded_name(fields.get("Device", ""))
    return PciDetails(vendor, vendor_id, device, device_id, fields.get("Driver", ""))


def parse_lsusb(text: str) -> list[UsbListing]:
    """Parse the output of `lsusb -s <bus>:` into listings ordered by device number"""
    result = []
    for line in text.splitlines():
        match = _LSUSB_LINE.match(line.strip())
        if match is not None:
            result.append(UsbListing(int(match["device"]), match["code"].lower(), match["description"].strip()))
    return sorted(result, key=lambda listing: listing.device_number)


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def _size(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_lsblk(text: str) -> list[BlockDevice]:
    """Parse the output of `lsblk --json --nodeps --bytes --output NAME,MODEL,WWN,SERIAL,SIZE`"""
    try:
        data = json.loads(text)
    except ValueError:
        log.debug("unexpected lsblk output")
        return []
    return [
        BlockDevice(
            name=_text(item.get("name")),
            model=_text(item.get("model")),
            wwn=_text(item.get("wwn")),
            serial=_text(item.get("serial")),
            size=_size(item.get("size")),
        )
        for item in data.get("blockdevices", ())
        if item.get("name")
    ]


def parse_setpci(lines: Iterable[str]) -> Optional[str]:
    """Join the upper and lower dwords of the device serial number capability"""
    serial = "".join(line.strip() for line in lines)
    return serial or None


def lspci(slot: str) -> PciDetails:
    text = run("lspci", "-Dkvmmnns", slot)
    return PciDetails() if text is None else parse_lspci(text)


def lsusb(bus: int) -> list[UsbListing]:
    text = run("lsusb", "-s", f"{bus}:")
    return [] if text is None else parse_lsusb(text)


def lsblk() -> list[BlockDevice]:
    text = run("lsblk", "--json", "--nodeps", "--bytes", "--output", "NAME,MODEL,WWN,SERIAL,SIZE")
    return [] if text is None else parse_lsblk(text)


def setpci_serial(slot: str) -> Optional[str]:
    # devices without the capability make the first read fail
    if run("setpci", "-f", "-s", slot, "ECAP_DSN.L") is None:
        return None
    text = run("setpci", "-f", "-s", slot, "ECAP_DSN+08.L", "ECAP_DSN+04.L")
    return None if text is None else parse_setpci(text.splitlines())
