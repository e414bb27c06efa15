#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

"""
Read only access to the host device namespace.

An [`Inventory`][iommupy.inventory.Inventory] exposes the sysfs like
hierarchy (paths are POSIX strings relative to the sysfs mount point) and
the results of the external probes. The topology walk only talks to this
interface so it can run against the real system
([`SysfsInventory`][iommupy.sysfs.SysfsInventory]) or against an in memory
one ([`MemoryInventory`][iommupy.memory.MemoryInventory]).
"""

import posixpath

from .types import NamedTuple, Optional

IOMMU_GROUPS_PATH = "kernel/iommu_groups"
PCI_DEVICES_PATH = "bus/pci/devices"
USB_DEVICES_PATH = "bus/usb/devices"
DEVICES_PATH = "devices"


def join(*parts: str) -> str:
    return posixpath.join(*parts)


class Capabilities(NamedTuple):
    """Availability of each external probe"""

    pci_details: bool = True
    usb_devices: bool = True
    block_devices: bool = True
    pci_serial: bool = True


class PciDetails(NamedTuple):
    vendor: str = ""
    vendor_id: str = ""
    device: str = ""
    device_id: str = ""
    driver: str = ""

    @property
    def code(self) -> str:
        """vendor:device code (ex: 8086:3e92)"""
        if self.vendor_id or self.device_id:
            return f"{self.vendor_id}:{self.device_id}"
        return ""


class UsbListing(NamedTuple):
    """One device of a USB bus as reported by the USB probe"""

    device_number: int
    code: str
    description: str = ""


class BlockDevice(NamedTuple):
    name: str
    model: str = ""
    wwn: str = ""
    serial: str = ""
    size: Optional[int] = None


class Inventory:
    """Base for a device inventory. Concrete sub-classes implement every method"""

    capabilities: Capabilities = Capabilities()

    def list_children(self, path: str, pattern: str = "*", exclude: Optional[str] = None) -> list[str]:
        """
        Names of the sub-directories of path (symbolic links followed) matching
        the shell pattern and not matching exclude, in natural order.
        A missing path has no children.
        """
        raise NotImplementedError

    def read_attribute(self, path: str) -> Optional[str]:
        """Stripped contents of an attribute file or None if it cannot be read"""
        raise NotImplementedError

    def is_readable(self, path: str) -> bool:
        raise NotImplementedError

    def exists(self, path: str) -> bool:
        raise NotImplementedError

    def link_name(self, path: str) -> Optional[str]:
        """Base name of the target of a symbolic link or None if path is not a link"""
        raise NotImplementedError

    def pci_details(self, slot: str) -> PciDetails:
        raise NotImplementedError

    def usb_devices(self, bus: int) -> list[UsbListing]:
        """Devices of the given USB bus, ordered by device number"""
        raise NotImplementedError

    def block_devices(self) -> list[BlockDevice]:
        raise NotImplementedError

    def pci_serial(self, slot: str) -> Optional[str]:
        """Device serial number from the PCI config space, if the device has one"""
        raise NotImplementedError
