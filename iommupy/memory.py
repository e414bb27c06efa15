#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

"""
In memory inventory. Useful to replay a snapshot of a host or to exercise
the topology walk without the real sysfs.

```python
from iommupy.memory import MemoryInventory

inventory = MemoryInventory(
    files={
        "bus/pci/devices/0000:00:02.0/class": "0x030000",
    },
    dirs=["kernel/iommu_groups/0/devices/0000:00:02.0"],
)
```
"""

import posixpath

from .inventory import BlockDevice, Capabilities, Inventory, PciDetails, UsbListing
from .types import Collection, Iterable, Mapping, Optional
from .util import match_name, natural_sorted


def normalize(path: str) -> str:
    path = posixpath.normpath(path).strip("/")
    return "" if path == "." else path


class MemoryInventory(Inventory):
    """
    Inventory where the namespace is given as plain data.

    Args:
        files: attribute file path to contents
        dirs: directories (parents of files and links are implicit)
        links: symbolic link path to target path
        unreadable: attribute files which exist but cannot be read
        pci: PCI slot to probe details
        usb: USB bus number to probe listing
        block: block devices reported by the block device probe
        serials: PCI slot to config space serial number
        capabilities: probe availability
    """

    def __init__(
        self,
        files: Optional[Mapping[str, str]] = None,
        dirs: Iterable[str] = (),
        links: Optional[Mapping[str, str]] = None,
        unreadable: Collection[str] = (),
        pci: Optional[Mapping[str, PciDetails]] = None,
        usb: Optional[Mapping[int, list[UsbListing]]] = None,
        block: Iterable[BlockDevice] = (),
        serials: Optional[Mapping[str, str]] = None,
        capabilities: Capabilities = Capabilities(),
    ):
        self.files = {normalize(path): value for path, value in (files or {}).items()}
        self.links = {normalize(path): target for path, target in (links or {}).items()}
        self.unreadable = {normalize(path) for path in unreadable}
        self.dirs = set()
        for path in dirs:
            self._add_dir(normalize(path))
        for path in (*self.files, *self.links, *self.unreadable):
            self._add_dir(posixpath.dirname(path))
        self.pci = dict(pci or {})
        self.usb = dict(usb or {})
        self.block = list(block)
        self.serials = dict(serials or {})
        self.capabilities = capabilities

    def _add_dir(self, path: str):
        while path and path not in self.dirs:
            self.dirs.add(path)
            path = posixpath.dirname(path)

    def list_children(self, path: str, pattern: str = "*", exclude: Optional[str] = None) -> list[str]:
        path = normalize(path)
        names = (
            posixpath.basename(directory)
            for directory in self.dirs
            if posixpath.dirname(directory) == path and match_name(posixpath.basename(directory), pattern, exclude)
        )
        return natural_sorted(names)

    def read_attribute(self, path: str) -> Optional[str]:
        value = self.files.get(normalize(path))
        return None if value is None else value.strip()

    def is_readable(self, path: str) -> bool:
        return normalize(path) in self.files

    def exists(self, path: str) -> bool:
        path = normalize(path)
        return path in self.files or path in self.dirs or path in self.links or path in self.unreadable

    def link_name(self, path: str) -> Optional[str]:
        target = self.links.get(normalize(path))
        return None if target is None else posixpath.basename(target.rstrip("/"))

    def pci_details(self, slot: str) -> PciDetails:
        return self.pci.get(slot, PciDetails())

    def usb_devices(self, bus: int) -> list[UsbListing]:
        return sorted(self.usb.get(bus, ()), key=lambda listing: listing.device_number)

    def block_devices(self) -> list[BlockDevice]:
        return list(self.block)

    def pci_serial(self, slot: str) -> Optional[str]:
        return self.serials.get(slot)
