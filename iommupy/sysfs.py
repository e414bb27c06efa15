#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

"""
Inventory of the running host: sysfs for the device namespace and the
external tools in [`probe`][iommupy.probe] for the details sysfs doesn't have.

```python
from iommupy.sysfs import SysfsInventory

inventory = SysfsInventory()
print(inventory.list_children("kernel/iommu_groups"))
```
"""

import logging
import os
import pathlib

from . import mounts, probe
from .inventory import BlockDevice, Capabilities, Inventory, PciDetails, UsbListing
from .types import Optional, PathLike
from .util import match_name, natural_sorted

log = logging.getLogger(__name__)


class SysfsInventory(Inventory):
    """
    Inventory backed by the sysfs mount and the external probe tools.

    Attributes:
        root (pathlib.Path): sysfs mount point
        capabilities (Capabilities): which probe tools are available
    """

    def __init__(self, root: Optional[PathLike] = None, capabilities: Optional[Capabilities] = None):
        self.root = pathlib.Path(mounts.sysfs() if root is None else root)
        self.capabilities = probe.detect_capabilities() if capabilities is None else capabilities

    def __repr__(self):
        return f"{type(self).__name__}({self.root})"

    def _path(self, path: str) -> pathlib.Path:
        return self.root / path

    def list_children(self, path: str, pattern: str = "*", exclude: Optional[str] = None) -> list[str]:
        directory = self._path(path)
        try:
            entries = list(directory.iterdir())
        except OSError as error:
            log.debug("cannot list %s: %s", directory, error)
            return []
        names = (entry.name for entry in entries if match_name(entry.name, pattern, exclude) and entry.is_dir())
        return natural_sorted(names)

    def read_attribute(self, path: str) -> Optional[str]:
        try:
            with self._path(path).open() as fobj:
                return fobj.read().strip()
        except (OSError, UnicodeDecodeError) as error:
            log.debug("cannot read %s: %s", path, error)
            return None

    def is_readable(self, path: str) -> bool:
        full_path = self._path(path)
        return full_path.is_file() and os.access(full_path, os.R_OK)

    def exists(self, path: str) -> bool:
        return self._path(path).exists()

    def link_name(self, path: str) -> Optional[str]:
        try:
            return pathlib.PurePath(os.readlink(self._path(path))).name
        except OSError:
            return None

    def pci_details(self, slot: str) -> PciDetails:
        return probe.lspci(slot)

    def usb_devices(self, bus: int) -> list[UsbListing]:
        return probe.lsusb(bus)

    def block_devices(self) -> list[BlockDevice]:
        return probe.lsblk()

    def pci_serial(self, slot: str) -> Optional[str]:
        return probe.setpci_serial(slot)
