#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

import dataclasses
import logging
import shutil

from .inventory import DEVICES_PATH, Inventory
from .types import Optional
from .units import DEFAULT_PRECISION

log = logging.getLogger(__name__)

PASSTHROUGH_DRIVER = "vfio-pci"
PCI_BRIDGE_CLASS_PREFIX = "0x06"
PCI_DOMAIN_BUS_PATTERN = "pci????:??"


def terminal_width() -> int:
    return shutil.get_terminal_size().columns


@dataclasses.dataclass(frozen=True)
class Options:
    """
    What to enumerate and how to show it.

    Attributes:
        iommu_groups: when given, only these IOMMU groups are enumerated
        max_precision: maximum post-decimal digits of computed figures
        hide_bridges: omit IOMMU groups which only contain PCI bridges
        hide_bridge_devices: omit the PCI bridge rows (and what hangs off them)
        width: target width used when wrapping (None: terminal width)
    """

    iommu_groups: Optional[frozenset[str]] = None
    max_precision: int = DEFAULT_PRECISION
    hide_descriptions: bool = False
    hide_headings: bool = False
    hide_bridges: bool = False
    hide_bridge_devices: bool = False
    hide_resources: bool = False
    hide_unique_ids: bool = False
    no_wrap: bool = False
    only_pci_devices: bool = False
    show_goodput: bool = False
    strip_pci_domain: bool = False
    width: Optional[int] = None

    def __post_init__(self):
        if self.max_precision < 0:
            raise ValueError("max precision must be a positive integer")

    @classmethod
    def minimal(cls, **kwargs) -> "Options":
        """The bare minimum needed to identify PCI devices"""
        preset = {
            "max_precision": 0,
            "hide_descriptions": True,
            "hide_headings": True,
            "hide_bridges": True,
            "hide_bridge_devices": True,
            "hide_resources": True,
            "hide_unique_ids": True,
            "only_pci_devices": True,
            "strip_pci_domain": True,
        }
        preset.update(kwargs)
        return cls(**preset)

    @property
    def restrict_groups(self) -> bool:
        return self.iommu_groups is not None

    @property
    def target_width(self) -> int:
        return terminal_width() if self.width is None else self.width

    def replace(self, **kwargs) -> "Options":
        return dataclasses.replace(self, **kwargs)


def parse_groups(text: str) -> frozenset[str]:
    """
    IOMMU group allow list from a comma separated text (ex: "7,11,13").

    Raises:
        ValueError if any of the groups is not a number
    """
    groups = [group.strip() for group in text.split(",")]
    for group in groups:
        if not group.isdigit():
            raise ValueError(f"invalid IOMMU group {group!r}")
    return frozenset(str(int(group)) for group in groups)


def pci_domains(inventory: Inventory) -> list[str]:
    """PCI domains (ex: "0000") from the PCI root buses"""
    buses = inventory.list_children(DEVICES_PATH, PCI_DOMAIN_BUS_PATTERN)
    return sorted({bus[3:7] for bus in buses})


def resolve(options: Options, inventory: Inventory) -> Options:
    """
    Options with the ones that cannot apply on this host disabled.
    Each disabled option is reported once.
    """
    if options.strip_pci_domain:
        domains = pci_domains(inventory)
        if len(domains) > 1:
            log.warning("multiple PCI domains found: %s. Stripping PCI domain is disabled", ", ".join(domains))
            options = options.replace(strip_pci_domain=False)
    return options


def is_bridge_class(class_code: Optional[str]) -> bool:
    return bool(class_code) and class_code.lower().startswith(PCI_BRIDGE_CLASS_PREFIX)
