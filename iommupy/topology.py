#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

"""
Topology walk: IOMMU groups, the PCI devices in each group and the USB,
ATA/SCSI, NVMe and network devices hanging off each PCI device.

The walk produces a flat sequence of [`Node`][iommupy.topology.Node] in
pre-order: a node always comes before any of its descendants and its
`parent_id` is the `id` of a node that was already produced.

```python
from iommupy.config import Options
from iommupy.sysfs import SysfsInventory
from iommupy.topology import TopologyBuilder

builder = TopologyBuilder.from_inventory(SysfsInventory(), Options(show_goodput=True))
for node in builder:
    print(node.id, node.heading)
```
"""

import dataclasses
import logging
import posixpath
import types

from .config import PASSTHROUGH_DRIVER, Options, is_bridge_class
from .goodput import UNKNOWN_SPEED, pcie_goodput, sata_goodput, usb_goodput
from .inventory import (
    IOMMU_GROUPS_PATH,
    PCI_DEVICES_PATH,
    USB_DEVICES_PATH,
    BlockDevice,
    Inventory,
    PciDetails,
    UsbListing,
    join,
)
from .types import Callable, Iterator, Mapping, NamedTuple, Optional, Union
from .units import Measure, bits_per_second, sectors_to_bytes
from .util import join_words

log = logging.getLogger(__name__)

PCI_SLOT_PATTERN = "????:??:??.?"
FLAG_TAG = "[R]"

BlockDeviceIndex = Mapping[str, BlockDevice]
UsbIdentityIndex = Mapping[str, str]

EMPTY_INDEX = types.MappingProxyType({})


class Resource(NamedTuple):
    """A countable resource (ex: 4 lanes)"""

    count: str
    noun: str


@dataclasses.dataclass(frozen=True)
class Node:
    """One row of the tree"""

    id: str
    parent_id: str = ""
    heading: str = ""
    serial: str = ""
    code: str = ""
    flags: tuple[str, ...] = ()
    resources: Union[Resource, Measure, None] = None
    speed: Union[str, Measure, None] = None
    goodput: Optional[Measure] = None
    driver: str = ""
    description: str = ""

    @property
    def is_root(self) -> bool:
        return not self.parent_id

    @property
    def is_highlighted(self) -> bool:
        """Tells if the device is bound to the passthrough driver"""
        return self.driver == PASSTHROUGH_DRIVER


def usb_key(bus: int, device: int) -> str:
    return f"{bus}-{device}"


def read_int(inventory: Inventory, path: str, base: int = 10) -> Optional[int]:
    text = inventory.read_attribute(path)
    if not text:
        return None
    try:
        return int(text, base)
    except ValueError:
        log.debug("%s is not a number: %r", path, text)
        return None


def build_block_device_index(inventory: Inventory) -> BlockDeviceIndex:
    """Block device name to its probed properties"""
    if not inventory.capabilities.block_devices:
        return EMPTY_INDEX
    return types.MappingProxyType({device.name: device for device in inventory.block_devices()})


def build_usb_identity_index(inventory: Inventory) -> UsbIdentityIndex:
    """"<bus>-<device>" number to the USB device path"""
    index = {}
    for name in inventory.list_children(USB_DEVICES_PATH, "*-*", "*-*:*"):
        path = join(USB_DEVICES_PATH, name)
        bus = read_int(inventory, join(path, "busnum"))
        device = read_int(inventory, join(path, "devnum"))
        if bus is not None and device is not None:
            index[usb_key(bus, device)] = path
    return types.MappingProxyType(index)


def resource(count: Optional[str], noun: str) -> Optional[Resource]:
    count = count.strip() if count else ""
    return Resource(count, noun) if count else None


def strip_domain(slot: str) -> str:
    """01:23.4 from 0000:01:23.4"""
    return slot.split(":", 1)[1] if slot.count(":") == 2 else slot


class TopologyBuilder:
    """
    Walks the inventory and yields the nodes of the device tree.

    The lookup tables are built once, before the walk, and are never
    modified by it.
    """

    def __init__(
        self,
        inventory: Inventory,
        options: Options = Options(),
        block_index: BlockDeviceIndex = EMPTY_INDEX,
        usb_index: UsbIdentityIndex = EMPTY_INDEX,
    ):
        self.inventory = inventory
        self.options = options
        self.capabilities = inventory.capabilities
        self.block_index = block_index
        self.usb_index = usb_index

    @classmethod
    def from_inventory(cls, inventory: Inventory, options: Options = Options()) -> "TopologyBuilder":
        """Builder with the lookup tables needed by the given options"""
        if options.only_pci_devices:
            return cls(inventory, options)
        return cls(inventory, options, build_block_device_index(inventory), build_usb_identity_index(inventory))

    def __iter__(self) -> Iterator[Node]:
        return self.iter_nodes()

    def iter_nodes(self) -> Iterator[Node]:
        for group in self.inventory.list_children(IOMMU_GROUPS_PATH):
            yield from self.iter_group(group)

    # helpers

    def read(self, path: str) -> str:
        return self.inventory.read_attribute(path) or ""

    def unique_id(self, value: Optional[str]) -> str:
        return "" if self.options.hide_unique_ids or not value else value.strip()

    def description(self, *words: Optional[str]) -> str:
        return "" if self.options.hide_descriptions else join_words(*words)

    def goodput(self, lookup: Callable[..., Optional[Measure]], *args) -> Optional[Measure]:
        return lookup(*args) if self.options.show_goodput else None

    def is_bridge(self, slot: str) -> bool:
        return is_bridge_class(self.inventory.read_attribute(join(PCI_DEVICES_PATH, slot, "class")))

    # IOMMU groups and PCI devices

    def iter_group(self, group: str) -> Iterator[Node]:
        if self.options.restrict_groups and group not in self.options.iommu_groups:
            return
        # fixed width hex addresses: string order is address order
        slots = sorted(self.inventory.list_children(join(IOMMU_GROUPS_PATH, group, "devices"), PCI_SLOT_PATTERN))
        if self.options.hide_bridges and all(self.is_bridge(slot) for slot in slots):
            log.debug("skipping IOMMU group %s: no device other than PCI bridges", group)
            return
        yield Node(id=group, heading=f"IOMMU group #{group}")
        for slot in slots:
            yield from self.iter_pci_device(group, slot)

    def iter_pci_device(self, parent: str, slot: str) -> Iterator[Node]:
        if self.options.hide_bridge_devices and self.is_bridge(slot):
            log.debug("skipping PCI bridge %s", slot)
            return
        path = join(PCI_DEVICES_PATH, slot)
        details = self.inventory.pci_details(slot) if self.capabilities.pci_details else PciDetails()
        serial = None
        if not self.options.hide_unique_ids and self.capabilities.pci_serial:
            serial = self.inventory.pci_serial(slot)
        lanes = speed = goodput = None
        link_speed, link_width = join(path, "current_link_speed"), join(path, "current_link_width")
        if self.inventory.is_readable(link_speed) and self.inventory.is_readable(link_width):
            width, label = self.read(link_width), self.read(link_speed)
            lanes = resource(width, "lane")
            speed = label or None
            goodput = self.goodput(pcie_goodput, label, width)
        node_id = f"{parent}/{slot}"
        yield Node(
            id=node_id,
            parent_id=parent,
            heading=f"Slot {strip_domain(slot) if self.options.strip_pci_domain else slot}",
            serial=self.unique_id(serial),
            code=details.code,
            flags=(FLAG_TAG,) if self.inventory.exists(join(path, "reset")) else (),
            resources=lanes,
            speed=speed,
            goodput=goodput,
            driver=details.driver,
            description=self.description(details.vendor, details.device),
        )
        if not self.options.only_pci_devices:
            yield from self.iter_usb_buses(node_id, path)
            yield from self.iter_ata_ports(node_id, path)
            yield from self.iter_nvme_controllers(node_id, path)
            yield from self.iter_network_interfaces(node_id, path)

    # USB

    def iter_usb_buses(self, parent: str, path: str) -> Iterator[Node]:
        for name in self.inventory.list_children(path, "usb*"):
            bus_path = join(path, name)
            bus = read_int(self.inventory, join(bus_path, "busnum"))
            if bus is None:
                log.debug("skipping USB bus %s: unknown bus number", bus_path)
                continue
            label = self.read(join(bus_path, "speed"))
            node_id = f"{parent}/usb{bus}"
            yield Node(
                id=node_id,
                parent_id=parent,
                heading=f"USB bus #{bus}",
                resources=resource(self.read(join(bus_path, "maxchild")), "port"),
                speed=bits_per_second(label),
                goodput=self.goodput(usb_goodput, label),
            )
            if self.capabilities.usb_devices:
                for listing in self.inventory.usb_devices(bus):
                    yield from self.iter_usb_device(node_id, bus, listing)

    def iter_usb_device(self, parent: str, bus: int, listing: UsbListing) -> Iterator[Node]:
        node_id = f"{parent}/{listing.device_number}"
        heading = f"Device #{listing.device_number}"
        path = self.usb_index.get(usb_key(bus, listing.device_number))
        if path is None:
            yield Node(id=node_id, parent_id=parent, heading=heading, code=listing.code)
            return
        label = self.read(join(path, "speed"))
        yield Node(
            id=node_id,
            parent_id=parent,
            heading=heading,
            serial=self.unique_id(self.inventory.read_attribute(join(path, "serial"))),
            code=listing.code,
            flags=(FLAG_TAG,) if self.read(join(path, "removable")) == "removable" else (),
            resources=resource(self.read(join(path, "bNumInterfaces")), "interface"),
            speed=bits_per_second(label),
            goodput=self.goodput(usb_goodput, label),
            description=self.description(self.read(join(path, "manufacturer")), self.read(join(path, "product"))),
        )
        for name in self.inventory.list_children(path, f"{posixpath.basename(path)}:*"):
            yield from self.iter_usb_interface(node_id, join(path, name))

    def iter_usb_interface(self, parent: str, path: str) -> Iterator[Node]:
        number = read_int(self.inventory, join(path, "bInterfaceNumber"), 16)
        if number is None:
            log.debug("skipping USB interface %s: unknown interface number", path)
            return
        node_id = f"{parent}/{number}"
        yield Node(
            id=node_id,
            parent_id=parent,
            heading=f"Interface #{number}",
            driver=self.inventory.link_name(join(path, "driver")) or "",
        )
        yield from self.iter_storage_hosts(node_id, path)
        yield from self.iter_network_interfaces(node_id, path)

    # ATA, SCSI and NVMe storage

    def ata_link_speed(self, port_path: str) -> Optional[str]:
        """SATA speed of the port. With several links the last known one wins"""
        speed = None
        for link in self.inventory.list_children(port_path, "link*"):
            links_path = join(port_path, link, "ata_link")
            for name in self.inventory.list_children(links_path, "link*"):
                label = self.inventory.read_attribute(join(links_path, name, "sata_spd"))
                if label and label != UNKNOWN_SPEED:
                    speed = label
        return speed

    def iter_ata_ports(self, parent: str, path: str) -> Iterator[Node]:
        for port in self.inventory.list_children(path, "ata*"):
            port_path = join(path, port)
            speed = self.ata_link_speed(port_path)
            yield from self.iter_storage_hosts(parent, port_path, speed, self.goodput(sata_goodput, speed))

    def iter_storage_hosts(
        self, parent: str, path: str, speed: Optional[str] = None, goodput: Optional[Measure] = None
    ) -> Iterator[Node]:
        """Block devices of every SCSI host under path, attached to parent"""
        for host in self.inventory.list_children(path, "host*"):
            host_path = join(path, host)
            for target in self.inventory.list_children(host_path, "target*:*:*"):
                target_path = join(host_path, target)
                for device in self.inventory.list_children(target_path, f"{target.removeprefix('target')}:*"):
                    device_path = join(target_path, device)
                    description = self.description(
                        self.read(join(device_path, "vendor")), self.read(join(device_path, "model"))
                    )
                    block_path = join(device_path, "block")
                    for name in self.inventory.list_children(block_path):
                        yield self.block_device(parent, join(block_path, name), name, speed, goodput, description)

    def block_size(self, path: str, entry: Optional[BlockDevice]) -> Optional[Measure]:
        if entry is not None and entry.size is not None:
            return Measure(entry.size, "B")
        return sectors_to_bytes(self.inventory.read_attribute(join(path, "size")))

    def block_device(
        self,
        parent: str,
        path: str,
        name: str,
        speed: Optional[str],
        goodput: Optional[Measure],
        description: str,
    ) -> Node:
        entry = self.block_index.get(name)
        return Node(
            id=f"{parent}/{name}",
            parent_id=parent,
            heading=f"Block device {name}",
            serial=self.unique_id(entry.serial if entry else None),
            flags=(FLAG_TAG,) if self.read(join(path, "removable")) == "1" else (),
            resources=self.block_size(path, entry),
            speed=speed,
            goodput=goodput,
            description=description,
        )

    def iter_nvme_controllers(self, parent: str, path: str) -> Iterator[Node]:
        nvme_path = join(path, "nvme")
        for controller in self.inventory.list_children(nvme_path, "nvme*"):
            controller_path = join(nvme_path, controller)
            namespaces = self.inventory.list_children(controller_path, f"{controller}n*")
            node_id = f"{parent}/{controller}"
            yield Node(
                id=node_id,
                parent_id=parent,
                heading=f"NVMe interface #{controller.removeprefix('nvme')}",
                serial=self.unique_id(self.inventory.read_attribute(join(controller_path, "serial"))),
                resources=Resource(str(len(namespaces)), "namespace"),
                description=self.description(self.read(join(controller_path, "model"))),
            )
            for namespace in namespaces:
                namespace_path = join(controller_path, namespace)
                entry = self.block_index.get(namespace)
                yield Node(
                    id=f"{parent}/{namespace}",
                    parent_id=node_id,
                    heading=f"Block device {namespace}",
                    serial=self.unique_id(entry.wwn if entry else None),
                    resources=self.block_size(namespace_path, entry),
                )

    # network

    def iter_network_interfaces(self, parent: str, path: str) -> Iterator[Node]:
        net_path = join(path, "net")
        for name in self.inventory.list_children(net_path):
            interface_path = join(net_path, name)
            connections = speed = goodput = None
            if self.read(join(interface_path, "operstate")) == "up":
                connections = Resource("1", "connection")
                mbps = read_int(self.inventory, join(interface_path, "speed"))
                if mbps is not None and mbps > 0:
                    speed = bits_per_second(mbps)
                    goodput = speed if self.options.show_goodput else None
            yield Node(
                id=f"{parent}/net{name}",
                parent_id=parent,
                heading=f"Network {name}",
                serial=self.unique_id(self.inventory.read_attribute(join(interface_path, "address"))),
                resources=connections,
                speed=speed,
                goodput=goodput,
            )
