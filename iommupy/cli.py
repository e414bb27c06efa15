#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

"""
Command line interface.

```console
$ iommupy --show-goodput -i 13,14
$ python -m iommupy -m
```
"""

import logging
import sys

import typer

from .config import Options, parse_groups, resolve
from .probe import MissingToolError, require_tools
from .sysfs import SysfsInventory
from .table import render_nodes
from .topology import TopologyBuilder
from .types import Optional

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_MISSING_TOOL = 1
EXIT_USAGE = 3

LOG_FORMAT = "%(levelname)s: %(message)s"

GROUPS_HINT = "'-i' / '--iommu-groups'"

app = typer.Typer(add_completion=False, context_settings={"help_option_names": ["-h", "--help"]})


def click_exception(name: str) -> type:
    """Exception class, by name, of the click flavour typer raises (its own copy or the click package)"""
    return next(cls for cls in typer.BadParameter.__mro__ if cls.__name__ == name)


UsageError = click_exception("UsageError")
ClickException = click_exception("ClickException")


def setup_logging(verbose: bool):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT, stream=sys.stderr)


def build_options(
    iommu_groups: Optional[frozenset[str]] = None,
    max_precision: Optional[int] = None,
    minimal: bool = False,
    **toggles: bool,
) -> Options:
    """Options from the command line. Toggles can only switch a setting on"""
    settings = {name: True for name, value in toggles.items() if value}
    if max_precision is not None:
        settings["max_precision"] = max_precision
    if iommu_groups is not None:
        settings["iommu_groups"] = iommu_groups
    return Options.minimal(**settings) if minimal else Options(**settings)


@app.command()
def enumerate_devices(
    iommu_groups: Optional[str] = typer.Option(
        None, "-i", "--iommu-groups", help="Comma separated list of the IOMMU groups to show (ex: 7,11,13)"
    ),
    max_precision: Optional[int] = typer.Option(
        None, "--max-precision", min=0, help="Maximum number of post-decimal digits [default: 2]"
    ),
    minimal: bool = typer.Option(
        False, "-m", "--minimal", help="Bare minimum to identify PCI devices (precision 0, everything else hidden)"
    ),
    no_descriptions: bool = typer.Option(False, "--no-descriptions", help="Hide vendor and model descriptions"),
    no_headings: bool = typer.Option(False, "--no-headings", help="Hide the column titles"),
    no_pci_bridges: bool = typer.Option(False, "--no-pci-bridges", help="Hide PCI bridges"),
    no_resources: bool = typer.Option(False, "--no-resources", help="Hide the resources and speed columns"),
    no_unique_ids: bool = typer.Option(
        False, "--no-unique-ids", help="Hide serial numbers, WWNs and MAC addresses"
    ),
    no_wrap: bool = typer.Option(False, "--no-wrap", help="Never wrap long cells"),
    only_pci_devices: bool = typer.Option(False, "--only-pci-devices", help="Skip the devices behind PCI devices"),
    show_goodput: bool = typer.Option(False, "--show-goodput", help="Show the link throughput minus encoding overhead"),
    strip_pci_domain: bool = typer.Option(
        False, "--strip-pci-domain", help="Strip the PCI domain from the slots when there is only one"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log debug messages"),
):
    """Enumerate the IOMMU groups and the devices in each of them"""
    setup_logging(verbose)
    groups = None
    if iommu_groups is not None:
        try:
            groups = parse_groups(iommu_groups)
        except ValueError as error:
            raise typer.BadParameter(str(error), param_hint=GROUPS_HINT)
    options = build_options(
        groups,
        max_precision,
        minimal,
        hide_descriptions=no_descriptions,
        hide_headings=no_headings,
        hide_bridges=no_pci_bridges,
        hide_bridge_devices=no_pci_bridges,
        hide_resources=no_resources,
        hide_unique_ids=no_unique_ids,
        no_wrap=no_wrap,
        only_pci_devices=only_pci_devices,
        show_goodput=show_goodput,
        strip_pci_domain=strip_pci_domain,
    )

    try:
        require_tools()
    except MissingToolError as error:
        log.error("%s", error)
        raise typer.Exit(EXIT_MISSING_TOOL)

    inventory = SysfsInventory()
    options = resolve(options, inventory)
    log.debug("enumerating %r with %s", inventory, options)
    output = render_nodes(TopologyBuilder.from_inventory(inventory, options), options)
    if output:
        typer.echo(output)
    return EXIT_OK


def main(args=None) -> int:
    try:
        result = app(args=args, prog_name="iommupy", standalone_mode=False)
    except UsageError as error:
        error.show()
        return EXIT_USAGE
    except ClickException as error:
        error.show()
        return error.exit_code
    return EXIT_OK if result is None else result


if __name__ == "__main__":
    sys.exit(main())
