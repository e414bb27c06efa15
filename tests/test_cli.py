#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

import logging
from unittest import mock

import pytest
import typer

from iommupy import cli
from iommupy.config import Options
from iommupy.inventory import PciDetails
from iommupy.memory import MemoryInventory
from iommupy.probe import MissingToolError

GPU = "0000:01:00.0"
BRIDGE = "0000:00:01.0"


def make_inventory():
    return MemoryInventory(
        files={
            f"bus/pci/devices/{GPU}/class": "0x030000",
            f"bus/pci/devices/{GPU}/current_link_speed": "8.0 GT/s PCIe",
            f"bus/pci/devices/{GPU}/current_link_width": "16",
            f"bus/pci/devices/{GPU}/net/eth0/operstate": "up",
            f"bus/pci/devices/{GPU}/net/eth0/speed": "1000",
            f"bus/pci/devices/{BRIDGE}/class": "0x060400",
        },
        dirs=[
            f"kernel/iommu_groups/1/devices/{GPU}",
            f"kernel/iommu_groups/0/devices/{BRIDGE}",
            "devices/pci0000:00",
        ],
        pci={GPU: PciDetails("NVIDIA Corporation", "10de", "GP104 [GeForce GTX 1080]", "1b80", "vfio-pci")},
    )


@pytest.fixture
def host():
    with mock.patch("iommupy.cli.setup_logging"), mock.patch("iommupy.cli.require_tools") as require_tools, mock.patch(
        "iommupy.cli.SysfsInventory", return_value=make_inventory()
    ), mock.patch("iommupy.config.terminal_width", return_value=200):
        yield require_tools


@pytest.mark.parametrize("option", ["-h", "--help"])
def test_help(host, capsys, option):
    assert cli.main([option]) == 0
    out = capsys.readouterr().out
    assert "--iommu-groups" in out
    assert "--show-goodput" in out
    host.assert_not_called()


def test_unknown_option(host, capsys):
    assert cli.main(["--bogus"]) == 3
    assert "--bogus" in capsys.readouterr().err
    host.assert_not_called()


def test_invalid_groups(host, capsys):
    assert cli.main(["-i", "7,x"]) == 3
    assert "'-i' / '--iommu-groups'" in capsys.readouterr().err
    host.assert_not_called()


def test_negative_precision(host, capsys):
    assert cli.main(["--max-precision=-1"]) == 3
    err = capsys.readouterr().err
    assert "--max-precision" in err
    assert "--iommu-groups" not in err
    host.assert_not_called()


def test_usage_error_types():
    assert issubclass(typer.BadParameter, cli.UsageError)
    assert issubclass(cli.UsageError, cli.ClickException)
    assert not issubclass(typer.Exit, cli.ClickException)


def test_missing_required_tool(host, caplog, capsys):
    host.side_effect = MissingToolError("missing required commands lspci")
    with caplog.at_level(logging.ERROR, logger="iommupy.cli"):
        assert cli.main([]) == 1
    assert "missing required commands lspci" in caplog.text
    assert capsys.readouterr().out == ""


def test_enumerate(host, capsys):
    assert cli.main(["--show-goodput"]) == 0
    out = capsys.readouterr().out
    assert "Identifiers" in out
    assert "Goodput" in out
    assert "IOMMU group #0" in out
    assert "IOMMU group #1" in out
    assert f"Slot {GPU}" in out
    assert "(126.03 Gbps)" in out
    assert "Network eth0" in out
    host.assert_called_once_with()


def test_enumerate_groups(host, capsys):
    assert cli.main(["--iommu-groups", "1", "--no-headings"]) == 0
    out = capsys.readouterr().out
    assert "IOMMU group #0" not in out
    assert "IOMMU group #1" in out
    assert "Identifiers" not in out


def test_no_pci_bridges(host, capsys):
    assert cli.main(["--no-pci-bridges"]) == 0
    out = capsys.readouterr().out
    assert "IOMMU group #0" not in out
    assert BRIDGE not in out


def test_minimal(host, capsys):
    assert cli.main(["-m"]) == 0
    out = capsys.readouterr().out
    assert "Identifiers" not in out
    assert "Slot 01:00.0" in out
    assert "NVIDIA" not in out
    assert "Network" not in out
    assert "lanes" not in out
    assert "10de:1b80" in out


def test_build_options():
    assert cli.build_options() == Options()
    groups = frozenset({"7", "11"})
    options = cli.build_options(groups, 3, hide_bridges=True, hide_bridge_devices=True, show_goodput=False)
    assert options == Options(iommu_groups=groups, max_precision=3, hide_bridges=True, hide_bridge_devices=True)


def test_build_options_minimal():
    assert cli.build_options(minimal=True) == Options.minimal()
    options = cli.build_options(max_precision=2, minimal=True, show_goodput=True)
    assert options == Options.minimal(max_precision=2, show_goodput=True)


def test_build_options_invalid_precision():
    with pytest.raises(ValueError):
        cli.build_options(max_precision=-1)


@pytest.mark.parametrize("verbose, level", [(False, logging.WARNING), (True, logging.DEBUG)])
def test_setup_logging(verbose, level):
    with mock.patch("iommupy.cli.logging.basicConfig") as basic_config:
        cli.setup_logging(verbose)
    assert basic_config.call_args.kwargs["level"] == level
