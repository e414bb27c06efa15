#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

from pathlib import Path
from unittest import mock

import pytest

from iommupy import mounts

MOUNTS_SIMPLE = """\
sysfs /sys sysfs rw,nosuid,nodev,noexec,relatime 0 0
tmpfs /run tmpfs rw,nosuid,nodev,noexec,relatime,size=9861912k,mode=755,inode64 0 0
configfs /sys/kernel/config configfs rw,nosuid,nodev,noexec,relatime 0 0"""

MOUNTS_CONTAINER = """\
overlay / overlay rw,relatime,lowerdir=/var/lib/docker/overlay2/l/E3ZZ37L6ATZCOLMPEAD3NQDIFL 0 0
proc /proc proc rw,nosuid,nodev,noexec,relatime 0 0
tmpfs /dev tmpfs rw,nosuid,size=65536k,mode=755,inode64 0 0
sysfs /host/sys sysfs ro,nosuid,nodev,noexec,relatime 0 0"""

MOUNTS_NO_SYSFS = """\
proc /proc proc rw,nosuid,nodev,noexec,relatime 0 0
tmpfs /dev tmpfs rw,nosuid,size=65536k,mode=755,inode64 0 0"""


@pytest.fixture(autouse=True)
def clear_cache():
    mounts.cache.cache_clear()
    mounts.get_mount_point.cache_clear()
    yield
    mounts.cache.cache_clear()
    mounts.get_mount_point.cache_clear()


def test_gen_read():
    with mock.patch("iommupy.mounts.Path.read_text", return_value=MOUNTS_SIMPLE):
        result = list(mounts.gen_read())
        assert len(result) == 3
        assert result[0] == mounts.MountInfo("sysfs", "/sys", "sysfs", "rw,nosuid,nodev,noexec,relatime".split(","))

    with mock.patch("iommupy.mounts.Path.read_text", return_value=MOUNTS_CONTAINER):
        result = list(mounts.gen_read())
        assert len(result) == MOUNTS_CONTAINER.count("\n") + 1


def test_read_from_cache():
    with mock.patch("iommupy.mounts.Path.read_text", return_value=MOUNTS_SIMPLE):
        result = list(mounts.cache())
        assert len(result) == 3

    with mock.patch("iommupy.mounts.Path.read_text", return_value=MOUNTS_CONTAINER):
        result = list(mounts.cache())
        assert len(result) == 3


def test_get_mount_point():
    with mock.patch("iommupy.mounts.Path.read_text", return_value=MOUNTS_SIMPLE):
        assert mounts.get_mount_point("sysfs") == Path("/sys")
        assert mounts.get_mount_point("sysfs", "tmpfs") is None
        assert mounts.get_mount_point("tmpfs", "sysfs") is None


def test_sysfs():
    with mock.patch("iommupy.mounts.Path.read_text", return_value=MOUNTS_SIMPLE):
        assert mounts.sysfs() == Path("/sys")


def test_sysfs_elsewhere():
    with mock.patch("iommupy.mounts.Path.read_text", return_value=MOUNTS_CONTAINER):
        assert mounts.sysfs() == Path("/host/sys")


def test_sysfs_default():
    with mock.patch("iommupy.mounts.Path.read_text", return_value=MOUNTS_NO_SYSFS):
        assert mounts.sysfs() == mounts.DEFAULT_SYSFS_PATH


def test_sysfs_without_proc():
    with mock.patch("iommupy.mounts.Path.read_text", side_effect=FileNotFoundError("/proc/mounts")):
        assert mounts.cache() == ()
        assert mounts.sysfs() == Path("/sys")
