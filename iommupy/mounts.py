#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

import functools
from pathlib import Path

from .types import Generator, NamedTuple, Optional

PROC_PATH = Path("/proc")
MOUNTS_PATH: Path = PROC_PATH / "mounts"
DEFAULT_SYSFS_PATH = Path("/sys")


class MountInfo(NamedTuple):
    dev_type: str
    mount_point: str
    fs_type: str
    attrs: list[str]


def gen_read() -> Generator[MountInfo, None, None]:
    data = MOUNTS_PATH.read_text()
    for line in data.splitlines():
        dev_type, mount_point, fs_type, attrs, *_ = line.split()
        yield MountInfo(dev_type, mount_point, fs_type, attrs.split(","))


@functools.cache
def cache() -> tuple[MountInfo, ...]:
    try:
        return tuple(gen_read())
    except OSError:
        return ()


@functools.cache
def get_mount_point(dev_type, fs_type=None) -> Optional[Path]:
    if fs_type is None:
        fs_type = dev_type
    for _dev_type, mount_point, _fs_type, *_ in cache():
        if dev_type == _dev_type and fs_type == _fs_type:
            return Path(mount_point)


def sysfs() -> Path:
    """sysfs mount point. Defaults to /sys when /proc/mounts doesn't tell"""
    return get_mount_point("sysfs") or DEFAULT_SYSFS_PATH
