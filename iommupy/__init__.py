#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

"""Enumerate IOMMU groups and the device topology hanging off each PCI device."""

__version__ = "0.1.0"
