#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

import sys

from .cli import main

sys.exit(main())
