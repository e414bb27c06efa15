#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

"""Utility functions used by the library. Mostly for internal usage"""

import fnmatch
import re

from .types import Iterable, Optional

_DIGITS = re.compile(r"(\d+)")


def natural_key(text: str) -> tuple:
    """
    Sort key that compares embedded numeric runs numerically so that
    "dev2" sorts before "dev10".

    Text runs compare case sensitively, like `sort -V` does.
    """
    parts = _DIGITS.split(text)
    return tuple((0, int(part), part) if index % 2 else (1, 0, part) for index, part in enumerate(parts))


def natural_sorted(names: Iterable[str]) -> list[str]:
    """Names sorted in natural (numeric aware) order"""
    return sorted(names, key=natural_key)


def match_name(name: str, pattern: str = "*", exclude: Optional[str] = None) -> bool:
    """Tells if name matches the shell pattern and not the exclude pattern"""
    if not fnmatch.fnmatchcase(name, pattern):
        return False
    return exclude is None or not fnmatch.fnmatchcase(name, exclude)


def pluralize(noun: str, count: Optional[str]) -> str:
    """
    Noun with a trailing "s" unless count is exactly "1".
    Returns an empty string when either noun or count are missing.
    """
    if not noun or not count:
        return ""
    return noun if count == "1" else f"{noun}s"


def join_words(*words: Optional[str]) -> str:
    """Join the non empty words with a single space"""
    return " ".join(word.strip() for word in words if word and word.strip())
