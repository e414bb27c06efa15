#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

import collections.abc
import fractions
import os
import pathlib
import typing

Union = typing.Union
Optional = typing.Optional
PathLike = Union[str, pathlib.Path, os.PathLike]

Iterable = collections.abc.Iterable
Iterator = collections.abc.Iterator
Generator = typing.Generator
Callable = collections.abc.Callable
Sequence = collections.abc.Sequence
Collection = collections.abc.Collection
Mapping = collections.abc.Mapping
NamedTuple = typing.NamedTuple

Rational = Union[int, fractions.Fraction]
RationalLike = Union[int, fractions.Fraction, str]
