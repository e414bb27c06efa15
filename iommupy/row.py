#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

"""Conversion of topology nodes into fixed shape rows of display cells"""

import enum

from .topology import Node, Resource
from .types import Iterable, Iterator, NamedTuple, Optional, Union
from .units import DEFAULT_PRECISION, Measure
from .util import pluralize


class Style(enum.Enum):
    """Emphasis of a row. Resolved into escape sequences only when rendering"""

    BOLD = "\x1b[1m"
    UNDERLINE = "\x1b[4m"
    HIGHLIGHT = "\x1b[30m\x1b[103m"  # black on bright yellow


RESET = "\x1b[0m"

ROOT_STYLES = (Style.BOLD, Style.UNDERLINE)
HIGHLIGHT_STYLES = (Style.HIGHLIGHT,)


def escape(styles: Iterable[Style]) -> str:
    """Escape sequence starting all the given styles, in declaration order"""
    active = set(styles)
    return "".join(style.value for style in Style if style in active)


class Row(NamedTuple):
    identifier: str
    parent: str
    heading: str
    code: str
    flags: str
    resources: str
    speed: str
    goodput: str
    driver: str
    description: str
    styles: tuple[Style, ...] = ()


HEADINGS = Row(
    identifier="",
    parent="",
    heading="Identifiers",
    code="Code",
    flags="",
    resources="Resources",
    speed="Nominal Speed",
    goodput="Goodput",
    driver="Driver",
    description="Description",
)


class RowFormatter:
    """Turns nodes into rows: unit conversion, pluralization and emphasis"""

    def __init__(self, precision: int = DEFAULT_PRECISION):
        self.precision = precision

    def measure(self, value: Union[str, Measure, None]) -> str:
        if value is None:
            return ""
        if isinstance(value, Measure):
            return value.format(self.precision)
        return value

    def resources(self, value: Union[Resource, Measure, None]) -> str:
        if isinstance(value, Resource):
            if not value.count:
                return ""
            return f"{value.count} {pluralize(value.noun, value.count)}".strip()
        return self.measure(value)

    def goodput(self, value: Optional[Measure]) -> str:
        text = self.measure(value)
        return f"({text})" if text else ""

    def styles(self, node: Node) -> tuple[Style, ...]:
        styles = ()
        if node.is_root:
            styles += ROOT_STYLES
        if node.is_highlighted:
            styles += HIGHLIGHT_STYLES
        return styles

    def format(self, node: Node) -> Row:
        heading = f"{node.heading} ({node.serial})" if node.serial else node.heading
        return Row(
            identifier=node.id,
            parent=node.parent_id,
            heading=heading,
            code=node.code,
            flags=" ".join(node.flags),
            resources=self.resources(node.resources),
            speed=self.measure(node.speed),
            goodput=self.goodput(node.goodput),
            driver=node.driver,
            description=node.description,
            styles=self.styles(node),
        )

    def iter_rows(self, nodes: Iterable[Node]) -> Iterator[Row]:
        return (self.format(node) for node in nodes)
