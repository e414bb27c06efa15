#
# This file is part of the iommupy project
#
# Copyright (c) 2025 The iommupy authors
# Distributed under the GPLv3 license. See LICENSE for more info.

"""
Tree table rendering.

The tree is rebuilt from the flat (identifier, parent) stream of the rows:
a row without a parent starts a new tree, depth and siblings are derived.
The aligned layout itself is done by
[beautifultable](https://github.com/pri22296/beautifultable).
"""

import logging
import textwrap

from beautifultable import BeautifulTable

from .config import Options
from .row import HEADINGS, RESET, Row, RowFormatter, escape
from .topology import Node
from .types import Iterable, NamedTuple, Optional, Sequence

log = logging.getLogger(__name__)

BRANCH = "├─"
LAST_BRANCH = "└─"
PIPE = "│ "
SPACE = "  "

GAP = 2

RESOURCES = "resources"
GOODPUT = "goodput"
DESCRIPTION = "description"


class Column(NamedTuple):
    field: str
    right: bool = False
    group: Optional[str] = None


COLUMNS = (
    Column("heading"),
    Column("code"),
    Column("flags"),
    Column("resources", right=True, group=RESOURCES),
    Column("speed", right=True, group=RESOURCES),
    Column("goodput", right=True, group=GOODPUT),
    Column("driver"),
    Column("description", group=DESCRIPTION),
)

# wrap order and minimum width of the columns allowed to wrap
SHRINKABLE = (("description", 20), ("heading", 24))


def tree_guides(links: Sequence[tuple[str, str]]) -> list[str]:
    """
    Tree guide prefix for each (identifier, parent) pair.

    A pair with no parent, or with a parent which was not seen before it,
    is the root of a new tree and has no guide.
    """
    index = {}
    parents: list[Optional[int]] = []
    last_child = {}
    for position, (identifier, parent) in enumerate(links):
        parent_position = index.get(parent) if parent else None
        if parent and parent_position is None:
            log.debug("row %r has unknown parent %r", identifier, parent)
        parents.append(parent_position)
        if parent_position is not None:
            last_child[parent_position] = position
        if identifier:
            index.setdefault(identifier, position)
    last = set(last_child.values())
    guides = []
    for position, parent_position in enumerate(parents):
        if parent_position is None:
            guides.append("")
            continue
        parts = [LAST_BRANCH if position in last else BRANCH]
        ancestor = parent_position
        while parents[ancestor] is not None:
            parts.append(SPACE if ancestor in last else PIPE)
            ancestor = parents[ancestor]
        guides.append("".join(reversed(parts)))
    return guides


def continuation(guide: str) -> str:
    """Guide of the wrapped lines of a row: its branch turns into a bar or a blank"""
    if guide.endswith(LAST_BRANCH):
        return guide[: -len(LAST_BRANCH)] + SPACE
    if guide.endswith(BRANCH):
        return guide[: -len(BRANCH)] + PIPE
    return guide


class TreeTableRenderer:
    """
    Args:
        hidden_groups: column groups left out of the table
        wrap: wrap the description (and, if needed, the heading) to fit width
        width: target table width
        headings: start the table with the column titles
    """

    def __init__(self, hidden_groups: Iterable[str] = (), wrap: bool = True, width: int = 80, headings: bool = True):
        self.hidden_groups = frozenset(hidden_groups)
        self.wrap = wrap
        self.width = width
        self.headings = headings

    @classmethod
    def from_options(cls, options: Options) -> "TreeTableRenderer":
        hidden = set()
        if options.hide_resources:
            hidden.add(RESOURCES)
        if not options.show_goodput:
            hidden.add(GOODPUT)
        if options.hide_descriptions:
            hidden.add(DESCRIPTION)
        return cls(hidden, wrap=not options.no_wrap, width=options.target_width, headings=not options.hide_headings)

    @property
    def columns(self) -> tuple[Column, ...]:
        return tuple(column for column in COLUMNS if column.group not in self.hidden_groups)

    def fit(self, natural: list[int]) -> list[int]:
        """Column widths. Shrinks the wrappable columns when the table is too wide"""
        widths = list(natural)
        if not self.wrap:
            return widths
        overflow = sum(widths) + GAP * len(widths) - self.width
        fields = [column.field for column in self.columns]
        for field, minimum in SHRINKABLE:
            if overflow <= 0:
                break
            if field in fields:
                position = fields.index(field)
                cut = min(overflow, max(widths[position] - minimum, 0))
                widths[position] -= cut
                overflow -= cut
        return widths

    def wrap_cell(self, text: str, width: int) -> list[str]:
        """Lines of a cell, broken at word boundaries"""
        if not self.wrap or len(text) <= width:
            return [text]
        return textwrap.wrap(text, max(width, 1), break_on_hyphens=False) or [""]

    def layout(self, row: Row, guide: str, widths: Sequence[int]) -> list[tuple[str, list[str]]]:
        """
        Physical lines of a row as (guide, cells) pairs. The first line
        carries the row guide, the wrapped ones its continuation.
        """
        columns = self.columns
        heading = self.wrap_cell(row.heading, widths[0] - len(guide))
        others = [self.wrap_cell(getattr(row, column.field), width) for column, width in zip(columns[1:], widths[1:])]
        height = max(len(cell) for cell in (heading, *others))
        lines = []
        for number in range(height):
            prefix = guide if number == 0 else continuation(guide)
            cells = [cell[number] if number < len(cell) else "" for cell in (heading, *others)]
            cells[0] = prefix + cells[0]
            lines.append((prefix, cells))
        return lines

    def render(self, rows: Iterable[Row]) -> str:
        rows = list(rows)
        guides = tree_guides([(row.identifier, row.parent) for row in rows])
        if self.headings:
            rows.insert(0, HEADINGS)
            guides.insert(0, "")
        if not rows:
            return ""
        columns = self.columns
        plain = [
            [guide + row.heading] + [getattr(row, column.field) for column in columns[1:]]
            for row, guide in zip(rows, guides)
        ]
        natural = [max(max(len(cells[position]) for cells in plain), 1) for position in range(len(columns))]
        widths = self.fit(natural)

        # cells are laid out as plain text, styles go on the finished lines
        table = BeautifulTable(maxwidth=sum(widths) + GAP * len(widths), detect_numerics=False)
        table.set_style(BeautifulTable.STYLE_NONE)
        emphasis = []
        for row, guide in zip(rows, guides):
            for prefix, cells in self.layout(row, guide, widths):
                table.rows.append(cells)
                emphasis.append((prefix, escape(row.styles)))
        table.columns.alignment = [
            BeautifulTable.ALIGN_RIGHT if column.right else BeautifulTable.ALIGN_LEFT for column in columns
        ]
        table.columns.padding_left = 0
        table.columns.padding_right = GAP
        table.columns.width = [width + GAP for width in widths]
        table.columns.width_exceed_policy = BeautifulTable.WEP_WRAP
        lines = []
        for line, (prefix, start) in zip(str(table).splitlines(), emphasis):
            line = line.rstrip()
            if start:
                line = prefix + start + line[len(prefix) :] + RESET
            lines.append(line)
        return "\n".join(lines)


def render_nodes(nodes: Iterable[Node], options: Options = Options()) -> str:
    """Tree table of the given topology nodes"""
    rows = RowFormatter(options.max_precision).iter_rows(nodes)
    return TreeTableRenderer.from_options(options).render(rows)
