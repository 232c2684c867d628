#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/ast/builder.py
"""Builder helper classes for constructing IR structures.

These builders handle the bookkeeping of nested lists and tables so that
readers can focus on recognizing markup. Marker-count list dialects (Jira
``**``, Textile ``##``, AsciiDoc ``***``) feed items into ``ListBuilder`` with
their depth; table dialects feed rows into ``TableBuilder``.

"""

from __future__ import annotations

from typing import Optional, Sequence, Union

from docweave.ast import kinds, props
from docweave.ast.document import Document, Resource, SourceInfo
from docweave.ast.nodes import Node, Properties, text_node

CellContent = Union[str, Node, Sequence[Node]]


def _list_node(ordered: bool, start: Optional[int]) -> Node:
    node = Node(kinds.LIST).prop(props.ORDERED, ordered)
    if ordered and start is not None and start != 1:
        node.prop(props.START, start)
    return node


class ListBuilder:
    """Helper for building nested list structures from depth-tagged items.

    Parameters
    ----------
    tight : bool or None, default None
        When set, stored as the ``tight`` property on every list created

    Examples
    --------
    >>> builder = ListBuilder()
    >>> item = builder.add_item(1, False, [text_node("Item 1")])
    >>> item = builder.add_item(2, False, [text_node("Nested")])
    >>> item = builder.add_item(1, False, [text_node("Item 2")])
    >>> [lst.kind for lst in builder.lists]
    ['list']

    """

    def __init__(self, tight: Optional[bool] = None):
        self.lists: list[Node] = []
        self._stack: list[tuple[Node, int]] = []
        self._tight = tight

    def _new_list(self, ordered: bool, start: Optional[int]) -> Node:
        node = _list_node(ordered, start)
        if self._tight is not None:
            node.prop(props.TIGHT, self._tight)
        return node

    def add_item(
        self,
        level: int,
        ordered: bool,
        content: list[Node],
        checked: Optional[bool] = None,
        start: Optional[int] = None,
        wrap_paragraph: bool = True,
    ) -> Node:
        """Add an item at ``level`` (1 is top-level) and return the new list item.

        A change of list type at the same level starts a sibling list. Jumping
        more than one level deeper creates empty intermediate items.

        Parameters
        ----------
        level : int
            Nesting level, clamped to at least 1
        ordered : bool
            Ordered or bullet list
        content : list[Node]
            Inline content (wrapped in a paragraph) or block content
        checked : bool or None
            Task checkbox state
        start : int or None
            Start number; only applied when a new list is created
        wrap_paragraph : bool, default True
            Wrap ``content`` in a paragraph

        """
        level = max(1, level)
        while self._stack and self._stack[-1][1] > level:
            self._stack.pop()

        if self._stack and self._stack[-1][1] == level and self._stack[-1][0].get(props.ORDERED) != ordered:
            self._stack.pop()
            self._attach(self._new_list(ordered, start), level)

        current = self._stack[-1][1] if self._stack else 0
        while current < level:
            current += 1
            self._attach(self._new_list(ordered, start), current)

        item = Node(kinds.LIST_ITEM)
        if checked is not None:
            item.prop(props.CHECKED, checked)
        if wrap_paragraph:
            if content:
                item.child(Node(kinds.PARAGRAPH, children=list(content)))
        else:
            item.extend(content)
        self._stack[-1][0].child(item)
        return item

    def _attach(self, new_list: Node, level: int) -> None:
        if not self._stack:
            self.lists.append(new_list)
        else:
            parent_list = self._stack[-1][0]
            if not parent_list.children:
                parent_list.child(Node(kinds.LIST_ITEM))
            parent_list.children[-1].child(new_list)
        self._stack.append((new_list, level))

    def append_to_last(self, nodes: list[Node]) -> bool:
        """Append block nodes to the most recent item; return False if there is none."""
        if not self._stack or not self._stack[-1][0].children:
            return False
        self._stack[-1][0].children[-1].extend(nodes)
        return True


class TableBuilder:
    """Helper for building table structures.

    The header row, if any, is wrapped in ``table_head`` and uses
    ``table_header`` cells; body rows are direct ``table_row`` children.

    Examples
    --------
    >>> builder = TableBuilder()
    >>> row = builder.add_row(["Name", "Age"], is_header=True)
    >>> row = builder.add_row(["Alice", "30"])
    >>> builder.get_table().children[0].kind
    'table_head'

    """

    def __init__(self) -> None:
        self.header: Optional[Node] = None
        self.rows: list[Node] = []
        self.alignments: list[Optional[str]] = []
        self.caption: Optional[list[Node]] = None

    def add_row(self, cells: Sequence[CellContent], is_header: bool = False) -> Node:
        """Add a row; the first header row becomes the table head, later ones are body rows."""
        cell_kind = kinds.TABLE_HEADER if is_header else kinds.TABLE_CELL
        row = Node(kinds.TABLE_ROW)
        for cell_content in cells:
            if isinstance(cell_content, str):
                cell_nodes: list[Node] = [text_node(cell_content)] if cell_content else []
            elif isinstance(cell_content, Node):
                cell_nodes = [cell_content]
            else:
                cell_nodes = list(cell_content)
            row.child(Node(cell_kind, children=cell_nodes))
        if is_header and self.header is None and not self.rows:
            self.header = row
        else:
            self.rows.append(row)
        return row

    def promote_first_row(self) -> None:
        """Turn the first body row into the header row."""
        if self.header is not None or not self.rows:
            return
        row = self.rows.pop(0)
        for cell in row.children:
            cell.kind = kinds.TABLE_HEADER
        self.header = row

    def set_column_alignment(self, column_index: int, alignment: Optional[str]) -> None:
        while len(self.alignments) <= column_index:
            self.alignments.append(None)
        self.alignments[column_index] = alignment

    def set_caption(self, caption: list[Node]) -> None:
        self.caption = caption

    def get_table(self) -> Node:
        """Get the constructed table node."""
        table = Node(kinds.TABLE)
        if self.caption:
            table.child(Node(kinds.CAPTION, children=self.caption))
        if self.header is not None:
            table.child(Node(kinds.TABLE_HEAD).child(self.header))
        table.extend(self.rows)
        if any(self.alignments):
            for row in ([self.header] if self.header is not None else []) + self.rows:
                for index, cell in enumerate(row.children):
                    if index < len(self.alignments) and self.alignments[index]:
                        cell.prop(props.ALIGN, self.alignments[index])
        return table


class DocumentBuilder:
    """Fluent builder for whole documents, mostly used in tests and examples.

    Examples
    --------
    >>> doc = (
    ...     DocumentBuilder()
    ...     .add_heading(1, [text_node("Title")])
    ...     .add_paragraph([text_node("Body")])
    ...     .set_metadata("title", "Title")
    ...     .get_document()
    ... )

    """

    def __init__(self) -> None:
        self._root = Node(kinds.DOCUMENT)
        self._metadata = Properties()
        self._resources: dict[str, Resource] = {}
        self._source: Optional[SourceInfo] = None

    def add_node(self, node: Node) -> DocumentBuilder:
        self._root.child(node)
        return self

    def add_nodes(self, nodes: list[Node]) -> DocumentBuilder:
        self._root.extend(nodes)
        return self

    def add_heading(self, level: int, content: list[Node]) -> DocumentBuilder:
        return self.add_node(Node(kinds.HEADING, children=content).prop(props.LEVEL, level))

    def add_paragraph(self, content: list[Node]) -> DocumentBuilder:
        return self.add_node(Node(kinds.PARAGRAPH, children=content))

    def add_code_block(self, content: str, language: Optional[str] = None) -> DocumentBuilder:
        node = Node(kinds.CODE_BLOCK).prop(props.CONTENT, content)
        if language:
            node.prop(props.LANGUAGE, language)
        return self.add_node(node)

    def add_horizontal_rule(self) -> DocumentBuilder:
        return self.add_node(Node(kinds.HORIZONTAL_RULE))

    def add_block_quote(self, children: list[Node]) -> DocumentBuilder:
        return self.add_node(Node(kinds.BLOCKQUOTE, children=children))

    def add_list(self, items: list[list[Node]], ordered: bool = False, start: Optional[int] = None) -> DocumentBuilder:
        """Add a flat list; each entry is the inline content of one item."""
        node = _list_node(ordered, start)
        for content in items:
            node.child(Node(kinds.LIST_ITEM).child(Node(kinds.PARAGRAPH, children=content)))
        return self.add_node(node)

    def add_math_block(self, source: str) -> DocumentBuilder:
        return self.add_node(Node(kinds.MATH_DISPLAY).prop(props.MATH_SOURCE, source))

    def set_metadata(self, key: str, value: object) -> DocumentBuilder:
        self._metadata.set(key, value)
        return self

    def add_resource(self, resource_id: str, resource: Resource) -> DocumentBuilder:
        self._resources[resource_id] = resource
        return self

    def set_source(self, source_format: str) -> DocumentBuilder:
        self._source = SourceInfo(format=source_format)
        return self

    def get_document(self) -> Document:
        return Document(
            content=self._root,
            resources=dict(self._resources),
            metadata=self._metadata.copy(),
            source=self._source,
        )
