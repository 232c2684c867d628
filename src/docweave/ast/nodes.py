#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/ast/nodes.py
"""Node, property map and source span types for the document IR.

Every reader produces the same shape of tree: a ``Node`` has a string
``kind`` drawn from ``docweave.ast.kinds`` (or a namespaced dialect kind),
an ordered ``Properties`` map, a list of children, and an optional ``Span``
locating it in the UTF-8 source.

Nodes are built with chainable helpers:

    >>> from docweave.ast import kinds, props
    >>> heading = Node(kinds.HEADING).prop(props.LEVEL, 2).child(text_node("Hello"))
    >>> heading.text_content()
    'Hello'

"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, MutableMapping
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from docweave.ast import kinds
from docweave.ast.props import CONTENT

PropertyValue = Union[str, int, float, bool, list, dict]

_ALLOWED_VALUE_TYPES = (str, int, float, bool, list, dict)


class Properties(MutableMapping):
    """Ordered string-keyed map of node properties.

    Values are restricted to ``str``, ``int``, ``float``, ``bool``, ``list`` and
    ``dict``. Iteration follows insertion order; equality does not.

    Parameters
    ----------
    data : Mapping[str, PropertyValue], optional
        Initial properties
    **kwargs : PropertyValue
        Additional properties; keys must be valid identifiers

    Raises
    ------
    TypeError
        If a key is not a string or a value has an unsupported type

    """

    __slots__ = ("_data",)

    def __init__(self, data: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        self._data: dict[str, PropertyValue] = {}
        if data is not None:
            for key, value in data.items():
                self.set(key, value)
        for key, value in kwargs.items():
            self.set(key, value)

    def set(self, key: str, value: Any) -> Properties:
        """Set ``key`` to ``value`` and return self for chaining."""
        if not isinstance(key, str):
            raise TypeError(f"property keys must be str, got {type(key).__name__}")
        if not isinstance(value, _ALLOWED_VALUE_TYPES):
            raise TypeError(f"unsupported value type for property {key!r}: {type(value).__name__}")
        self._data[key] = value
        return self

    def __getitem__(self, key: str) -> PropertyValue:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Properties):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Properties({self._data!r})"

    def get_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the value for ``key`` if it is a string, else ``default``."""
        value = self._data.get(key)
        return value if isinstance(value, str) else default

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        """Return the value for ``key`` if it is an integer (not bool), else ``default``."""
        value = self._data.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return default

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        """Return the value for ``key`` if it is a bool, else ``default``."""
        value = self._data.get(key)
        return value if isinstance(value, bool) else default

    def copy(self) -> Properties:
        return Properties(self._data)

    def to_dict(self) -> dict[str, PropertyValue]:
        return dict(self._data)


@dataclass(frozen=True)
class Span:
    """Half-open byte range ``[start, end)`` into the UTF-8 source.

    Parameters
    ----------
    start : int
        Offset of the first byte
    end : int
        Offset one past the last byte

    Raises
    ------
    ValueError
        If ``start`` is negative or greater than ``end``

    """

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"span start must be non-negative, got {self.start}")
        if self.start > self.end:
            raise ValueError(f"span start {self.start} is after end {self.end}")

    def __len__(self) -> int:
        return self.end - self.start

    def contains(self, other: Span) -> bool:
        """Return True if ``other`` lies entirely inside this span."""
        return self.start <= other.start and other.end <= self.end

    @classmethod
    def clamped(cls, start: int, end: int, length: int) -> Span:
        """Build a span with both ends clamped to ``[0, length]``."""
        start = max(0, min(start, length))
        end = max(start, min(end, length))
        return cls(start, end)


@dataclass
class Node:
    """A node of the document tree.

    Parameters
    ----------
    kind : str
        Node kind, from ``docweave.ast.kinds`` or namespaced (``"rst:comment"``)
    props : Properties, optional
        Property map; a plain mapping is converted
    children : list[Node], optional
        Child nodes in document order
    span : Span or None, default None
        Location in the source, present only when source info is preserved

    """

    kind: str
    props: Properties = field(default_factory=Properties)
    children: list[Node] = field(default_factory=list)
    span: Optional[Span] = None

    def __post_init__(self) -> None:
        if not isinstance(self.props, Properties):
            self.props = Properties(self.props)
        if not isinstance(self.children, list):
            self.children = list(self.children)

    def prop(self, key: str, value: Any) -> Node:
        """Set a property and return the node."""
        self.props.set(key, value)
        return self

    def child(self, node: Node) -> Node:
        """Append a child and return the node."""
        self.children.append(node)
        return self

    def extend(self, nodes: Iterable[Node]) -> Node:
        """Append several children and return the node."""
        self.children.extend(nodes)
        return self

    def at(self, span: Optional[Span]) -> Node:
        """Attach a source span and return the node."""
        self.span = span
        return self

    def get(self, key: str, default: Any = None) -> Any:
        return self.props.get(key, default)

    def text_content(self) -> str:
        """Return the plain text of this node and its descendants.

        Leaf nodes contribute their ``content`` property. Hard line breaks
        contribute a newline and soft breaks a space.
        """
        if self.kind == kinds.LINE_BREAK:
            return "\n"
        if self.kind == kinds.SOFT_BREAK:
            return " "
        if not self.children:
            return self.props.get_str(CONTENT, "") or ""
        return "".join(child.text_content() for child in self.children)

    def accept(self, visitor: Any) -> Any:
        """Accept a visitor for processing this node.

        Parameters
        ----------
        visitor : Any
            Object with a ``visit`` method, typically a ``NodeVisitor``

        Returns
        -------
        Any
            Result of the visitor's dispatch

        """
        return visitor.visit(self)


def text_node(content: str) -> Node:
    """Create a ``text`` node."""
    return Node(kinds.TEXT, Properties({CONTENT: content}))
