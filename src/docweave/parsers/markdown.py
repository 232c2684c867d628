#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/markdown.py
"""Markdown to AST converter.

This module converts Markdown documents to the IR using the mistune
parser. mistune produces a token stream (``renderer=None``); the converter
walks it and maps each token type to an IR kind. Extensions (tables,
footnotes, task lists, math, definition lists) are mistune plugins enabled
from ``MarkdownOptions``.

mistune does not report token positions, so Markdown documents carry no
source spans.

"""

from __future__ import annotations

import datetime
import logging
from typing import Any, Optional

from docweave.ast import kinds, props
from docweave.ast.document import Document, SourceInfo
from docweave.ast.fidelity import ConversionResult, WarningKind
from docweave.ast.nodes import Node, Properties, text_node
from docweave.ast.utils import merge_text_nodes
from docweave.constants import DEPS_MARKDOWN, DEPS_MARKDOWN_FRONTMATTER, MAX_HEADING_LEVEL, MIN_HEADING_LEVEL
from docweave.converter_metadata import ConverterMetadata
from docweave.options.markdown import MarkdownOptions
from docweave.parsers._inline import code_node, image_node, link_node
from docweave.parsers.base import BaseParser, ParserInput
from docweave.progress import ProgressCallback
from docweave.utils.decorators import requires_dependencies

logger = logging.getLogger(__name__)

# Tokens that carry no content
_IGNORED_TOKENS = frozenset({"blank_line"})


def _metadata_value(value: Any) -> Any:
    """Coerce a YAML value into a type ``Properties`` accepts."""
    if isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_metadata_value(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _metadata_value(item) for key, item in value.items()}
    if value is None:
        return ""
    return str(value)


class MarkdownParser(BaseParser):
    r"""Convert Markdown to the document IR.

    Parameters
    ----------
    options : MarkdownOptions or None, default = None
        Parser configuration options
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates

    Examples
    --------
    Basic parsing:

        >>> result = MarkdownParser().parse("# Hello\n\nThis is **bold**.")
        >>> result.value.blocks[0].kind
        'heading'

    Without tables:

        >>> options = MarkdownOptions(parse_tables=False)
        >>> result = MarkdownParser(options).parse("| a |\n|---|\n| 1 |")

    """

    format_name = "markdown"
    options_class = MarkdownOptions
    options: MarkdownOptions

    def __init__(self, options: MarkdownOptions | None = None, progress_callback: Optional[ProgressCallback] = None):
        super().__init__(options, progress_callback)
        self._footnotes: list[Node] = []

    @requires_dependencies("markdown", DEPS_MARKDOWN)
    def parse_document(self, input_data: ParserInput) -> Document:
        """Parse Markdown input into a Document.

        Parameters
        ----------
        input_data : str, bytes, Path or IO[bytes]
            Markdown input to parse

        Returns
        -------
        Document
            Parsed document; footnote definitions are appended after the body

        """
        import mistune

        content = self._load_text_content(input_data)
        if content.startswith("\ufeff"):
            content = content[1:]

        metadata = Properties()
        if self.options.parse_frontmatter:
            content, metadata = self._extract_frontmatter(content)

        markdown = mistune.create_markdown(renderer=None, plugins=self._plugins())
        tokens, _state = markdown.parse(content)

        children = self._process_tokens(tokens if isinstance(tokens, list) else [])
        children.extend(self._footnotes)
        self._emit_progress("item_done", "Converted Markdown tokens", current=len(children), total=len(children))

        root = Node(kinds.DOCUMENT, children=children)
        return Document(content=root, metadata=metadata, source=SourceInfo(self.format_name))

    def _plugins(self) -> list[str]:
        """mistune plugin names selected by the options."""
        options = self.options
        selected = (
            (options.parse_strikethrough, "strikethrough"),
            (options.parse_tables, "table"),
            (options.parse_footnotes, "footnotes"),
            (options.parse_task_lists, "task_lists"),
            (options.parse_math, "math"),
            (options.parse_definition_lists, "def_list"),
        )
        return [name for enabled, name in selected if enabled]

    # ------------------------------------------------------------------
    # Front matter
    # ------------------------------------------------------------------

    @requires_dependencies("markdown", DEPS_MARKDOWN_FRONTMATTER)
    def _extract_frontmatter(self, content: str) -> tuple[str, Properties]:
        """Strip a leading ``---`` YAML block and return it as metadata.

        Parameters
        ----------
        content : str
            Markdown content that may start with front matter

        Returns
        -------
        tuple[str, Properties]
            Content with the front matter removed and the parsed metadata

        """
        import yaml

        if not (content.startswith("---\n") or content.startswith("---\r\n")):
            return content, Properties()

        lines = content.splitlines(keepends=True)
        end_index = next((i for i in range(1, len(lines)) if lines[i].strip() in ("---", "...")), -1)
        if end_index <= 0:
            return content, Properties()

        yaml_content = "".join(lines[1:end_index])
        remaining = "".join(lines[end_index + 1 :])
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            self.warnings.minor(
                WarningKind.SIMPLIFIED, f"Front matter is not valid YAML: {e}", detail="markdown:frontmatter"
            )
            return remaining, Properties()

        metadata = Properties()
        if isinstance(data, dict):
            for key, value in data.items():
                metadata.set(str(key), _metadata_value(value))
        elif data is not None:
            self.warnings.minor(
                WarningKind.SIMPLIFIED, "Front matter is not a mapping; ignored", detail="markdown:frontmatter"
            )
        return remaining, metadata

    # ------------------------------------------------------------------
    # Block tokens
    # ------------------------------------------------------------------

    def _process_tokens(self, tokens: list[dict[str, Any]]) -> list[Node]:
        nodes: list[Node] = []
        for token in tokens:
            node = self._process_token(token)
            if isinstance(node, list):
                nodes.extend(node)
            elif node is not None:
                nodes.append(node)
        return nodes

    def _process_token(self, token: dict[str, Any]) -> Node | list[Node] | None:
        """Process a single mistune block token into IR node(s)."""
        token_type = token.get("type", "")

        if token_type in _IGNORED_TOKENS:
            return None
        if token_type == "heading":
            return self._process_heading(token)
        if token_type in ("paragraph", "block_text"):
            # block_text is the content of tight list items
            return Node(kinds.PARAGRAPH, children=self._process_inline_tokens(token.get("children", [])))
        if token_type == "block_code":
            return self._process_code_block(token)
        if token_type == "block_quote":
            return Node(kinds.BLOCKQUOTE, children=self._process_tokens(token.get("children", [])))
        if token_type == "list":
            return self._process_list(token)
        if token_type == "table":
            return self._process_table(token)
        if token_type == "thematic_break":
            return Node(kinds.HORIZONTAL_RULE)
        if token_type == "block_html":
            return self._process_html_block(token)
        if token_type == "block_math":
            return self._math(kinds.MATH_DISPLAY, token.get("raw", ""))
        if token_type == "footnotes":
            for item in token.get("children", []):
                self._process_footnote(item)
            return None
        if token_type in ("footnote_item", "footnote_def"):
            self._process_footnote(token)
            return None
        if token_type == "def_list":
            return self._process_definition_list(token)

        logger.debug("Unhandled mistune block token: %s", token_type)
        self.warnings.minor(
            WarningKind.UNSUPPORTED_NODE, f"Unsupported Markdown token '{token_type}'", detail=f"markdown:{token_type}"
        )
        raw = token.get("raw")
        if isinstance(raw, str) and raw.strip():
            return Node(kinds.PARAGRAPH).child(text_node(raw))
        children = token.get("children")
        if isinstance(children, list) and children:
            return self._process_tokens(children)
        return None

    def _process_heading(self, token: dict[str, Any]) -> Node:
        attrs = token.get("attrs") or {}
        level = attrs.get("level", 1) if isinstance(attrs, dict) else 1
        if not isinstance(level, int) or not MIN_HEADING_LEVEL <= level <= MAX_HEADING_LEVEL:
            level = MIN_HEADING_LEVEL
        heading = Node(kinds.HEADING, children=self._process_inline_tokens(token.get("children", [])))
        return heading.prop(props.LEVEL, level)

    def _process_code_block(self, token: dict[str, Any]) -> Node:
        """Fenced or indented code; the first word of the info string is the language."""
        node = Node(kinds.CODE_BLOCK).prop(props.CONTENT, token.get("raw", "").rstrip("\n"))
        attrs = token.get("attrs") or {}
        info = (attrs.get("info") or "").strip() if isinstance(attrs, dict) else ""
        if info:
            parts = info.split(maxsplit=1)
            node.prop(props.LANGUAGE, parts[0])
            if len(parts) > 1:
                node.prop("markdown:info", parts[1])
        return node

    def _process_list(self, token: dict[str, Any]) -> Node:
        attrs = token.get("attrs") or {}
        ordered = bool(attrs.get("ordered", False))
        tight = token.get("tight", attrs.get("tight", True))

        node = Node(kinds.LIST).prop(props.ORDERED, ordered).prop(props.TIGHT, bool(tight))
        start = attrs.get("start")
        if ordered and isinstance(start, int) and start != 1:
            node.prop(props.START, start)

        for child in token.get("children", []):
            if not isinstance(child, dict):
                continue
            item = Node(kinds.LIST_ITEM, children=self._process_tokens(child.get("children", [])))
            if child.get("type") == "task_list_item":
                item.prop(props.CHECKED, bool((child.get("attrs") or {}).get("checked", False)))
            node.child(item)
        return node

    def _process_table(self, token: dict[str, Any]) -> Node:
        """Table with a ``table_head`` row and body rows."""
        table = Node(kinds.TABLE)
        for section in token.get("children", []):
            section_type = section.get("type", "")
            if section_type == "table_head":
                # Header cells are direct children of table_head
                row = Node(kinds.TABLE_ROW, children=self._table_cells(section, kinds.TABLE_HEADER))
                table.child(Node(kinds.TABLE_HEAD).child(row))
            elif section_type == "table_body":
                for row_token in section.get("children", []):
                    table.child(Node(kinds.TABLE_ROW, children=self._table_cells(row_token, kinds.TABLE_CELL)))
        return table

    def _table_cells(self, row_token: dict[str, Any], cell_kind: str) -> list[Node]:
        cells = []
        for cell_token in row_token.get("children", []):
            cell = Node(cell_kind, children=self._process_inline_tokens(cell_token.get("children", [])))
            align = (cell_token.get("attrs") or {}).get("align")
            if align:
                cell.prop(props.ALIGN, align)
            cells.append(cell)
        return cells

    def _process_html_block(self, token: dict[str, Any]) -> Node:
        content = token.get("raw", "")
        stripped = content.strip()
        if stripped.startswith("<!--") and stripped.endswith("-->"):
            return Node("markdown:comment").prop(props.CONTENT, stripped[4:-3].strip())
        return Node(kinds.RAW_BLOCK).prop(props.FORMAT, "html").prop(props.CONTENT, content)

    def _process_footnote(self, token: dict[str, Any]) -> None:
        """Collect a footnote definition; definitions are emitted after the body."""
        attrs = token.get("attrs") or {}
        label = attrs.get("key") or attrs.get("label") or str(attrs.get("index", len(self._footnotes) + 1))
        node = Node(kinds.FOOTNOTE_DEF, children=self._process_tokens(token.get("children", [])))
        self._footnotes.append(node.prop(props.LABEL, str(label)))

    def _process_definition_list(self, token: dict[str, Any]) -> Node:
        """Definition list; each ``def_list_head`` is a term and each content a description."""
        node = Node(kinds.DEFINITION_LIST)
        for child in token.get("children", []):
            child_type = child.get("type", "")
            if child_type == "def_list_head":
                node.child(Node(kinds.DEFINITION_TERM, children=self._process_inline_tokens(child.get("children", []))))
            elif child_type == "def_list_content":
                node.child(Node(kinds.DEFINITION_DESC, children=self._process_tokens(child.get("children", []))))
        return node

    def _math(self, kind: str, source: str) -> Node:
        return Node(kind).prop(props.MATH_SOURCE, source.strip())

    # ------------------------------------------------------------------
    # Inline tokens
    # ------------------------------------------------------------------

    def _process_inline_tokens(self, tokens: list[dict[str, Any]]) -> list[Node]:
        nodes: list[Node] = []
        for token in tokens:
            node = self._process_inline_token(token)
            if node is not None:
                nodes.append(node)
        return merge_text_nodes(nodes)

    def _children(self, token: dict[str, Any]) -> list[Node]:
        children = token.get("children", [])
        return self._process_inline_tokens(children) if isinstance(children, list) else []

    def _handle_link_token(self, token: dict[str, Any]) -> Node:
        attrs = token.get("attrs") or {}
        return link_node(attrs.get("url", ""), self._children(token), attrs.get("title"))

    def _handle_image_token(self, token: dict[str, Any]) -> Node:
        attrs = token.get("attrs") or {}
        alt = "".join(child.text_content() for child in self._children(token))
        return image_node(attrs.get("url", ""), alt or None, attrs.get("title"))

    def _handle_inline_html_token(self, token: dict[str, Any]) -> Node:
        content = token.get("raw", "")
        if content.startswith("<!--") and content.endswith("-->"):
            return Node("markdown:comment").prop(props.CONTENT, content[4:-3].strip())
        return Node(kinds.RAW_INLINE).prop(props.FORMAT, "html").prop(props.CONTENT, content)

    def _handle_footnote_ref_token(self, token: dict[str, Any]) -> Node:
        attrs = token.get("attrs") or {}
        label = token.get("raw") or attrs.get("label") or str(attrs.get("index", ""))
        return Node(kinds.FOOTNOTE_REF).prop(props.LABEL, str(label))

    def _process_inline_token(self, token: dict[str, Any]) -> Node | None:
        """Process a single inline token.

        Parameters
        ----------
        token : dict
            Inline token dictionary

        Returns
        -------
        Node or None
            Inline node, or None for tokens without output

        """
        token_type = token.get("type", "")

        wrappers = {
            "strong": kinds.STRONG,
            "emphasis": kinds.EMPHASIS,
            "strikethrough": kinds.STRIKEOUT,
        }
        if token_type == "text":
            return text_node(token.get("raw", ""))
        if token_type in wrappers:
            return Node(wrappers[token_type], children=self._children(token))
        if token_type == "codespan":
            return code_node(token.get("raw", ""))
        if token_type == "linebreak":
            return Node(kinds.LINE_BREAK)
        if token_type == "softbreak":
            return Node(kinds.SOFT_BREAK)
        if token_type == "inline_math":
            return self._math(kinds.MATH_INLINE, token.get("raw", ""))

        handler_map = {
            "link": self._handle_link_token,
            "image": self._handle_image_token,
            "inline_html": self._handle_inline_html_token,
            "footnote_ref": self._handle_footnote_ref_token,
        }
        handler = handler_map.get(token_type)
        if handler:
            return handler(token)

        logger.debug("Unhandled mistune inline token: %s", token_type)
        self.warnings.minor(
            WarningKind.UNSUPPORTED_NODE, f"Unsupported Markdown token '{token_type}'", detail=f"markdown:{token_type}"
        )
        raw = token.get("raw")
        return text_node(raw) if isinstance(raw, str) and raw else None


def parse(input_data: ParserInput) -> ConversionResult[Document]:
    r"""Parse Markdown with default options.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        Markdown source

    Returns
    -------
    ConversionResult[Document]
        The document and any fidelity warnings

    Examples
    --------
    >>> from docweave.parsers.markdown import parse
    >>> len(parse("# Hello\n\nWorld").value.blocks)
    2

    """
    return MarkdownParser().parse(input_data)


def parse_with_options(
    input_data: ParserInput, options: MarkdownOptions, progress_callback: Optional[ProgressCallback] = None
) -> ConversionResult[Document]:
    return MarkdownParser(options, progress_callback).parse(input_data)


# Converter metadata for registry auto-discovery
CONVERTER_METADATA = ConverterMetadata(
    format_name="markdown",
    extensions=[".md", ".markdown", ".mdown", ".mkd", ".mkdn"],
    mime_types=["text/markdown", "text/x-markdown"],
    parser_class=MarkdownParser,
    parser_required_packages=DEPS_MARKDOWN + DEPS_MARKDOWN_FRONTMATTER,
    import_error_message="Markdown parsing requires 'mistune'. Install with: pip install mistune",
    parser_options_class=MarkdownOptions,
    description="Parse Markdown (CommonMark with GFM extensions) via mistune",
    priority=10,
)
