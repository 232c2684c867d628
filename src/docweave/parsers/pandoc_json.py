#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/pandoc_json.py
"""Pandoc JSON AST parser.

Reads the document model pandoc emits with ``pandoc -t json``: an object
with ``pandoc-api-version``, ``meta`` and ``blocks``. Every element is a
``{"t": <type>, "c": <content>}`` pair; attributes are ``[id, [classes],
[[key, value], ...]]`` triples.

Elements are mapped one to one onto the document IR. Elements whose
content does not have the expected shape are dropped with a MINOR warning,
as are unknown element types.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from docweave.ast import kinds, props
from docweave.ast.builder import TableBuilder
from docweave.ast.document import Document, SourceInfo
from docweave.ast.fidelity import ConversionResult, WarningKind
from docweave.ast.nodes import Node, Properties, text_node
from docweave.ast.utils import merge_text_nodes
from docweave.converter_metadata import ConverterMetadata
from docweave.exceptions import InvalidInputError
from docweave.options.pandoc_json import PandocJsonOptions
from docweave.parsers._inline import code_node, image_node, link_node
from docweave.parsers.base import BaseParser, ParserInput
from docweave.progress import ProgressCallback

logger = logging.getLogger(__name__)

_SIMPLE_INLINES = {
    "Emph": kinds.EMPHASIS,
    "Strong": kinds.STRONG,
    "Strikeout": kinds.STRIKEOUT,
    "Underline": kinds.UNDERLINE,
    "Superscript": kinds.SUPERSCRIPT,
    "Subscript": kinds.SUBSCRIPT,
    "SmallCaps": kinds.SMALL_CAPS,
}
_ALIGNMENTS = {"AlignLeft": "left", "AlignRight": "right", "AlignCenter": "center"}
_LIST_STYLES = {
    "Decimal": "decimal",
    "LowerRoman": "lower-roman",
    "UpperRoman": "upper-roman",
    "LowerAlpha": "lower-alpha",
    "UpperAlpha": "upper-alpha",
}


class _MalformedElement(Exception):
    """Element content does not have the shape its type requires."""


def _tag(element: Any) -> str:
    if isinstance(element, dict) and isinstance(element.get("t"), str):
        return element["t"]
    return ""


def _expect_list(value: Any, length: int = 0) -> list[Any]:
    if not isinstance(value, list) or len(value) < length:
        raise _MalformedElement(f"expected a list of at least {length} items")
    return value


def _expect_str(value: Any) -> str:
    if not isinstance(value, str):
        raise _MalformedElement("expected a string")
    return value


class PandocJsonParser(BaseParser):
    """Convert a pandoc JSON document to the document IR.

    Parameters
    ----------
    options : PandocJsonOptions or None, default = None
        Parser configuration options
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates

    """

    format_name = "pandoc_json"
    options_class = PandocJsonOptions
    options: PandocJsonOptions

    def __init__(
        self, options: Optional[PandocJsonOptions] = None, progress_callback: Optional[ProgressCallback] = None
    ):
        super().__init__(options, progress_callback)
        self._depth = 0
        self._depth_reported = False
        self._note_count = 0

    def parse_document(self, input_data: ParserInput) -> Document:
        """Parse pandoc JSON into a Document.

        Raises
        ------
        InvalidInputError
            If the input is not JSON, or has no ``blocks`` array

        """
        content = self._load_text_content(input_data)
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise InvalidInputError(
                f"Invalid pandoc JSON: {exc}", parsing_stage="json_parsing", original_error=exc
            ) from exc

        if not isinstance(data, dict) or not isinstance(data.get("blocks"), list):
            raise InvalidInputError("Pandoc JSON document has no 'blocks' array", parsing_stage="json_parsing")

        api_version = data.get("pandoc-api-version")
        if isinstance(api_version, list):
            logger.debug("Pandoc API version %s", ".".join(str(part) for part in api_version))

        blocks = data["blocks"]
        document = Document(source=SourceInfo(self.format_name))
        for index, block in enumerate(blocks, start=1):
            node = self._convert_block(block)
            if node is not None:
                document.content.child(node)
            self._emit_progress("item_done", "Converted block", current=index, total=len(blocks), item_type="block")

        if isinstance(data.get("meta"), dict):
            document.metadata = self._convert_meta(data["meta"])
        return document

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def _convert_meta(self, meta: dict[str, Any]) -> Properties:
        metadata = Properties()
        for key, value in meta.items():
            flattened = self._meta_value(value)
            if flattened is not None:
                metadata.set(key, flattened)
        return metadata

    def _meta_value(self, value: Any) -> Optional[str]:
        """Flatten a ``Meta*`` value to a string."""
        tag = _tag(value)
        content = value.get("c") if isinstance(value, dict) else None
        if tag == "MetaString" and isinstance(content, str):
            return content
        if tag == "MetaBool" and isinstance(content, bool):
            return "true" if content else "false"
        if tag == "MetaInlines" and isinstance(content, list):
            return self._plain_text(content)
        if tag == "MetaBlocks" and isinstance(content, list):
            paragraphs = [self._plain_text(block.get("c", [])) for block in content if _tag(block) in ("Para", "Plain")]
            return "\n\n".join(paragraphs)
        if tag == "MetaList" and isinstance(content, list):
            items = [self._meta_value(item) for item in content]
            return self.options.meta_list_separator.join(item for item in items if item is not None)
        if tag == "MetaMap":
            logger.debug("Skipping MetaMap metadata value")
        return None

    @staticmethod
    def _plain_text(inlines: Any) -> str:
        """Text of an inline list; formatting is flattened."""
        if not isinstance(inlines, list):
            return ""
        parts: list[str] = []
        for inline in inlines:
            tag = _tag(inline)
            content = inline.get("c") if isinstance(inline, dict) else None
            if tag == "Str" and isinstance(content, str):
                parts.append(content)
            elif tag in ("Space", "SoftBreak"):
                parts.append(" ")
            elif tag == "LineBreak":
                parts.append("\n")
            elif tag in _SIMPLE_INLINES:
                parts.append(PandocJsonParser._plain_text(content))
            elif tag in ("Code", "Math") and isinstance(content, list) and len(content) > 1:
                parts.append(str(content[1]))
            elif tag in ("Quoted", "Span", "Cite", "Link", "Image") and isinstance(content, list) and len(content) > 1:
                parts.append(PandocJsonParser._plain_text(content[1]))
        return "".join(parts)

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def _enter(self, tag: str) -> bool:
        if self._depth >= self.options.max_nesting_depth:
            if not self._depth_reported:
                self._depth_reported = True
                self.warnings.major(
                    WarningKind.FEATURE_LOST,
                    f"Elements nested deeper than {self.options.max_nesting_depth} levels dropped",
                    detail=f"pandoc:{tag}",
                )
            return False
        self._depth += 1
        return True

    def _convert_blocks(self, blocks: Any) -> list[Node]:
        nodes = []
        for block in _expect_list(blocks):
            node = self._convert_block(block)
            if node is not None:
                nodes.append(node)
        return nodes

    def _convert_block(self, block: Any) -> Optional[Node]:
        tag = _tag(block)
        if not self._enter(tag):
            return None
        try:
            return self._dispatch_block(tag, block.get("c") if isinstance(block, dict) else None)
        except _MalformedElement as exc:
            self.warnings.minor(
                WarningKind.SIMPLIFIED, f"Malformed pandoc {tag or 'block'} dropped: {exc}", detail=f"pandoc:{tag}"
            )
            return None
        finally:
            self._depth -= 1

    def _dispatch_block(self, tag: str, content: Any) -> Optional[Node]:
        if tag in ("Para", "Plain"):
            return Node(kinds.PARAGRAPH, children=self._convert_inlines(content))
        if tag == "Header":
            level, attr, inlines = _expect_list(content, 3)[:3]
            if not isinstance(level, int):
                raise _MalformedElement("expected an integer heading level")
            heading = Node(kinds.HEADING, children=self._convert_inlines(inlines)).prop(props.LEVEL, level)
            return self._apply_attr(heading, attr)
        if tag == "CodeBlock":
            attr, code = _expect_list(content, 2)[:2]
            block = Node(kinds.CODE_BLOCK).prop(props.CONTENT, _expect_str(code))
            classes = self._attr_classes(attr)
            if classes:
                block.prop(props.LANGUAGE, classes[0])
            return self._apply_attr(block, attr, skip_classes=True)
        if tag == "BlockQuote":
            return Node(kinds.BLOCKQUOTE, children=self._convert_blocks(content))
        if tag == "BulletList":
            return self._list(_expect_list(content), ordered=False)
        if tag == "OrderedList":
            list_attrs, items = _expect_list(content, 2)[:2]
            return self._ordered_list(_expect_list(list_attrs, 1), _expect_list(items))
        if tag == "DefinitionList":
            return self._definition_list(_expect_list(content))
        if tag == "HorizontalRule":
            return Node(kinds.HORIZONTAL_RULE)
        if tag == "Table":
            return self._table(_expect_list(content, 6))
        if tag == "Figure":
            return self._figure(_expect_list(content, 3))
        if tag == "Div":
            attr, blocks = _expect_list(content, 2)[:2]
            return self._apply_attr(Node(kinds.DIV, children=self._convert_blocks(blocks)), attr)
        if tag == "RawBlock":
            fmt, text = _expect_list(content, 2)[:2]
            return Node(kinds.RAW_BLOCK).prop(props.FORMAT, _expect_str(fmt)).prop(props.CONTENT, _expect_str(text))
        if tag == "LineBlock":
            paragraph = Node(kinds.PARAGRAPH).prop("pandoc:line_block", True)
            for index, line in enumerate(_expect_list(content)):
                if index:
                    paragraph.child(Node(kinds.LINE_BREAK))
                paragraph.extend(self._convert_inlines(line))
            return paragraph
        if tag == "Null":
            return None

        logger.debug("Unknown pandoc block type %r", tag)
        self.warnings.minor(
            WarningKind.UNSUPPORTED_NODE, f"Unknown pandoc block type: {tag or '?'}", detail=f"pandoc:{tag}"
        )
        return None

    def _list(self, items: list[Any], ordered: bool) -> Node:
        node = Node(kinds.LIST).prop(props.ORDERED, ordered)
        tight = True
        for item in items:
            children = self._convert_blocks(item)
            if any(_tag(block) == "Para" for block in item):
                tight = False
            node.child(Node(kinds.LIST_ITEM, children=children))
        return node.prop(props.TIGHT, tight)

    def _ordered_list(self, list_attrs: list[Any], items: list[Any]) -> Node:
        node = self._list(items, ordered=True)
        start = list_attrs[0]
        if isinstance(start, int) and start != 1:
            node.prop(props.START, start)
        style = _LIST_STYLES.get(_tag(list_attrs[1]) if len(list_attrs) > 1 else "")
        if style:
            node.prop(props.LIST_STYLE, style)
        return node

    def _definition_list(self, items: list[Any]) -> Node:
        node = Node(kinds.DEFINITION_LIST)
        for item in items:
            term, definitions = _expect_list(item, 2)[:2]
            node.child(Node(kinds.DEFINITION_TERM, children=self._convert_inlines(term)))
            for definition in _expect_list(definitions):
                node.child(Node(kinds.DEFINITION_DESC, children=self._convert_blocks(definition)))
        return node

    def _table(self, content: list[Any]) -> Node:
        """Table in the pandoc 2.10+ shape: attr, caption, colspecs, head, bodies, foot."""
        attr, caption, colspecs, head, bodies, foot = content[:6]
        builder = TableBuilder()

        for index, colspec in enumerate(_expect_list(colspecs)):
            alignment = _ALIGNMENTS.get(_tag(colspec[0]) if isinstance(colspec, list) and colspec else "")
            if alignment:
                builder.set_column_alignment(index, alignment)

        caption_blocks = _expect_list(caption, 2)[1]
        caption_inlines: list[Node] = []
        for block in self._convert_blocks(caption_blocks):
            caption_inlines.extend(block.children)
        if caption_inlines:
            builder.set_caption(caption_inlines)

        for row in _expect_list(_expect_list(head, 2)[1]):
            self._table_row(builder, row, is_header=True)
        for body in _expect_list(bodies):
            body = _expect_list(body, 4)
            for row in _expect_list(body[2]):
                self._table_row(builder, row, is_header=True)
            for row in _expect_list(body[3]):
                self._table_row(builder, row, is_header=False)
        foot_rows = _expect_list(_expect_list(foot, 2)[1])
        for row in foot_rows:
            self._table_row(builder, row, is_header=False).prop("pandoc:foot", True)

        return self._apply_attr(builder.get_table(), attr)

    def _table_row(self, builder: TableBuilder, row: Any, is_header: bool) -> Node:
        cells = _expect_list(_expect_list(row, 2)[1])
        contents: list[list[Node]] = []
        for cell in cells:
            cell = _expect_list(cell, 5)
            blocks = self._convert_blocks(cell[4])
            # A single Plain cell holds inline content directly
            if len(blocks) == 1 and blocks[0].kind == kinds.PARAGRAPH and _tag(cell[4][0]) == "Plain":
                contents.append(blocks[0].children)
            else:
                contents.append(blocks)
        row_node = builder.add_row(contents, is_header=is_header)
        for cell_node, cell in zip(row_node.children, cells):
            alignment = _ALIGNMENTS.get(_tag(cell[1]))
            if alignment:
                cell_node.prop(props.ALIGN, alignment)
            if isinstance(cell[2], int) and cell[2] > 1:
                cell_node.prop(props.ROWSPAN, cell[2])
            if isinstance(cell[3], int) and cell[3] > 1:
                cell_node.prop(props.COLSPAN, cell[3])
        return row_node

    def _figure(self, content: list[Any]) -> Node:
        attr, caption, blocks = content[:3]
        figure = Node(kinds.FIGURE)
        for block in self._convert_blocks(blocks):
            # Images come through wrapped in a Plain paragraph
            if block.kind == kinds.PARAGRAPH and block.children and all(
                child.kind == kinds.IMAGE for child in block.children
            ):
                figure.extend(block.children)
            else:
                figure.child(block)
        caption_inlines: list[Node] = []
        for block in self._convert_blocks(_expect_list(caption, 2)[1]):
            caption_inlines.extend(block.children)
        if caption_inlines:
            figure.child(Node(kinds.CAPTION, children=caption_inlines))
        return self._apply_attr(figure, attr)

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    @staticmethod
    def _attr_classes(attr: Any) -> list[str]:
        attr = _expect_list(attr, 3)
        return [cls for cls in _expect_list(attr[1]) if isinstance(cls, str) and cls]

    def _apply_attr(self, node: Node, attr: Any, skip_classes: bool = False) -> Node:
        """Copy an ``[id, classes, key-values]`` triple onto ``node``."""
        identifier, _, pairs = _expect_list(attr, 3)[:3]
        if isinstance(identifier, str) and identifier:
            node.prop(props.ID, identifier)
        classes = self._attr_classes(attr)
        if classes and not skip_classes:
            node.prop(props.CLASSES, " ".join(classes))
        attributes = {
            pair[0]: pair[1]
            for pair in _expect_list(pairs)
            if isinstance(pair, list) and len(pair) == 2 and all(isinstance(part, str) for part in pair)
        }
        if attributes:
            node.prop("pandoc:attributes", attributes)
        return node

    # ------------------------------------------------------------------
    # Inlines
    # ------------------------------------------------------------------

    def _convert_inlines(self, inlines: Any) -> list[Node]:
        nodes: list[Node] = []
        for inline in _expect_list(inlines):
            node = self._convert_inline(inline)
            if node is not None:
                nodes.append(node)
        return merge_text_nodes(nodes)

    def _convert_inline(self, inline: Any) -> Optional[Node]:
        tag = _tag(inline)
        if not self._enter(tag):
            return None
        try:
            return self._dispatch_inline(tag, inline.get("c") if isinstance(inline, dict) else None)
        except _MalformedElement as exc:
            self.warnings.minor(
                WarningKind.SIMPLIFIED, f"Malformed pandoc {tag or 'inline'} dropped: {exc}", detail=f"pandoc:{tag}"
            )
            return None
        finally:
            self._depth -= 1

    def _dispatch_inline(self, tag: str, content: Any) -> Optional[Node]:
        if tag == "Str":
            return text_node(_expect_str(content))
        if tag == "Space":
            return text_node(" ")
        if tag == "SoftBreak":
            return Node(kinds.SOFT_BREAK)
        if tag == "LineBreak":
            return Node(kinds.LINE_BREAK)
        if tag in _SIMPLE_INLINES:
            return Node(_SIMPLE_INLINES[tag], children=self._convert_inlines(content))
        if tag == "Quoted":
            quote_type, inlines = _expect_list(content, 2)[:2]
            quoted = Node(kinds.QUOTED, children=self._convert_inlines(inlines))
            return quoted.prop(props.QUOTE_TYPE, "single" if _tag(quote_type) == "SingleQuote" else "double")
        if tag == "Code":
            attr, code = _expect_list(content, 2)[:2]
            return self._apply_attr(code_node(_expect_str(code)), attr)
        if tag == "Link":
            attr, inlines, target = _expect_list(content, 3)[:3]
            url, title = _expect_list(target, 2)[:2]
            link = link_node(_expect_str(url), self._convert_inlines(inlines), title or None)
            return self._apply_attr(link, attr)
        if tag == "Image":
            attr, inlines, target = _expect_list(content, 3)[:3]
            url, title = _expect_list(target, 2)[:2]
            image = image_node(_expect_str(url), self._plain_text(inlines) or None, title or None)
            return self._apply_attr(image, attr)
        if tag == "Math":
            math_type, source = _expect_list(content, 2)[:2]
            kind = kinds.MATH_INLINE if _tag(math_type) == "InlineMath" else kinds.MATH_DISPLAY
            return Node(kind).prop(props.MATH_SOURCE, _expect_str(source))
        if tag == "RawInline":
            fmt, text = _expect_list(content, 2)[:2]
            return Node(kinds.RAW_INLINE).prop(props.FORMAT, _expect_str(fmt)).prop(props.CONTENT, _expect_str(text))
        if tag == "Note":
            self._note_count += 1
            note = Node(kinds.FOOTNOTE_DEF, children=self._convert_blocks(content))
            return note.prop(props.LABEL, str(self._note_count))
        if tag == "Span":
            attr, inlines = _expect_list(content, 2)[:2]
            return self._apply_attr(Node(kinds.SPAN, children=self._convert_inlines(inlines)), attr)
        if tag == "Cite":
            citations, inlines = _expect_list(content, 2)[:2]
            cite = Node(kinds.CITE, children=self._convert_inlines(inlines))
            ids = [
                citation["citationId"]
                for citation in _expect_list(citations)
                if isinstance(citation, dict) and isinstance(citation.get("citationId"), str)
            ]
            if ids:
                cite.prop(props.LABEL, ",".join(ids))
            return cite

        logger.debug("Unknown pandoc inline type %r", tag)
        self.warnings.minor(
            WarningKind.UNSUPPORTED_NODE, f"Unknown pandoc inline type: {tag or '?'}", detail=f"pandoc:{tag}"
        )
        return None


def _is_pandoc_json_content(data: bytes) -> bool:
    """Detect pandoc JSON by its API version key near the start of an object."""
    head = data[:2048].lstrip()
    return head.startswith(b"{") and b'"pandoc-api-version"' in head


def parse(input_data: ParserInput) -> ConversionResult[Document]:
    """Parse a pandoc JSON document with default options.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        Output of ``pandoc -t json``

    Returns
    -------
    ConversionResult[Document]
        The document and any fidelity warnings

    Raises
    ------
    InvalidInputError
        If the input is not JSON or has no ``blocks`` array

    Examples
    --------
    >>> result = parse('{"pandoc-api-version": [1, 23], "meta": {}, "blocks": []}')
    >>> result.value.content.children
    []

    """
    return PandocJsonParser().parse(input_data)


def parse_with_options(
    input_data: ParserInput, options: PandocJsonOptions, progress_callback: Optional[ProgressCallback] = None
) -> ConversionResult[Document]:
    return PandocJsonParser(options, progress_callback).parse(input_data)


# Converter metadata for registry auto-discovery
CONVERTER_METADATA = ConverterMetadata(
    format_name="pandoc_json",
    extensions=[".pandoc.json"],
    mime_types=["application/vnd.pandoc+json"],
    content_detector=_is_pandoc_json_content,
    parser_class=PandocJsonParser,
    parser_options_class=PandocJsonOptions,
    description="Pandoc JSON abstract syntax tree",
    priority=8,
)
