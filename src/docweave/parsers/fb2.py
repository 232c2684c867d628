#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/fb2.py
"""FB2 (FictionBook 2.0) parser that converts FB2 ebooks to AST representation.

The XML is parsed with defusedxml. Bodies and sections become ``div`` nodes
whose titles are headings at the section depth; ``<binary>`` payloads are
decoded into ``Document.resources`` and images refer to them through the
``resource`` property. Note bodies (``<body name="notes">``) become
footnote definitions referenced by ``<a type="note">`` links.

"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
import zipfile
from typing import Iterable, Optional

import defusedxml.ElementTree as ET
from defusedxml import DefusedXmlException

from docweave.ast import kinds, props
from docweave.ast.builder import TableBuilder
from docweave.ast.document import Document, Resource, SourceInfo
from docweave.ast.fidelity import ConversionResult, WarningKind
from docweave.ast.nodes import Node, Properties, text_node
from docweave.ast.utils import collapse_whitespace
from docweave.constants import DEPS_FB2, FB2_NAMESPACE, MAX_HEADING_LEVEL, MIN_HEADING_LEVEL, XLINK_NAMESPACE
from docweave.converter_metadata import ConverterMetadata
from docweave.exceptions import InvalidInputError
from docweave.options.fb2 import Fb2Options
from docweave.parsers._inline import code_node, image_node, link_node
from docweave.parsers.base import BaseParser, ParserInput
from docweave.progress import ProgressCallback
from docweave.utils.decorators import requires_dependencies

logger = logging.getLogger(__name__)

_INLINE_ELEMENTS = {
    "emphasis": kinds.EMPHASIS,
    "strong": kinds.STRONG,
    "strikethrough": kinds.STRIKEOUT,
    "sub": kinds.SUBSCRIPT,
    "sup": kinds.SUPERSCRIPT,
}
_WHITESPACE_RE = re.compile(r"\s+")


def _local_name(tag: str) -> str:
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def _extract_namespace(tag: str) -> str:
    if tag.startswith("{") and "}" in tag:
        return tag[1:].split("}", 1)[0]
    return ""


def _plain_text(element: ET.Element) -> str:
    return _WHITESPACE_RE.sub(" ", "".join(element.itertext())).strip()


def _clamp_level(level: int) -> int:
    return max(MIN_HEADING_LEVEL, min(MAX_HEADING_LEVEL, level))


class Fb2Parser(BaseParser):
    """Convert FB2 ebooks to the document IR.

    Parameters
    ----------
    options : Fb2Options or None, default = None
        Parser configuration options
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates

    """

    format_name = "fb2"
    options_class = Fb2Options
    options: Fb2Options

    def __init__(self, options: Optional[Fb2Options] = None, progress_callback: Optional[ProgressCallback] = None):
        super().__init__(options, progress_callback)
        self._namespaces: dict[str, str] = {"fb2": FB2_NAMESPACE, "xlink": XLINK_NAMESPACE}
        self._document = Document()

    @requires_dependencies("fb2", DEPS_FB2)
    def parse_document(self, input_data: ParserInput) -> Document:
        """Parse an FB2 document (plain or zipped) into a Document.

        Raises
        ------
        InvalidInputError
            If the XML is malformed, forbidden by defusedxml, or not a
            FictionBook document

        """
        root = self._parse_root(self._load_fb2_bytes(input_data))
        self._document = Document(source=SourceInfo(self.format_name))

        if self.options.embed_resources and self.options.extract_binaries:
            self._collect_binaries(root)

        bodies = list(self._iter_children(root, "body"))
        for index, body in enumerate(bodies, start=1):
            if self._is_notes_body(body):
                if self.options.include_notes:
                    self._document.content.child(self._process_notes(body))
            else:
                self._document.content.child(self._process_body(body))
            self._emit_progress("item_done", "Converted FB2 body", current=index, total=len(bodies), item_type="body")

        self._document.metadata = self._extract_metadata(root)
        return self._document

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def _load_fb2_bytes(self, input_data: ParserInput) -> bytes:
        data = self._load_bytes_content(input_data)
        if data.startswith(b"PK\x03\x04"):
            return self._extract_fb2_from_zip(data)
        return data

    @staticmethod
    def _extract_fb2_from_zip(data: bytes) -> bytes:
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                fb2_names = [
                    info for info in archive.infolist() if not info.is_dir() and info.filename.lower().endswith(".fb2")
                ]
                if not fb2_names:
                    raise InvalidInputError(
                        "FB2 archive does not contain an .fb2 file", parsing_stage="archive_extraction"
                    )
                # Prefer the shortest name (heuristic for primary document)
                fb2_info = sorted(fb2_names, key=lambda info: len(info.filename))[0]
                return archive.read(fb2_info)
        except zipfile.BadZipFile as exc:
            raise InvalidInputError(
                "Failed to read FB2 ZIP archive", parsing_stage="archive_opening", original_error=exc
            ) from exc

    def _parse_root(self, xml_bytes: bytes) -> ET.Element:
        try:
            root = ET.fromstring(xml_bytes)
        except ET.ParseError as exc:
            raise InvalidInputError(
                f"Failed to parse FB2 XML: {exc}", parsing_stage="xml_parsing", original_error=exc
            ) from exc
        except DefusedXmlException as exc:
            raise InvalidInputError(
                f"FB2 XML rejected: {exc}", parsing_stage="xml_parsing", original_error=exc
            ) from exc

        if _local_name(root.tag) != "FictionBook":
            raise InvalidInputError(
                f"Not a FictionBook document (root element is <{_local_name(root.tag)}>)", parsing_stage="xml_parsing"
            )
        namespace = _extract_namespace(root.tag)
        if namespace:
            self._namespaces["fb2"] = namespace
        return root

    # ------------------------------------------------------------------
    # Binaries and metadata
    # ------------------------------------------------------------------

    def _collect_binaries(self, root: ET.Element) -> None:
        """Decode ``<binary>`` elements into document resources keyed by their id."""
        for binary in self._iter_children(root, "binary"):
            binary_id = binary.attrib.get("id")
            if not binary_id:
                continue
            payload = _WHITESPACE_RE.sub("", "".join(binary.itertext()))
            try:
                data = base64.b64decode(payload, validate=True)
            except (binascii.Error, ValueError) as exc:
                logger.debug("Failed to decode FB2 binary %s: %s", binary_id, exc)
                self.warnings.minor(
                    WarningKind.RESOURCE_FAILED,
                    f"Binary '{binary_id}' is not valid base64: {exc}",
                    detail=f"fb2:binary:{binary_id}",
                )
                continue
            content_type = binary.attrib.get("content-type", "application/octet-stream")
            self._document.embed(Resource(binary_id, content_type, data), resource_id=binary_id)

    def _extract_metadata(self, root: ET.Element) -> Properties:
        """Metadata from ``description/title-info`` and ``document-info``."""
        metadata = Properties()
        description = self._find_child(root, "description")
        if description is None:
            return metadata

        title_info = self._find_child(description, "title-info")
        if title_info is not None:
            title = self._find_text(title_info, "book-title")
            if title:
                metadata.set("title", title)

            authors = [self._format_author(author) for author in self._iter_children(title_info, "author")]
            authors = [a for a in authors if a]
            if len(authors) == 1:
                metadata.set("author", authors[0])
            elif authors:
                metadata.set("author", authors)

            language = self._find_text(title_info, "lang")
            if language:
                metadata.set("lang", language)

            genres = [_plain_text(genre) for genre in self._iter_children(title_info, "genre")]
            genres = [g for g in genres if g]
            if genres:
                metadata.set("genre", genres)

            keywords = self._find_text(title_info, "keywords")
            if keywords:
                metadata.set("keywords", [kw.strip() for kw in keywords.split(",") if kw.strip()])

            date_element = self._find_child(title_info, "date")
            if date_element is not None:
                date_value = date_element.attrib.get("value") or _plain_text(date_element)
                if date_value:
                    metadata.set("date", date_value)

            annotation = self._find_child(title_info, "annotation")
            if annotation is not None and _plain_text(annotation):
                metadata.set("annotation", _plain_text(annotation))

        doc_info = self._find_child(description, "document-info")
        if doc_info is not None:
            doc_id = self._find_text(doc_info, "id")
            if doc_id:
                metadata.set("identifier", doc_id)

        publish_info = self._find_child(description, "publish-info")
        if publish_info is not None:
            publisher = self._find_text(publish_info, "publisher")
            if publisher:
                metadata.set("publisher", publisher)
        return metadata

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def _process_body(self, body: ET.Element) -> Node:
        div = Node(kinds.DIV).prop("fb2:body", body.attrib.get("name") or "main")
        div.extend(self._process_container(body, depth=1))
        return div

    def _process_section(self, section: ET.Element, depth: int) -> Node:
        """Section as a div; nested sections go one heading level deeper."""
        div = Node(kinds.DIV).prop(props.CLASSES, "section")
        if section.attrib.get("id"):
            div.prop(props.ID, section.attrib["id"])
        if depth > self.options.max_nesting_depth:
            self.warnings.major(
                WarningKind.FEATURE_LOST,
                f"Sections nested deeper than {self.options.max_nesting_depth} levels flattened to text",
                detail="fb2:nesting",
            )
            return div.child(Node(kinds.PARAGRAPH).child(text_node(_plain_text(section))))
        return div.extend(self._process_container(section, depth))

    def _process_container(self, element: ET.Element, depth: int) -> list[Node]:
        """Block children of a body, section, cite or epigraph."""
        nodes: list[Node] = []
        for child in element:
            local = _local_name(child.tag)
            if local == "title":
                heading = self._title_to_heading(child, depth)
                if heading is not None:
                    nodes.append(heading)
            elif local == "section":
                nodes.append(self._process_section(child, depth + 1))
            else:
                node = self._process_block(child, depth)
                if node is not None:
                    nodes.append(node)
        return nodes

    def _process_block(self, element: ET.Element, depth: int) -> Optional[Node]:
        local = _local_name(element.tag)
        if local == "p":
            return self._paragraph(element)
        if local == "empty-line":
            return Node(kinds.PARAGRAPH).prop("fb2:empty_line", True)
        if local == "subtitle":
            return Node(kinds.HEADING, children=self._convert_inline(element)).prop(props.LEVEL, 4)
        if local == "cite":
            return Node(kinds.BLOCKQUOTE, children=self._process_container(element, depth))
        if local == "epigraph":
            quote = Node(kinds.BLOCKQUOTE, children=self._process_container(element, depth))
            return quote.prop("fb2:type", "epigraph")
        if local == "poem":
            return self._process_poem(element, depth)
        if local == "text-author":
            return self._paragraph(element).prop("fb2:type", "text-author")
        if local == "image":
            return self._process_image(element, block=True)
        if local == "table":
            return self._process_table(element)
        if local == "annotation":
            return Node(kinds.DIV, children=self._process_container(element, depth)).prop("fb2:type", "annotation")
        if local in ("epigraph-author", "date"):
            return self._paragraph(element).prop("fb2:type", local)

        logger.debug("Unhandled FB2 block element <%s>", local)
        self.warnings.minor(
            WarningKind.UNSUPPORTED_NODE, f"Unsupported FB2 element <{local}>; text kept", detail=f"fb2:{local}"
        )
        return self._paragraph(element)

    def _process_notes(self, body: ET.Element) -> Node:
        """Notes body: each identified section becomes a footnote definition."""
        div = Node(kinds.DIV).prop("fb2:body", body.attrib.get("name") or "notes")
        for child in body:
            local = _local_name(child.tag)
            if local == "section" and child.attrib.get("id"):
                content = [
                    node
                    for node in self._process_container(child, depth=2)
                    if node.kind != kinds.HEADING
                ]
                div.child(Node(kinds.FOOTNOTE_DEF, children=content).prop(props.LABEL, child.attrib["id"]))
            elif local == "title":
                heading = self._title_to_heading(child, 1)
                if heading is not None:
                    div.child(heading)
            elif local == "section":
                div.child(self._process_section(child, 2))
            else:
                node = self._process_block(child, 1)
                if node is not None:
                    div.child(node)
        return div

    def _process_poem(self, poem: ET.Element, depth: int) -> Node:
        """Poem as a div; each stanza is a div holding one paragraph of verse lines."""
        div = Node(kinds.DIV).prop("fb2:type", "poem")
        for child in poem:
            local = _local_name(child.tag)
            if local == "title":
                heading = self._title_to_heading(child, depth + 1)
                if heading is not None:
                    div.child(heading)
            elif local == "stanza":
                div.child(self._process_stanza(child, depth))
            else:
                node = self._process_block(child, depth)
                if node is not None:
                    div.child(node)
        return div

    def _process_stanza(self, stanza: ET.Element, depth: int) -> Node:
        div = Node(kinds.DIV).prop("fb2:type", "stanza")
        lines = Node(kinds.PARAGRAPH)
        for child in stanza:
            local = _local_name(child.tag)
            if local == "v":
                if lines.children:
                    lines.child(Node(kinds.LINE_BREAK))
                lines.child(Node(kinds.SPAN, children=self._convert_inline(child)).prop("fb2:type", "v"))
            elif local == "title":
                heading = self._title_to_heading(child, depth + 2)
                if heading is not None:
                    div.child(heading)
            else:
                node = self._process_block(child, depth)
                if node is not None:
                    div.child(node)
        if lines.children:
            div.child(lines)
        return div

    def _process_table(self, table: ET.Element) -> Node:
        builder = TableBuilder()
        for row in self._iter_children(table, "tr"):
            cells = [cell for cell in row if _local_name(cell.tag) in ("td", "th")]
            is_header = bool(cells) and all(_local_name(cell.tag) == "th" for cell in cells)
            row_node = builder.add_row([self._convert_inline(cell) for cell in cells], is_header=is_header)
            for cell_node, cell in zip(row_node.children, cells):
                for attribute, key in (("colspan", props.COLSPAN), ("rowspan", props.ROWSPAN)):
                    value = cell.attrib.get(attribute, "")
                    if value.isdigit() and int(value) > 1:
                        cell_node.prop(key, int(value))
                if cell.attrib.get("align"):
                    cell_node.prop(props.ALIGN, cell.attrib["align"])
        return builder.get_table()

    def _title_to_heading(self, title: ET.Element, depth: int) -> Optional[Node]:
        """Heading from a ``<title>``; its paragraphs are joined with line breaks."""
        content: list[Node] = []
        for child in title:
            if _local_name(child.tag) != "p":
                continue
            inlines = self._convert_inline(child)
            if inlines and content:
                content.append(Node(kinds.LINE_BREAK))
            content.extend(inlines)
        if not content:
            return None
        return Node(kinds.HEADING, children=content).prop(props.LEVEL, _clamp_level(depth))

    # ------------------------------------------------------------------
    # Inline content
    # ------------------------------------------------------------------

    def _paragraph(self, element: ET.Element) -> Node:
        paragraph = Node(kinds.PARAGRAPH, children=self._convert_inline(element))
        if element.attrib.get("id"):
            paragraph.prop(props.ID, element.attrib["id"])
        return paragraph

    def _convert_inline(self, element: ET.Element) -> list[Node]:
        return collapse_whitespace(self._inline_children(element))

    def _inline_children(self, element: ET.Element) -> list[Node]:
        nodes: list[Node] = []
        if element.text:
            nodes.append(text_node(element.text))
        for child in element:
            nodes.extend(self._convert_inline_element(child))
            if child.tail:
                nodes.append(text_node(child.tail))
        return nodes

    def _convert_inline_element(self, element: ET.Element) -> list[Node]:
        local = _local_name(element.tag)
        if local in _INLINE_ELEMENTS:
            return [Node(_INLINE_ELEMENTS[local], children=self._inline_children(element))]
        if local == "code":
            return [code_node("".join(element.itertext()))]
        if local == "a":
            return [self._convert_link(element)]
        if local == "image":
            return [self._process_image(element, block=False)]
        if local == "style":
            span = Node(kinds.SPAN, children=self._inline_children(element))
            return [span.prop("fb2:style", element.attrib.get("name", ""))]

        logger.debug("Unhandled FB2 inline element <%s>", local)
        self.warnings.minor(
            WarningKind.UNSUPPORTED_NODE, f"Unsupported FB2 element <{local}>; text kept", detail=f"fb2:{local}"
        )
        return self._inline_children(element)

    def _href(self, element: ET.Element) -> str:
        href = element.attrib.get(f"{{{self._namespaces['xlink']}}}href") or element.attrib.get("href") or ""
        return href.strip()

    def _convert_link(self, element: ET.Element) -> Node:
        href = self._href(element)
        if element.attrib.get("type") == "note" and href.startswith("#"):
            return Node(kinds.FOOTNOTE_REF).prop(props.LABEL, href[1:])
        return link_node(href, self._inline_children(element), element.attrib.get("title"))

    def _process_image(self, element: ET.Element, block: bool) -> Node:
        """Image; a local ``#id`` reference points at the decoded binary."""
        href = self._href(element)
        image = image_node(href, element.attrib.get("alt"), element.attrib.get("title"))
        if href.startswith("#") and self.options.embed_resources and self.options.extract_binaries:
            binary_id = href[1:]
            if self._document.resource(binary_id) is not None:
                image.prop(props.RESOURCE, binary_id)
            else:
                self.warnings.minor(
                    WarningKind.RESOURCE_FAILED,
                    f"Image refers to missing binary '{binary_id}'",
                    detail=f"fb2:binary:{binary_id}",
                )
        if not block:
            return image
        figure = Node(kinds.FIGURE).child(image)
        if element.attrib.get("id"):
            figure.prop(props.ID, element.attrib["id"])
        if element.attrib.get("title"):
            figure.child(Node(kinds.CAPTION).child(text_node(element.attrib["title"])))
        return figure

    # ------------------------------------------------------------------
    # XML helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _find_child(element: ET.Element, local_name: str) -> Optional[ET.Element]:
        for child in element:
            if _local_name(child.tag) == local_name:
                return child
        return None

    def _find_text(self, element: ET.Element, local_name: str) -> Optional[str]:
        child = self._find_child(element, local_name)
        if child is None:
            return None
        return _plain_text(child) or None

    @staticmethod
    def _iter_children(element: ET.Element, local_name: str) -> Iterable[ET.Element]:
        for child in element:
            if _local_name(child.tag) == local_name:
                yield child

    def _format_author(self, author: ET.Element) -> str:
        parts = [
            self._find_text(author, "first-name"),
            self._find_text(author, "middle-name"),
            self._find_text(author, "last-name"),
        ]
        name = " ".join(part for part in parts if part)
        return name or self._find_text(author, "nickname") or ""

    @staticmethod
    def _is_notes_body(body: ET.Element) -> bool:
        body_type = (body.attrib.get("name") or body.attrib.get("type") or "").lower()
        return "note" in body_type


def _is_fb2_content(data: bytes) -> bool:
    """Heuristic content detector for FB2 documents."""
    if not data:
        return False
    leading = data.lstrip()
    if leading.startswith(b"<?xml") or leading.startswith(b"<FictionBook"):
        return b"FictionBook" in leading[:4096]
    if data.startswith(b"PK\x03\x04"):
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                return any(name.lower().endswith(".fb2") for name in archive.namelist())
        except zipfile.BadZipFile:
            return False
    return False


def parse(input_data: ParserInput) -> ConversionResult[Document]:
    """Parse an FB2 document with default options.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        FB2 XML, or a ZIP archive containing one

    Returns
    -------
    ConversionResult[Document]
        The document and any fidelity warnings

    Raises
    ------
    InvalidInputError
        If the XML is malformed

    """
    return Fb2Parser().parse(input_data)


def parse_with_options(
    input_data: ParserInput, options: Fb2Options, progress_callback: Optional[ProgressCallback] = None
) -> ConversionResult[Document]:
    return Fb2Parser(options, progress_callback).parse(input_data)


# Converter metadata for registry auto-discovery
CONVERTER_METADATA = ConverterMetadata(
    format_name="fb2",
    extensions=[".fb2", ".fb2.zip"],
    mime_types=["application/x-fictionbook+xml"],
    content_detector=_is_fb2_content,
    parser_class=Fb2Parser,
    parser_required_packages=DEPS_FB2,
    import_error_message="FB2 parsing requires 'defusedxml'. Install with: pip install defusedxml",
    parser_options_class=Fb2Options,
    description="FictionBook 2.0 ebook format",
    priority=6,
)
