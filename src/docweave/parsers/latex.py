#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/latex.py
r"""LaTeX to AST converter.

This module converts LaTeX documents to the IR using the pylatexenc
library. ``LatexWalker`` produces a flat node list in which block and
inline material are interleaved; the converter maps every pylatexenc node
to IR nodes and then groups runs of inline nodes into paragraphs, breaking
at blank lines, ``\par`` and block-level output.

Supported LaTeX Features
------------------------
Sectioning:
    - \part, \chapter, \section ... \subparagraph (starred forms unnumbered)

Text formatting:
    - \textbf, \textit, \emph, \textsl, \texttt, \underline, \sout,
      \textsc, \textsuperscript, \textsubscript
    - ``{\bf ...}``, ``{\em ...}`` and friends

Environments:
    - itemize, enumerate, description
    - quote, quotation, verse, center, flushleft, flushright, abstract
    - verbatim, lstlisting, minted
    - equation, align, displaymath and the other math environments
    - tabular (inside or outside a table float), figure

Math:
    - ``$...$`` and ``\(...\)`` give math_inline
    - ``$$...$$`` and ``\[...\]`` give math_display

Metadata (preamble):
    - \title, \author (split on ``\and``), \date

"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from docweave.ast import kinds, props
from docweave.ast.builder import TableBuilder
from docweave.ast.document import Document, SourceInfo
from docweave.ast.fidelity import ConversionResult, WarningKind
from docweave.ast.nodes import Node, Properties, text_node
from docweave.ast.utils import collapse_whitespace
from docweave.constants import DEPS_LATEX, LATEX_MATH_ENVIRONMENTS, LATEX_SECTION_LEVELS
from docweave.converter_metadata import ConverterMetadata
from docweave.exceptions import InvalidInputError
from docweave.options.latex import LatexOptions
from docweave.parsers._inline import code_node, image_node, link_node
from docweave.parsers.base import BaseParser, ParserInput
from docweave.progress import ProgressCallback
from docweave.utils.decorators import requires_dependencies

logger = logging.getLogger(__name__)

# Internal markers in the converted stream; never reach the document
_PAR = "latex:par"
_LABEL = "latex:label"


_INLINE_MACROS = {
    "textbf": kinds.STRONG,
    "textit": kinds.EMPHASIS,
    "emph": kinds.EMPHASIS,
    "textsl": kinds.EMPHASIS,
    "underline": kinds.UNDERLINE,
    "uline": kinds.UNDERLINE,
    "sout": kinds.STRIKEOUT,
    "st": kinds.STRIKEOUT,
    "textsc": kinds.SMALL_CAPS,
    "textsuperscript": kinds.SUPERSCRIPT,
    "textsubscript": kinds.SUBSCRIPT,
}
_TRANSPARENT_MACROS = ("textrm", "textsf", "textnormal", "textup", "textmd", "mbox", "text")
_DECLARATIONS = {
    "bf": kinds.STRONG,
    "bfseries": kinds.STRONG,
    "it": kinds.EMPHASIS,
    "itshape": kinds.EMPHASIS,
    "em": kinds.EMPHASIS,
    "sl": kinds.EMPHASIS,
    "sc": kinds.SMALL_CAPS,
    "scshape": kinds.SMALL_CAPS,
}
_SYMBOLS = {
    "&": "&",
    "%": "%",
    "$": "$",
    "#": "#",
    "_": "_",
    "{": "{",
    "}": "}",
    " ": " ",
    ",": "\u2009",
    "ldots": "\u2026",
    "dots": "\u2026",
    "textellipsis": "\u2026",
    "textendash": "\u2013",
    "textemdash": "\u2014",
    "textbackslash": "\\",
    "textasciitilde": "~",
    "S": "\u00a7",
    "P": "\u00b6",
    "copyright": "\u00a9",
    "textcopyright": "\u00a9",
    "textregistered": "\u00ae",
    "texttrademark": "\u2122",
    "LaTeX": "LaTeX",
    "TeX": "TeX",
    "quad": "\u2003",
    "qquad": "\u2003\u2003",
}
_SPECIALS = {
    "~": "\u00a0",
    "--": "\u2013",
    "---": "\u2014",
    "``": "\u201c",
    "''": "\u201d",
    "`": "\u2018",
    "'": "\u2019",
}
_ACCENTS = frozenset("'`^\"~=.cvuHrkdb")

# Macros dropped silently, with the number of mandatory arguments they take
_IGNORED_MACROS = {
    "documentclass": 1,
    "usepackage": 1,
    "maketitle": 0,
    "tableofcontents": 0,
    "listoffigures": 0,
    "listoftables": 0,
    "centering": 0,
    "noindent": 0,
    "indent": 0,
    "vspace": 1,
    "hspace": 1,
    "vfill": 0,
    "hfill": 0,
    "smallskip": 0,
    "medskip": 0,
    "bigskip": 0,
    "pagestyle": 1,
    "thispagestyle": 1,
    "setlength": 2,
    "newcommand": 2,
    "renewcommand": 2,
    "bibliographystyle": 1,
    "bibliography": 1,
    "appendix": 0,
    "frontmatter": 0,
    "mainmatter": 0,
    "backmatter": 0,
    "small": 0,
    "footnotesize": 0,
    "large": 0,
    "Large": 0,
    "normalsize": 0,
    "ttfamily": 0,
    "rmfamily": 0,
    "sffamily": 0,
}
_PAGE_BREAKS = ("newpage", "clearpage", "cleardoublepage", "pagebreak")
_LINE_BREAKS = ("\\", "newline", "linebreak")
_TABLE_RULES = {"hline": 0, "toprule": 0, "midrule": 0, "bottomrule": 0, "cline": 1, "cmidrule": 1}
_REFERENCES = ("ref", "eqref", "pageref", "autoref", "cref", "Cref")
_CITATIONS = ("cite", "citep", "citet", "autocite", "parencite", "textcite")
_VERBATIM_ENVIRONMENTS = ("verbatim", "verbatim*", "lstlisting", "minted", "Verbatim")
_QUOTE_ENVIRONMENTS = ("quote", "quotation", "verse")
_ALIGN_ENVIRONMENTS = {"center": "center", "flushleft": "left", "flushright": "right"}
_LIST_ENVIRONMENTS = ("itemize", "enumerate", "description")
_COLUMN_ALIGNMENTS = {"l": "left", "c": "center", "r": "right", "p": "left", "m": "left", "b": "left", "X": "left"}

_BLANK_LINE_RE = re.compile(r"\n[ \t]*\n\s*")
_LANGUAGE_OPTION_RE = re.compile(r"language\s*=\s*\{?([\w+#-]+)")


def _verbatim(nodes: list[Any]) -> str:
    """LaTeX source of a node list."""
    return "".join(node.latex_verbatim() for node in nodes if node is not None)


class LatexParser(BaseParser):
    r"""Convert LaTeX to the document IR.

    Parameters
    ----------
    options : LatexOptions or None, default = None
        Parser configuration options
    progress_callback : ProgressCallback or None, default = None
        Optional callback for progress updates

    Examples
    --------
    Basic parsing:

        >>> result = LatexParser().parse("\\section{Title}\n\nThis is \\textbf{bold}.")
        >>> [block.kind for block in result.value.blocks]
        ['heading', 'paragraph']

    Keeping math as source code:

        >>> options = LatexOptions(parse_math=False)
        >>> result = LatexParser(options).parse("$x^2$")

    """

    format_name = "latex"
    options_class = LatexOptions
    options: LatexOptions

    def __init__(self, options: LatexOptions | None = None, progress_callback: Optional[ProgressCallback] = None):
        super().__init__(options, progress_callback)
        self.metadata = Properties()
        self._depth = 0

    @requires_dependencies("latex", DEPS_LATEX)
    def parse_document(self, input_data: ParserInput) -> Document:
        """Parse LaTeX input into a Document.

        Parameters
        ----------
        input_data : str, bytes, Path or IO[bytes]
            LaTeX source

        Returns
        -------
        Document
            Parsed document

        Raises
        ------
        InvalidInputError
            In strict mode, if pylatexenc cannot parse the source

        """
        from pylatexenc.latexwalker import LatexWalker, LatexWalkerError

        content = self._load_text_content(input_data)
        if content.startswith("\ufeff"):
            content = content[1:]

        try:
            walker = LatexWalker(content, tolerant_parsing=not self.options.strict_mode)
            nodelist, _pos, _length = walker.get_latex_nodes()
        except (LatexWalkerError, RecursionError) as e:
            if self.options.strict_mode:
                raise InvalidInputError(
                    f"Failed to parse LaTeX: {e}", parsing_stage="latex_walker", original_error=e
                ) from e
            logger.debug("LaTeX walker failed, falling back to plain text: %s", e)
            self.warnings.major(
                WarningKind.FEATURE_LOST, f"LaTeX could not be parsed; kept as plain text: {e}", detail="latex:walker"
            )
            root = Node(kinds.DOCUMENT)
            if content.strip():
                root.child(Node(kinds.PARAGRAPH).child(text_node(content.strip())))
            return Document(content=root, source=SourceInfo(self.format_name))

        self._emit_progress("item_done", "LaTeX structure parsed", current=1, total=2, item_type="structure")

        body = self._find_environment(nodelist, "document")
        if body is not None:
            self._read_preamble(nodelist[: nodelist.index(body)])
            blocks = self._blocks(self._convert_nodes(body.nodelist or []))
        else:
            blocks = self._blocks(self._convert_nodes(nodelist))

        self._emit_progress("item_done", "LaTeX nodes converted", current=2, total=2, item_type="body")
        return Document(
            content=Node(kinds.DOCUMENT, children=blocks), metadata=self.metadata, source=SourceInfo(self.format_name)
        )

    def _read_preamble(self, nodelist: list[Any]) -> None:
        """Take ``\\title``, ``\\author`` and ``\\date`` from the preamble; the rest is ignored."""
        if not self.options.parse_preamble:
            return
        for index, node in enumerate(nodelist):
            name = getattr(node, "macroname", None)
            if name in ("title", "author", "date"):
                args, _end = self._arguments(node, nodelist, index, 1)
                if args:
                    self._set_preamble_metadata(name, args[0])

    @staticmethod
    def _find_environment(nodelist: list[Any], name: str) -> Any:
        for node in nodelist:
            if getattr(node, "environmentname", None) == name:
                return node
        return None

    # ------------------------------------------------------------------
    # Stream conversion
    # ------------------------------------------------------------------

    def _convert_nodes(self, nodelist: list[Any]) -> list[Node]:
        """Convert a pylatexenc node list into a stream of IR nodes and markers."""
        from pylatexenc.latexwalker import LatexMacroNode

        stream: list[Node] = []
        index = 0
        while index < len(nodelist):
            node = nodelist[index]
            if isinstance(node, LatexMacroNode):
                converted, index = self._convert_macro(node, nodelist, index)
            else:
                converted = self._convert_node(node)
                index += 1
            stream.extend(converted)
        return stream

    def _convert_node(self, node: Any) -> list[Node]:
        from pylatexenc.latexwalker import (
            LatexCharsNode,
            LatexCommentNode,
            LatexEnvironmentNode,
            LatexGroupNode,
            LatexMathNode,
            LatexSpecialsNode,
        )

        if isinstance(node, LatexCharsNode):
            return self._convert_chars(node.chars)
        if isinstance(node, LatexGroupNode):
            return self._convert_group(node)
        if isinstance(node, LatexEnvironmentNode):
            return self._convert_environment(node)
        if isinstance(node, LatexMathNode):
            return [self._convert_math(node)]
        if isinstance(node, LatexSpecialsNode):
            return [text_node(_SPECIALS.get(node.specials_chars, node.specials_chars))]
        if isinstance(node, LatexCommentNode):
            return []
        logger.debug("Skipping pylatexenc node %s", type(node).__name__)
        return []

    @staticmethod
    def _convert_chars(chars: str) -> list[Node]:
        """Text; blank lines become paragraph markers."""
        stream: list[Node] = []
        for index, piece in enumerate(_BLANK_LINE_RE.split(chars)):
            if index:
                stream.append(Node(_PAR))
            if piece:
                stream.append(text_node(piece))
        return stream

    def _convert_group(self, node: Any) -> list[Node]:
        """Braced group; a leading declaration (``{\\bf ...}``) wraps the rest."""
        nodelist = list(node.nodelist or [])
        first = next((n for n in nodelist if not (getattr(n, "chars", None) or "x").isspace()), None)
        declaration = _DECLARATIONS.get(getattr(first, "macroname", ""))
        if declaration is not None:
            rest = nodelist[nodelist.index(first) + 1 :]
            return [Node(declaration, children=collapse_whitespace(self._inline_stream(rest)))]
        if not self._enter():
            return [text_node(_verbatim(nodelist))]
        try:
            return self._convert_nodes(nodelist)
        finally:
            self._depth -= 1

    def _inline_stream(self, nodelist: list[Any]) -> list[Node]:
        """Convert nodes for an inline context; paragraph markers become spaces."""
        stream = []
        for node in self._convert_nodes(nodelist):
            if node.kind == _PAR:
                stream.append(text_node(" "))
            elif node.kind != _LABEL:
                stream.append(node)
        return stream

    def _inlines(self, nodelist: list[Any]) -> list[Node]:
        return collapse_whitespace(self._inline_stream(nodelist))

    def _blocks(self, stream: list[Node]) -> list[Node]:
        """Group a converted stream into blocks.

        Runs of inline nodes become paragraphs; a ``\\label`` marker sets the
        id of the preceding block when it has none.
        """
        blocks: list[Node] = []
        pending: list[Node] = []

        def flush() -> None:
            content = collapse_whitespace(pending)
            if content:
                blocks.append(Node(kinds.PARAGRAPH, children=content))
            pending.clear()

        for node in stream:
            if node.kind == _PAR:
                flush()
            elif node.kind == _LABEL:
                if not pending and blocks and blocks[-1].get(props.ID) is None:
                    blocks[-1].prop(props.ID, node.get(props.LABEL))
            elif kinds.is_block_kind(node.kind):
                flush()
                blocks.append(node)
            else:
                pending.append(node)
        flush()
        return blocks

    def _enter(self) -> bool:
        if self._depth >= self.options.max_nesting_depth:
            self.warnings.major(
                WarningKind.FEATURE_LOST,
                f"Nesting deeper than {self.options.max_nesting_depth} levels kept as source",
                detail="latex:nesting",
            )
            return False
        self._depth += 1
        return True

    # ------------------------------------------------------------------
    # Macro arguments
    # ------------------------------------------------------------------

    def _arguments(self, node: Any, nodelist: list[Any], index: int, count: int) -> tuple[list[list[Any]], int]:
        """Mandatory arguments of the macro at ``nodelist[index]`` and the index after it.

        Arguments pylatexenc did not attach (macros missing from its database)
        are taken from the braced groups that follow the macro.
        """
        from pylatexenc.latexwalker import LatexGroupNode

        args: list[list[Any]] = []
        argd = node.nodeargd
        if argd is not None and argd.argnlist:
            spec = getattr(argd, "argspec", "") or ""
            for position, arg in enumerate(argd.argnlist):
                if arg is None or (position < len(spec) and spec[position] != "{"):
                    continue
                args.append(list(arg.nodelist or []) if isinstance(arg, LatexGroupNode) else [arg])

        next_index = index + 1
        while len(args) < count and next_index < len(nodelist):
            following = nodelist[next_index]
            if not isinstance(following, LatexGroupNode) or following.delimiters[0] != "{":
                break
            args.append(list(following.nodelist or []))
            next_index += 1
        return args, next_index

    @staticmethod
    def _optional(node: Any) -> Optional[list[Any]]:
        """First ``[...]`` argument of a macro, if any."""
        argd = node.nodeargd
        if argd is None or not argd.argnlist:
            return None
        spec = getattr(argd, "argspec", "") or ""
        for position, arg in enumerate(argd.argnlist):
            if arg is not None and position < len(spec) and spec[position] == "[":
                return list(arg.nodelist or [])
        return None

    @staticmethod
    def _starred(node: Any) -> bool:
        argd = node.nodeargd
        if argd is None or not argd.argnlist:
            return False
        spec = getattr(argd, "argspec", "") or ""
        return any(
            arg is not None and position < len(spec) and spec[position] == "*"
            for position, arg in enumerate(argd.argnlist)
        )

    # ------------------------------------------------------------------
    # Macros
    # ------------------------------------------------------------------

    def _convert_macro(self, node: Any, nodelist: list[Any], index: int) -> tuple[list[Node], int]:
        """Convert a macro; returns the IR nodes and the index of the next sibling."""
        name = node.macroname

        if name in LATEX_SECTION_LEVELS:
            args, end = self._arguments(node, nodelist, index, 1)
            heading = Node(kinds.HEADING, children=self._inlines(args[0] if args else []))
            heading.prop(props.LEVEL, LATEX_SECTION_LEVELS[name])
            if self._starred(node):
                heading.prop("latex:numbered", False)
            return [heading], end

        if name in _INLINE_MACROS:
            args, end = self._arguments(node, nodelist, index, 1)
            return [Node(_INLINE_MACROS[name], children=self._inlines(args[0] if args else []))], end

        if name in _TRANSPARENT_MACROS:
            args, end = self._arguments(node, nodelist, index, 1)
            return self._inline_stream(args[0] if args else []), end

        if name == "texttt":
            args, end = self._arguments(node, nodelist, index, 1)
            return [code_node("".join(n.text_content() for n in self._inlines(args[0] if args else [])))], end

        if name == "verb":
            return [self._convert_verb(node)], index + 1

        if name in _SYMBOLS:
            spacing = " " if getattr(node, "macro_post_space", "") and name.isalpha() else ""
            return [text_node(_SYMBOLS[name] + spacing)], index + 1

        if name in _ACCENTS:
            from pylatexenc.latex2text import LatexNodes2Text

            return [text_node(LatexNodes2Text().nodelist_to_text([node]))], index + 1

        if name in _LINE_BREAKS:
            return [Node(kinds.LINE_BREAK)], index + 1

        if name == "par":
            return [Node(_PAR)], index + 1

        if name in ("hrule", "rule"):
            _args, end = self._arguments(node, nodelist, index, 2 if name == "rule" else 0)
            return [Node(kinds.HORIZONTAL_RULE)], end

        if name in _PAGE_BREAKS:
            return [Node(kinds.DIV).prop(props.LAYOUT_PAGE_BREAK, True)], index + 1

        if name in ("title", "author", "date"):
            args, end = self._arguments(node, nodelist, index, 1)
            if self.options.parse_preamble and args:
                self._set_preamble_metadata(name, args[0])
            return [], end

        if name == "label":
            args, end = self._arguments(node, nodelist, index, 1)
            label = _verbatim(args[0]).strip() if args else ""
            return ([Node(_LABEL).prop(props.LABEL, label)] if label else []), end

        if name == "href":
            args, end = self._arguments(node, nodelist, index, 2)
            url = _verbatim(args[0]).strip() if args else ""
            children = self._inlines(args[1]) if len(args) > 1 else [text_node(url)]
            return [link_node(url, children)], end

        if name == "url":
            args, end = self._arguments(node, nodelist, index, 1)
            url = _verbatim(args[0]).strip() if args else ""
            return [link_node(url, [text_node(url)])], end

        if name in _REFERENCES:
            args, end = self._arguments(node, nodelist, index, 1)
            target = _verbatim(args[0]).strip() if args else ""
            return [link_node(f"#{target}", [text_node(target)])], end

        if name in _CITATIONS:
            args, end = self._arguments(node, nodelist, index, 1)
            keys = _verbatim(args[0]).strip() if args else ""
            return [Node(kinds.CITE, children=[text_node(keys)]).prop(props.LABEL, keys)], end

        if name == "footnote":
            args, end = self._arguments(node, nodelist, index, 1)
            paragraph = Node(kinds.PARAGRAPH, children=self._inlines(args[0] if args else []))
            return [Node(kinds.FOOTNOTE_DEF).child(paragraph)], end

        if name == "includegraphics":
            args, end = self._arguments(node, nodelist, index, 1)
            return [self._image(node, args)], end

        if name in _IGNORED_MACROS:
            _args, end = self._arguments(node, nodelist, index, _IGNORED_MACROS[name])
            return [], end

        if name in _TABLE_RULES:
            _args, end = self._arguments(node, nodelist, index, _TABLE_RULES[name])
            return [], end

        if name == "item":
            self.warnings.minor(WarningKind.SIMPLIFIED, "\\item outside a list environment", detail="latex:stray:item")
            return [], index + 1

        logger.debug("Unknown LaTeX macro \\%s", name)
        self.warnings.minor(
            WarningKind.UNSUPPORTED_NODE,
            f"Unsupported LaTeX macro \\{name}; argument text kept",
            detail=f"latex:{name}",
        )
        # Arguments pylatexenc attached are kept as text; unattached groups follow as siblings
        args, end = self._arguments(node, nodelist, index, 0)
        stream: list[Node] = []
        for arg in args:
            stream.extend(self._inline_stream(arg))
        return stream, end

    def _set_preamble_metadata(self, name: str, arg: list[Any]) -> None:
        from pylatexenc.latex2text import LatexNodes2Text

        to_text = LatexNodes2Text()
        raw = _verbatim(arg)
        if name == "author":
            authors = [to_text.latex_to_text(part).strip() for part in re.split(r"\\and\b", raw)]
            authors = [author for author in authors if author]
            if len(authors) == 1:
                self.metadata.set("author", authors[0])
            elif authors:
                self.metadata.set("author", authors)
            return
        if name == "date" and raw.strip() == "\\today":
            return
        value = to_text.latex_to_text(raw).strip()
        if value:
            self.metadata.set(name, value)

    def _convert_verb(self, node: Any) -> Node:
        """``\\verb|text|``; the delimiter is any character."""
        argd = node.nodeargd
        text = getattr(argd, "verbatim_text", None) if argd is not None else None
        if text is None:
            match = re.match(r"\\verb\*?(.)(.*?)\1", node.latex_verbatim(), re.DOTALL)
            text = match.group(2) if match else ""
        return code_node(text)

    def _image(self, node: Any, args: list[list[Any]]) -> Node:
        url = _verbatim(args[0]).strip() if args else ""
        image = image_node(url)
        options = self._optional(node)
        if options:
            image.prop("latex:options", _verbatim(options).strip())
        return image

    def _convert_math(self, node: Any) -> Node:
        source = _verbatim(node.nodelist or []).strip()
        display = getattr(node, "displaytype", "inline") == "display"
        if not self.options.parse_math:
            if display:
                return Node(kinds.CODE_BLOCK).prop(props.CONTENT, source).prop(props.LANGUAGE, "latex")
            return code_node(source).prop(props.LANGUAGE, "latex")
        return Node(kinds.MATH_DISPLAY if display else kinds.MATH_INLINE).prop(props.MATH_SOURCE, source)

    # ------------------------------------------------------------------
    # Environments
    # ------------------------------------------------------------------

    def _convert_environment(self, node: Any) -> list[Node]:
        name = node.environmentname
        if not self._enter():
            return [Node(kinds.CODE_BLOCK).prop(props.CONTENT, node.latex_verbatim()).prop(props.LANGUAGE, "latex")]
        try:
            return self._dispatch_environment(name, node)
        finally:
            self._depth -= 1

    def _dispatch_environment(self, name: str, node: Any) -> list[Node]:
        nodelist = list(node.nodelist or [])

        if name in LATEX_MATH_ENVIRONMENTS:
            return [self._math_environment(name, nodelist)]
        if name in _LIST_ENVIRONMENTS:
            return [self._convert_list(name, nodelist)]
        if name in _VERBATIM_ENVIRONMENTS:
            return [self._convert_verbatim(name, node)]
        if name in _QUOTE_ENVIRONMENTS:
            quote = Node(kinds.BLOCKQUOTE, children=self._blocks(self._convert_nodes(nodelist)))
            if name != "quote":
                quote.prop("latex:environment", name)
            return [quote]
        if name in _ALIGN_ENVIRONMENTS:
            div = Node(kinds.DIV, children=self._blocks(self._convert_nodes(nodelist)))
            return [div.prop(props.STYLE_ALIGN, _ALIGN_ENVIRONMENTS[name])]
        if name == "abstract":
            abstract = Node(kinds.DIV, children=self._blocks(self._convert_nodes(nodelist)))
            return [abstract.prop(props.CLASSES, "abstract")]
        if name in ("tabular", "tabular*", "tabularx", "longtable"):
            return [self._convert_tabular(node)]
        if name in ("table", "table*"):
            return self._convert_table_float(nodelist)
        if name in ("figure", "figure*"):
            return [self._convert_figure(nodelist)]
        if name in ("document", "minipage"):
            return self._blocks(self._convert_nodes(nodelist))

        logger.debug("Unknown LaTeX environment %s", name)
        self.warnings.minor(
            WarningKind.UNSUPPORTED_NODE, f"Unsupported LaTeX environment '{name}'", detail=f"latex:{name}"
        )
        div = Node(kinds.DIV, children=self._blocks(self._convert_nodes(nodelist)))
        return [div.prop("latex:environment", name)]

    def _math_environment(self, name: str, nodelist: list[Any]) -> Node:
        source = _verbatim(nodelist).strip()
        if not self.options.parse_math:
            return Node(kinds.CODE_BLOCK).prop(props.CONTENT, source).prop(props.LANGUAGE, "latex")
        return Node(kinds.MATH_DISPLAY).prop(props.MATH_SOURCE, source).prop("latex:environment", name)

    def _convert_list(self, name: str, nodelist: list[Any]) -> Node:
        """List environment; items are split at ``\\item`` macros.

        ``description`` items become a definition list with the ``[label]``
        as the term.
        """
        items: list[tuple[Any, list[Any]]] = []
        for child in nodelist:
            if getattr(child, "macroname", None) == "item":
                items.append((child, []))
            elif items:
                items[-1][1].append(child)

        if name == "description":
            definitions = Node(kinds.DEFINITION_LIST)
            for item, body in items:
                term = self._optional(item)
                definitions.child(Node(kinds.DEFINITION_TERM, children=self._inlines(term or [])))
                definitions.child(Node(kinds.DEFINITION_DESC, children=self._blocks(self._convert_nodes(body))))
            return definitions

        ordered = name == "enumerate"
        lst = Node(kinds.LIST).prop(props.ORDERED, ordered)
        for item, body in items:
            list_item = Node(kinds.LIST_ITEM, children=self._blocks(self._convert_nodes(body)))
            label = self._optional(item)
            if label is not None:
                list_item.prop("latex:label", _verbatim(label).strip())
            lst.child(list_item)
        return lst

    def _convert_verbatim(self, name: str, node: Any) -> Node:
        """Code block from the environment source, which pylatexenc may have tokenized."""
        escaped = re.escape(name)
        pattern = r"\\begin\{" + escaped + r"\}(\[[^\]]*\])?"
        if name == "minted":
            pattern += r"(?:\{([^}]*)\})?"
        pattern += r"[ \t]*\n?(.*?)\n?[ \t]*\\end\{" + escaped + r"\}"
        match = re.match(pattern, node.latex_verbatim(), re.DOTALL)
        if match is None:
            return Node(kinds.CODE_BLOCK).prop(props.CONTENT, _verbatim(node.nodelist or []))

        code = Node(kinds.CODE_BLOCK).prop(props.CONTENT, match.group(match.lastindex or 1))
        language = None
        if name == "minted":
            language = match.group(2)
        elif match.group(1):
            option = _LANGUAGE_OPTION_RE.search(match.group(1))
            language = option.group(1) if option else None
        if language:
            code.prop(props.LANGUAGE, language.lower())
        return code

    def _column_spec(self, node: Any) -> tuple[str, list[Any]]:
        """Column specification and the body nodes of a tabular environment."""
        from pylatexenc.latexwalker import LatexGroupNode

        nodelist = list(node.nodelist or [])
        argd = node.nodeargd
        if argd is not None and argd.argnlist:
            groups = [arg for arg in argd.argnlist if isinstance(arg, LatexGroupNode)]
            if groups:
                return _verbatim(groups[-1].nodelist or []), nodelist
        # Column spec not attached as an argument: it is the first group of the body
        for position, child in enumerate(nodelist):
            if isinstance(child, LatexGroupNode):
                return _verbatim(child.nodelist or []), nodelist[position + 1 :]
            if not (getattr(child, "chars", None) or "x").isspace():
                break
        return "", nodelist

    def _convert_tabular(self, node: Any, caption: Optional[list[Node]] = None) -> Node:
        """Table from a tabular environment.

        Rows end at ``\\\\``, cells at ``&``; rules are skipped and
        ``\\multicolumn`` sets the colspan. With more than one row the first
        row is the header.
        """
        spec, body = self._column_spec(node)
        alignments = [_COLUMN_ALIGNMENTS[c] for c in re.sub(r"\{[^}]*\}", "", spec) if c in _COLUMN_ALIGNMENTS]

        rows: list[list[tuple[list[Any], int]]] = []
        cells: list[tuple[list[Any], int]] = [([], 1)]

        def end_row() -> None:
            if any(_verbatim(content).strip() for content, _span in cells):
                rows.append(list(cells))
            cells[:] = [([], 1)]

        index = 0
        while index < len(body):
            child = body[index]
            macro = getattr(child, "macroname", None)
            if macro == "\\":
                end_row()
                index += 1
            elif getattr(child, "specials_chars", None) == "&":
                cells.append(([], 1))
                index += 1
            elif macro in _TABLE_RULES:
                _args, index = self._arguments(child, body, index, _TABLE_RULES[macro])
            elif macro == "multicolumn":
                args, index = self._arguments(child, body, index, 3)
                span_text = _verbatim(args[0]).strip() if args else "1"
                span = int(span_text) if span_text.isdigit() else 1
                cells[-1] = (cells[-1][0] + (args[2] if len(args) > 2 else []), span)
            else:
                cells[-1][0].append(child)
                index += 1
        end_row()

        builder = TableBuilder()
        for position, row in enumerate(rows):
            row_node = builder.add_row([self._inlines(content) for content, _span in row], is_header=False)
            for cell, (_content, span) in zip(row_node.children, row):
                if span > 1:
                    cell.prop(props.COLSPAN, span)
            if position == 0 and len(rows) > 1:
                builder.promote_first_row()
        for column, alignment in enumerate(alignments):
            builder.set_column_alignment(column, alignment)
        if caption:
            builder.set_caption(caption)
        return builder.get_table()

    def _float_parts(self, nodelist: list[Any]) -> tuple[Optional[list[Node]], Optional[str]]:
        """Caption and label of a float environment."""
        caption = label = None
        for index, child in enumerate(nodelist):
            macro = getattr(child, "macroname", None)
            if macro == "caption":
                args, _end = self._arguments(child, nodelist, index, 1)
                caption = self._inlines(args[0]) if args else []
            elif macro == "label":
                args, _end = self._arguments(child, nodelist, index, 1)
                label = _verbatim(args[0]).strip() if args else None
        return caption, label

    def _convert_table_float(self, nodelist: list[Any]) -> list[Node]:
        caption, label = self._float_parts(nodelist)
        tabular = next(
            (child for child in nodelist if (getattr(child, "environmentname", None) or "").startswith("tabular")), None
        )
        if tabular is None:
            return self._blocks(self._convert_nodes(nodelist))
        table = self._convert_tabular(tabular, caption)
        if label:
            table.prop(props.ID, label)
        return [table]

    def _convert_figure(self, nodelist: list[Any]) -> Node:
        """Figure float: the included graphics and an optional caption."""
        caption, label = self._float_parts(nodelist)
        figure = Node(kinds.FIGURE)
        for index, child in enumerate(nodelist):
            if getattr(child, "macroname", None) == "includegraphics":
                args, _end = self._arguments(child, nodelist, index, 1)
                figure.child(self._image(child, args))
        if caption is not None:
            figure.child(Node(kinds.CAPTION, children=caption))
        if label:
            figure.prop(props.ID, label)
        return figure


def parse(input_data: ParserInput) -> ConversionResult[Document]:
    r"""Parse LaTeX with default options.

    Parameters
    ----------
    input_data : str, bytes, Path or IO[bytes]
        LaTeX source

    Returns
    -------
    ConversionResult[Document]
        The document and any fidelity warnings

    """
    return LatexParser().parse(input_data)


def parse_with_options(
    input_data: ParserInput, options: LatexOptions, progress_callback: Optional[ProgressCallback] = None
) -> ConversionResult[Document]:
    return LatexParser(options, progress_callback).parse(input_data)


# Converter metadata for registry auto-discovery
CONVERTER_METADATA = ConverterMetadata(
    format_name="latex",
    extensions=[".tex", ".latex"],
    mime_types=["text/x-tex", "application/x-tex", "application/x-latex"],
    parser_class=LatexParser,
    parser_required_packages=DEPS_LATEX,
    import_error_message="LaTeX parsing requires the 'pylatexenc' package. Install it with: pip install pylatexenc",
    parser_options_class=LatexOptions,
    description="Parse LaTeX documents via pylatexenc",
    priority=10,
)
