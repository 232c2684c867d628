#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/ast/__init__.py
"""Document intermediate representation shared by every reader.

The IR is deliberately untyped at the node level: a ``Node`` carries a
string ``kind`` and a ``Properties`` map, with the shared vocabulary in
``docweave.ast.kinds`` and ``docweave.ast.props``. Readers attach
dialect-specific information under namespaced keys and kinds.
"""

from docweave.ast import kinds, props
from docweave.ast.builder import DocumentBuilder, ListBuilder, TableBuilder
from docweave.ast.document import Document, Resource, SourceInfo
from docweave.ast.fidelity import (
    ConversionResult,
    FidelityCollector,
    FidelityWarning,
    Severity,
    WarningKind,
)
from docweave.ast.nodes import Node, Properties, Span, text_node
from docweave.ast.serialization import (
    document_from_dict,
    document_from_json,
    document_to_dict,
    document_to_json,
    node_from_dict,
    node_to_dict,
)
from docweave.ast.utils import collapse_whitespace, extract_text, iter_nodes, merge_text_nodes, normalize_inlines
from docweave.ast.visitors import NodeTransformer, NodeVisitor, ValidationVisitor

__all__ = [
    "ConversionResult",
    "Document",
    "DocumentBuilder",
    "FidelityCollector",
    "FidelityWarning",
    "ListBuilder",
    "Node",
    "NodeTransformer",
    "NodeVisitor",
    "Properties",
    "Resource",
    "Severity",
    "SourceInfo",
    "Span",
    "TableBuilder",
    "ValidationVisitor",
    "WarningKind",
    "collapse_whitespace",
    "document_from_dict",
    "document_from_json",
    "document_to_dict",
    "document_to_json",
    "extract_text",
    "iter_nodes",
    "kinds",
    "merge_text_nodes",
    "node_from_dict",
    "node_to_dict",
    "normalize_inlines",
    "props",
    "text_node",
]
