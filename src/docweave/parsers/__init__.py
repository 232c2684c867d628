#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/parsers/__init__.py
"""Reader package initialization.

Each public module in this package defines a parser class and a
CONVERTER_METADATA object; importing the package registers every one of
them with the converter registry. A new reader only needs a module here
with its own CONVERTER_METADATA.
"""

from docweave.converter_registry import registry

registry.auto_discover()
