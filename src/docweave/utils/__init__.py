#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/docweave/utils/__init__.py
"""Shared helpers: dependency checks, package versions and input decoding."""
