"""
Validation Package

Boundary checks for untrusted backup documents.
"""

from expense_tracker.validation.importer import export_document, parse_import

__all__ = ["export_document", "parse_import"]
