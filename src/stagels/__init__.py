"""
stagels - diagnostics for a staged-analysis language server.

Raw results from three analysis stages (syntax, top-level loading and type
inference) are normalized into position-accurate LSP diagnostics, merged
per document, and delivered to editors by push and pull.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
