"""
stagels Language Server Protocol (LSP) implementation.

This package turns analyzer output into LSP diagnostics and delivers them:
- Syntax diagnostics from the live parse, on request (pull)
- Top-level and inference diagnostics from full analysis, pushed after
  every completed pass
- Cross-file reports, with call stacks as related information

Usage:
    # Start the LSP server (stdio mode)
    stagels-lsp

    # Or run as a module
    python -m stagels.lsp
"""

from stagels.lsp.server import StagelsLanguageServer, main

__all__ = [
    "StagelsLanguageServer",
    "main",
]
