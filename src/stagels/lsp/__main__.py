"""
Entry point for running the stagels LSP server as a module.

Usage:
    python -m stagels.lsp
    python -m stagels.lsp --tcp --port 2087
"""

from stagels.lsp.server import main

if __name__ == "__main__":
    main()
