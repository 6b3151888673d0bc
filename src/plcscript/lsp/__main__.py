"""
Entry point for running the PLC Script LSP server as a module.

Usage:
    python -m plcscript.lsp
    python -m plcscript.lsp --tcp --port 2087
"""

from plcscript.lsp.server import main

if __name__ == "__main__":
    main()
