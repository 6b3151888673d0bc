"""
PLC Script Language Server.

Editor support over the Language Server Protocol: diagnostics, document
symbols, hover and completion. Start it with `plc-lsp` or
`python -m plcscript.lsp`.
"""

from plcscript.lsp.server import PlcLanguageServer, create_server, main

__all__ = ["PlcLanguageServer", "create_server", "main"]
