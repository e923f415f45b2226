"""LSP integration layer for the texteditor terminal editor."""

__version__ = "0.1.0"
