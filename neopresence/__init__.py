"""Discord rich presence for Neovim, served as a language server with line diff statistics."""

__version__ = "1.0.0"