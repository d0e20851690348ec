"""Core pagination engine: settings, exceptions, query composition and paging."""
