"""Refactor Gateway: symbol-level refactoring daemon for Python projects."""

__version__ = "0.1.0"
