"""
Command-line interface for the devloop package.

This module provides the main CLI entry point for the development loop.
"""

from .main import main_cli

__all__ = [
    "main_cli",
]
