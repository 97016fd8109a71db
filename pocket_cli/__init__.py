"""
📚 Pocket CLI

A command line client for Pocket <getpocket.com>: list, add and archive saved
items, and on Mac OS X export them as .webloc bookmarks for Spotlight.
"""

__version__ = "0.1.0"
__license__ = "BSD 3-Clause"

from .core.processor import PocketApp

__all__ = ["PocketApp"]
