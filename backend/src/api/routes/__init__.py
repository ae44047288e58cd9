"""HTTP API route handlers."""

from . import pages, tags, trees

__all__ = ["pages", "tags", "trees"]
