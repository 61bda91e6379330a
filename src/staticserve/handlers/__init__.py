"""
Request handlers.
"""

from .static import StaticFileHandler, sanitize_path

__all__ = ["StaticFileHandler", "sanitize_path"]
