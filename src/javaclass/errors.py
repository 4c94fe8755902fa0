from __future__ import annotations

from typing import Optional


class JarError(Exception):
    """Base class for failures while reading a class out of a JAR."""

    def __init__(self, path: Optional[str], msg: str):
        """
        Args:
          path: the archive (or class entry) the error relates to, if known
          msg: a description of what went wrong
        """
        super().__init__(f"{path}: {msg}" if path else msg)
        self.path = path
        self.msg = msg


class ArchiveError(JarError):
    """The archive could not be opened, or an entry could not be streamed."""


class NotFoundError(JarError):
    """The requested class entry is not present in the archive."""


class DecodeError(JarError):
    """The class bytes are not a valid class file."""
