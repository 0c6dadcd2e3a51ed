"""
Error types raised while extracting, reading and writing catalogs.

Every error that concerns a file carries the path it is attributable to.
"""

from typing import Optional


class StablePOError(Exception):
    """Base class for all stablepo errors."""


class CatalogFileError(StablePOError):
    """An error tied to a specific file path."""

    def __init__(self, path: Optional[str], message: str):
        self.path = str(path) if path is not None else None
        self.message = message
        super().__init__(f"{self.path}: {message}" if self.path else message)


class ExtractionError(CatalogFileError):
    """A single source file failed to yield observations.

    Recovered by the session: the file is skipped and the error reported.
    """


class FormatError(CatalogFileError):
    """An existing catalog file could not be parsed."""


class PersistenceError(CatalogFileError):
    """A catalog could not be written to its destination."""


class ConcurrencyMisuseError(StablePOError):
    """The store was mutated after its snapshot was taken."""
