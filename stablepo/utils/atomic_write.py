"""
Atomic file replacement.

Content is written to a temporary file in the destination directory and moved
into place with ``os.replace``, so readers see either the old file or the new
one, never a truncated mix.
"""

import logging
import os
import tempfile

from stablepo.utils.errors import PersistenceError

logger = logging.getLogger(__name__)


def atomic_write_bytes(path, data: bytes) -> None:
    """
    Replace ``path`` with ``data`` atomically.

    The destination directory must already exist.

    Raises:
        PersistenceError: if the file could not be written; no temporary file
            is left behind and any existing file is untouched
    """
    path = os.fspath(path)
    directory = os.path.dirname(os.path.abspath(path))

    if not os.path.isdir(directory):
        raise PersistenceError(path, f"directory does not exist: {directory}")

    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(
            prefix=f'.{os.path.basename(path)}.', suffix='.tmp', dir=directory
        )
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if os.path.exists(path):
            # keep permissions of the file being replaced
            os.chmod(tmp_path, os.stat(path).st_mode & 0o7777)
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as e:
        raise PersistenceError(path, f"{e.__class__.__name__}: {e.strerror or e}") from e
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                logger.warning(f"atomic_write: could not remove temporary file {tmp_path}")


def atomic_write_text(path, text: str, encoding: str = 'utf-8') -> None:
    """Text variant of :func:`atomic_write_bytes`; newlines are written as-is."""
    atomic_write_bytes(path, text.encode(encoding))
