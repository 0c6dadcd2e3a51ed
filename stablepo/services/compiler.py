"""
Compile PO catalogs to MO files.

Usage:
    compile_catalog('locales/pl.po', 'pl')
    session = ExtractionSession(config, compile_hook=mo_compile_hook)
"""

import io
import logging
import os
from typing import Optional

from babel.messages import mofile

from stablepo.services.serializer import read_catalog
from stablepo.utils.atomic_write import atomic_write_bytes
from stablepo.utils.errors import FormatError, PersistenceError

logger = logging.getLogger(__name__)


def compile_catalog(po_path, locale: Optional[str] = None, mo_path=None) -> str:
    """
    Compile a PO file into a binary MO file.

    Args:
        po_path: Catalog to compile
        locale: Locale of the catalog (taken from its Language header if None)
        mo_path: Output path, defaults to ``po_path`` with a ``.mo`` extension

    Returns:
        Path of the written MO file

    Raises:
        FormatError: if the PO file cannot be parsed
        PersistenceError: if either file cannot be read or written
    """
    po_path = os.fspath(po_path)
    if mo_path is None:
        mo_path = os.path.splitext(po_path)[0] + '.mo'
    mo_path = os.fspath(mo_path)

    logger.debug(f"compile_catalog: reading {po_path}")
    try:
        with open(po_path, 'r', encoding='utf-8') as f:
            text = f.read()
    except OSError as e:
        raise PersistenceError(po_path, f"cannot read catalog: {e}") from e
    except UnicodeDecodeError as e:
        raise FormatError(po_path, f"catalog is not UTF-8: {e}") from e
    catalog = read_catalog(text, locale=locale, path=po_path)

    buf = io.BytesIO()
    mofile.write_mo(buf, catalog)
    atomic_write_bytes(mo_path, buf.getvalue())

    logger.info(f"compile_catalog: wrote {mo_path}")
    return mo_path


def mo_compile_hook(locale: str, po_path) -> None:
    """Session compile hook: write ``<catalog>.mo`` next to the catalog."""
    compile_catalog(po_path, locale=locale)
