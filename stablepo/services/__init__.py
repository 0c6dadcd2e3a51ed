"""
Catalog extraction services.

Store, serializer, extractors, session orchestration and MO compilation.
"""

from stablepo.services.catalog_store import CatalogStore
from stablepo.services.compiler import compile_catalog, mo_compile_hook
from stablepo.services.extractors import BabelExtractor, LiteralExtractor, get_extractor
from stablepo.services.serializer import (
    CatalogSerializer,
    format_timestamp,
    parse_catalog,
    read_catalog,
    read_timestamps,
)
from stablepo.services.session import ExtractionReport, ExtractionSession, FinalizeResult

__all__ = [
    'CatalogStore',
    'CatalogSerializer',
    'format_timestamp',
    'parse_catalog',
    'read_catalog',
    'read_timestamps',
    'LiteralExtractor',
    'BabelExtractor',
    'get_extractor',
    'ExtractionSession',
    'ExtractionReport',
    'FinalizeResult',
    'compile_catalog',
    'mo_compile_hook',
]
