"""
Extraction session - one end-to-end extraction run.

Lifecycle:
    session = ExtractionSession(config)
    session.init()                      # fresh stores, baselines loaded
    session.observe_files(paths)        # any order, possibly concurrent
    session.finalize_all()              # snapshot -> render -> atomic write

Files may be observed in any order and from several threads; the catalogs
written at the end are identical either way. A file that fails to extract is
recorded in ``session.report`` and skipped without affecting other files.
"""

import glob
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from stablepo.config import Config
from stablepo.models import CatalogMetadata, CatalogSnapshot, Location
from stablepo.services.catalog_store import CatalogStore
from stablepo.services.compiler import mo_compile_hook
from stablepo.services.extractors import Extractor, get_extractor
from stablepo.services.serializer import (
    CatalogSerializer,
    format_timestamp,
    parse_catalog,
    read_timestamps,
)
from stablepo.utils.atomic_write import atomic_write_text
from stablepo.utils.errors import ExtractionError, FormatError
from stablepo.utils.extraction_log import log_event

logger = logging.getLogger(__name__)

CompileHook = Callable[[str, str], None]


@dataclass
class ExtractionReport:
    """Outcome of a session: what failed, what was written."""

    errors: List[ExtractionError] = field(default_factory=list)
    warnings: List[FormatError] = field(default_factory=list)
    written: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    files_observed: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class FinalizeResult:
    locale: str
    path: str
    changed: bool
    messages: int


@dataclass
class _Baseline:
    text: Optional[str] = None
    creation_date: Optional[str] = None
    revision_date: Optional[str] = None


class ExtractionSession:
    """Orchestrates extraction into one catalog per configured locale."""

    def __init__(
        self,
        config: Optional[Config] = None,
        extractor: Optional[Extractor] = None,
        compile_hook: Optional[CompileHook] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config or Config()
        self.extractor = extractor or get_extractor(self.config.EXTRACTOR)
        if compile_hook is None and self.config.COMPILE_CATALOGS:
            compile_hook = mo_compile_hook
        self.compile_hook = compile_hook
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.report = ExtractionReport()
        self._report_lock = threading.Lock()
        self._init_lock = threading.RLock()
        self._stores: Dict[str, CatalogStore] = {}
        self._baselines: Dict[str, _Baseline] = {}
        self._serializer = self._make_serializer()

    def _make_serializer(self) -> CatalogSerializer:
        return CatalogSerializer(
            width=self.config.WRAP_WIDTH,
            include_lineno=self.config.INCLUDE_LINENO,
        )

    @property
    def locales(self) -> List[str]:
        return self.config.locales

    @property
    def root_dir(self) -> str:
        return os.path.abspath(self.config.ROOT_DIR)

    def catalog_path(self, locale: str) -> str:
        return os.path.join(self.root_dir, self.config.CATALOG_PATTERN.format(locale=locale))

    def init(self, **options) -> 'ExtractionSession':
        """
        Reset the session and load existing catalogs as merge baselines.

        Args:
            **options: Config overrides for this session (e.g. RETAIN_STALE_MESSAGES=True)
        """
        if options:
            self.config = self.config.model_copy(update=options)
            self._serializer = self._make_serializer()

        with self._init_lock:
            self.report = ExtractionReport()
            stores = {}
            baselines = {}

            for locale in self.locales:
                store = CatalogStore(locale, retain_stale=self.config.RETAIN_STALE_MESSAGES)
                baseline = self._load_baseline(locale)
                if baseline.text is not None:
                    store.merge(self._parse_baseline(locale, baseline))
                stores[locale] = store
                baselines[locale] = baseline

            self._baselines = baselines
            self._stores = stores

        logger.info(f"ExtractionSession: initialised for locales {', '.join(self.locales)}")
        return self

    def _load_baseline(self, locale: str) -> _Baseline:
        path = self.catalog_path(locale)
        if not os.path.exists(path):
            return _Baseline()
        try:
            with open(path, 'r', encoding='utf-8', newline='') as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            self._warn(FormatError(path, f"cannot read existing catalog: {e}"))
            return _Baseline()
        creation, revision = read_timestamps(text)
        return _Baseline(text=text, creation_date=creation, revision_date=revision)

    def _parse_baseline(self, locale: str, baseline: _Baseline) -> CatalogSnapshot:
        path = self.catalog_path(locale)
        try:
            snapshot = parse_catalog(baseline.text, locale=locale, path=path)
        except FormatError as e:
            self._warn(e)
            # a malformed catalog is replaced as if it never existed
            baseline.text = None
            baseline.creation_date = None
            baseline.revision_date = None
            return CatalogSnapshot()
        logger.debug(f"ExtractionSession: loaded {len(snapshot)} messages from {path}")
        return snapshot

    def _warn(self, error: FormatError) -> None:
        self.report.warnings.append(error)
        log_event('BASELINE_IGNORED', f'ignoring malformed catalog {error}', level=logging.WARNING, path=error.path)

    def _require_init(self) -> None:
        with self._init_lock:
            if not self._stores:
                self.init()

    def relative_path(self, path) -> str:
        """Path used in references: relative to ROOT_DIR with '/' separators when inside it."""
        path = os.fspath(path)
        absolute = os.path.abspath(os.path.join(self.root_dir, path))
        try:
            rel = os.path.relpath(absolute, self.root_dir)
        except ValueError:
            # different drive on Windows
            return path.replace(os.sep, '/')
        if rel == os.pardir or rel.startswith(os.pardir + os.sep):
            return path.replace(os.sep, '/')
        return rel.replace(os.sep, '/')

    def extract(self, content: str, path) -> List[Tuple[str, Location]]:
        """
        Run the extractor on one file's content without touching the stores.

        Raises:
            ExtractionError: if the extractor fails or returns malformed data
        """
        ref_path = self.relative_path(path)
        try:
            observations = list(self.extractor(content, ref_path))
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(ref_path, f"{e.__class__.__name__}: {e}") from e

        for item in observations:
            if (
                not isinstance(item, tuple) or len(item) != 2
                or not isinstance(item[0], str) or not isinstance(item[1], Location)
            ):
                raise ExtractionError(ref_path, f"extractor returned malformed observation {item!r}")
            try:
                item[0].encode('utf-8')
            except UnicodeEncodeError as e:
                raise ExtractionError(ref_path, f"message {item[0]!r} at {item[1]} is not valid Unicode text") from e
        return observations

    def observe(self, content: str, path) -> int:
        """
        Extract messages from ``content`` and ingest them into every locale's store.

        Returns:
            Number of observations ingested (0 if extraction failed)
        """
        self._require_init()
        try:
            observations = self.extract(content, path)
        except ExtractionError as e:
            self._record_failure(e)
            return 0
        self._ingest(observations)
        logger.debug(f"ExtractionSession: {len(observations)} messages from {path}")
        return len(observations)

    def observe_file(self, path) -> int:
        """Read a UTF-8 source file and observe it."""
        self._require_init()
        try:
            content = self._read_source(path)
        except ExtractionError as e:
            self._record_failure(e)
            return 0
        return self.observe(content, path)

    def observe_files(self, paths: Iterable, max_workers: Optional[int] = None) -> int:
        """
        Observe many files, reading and extracting them on a thread pool.

        Workers only read and extract; batches are ingested here, on the
        calling thread, as they complete.

        Returns:
            Total number of observations ingested
        """
        self._require_init()
        paths = list(paths)
        workers = max_workers or self.config.MAX_WORKERS
        total = 0

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self._read_and_extract, path): path for path in paths}
            for future in as_completed(futures):
                try:
                    observations = future.result()
                except ExtractionError as e:
                    self._record_failure(e)
                    continue
                self._ingest(observations)
                total += len(observations)

        logger.info(f"ExtractionSession: observed {len(paths)} files, {total} messages")
        return total

    def _read_and_extract(self, path) -> List[Tuple[str, Location]]:
        return self.extract(self._read_source(path), path)

    def _read_source(self, path) -> str:
        full_path = os.path.join(self.root_dir, os.fspath(path))
        try:
            with open(full_path, 'r', encoding='utf-8') as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ExtractionError(self.relative_path(path), f"cannot read file: {e}") from e

    def _ingest(self, observations: List[Tuple[str, Location]]) -> None:
        for store in self._stores.values():
            store.ingest_many(observations)
        with self._report_lock:
            self.report.files_observed += 1

    def _record_failure(self, error: ExtractionError) -> None:
        with self._report_lock:
            self.report.errors.append(error)
        log_event('EXTRACTION_FAILED', f'skipped {error}', level=logging.WARNING, path=error.path)

    def discover_files(self) -> List[str]:
        """Source files under ROOT_DIR matching FILE_PATTERNS, sorted, catalogs excluded."""
        catalogs = {os.path.normcase(self.catalog_path(locale)) for locale in self.locales}
        found = set()
        for pattern in self.config.FILE_PATTERNS:
            for match in glob.glob(os.path.join(self.root_dir, pattern), recursive=True):
                if os.path.isfile(match) and os.path.normcase(os.path.abspath(match)) not in catalogs:
                    found.add(self.relative_path(match))
        return sorted(found)

    def snapshot(self, locale: str) -> CatalogSnapshot:
        self._require_init()
        try:
            store = self._stores[locale]
        except KeyError:
            raise ValueError(f"Locale '{locale}' is not configured for this session")
        return store.snapshot()

    def metadata(self, locale: str, creation_date: str, revision_date: str) -> CatalogMetadata:
        return CatalogMetadata(
            locale=locale,
            creation_date=creation_date,
            revision_date=revision_date,
            project=self.config.PROJECT_NAME,
            version=self.config.PROJECT_VERSION,
            bugs_address=self.config.MSGID_BUGS_ADDRESS,
        )

    def finalize(self, locale: str) -> FinalizeResult:
        """
        Render the locale's catalog and write it atomically.

        When the catalog already exists its creation date is kept. With
        PRESERVE_REVISION_DATE, a catalog whose content did not change is not
        rewritten at all; the compile hook then only runs when the .mo next to
        the catalog is missing or older than it.

        Raises:
            PersistenceError: if the catalog cannot be written
        """
        snapshot = self.snapshot(locale)
        baseline = self._baselines.get(locale) or _Baseline()
        path = self.catalog_path(locale)
        now = format_timestamp(self.clock())

        creation = baseline.creation_date or now

        if self.config.PRESERVE_REVISION_DATE and baseline.text is not None and baseline.revision_date:
            candidate = self._serializer.render(snapshot, self.metadata(locale, creation, baseline.revision_date))
            if candidate == baseline.text:
                self.report.unchanged.append(path)
                log_event('CATALOG_UNCHANGED', f'{path} unchanged', path=path, locale=locale)
                if self.compile_hook is not None and self._compiled_catalog_stale(path):
                    self.compile_hook(locale, path)
                return FinalizeResult(locale=locale, path=path, changed=False, messages=len(snapshot))

        text = self._serializer.render(snapshot, self.metadata(locale, creation, now))
        atomic_write_text(path, text)

        self.report.written.append(path)
        log_event('CATALOG_WRITTEN', f'wrote {path}', path=path, locale=locale, messages=len(snapshot))

        if self.compile_hook is not None:
            self.compile_hook(locale, path)

        return FinalizeResult(locale=locale, path=path, changed=True, messages=len(snapshot))

    def _compiled_catalog_stale(self, path: str) -> bool:
        mo_path = os.path.splitext(path)[0] + '.mo'
        if not os.path.exists(mo_path):
            return True
        return os.path.getmtime(mo_path) < os.path.getmtime(path)

    def finalize_all(self) -> List[FinalizeResult]:
        return [self.finalize(locale) for locale in self.locales]
