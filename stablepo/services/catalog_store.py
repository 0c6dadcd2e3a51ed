"""
Catalog store - accumulates message observations for one locale.

The store is scoped to one extraction session. Ingestion is commutative: the
snapshot depends only on the set of (text, location) pairs ingested plus the
merge baseline, never on the order they arrived in.

Usage:
    store = CatalogStore('pl')
    store.merge(previous_snapshot)
    store.ingest('Hello', Location('app.js', 3))
    snapshot = store.snapshot()
"""

import logging
import threading
from typing import Dict, Iterable, Optional, Set, Tuple

from stablepo.models import CatalogSnapshot, Location, MessageRecord
from stablepo.utils.errors import ConcurrencyMisuseError

logger = logging.getLogger(__name__)


class CatalogStore:
    """Mutable accumulator producing deterministic snapshots."""

    def __init__(self, locale: str, retain_stale: bool = False):
        self.locale = locale
        self.retain_stale = retain_stale
        self._lock = threading.Lock()
        self._locations: Dict[str, Set[Location]] = {}
        self._baseline: Dict[str, MessageRecord] = {}
        self._baseline_retain: Optional[bool] = None
        self._snapshot: Optional[CatalogSnapshot] = None

    @property
    def is_sealed(self) -> bool:
        return self._snapshot is not None

    def ingest(self, text: str, location: Location) -> None:
        """
        Record one observation.

        Ingesting the same (text, location) pair more than once has no further
        effect. The empty string is reserved for the catalog header and is
        ignored.

        Args:
            text: Exact message text (deduplication key)
            location: Where the message was found

        Raises:
            ConcurrencyMisuseError: if the store was already snapshotted
        """
        self.ingest_many([(text, location)])

    def ingest_many(self, observations: Iterable[Tuple[str, Location]]) -> None:
        """Record a batch of observations under a single lock acquisition."""
        batch = list(observations)
        for text, location in batch:
            if not isinstance(text, str):
                raise TypeError(f"Message text must be str, got {type(text).__name__}")
            if not isinstance(location, Location):
                raise TypeError(f"Expected Location, got {type(location).__name__}")

        with self._lock:
            if self._snapshot is not None:
                raise ConcurrencyMisuseError(
                    f"CatalogStore[{self.locale}]: ingest after snapshot"
                )
            for text, location in batch:
                if not text:
                    continue
                self._locations.setdefault(text, set()).add(location)

    def merge(self, existing: CatalogSnapshot, retain_stale: Optional[bool] = None) -> None:
        """
        Use a previously written catalog as the baseline for this session.

        Translations of baseline messages are carried over to messages observed
        in the current scan. Baseline references are not: they always come from
        the current scan.

        Args:
            existing: Snapshot parsed from the catalog already on disk
            retain_stale: Keep baseline messages that are no longer observed as
                obsolete entries. Defaults to the store's ``retain_stale``.
        """
        with self._lock:
            if self._snapshot is not None:
                raise ConcurrencyMisuseError(
                    f"CatalogStore[{self.locale}]: merge after snapshot"
                )
            self._baseline = {record.text: record for record in existing if record.text}
            self._baseline_retain = retain_stale

        logger.debug(f"CatalogStore[{self.locale}]: merged baseline with {len(self._baseline)} messages")

    def snapshot(self) -> CatalogSnapshot:
        """
        Return the ordered view of everything ingested so far.

        The first call seals the store; subsequent calls return the same
        snapshot.
        """
        with self._lock:
            if self._snapshot is None:
                self._snapshot = self._build_snapshot()
            return self._snapshot

    def _build_snapshot(self) -> CatalogSnapshot:
        retain = self.retain_stale if self._baseline_retain is None else self._baseline_retain
        records = []

        for text, locations in self._locations.items():
            previous = self._baseline.get(text)
            translations = previous.translations if previous else {}
            records.append(MessageRecord.build(text, locations, translations))

        dropped = 0
        for text, previous in self._baseline.items():
            if text in self._locations:
                continue
            if retain:
                records.append(MessageRecord.build(text, (), previous.translations, obsolete=True))
            else:
                dropped += 1

        if dropped:
            logger.info(f"CatalogStore[{self.locale}]: pruned {dropped} stale messages")

        return CatalogSnapshot.from_records(records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._locations)
