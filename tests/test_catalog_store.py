import itertools
import threading

import pytest

from stablepo.models import CatalogSnapshot, Location, MessageRecord
from stablepo.services.catalog_store import CatalogStore
from stablepo.utils.errors import ConcurrencyMisuseError


OBSERVATIONS = [
    ('Zebra message', Location('file1.js', 2)),
    ('Alpha message', Location('file1.js', 3)),
    ('Beta message', Location('z-file.js', 6)),
    ('Beta message', Location('a-file.js', 6)),
    ('Alpha message', Location('file2.js', 4)),
]


def test_snapshot_sorts_messages_and_locations():
    store = CatalogStore('en')
    for text, loc in OBSERVATIONS:
        store.ingest(text, loc)

    snapshot = store.snapshot()
    assert snapshot.texts() == ('Alpha message', 'Beta message', 'Zebra message')
    assert [str(loc) for loc in snapshot.get('Beta message').locations] == ['a-file.js:6', 'z-file.js:6']


def test_snapshot_independent_of_ingestion_order():
    expected = None
    for order in itertools.permutations(OBSERVATIONS):
        store = CatalogStore('en')
        store.ingest_many(order)
        snapshot = store.snapshot()
        if expected is None:
            expected = snapshot
        assert snapshot == expected


def test_ingest_is_idempotent():
    store = CatalogStore('en')
    store.ingest('Hello', Location('a.js', 1))
    store.ingest('Hello', Location('a.js', 1))
    store.ingest('Hello', Location('a.js', 1))

    record = store.snapshot().get('Hello')
    assert record.locations == (Location('a.js', 1),)
    assert len(store) == 1


def test_text_is_exact_dedup_key():
    store = CatalogStore('en')
    store.ingest('Hello', Location('a.js', 1))
    store.ingest('hello', Location('a.js', 2))
    store.ingest('Hello ', Location('a.js', 3))

    # code point order: 'H' < 'h'
    assert store.snapshot().texts() == ('Hello', 'Hello ', 'hello')


def test_code_point_ordering_not_locale_collation():
    store = CatalogStore('en')
    for text in ('éclair', 'zebra', 'Zebra', 'apple'):
        store.ingest(text, Location('a.js', 1))
    assert store.snapshot().texts() == ('Zebra', 'apple', 'zebra', 'éclair')


def test_numeric_line_ordering_within_same_path():
    store = CatalogStore('en')
    store.ingest('Hi', Location('a.js', 10))
    store.ingest('Hi', Location('a.js', 9))
    store.ingest('Hi', Location('a.js'))
    store.ingest('Hi', Location('a-b.js', 1))

    locations = store.snapshot().get('Hi').locations
    assert [str(loc) for loc in locations] == ['a-b.js:1', 'a.js', 'a.js:9', 'a.js:10']


def test_empty_text_is_ignored():
    store = CatalogStore('en')
    store.ingest('', Location('a.js', 1))
    assert len(store.snapshot()) == 0


def test_ingest_rejects_wrong_types():
    store = CatalogStore('en')
    with pytest.raises(TypeError):
        store.ingest(b'bytes', Location('a.js', 1))
    with pytest.raises(TypeError):
        store.ingest('text', ('a.js', 1))


def test_ingest_after_snapshot_is_misuse():
    store = CatalogStore('en')
    store.ingest('Hello', Location('a.js', 1))
    first = store.snapshot()

    assert store.is_sealed
    with pytest.raises(ConcurrencyMisuseError):
        store.ingest('Late', Location('a.js', 2))
    assert store.snapshot() is first


def test_concurrent_ingestion_is_commutative():
    observations = [(f'message {i % 50}', Location(f'file{i % 7}.js', i + 1)) for i in range(700)]

    sequential = CatalogStore('en')
    sequential.ingest_many(observations)

    threaded = CatalogStore('en')
    chunks = [observations[i::8] for i in range(8)]
    threads = [threading.Thread(target=lambda c=c: [threaded.ingest(t, l) for t, l in c]) for c in chunks]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert threaded.snapshot() == sequential.snapshot()


def _baseline():
    return CatalogSnapshot.from_records([
        MessageRecord.build('Hello', [Location('old.js', 1)], {'pl': 'Cześć'}),
        MessageRecord.build('Removed', [Location('old.js', 2)], {'pl': 'Usunięte'}),
    ])


def test_merge_keeps_translations_and_drops_stale_by_default():
    store = CatalogStore('pl')
    store.merge(_baseline())
    store.ingest('Hello', Location('new.js', 5))
    store.ingest('Fresh', Location('new.js', 6))

    snapshot = store.snapshot()
    assert snapshot.texts() == ('Fresh', 'Hello')
    hello = snapshot.get('Hello')
    assert hello.translations == {'pl': 'Cześć'}
    # references come from the current scan only
    assert hello.locations == (Location('new.js', 5),)
    assert snapshot.get('Fresh').translations == {}


def test_merge_can_retain_stale_messages_as_obsolete():
    store = CatalogStore('pl')
    store.merge(_baseline(), retain_stale=True)
    store.ingest('Zulu', Location('new.js', 1))

    snapshot = store.snapshot()
    # obsolete entries come after active ones
    assert snapshot.texts() == ('Zulu', 'Hello', 'Removed')
    removed = snapshot.get('Removed')
    assert removed.obsolete
    assert removed.locations == ()
    assert removed.translations == {'pl': 'Usunięte'}


def test_store_default_retention_policy():
    store = CatalogStore('pl', retain_stale=True)
    store.merge(_baseline())
    assert [r.text for r in store.snapshot().obsolete] == ['Hello', 'Removed']
