"""
Value types shared by the catalog store, the serializer and the session.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple


@dataclass(frozen=True)
class Location:
    """A source reference attached to an observed message.

    Attributes:
        path: File path as supplied by the extractor
        line: 1-based line number, or None when unknown
    """

    path: str
    line: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.path, str) or not self.path:
            raise ValueError(f"Location path must be a non-empty string, got {self.path!r}")
        if self.line is not None and self.line <= 0:
            raise ValueError(f"Location line must be > 0, got {self.line}")

    def sort_key(self) -> Tuple[str, int, int, str]:
        # A missing line sorts before any numbered line of the same path
        if self.line is None:
            return (self.path, 0, 0, str(self))
        return (self.path, 1, self.line, str(self))

    def __lt__(self, other: 'Location') -> bool:
        if not isinstance(other, Location):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __str__(self) -> str:
        if self.line is None:
            return self.path
        return f"{self.path}:{self.line}"


@dataclass(frozen=True)
class MessageRecord:
    """Aggregated state for one distinct message text.

    ``locations`` is always stored sorted and free of duplicates; use
    :meth:`build` to construct a record from unordered input.
    """

    text: str
    locations: Tuple[Location, ...] = ()
    translations: Dict[str, str] = field(default_factory=dict)
    obsolete: bool = False

    @classmethod
    def build(cls, text, locations=(), translations=None, obsolete=False) -> 'MessageRecord':
        return cls(
            text=text,
            locations=tuple(sorted(set(locations), key=Location.sort_key)),
            translations=dict(sorted((translations or {}).items())),
            obsolete=obsolete,
        )

    def translation_for(self, locale: Optional[str]) -> str:
        if locale is None:
            return ''
        return self.translations.get(locale, '')


@dataclass(frozen=True)
class CatalogSnapshot:
    """Ordered, immutable view of a catalog.

    Active records come first, obsolete ones after them; each group is sorted
    by message text using plain code-point comparison.
    """

    records: Tuple[MessageRecord, ...] = ()

    @classmethod
    def from_records(cls, records) -> 'CatalogSnapshot':
        ordered = sorted(records, key=lambda r: (r.obsolete, r.text))
        return cls(records=tuple(ordered))

    def texts(self) -> Tuple[str, ...]:
        return tuple(r.text for r in self.records)

    def get(self, text: str) -> Optional[MessageRecord]:
        for record in self.records:
            if record.text == text:
                return record
        return None

    @property
    def active(self) -> Tuple[MessageRecord, ...]:
        return tuple(r for r in self.records if not r.obsolete)

    @property
    def obsolete(self) -> Tuple[MessageRecord, ...]:
        return tuple(r for r in self.records if r.obsolete)

    def __iter__(self) -> Iterator[MessageRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class CatalogMetadata:
    """Header values for a rendered catalog.

    Timestamps are plain strings supplied by the caller so rendering never
    depends on the clock, locale or timezone of the running process.
    """

    locale: str
    creation_date: str
    revision_date: str
    project: str = 'PROJECT'
    version: str = 'VERSION'
    bugs_address: Optional[str] = None
    plural_forms: Optional[str] = None
    charset: str = 'utf-8'
