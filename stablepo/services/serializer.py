"""
PO catalog rendering and parsing.

``CatalogSerializer.render`` is a pure function of (snapshot, metadata): the
same inputs always produce the same text, whatever the host platform, locale
or timezone. Quoting and line folding use Babel's PO primitives so anything
rendered here reads back through ``read_catalog`` unchanged. Control characters
Babel leaves raw are escaped the way GNU gettext writes them.
"""

import io
import logging
import re
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from babel.messages.catalog import Catalog
from babel.messages.plurals import get_plural
from babel.messages.pofile import PoFileError, escape, normalize, read_po

from stablepo.models import CatalogMetadata, CatalogSnapshot, Location, MessageRecord
from stablepo.utils.errors import FormatError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M%z'

_CREATION_RE = re.compile(r'^"POT-Creation-Date: (.*)\\n"$', re.MULTILINE)
_REVISION_RE = re.compile(r'^"PO-Revision-Date: (.*)\\n"$', re.MULTILINE)
_DATE_LINE_RE = re.compile(r'^"(?:POT-Creation-Date|PO-Revision-Date): .*\\n"\n', re.MULTILINE)

# C0 controls Babel leaves raw; tab, newline and carriage return are escaped by Babel itself
_CONTROL_RE = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f]')
_CONTROL_ESCAPES = {'\a': 'a', '\b': 'b', '\f': 'f', '\v': 'v'}
_PO_ESCAPE_RE = re.compile(r'\\([abfv]|[0-7]{1,3}|.)')
_BABEL_ESCAPES = {'\\': '\\\\', '"': '\\"', '\t': '\\t', '\n': '\\n', '\r': '\\r'}


def escape_controls(quoted: str) -> str:
    """Escape control characters left raw in Babel-quoted PO strings, as GNU gettext does."""
    def replace(match):
        ch = match.group(0)
        if ch in _CONTROL_ESCAPES:
            return '\\' + _CONTROL_ESCAPES[ch]
        return '\\%03o' % ord(ch)

    return _CONTROL_RE.sub(replace, quoted)


def _decode_control_escapes(text: str) -> str:
    """Turn ``\\a \\b \\f \\v`` and octal escapes in quoted lines back into characters.

    Babel's reader only understands the escapes it writes, so the rest are
    decoded up front; escapes Babel does understand are left for it.
    """
    reverse = {v: k for k, v in _CONTROL_ESCAPES.items()}

    def replace(match):
        seq = match.group(1)
        if seq in reverse:
            return reverse[seq]
        if seq[0] in '01234567':
            ch = chr(int(seq, 8))
            return _BABEL_ESCAPES.get(ch, ch)
        return match.group(0)

    lines = text.split('\n')
    for i, line in enumerate(lines):
        stripped = line.lstrip()
        if stripped.startswith('#~'):
            stripped = stripped[2:].lstrip()
        if '\\' in stripped and (stripped.startswith('"') or stripped.startswith('msg')):
            lines[i] = _PO_ESCAPE_RE.sub(replace, line)
    return '\n'.join(lines)


def read_catalog(text: str, locale: Optional[str] = None, path: Optional[str] = None) -> Catalog:
    """
    Parse PO text into a Babel catalog.

    Header dates Babel cannot parse (seconds, odd formats) are dropped rather
    than failing the whole catalog; ``read_timestamps`` keeps them verbatim.

    Raises:
        FormatError: if the text is not a valid PO catalog
    """
    text = _decode_control_escapes(text)
    try:
        try:
            return read_po(io.StringIO(text), locale=locale, abort_invalid=True)
        except ValueError as e:
            stripped = _DATE_LINE_RE.sub('', text)
            if stripped == text:
                raise
            logger.debug(f"read_catalog: ignoring unparseable header dates in {path}: {e}")
            return read_po(io.StringIO(stripped), locale=locale, abort_invalid=True)
    except PoFileError as e:
        raise FormatError(path, f"line {e.lineno}: {e}") from e
    except (ValueError, TypeError) as e:
        raise FormatError(path, str(e)) from e


def format_timestamp(value: datetime) -> str:
    """Format a datetime the way gettext headers expect (2024-01-31 09:05+0000)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.strftime(TIMESTAMP_FORMAT)


def resolve_plural_forms(locale: str) -> str:
    """Look up the Plural-Forms header value for a locale in Babel's table."""
    return get_plural(locale).plural_forms


class CatalogSerializer:
    """Renders snapshots to GNU gettext PO text."""

    def __init__(self, width: int = 0, include_lineno: bool = True):
        """
        Args:
            width: Fold quoted strings longer than this; 0 disables folding
            include_lineno: Render references as ``path:line`` rather than ``path``
        """
        self.width = width
        self.include_lineno = include_lineno

    def render(self, snapshot: CatalogSnapshot, metadata: CatalogMetadata) -> str:
        blocks = [self._render_header(metadata)]

        for record in snapshot.active:
            blocks.append(self._render_record(record, metadata.locale))
        for record in snapshot.obsolete:
            blocks.append(self._render_obsolete(record, metadata.locale))

        return '\n\n'.join(blocks) + '\n'

    def header_fields(self, metadata: CatalogMetadata) -> List[Tuple[str, str]]:
        """Header fields in their fixed output order; timestamps last."""
        plural_forms = metadata.plural_forms or resolve_plural_forms(metadata.locale)
        return [
            ('Project-Id-Version', f'{metadata.project} {metadata.version}'),
            ('Report-Msgid-Bugs-To', metadata.bugs_address or ''),
            ('Language', metadata.locale),
            ('MIME-Version', '1.0'),
            ('Content-Type', f'text/plain; charset={metadata.charset}'),
            ('Content-Transfer-Encoding', '8bit'),
            ('Plural-Forms', plural_forms),
            ('POT-Creation-Date', metadata.creation_date),
            ('PO-Revision-Date', metadata.revision_date),
        ]

    def _render_header(self, metadata: CatalogMetadata) -> str:
        lines = [
            f'# Translations for {metadata.project}.',
            f'# Locale: {metadata.locale}',
            'msgid ""',
            'msgstr ""',
        ]
        for name, value in self.header_fields(metadata):
            lines.append(escape_controls(escape(f'{name}: {value}\n')))
        return '\n'.join(lines)

    def _render_record(self, record: MessageRecord, locale: str) -> str:
        lines = [f'#: {ref}' for ref in self._references(record.locations)]
        lines.append(f'msgid {self._quote(record.text)}')
        lines.append(f'msgstr {self._quote(record.translation_for(locale))}')
        return '\n'.join(lines)

    def _render_obsolete(self, record: MessageRecord, locale: str) -> str:
        return '\n'.join([
            f'#~ msgid {self._quote(record.text, prefix="#~ ")}',
            f'#~ msgstr {self._quote(record.translation_for(locale), prefix="#~ ")}',
        ])

    def _references(self, locations) -> List[str]:
        refs = []
        for location in locations:
            path = location.path
            # Babel isolates paths containing whitespace with FSI/PDI marks
            if any(ch.isspace() for ch in path):
                path = f'\u2068{path}\u2069'
            if self.include_lineno and location.line is not None:
                ref = f'{path}:{location.line}'
            else:
                ref = path
            if not refs or refs[-1] != ref:
                refs.append(ref)
        return refs

    def _quote(self, value: str, prefix: str = '') -> str:
        return escape_controls(normalize(value, prefix=prefix, width=self.width))


def parse_catalog(text: str, locale: Optional[str] = None, path: Optional[str] = None) -> CatalogSnapshot:
    """
    Read PO text back into a snapshot.

    Translations are keyed by ``locale``, or by the catalog's Language header
    when no locale is given. Obsolete entries are returned with
    ``obsolete=True``.

    Raises:
        FormatError: if the text is not a valid PO catalog
    """
    catalog = read_catalog(text, locale=locale, path=path)
    key = locale or (str(catalog.locale) if catalog.locale else '')
    records = []

    for message in catalog:
        text = _singular(message.id)
        if not text:
            continue
        locations = []
        for filename, lineno in message.locations:
            try:
                locations.append(Location(filename, lineno or None))
            except ValueError:
                logger.warning(f"parse_catalog: skipping invalid reference {filename}:{lineno} in {path}")
        records.append(MessageRecord.build(text, locations, _translations(key, message.string)))

    for message in catalog.obsolete.values():
        text = _singular(message.id)
        if text:
            records.append(MessageRecord.build(text, (), _translations(key, message.string), obsolete=True))

    return CatalogSnapshot.from_records(records)


def read_timestamps(text: str) -> Tuple[Optional[str], Optional[str]]:
    """Return the verbatim (POT-Creation-Date, PO-Revision-Date) header values."""
    creation = _CREATION_RE.search(text)
    revision = _REVISION_RE.search(text)
    return (
        creation.group(1) if creation else None,
        revision.group(1) if revision else None,
    )


def _singular(value) -> str:
    if isinstance(value, (tuple, list)):
        return value[0] if value else ''
    return value or ''


def _translations(locale: str, string) -> dict:
    translated = _singular(string)
    if not translated:
        return {}
    return {locale: translated}
