"""
Message extractors.

An extractor is any callable taking ``(content, path)`` and returning a list of
``(text, Location)`` pairs in source order. Two implementations are provided:

* ``LiteralExtractor`` treats every quoted string literal as a message, which
  suits plain JavaScript sources that do not wrap text in gettext calls.
* ``BabelExtractor`` runs Babel's own extraction methods, so only strings
  passed to gettext-style functions are picked up.
"""

import io
import logging
import os
import re
from typing import Callable, Dict, List, Optional, Tuple

from babel.messages.extract import DEFAULT_KEYWORDS, extract

from stablepo.models import Location
from stablepo.utils.errors import ExtractionError

logger = logging.getLogger(__name__)

Observation = Tuple[str, Location]
Extractor = Callable[[str, str], List[Observation]]

# Comments, then double/single quoted literals; comments are matched first so
# quotes inside them are never treated as literals.
_TOKEN_RE = re.compile(
    r'//[^\n]*'
    r'|/\*.*?\*/'
    r'|"((?:[^"\\\n]|\\.)*)"'
    r"|'((?:[^'\\\n]|\\.)*)'",
    re.DOTALL,
)

_ESCAPE_RE = re.compile(r'\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|.)', re.DOTALL)
_SURROGATE_RE = re.compile(r'[\ud800-\udfff]')

_SIMPLE_ESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    'b': '\b',
    'f': '\f',
    'v': '\v',
    '0': '\0',
    '\n': '',
}


def _decode_escapes(raw: str) -> str:
    def replace(match):
        seq = match.group(1)
        if seq.startswith('u{'):
            return chr(int(seq[2:-1], 16))
        if seq[0] in 'ux' and len(seq) > 1:
            return chr(int(seq[1:], 16))
        return _SIMPLE_ESCAPES.get(seq, seq)

    decoded = _ESCAPE_RE.sub(replace, raw)
    if _SURROGATE_RE.search(decoded):
        # \uD83D\uDE00 style pairs; a lone surrogate fails to decode
        decoded = decoded.encode('utf-16', 'surrogatepass').decode('utf-16')
    return decoded


class LiteralExtractor:
    """Extracts every quoted string literal as a message."""

    def __init__(self, min_length: int = 1):
        self.min_length = min_length

    def __call__(self, content: str, path: str) -> List[Observation]:
        observations = []
        for match in _TOKEN_RE.finditer(content):
            raw = match.group(1)
            if raw is None:
                raw = match.group(2)
            if raw is None:
                continue
            line = content.count('\n', 0, match.start()) + 1
            try:
                text = _decode_escapes(raw)
            except UnicodeDecodeError as e:
                raise ExtractionError(path, f"line {line}: unpaired surrogate escape in string literal") from e
            if len(text) < self.min_length or not text.strip():
                continue
            observations.append((text, Location(path, line)))
        return observations


class BabelExtractor:
    """Extracts gettext calls using Babel's extraction methods."""

    METHODS: Dict[str, str] = {
        '.py': 'python',
        '.js': 'javascript',
        '.jsx': 'javascript',
        '.mjs': 'javascript',
        '.ts': 'javascript',
    }

    def __init__(self, keywords: Optional[dict] = None, methods: Optional[Dict[str, str]] = None):
        self.keywords = keywords or DEFAULT_KEYWORDS
        self.methods = dict(self.METHODS)
        if methods:
            self.methods.update(methods)

    def method_for(self, path: str) -> Optional[str]:
        return self.methods.get(os.path.splitext(path)[1].lower())

    def __call__(self, content: str, path: str) -> List[Observation]:
        method = self.method_for(path)
        if method is None:
            logger.debug(f"BabelExtractor: no extraction method for {path}")
            return []

        fileobj = io.BytesIO(content.encode('utf-8'))
        observations = []
        for lineno, message, _comments, _context in extract(
            method, fileobj, keywords=self.keywords, options={'encoding': 'utf-8'}
        ):
            text = message[0] if isinstance(message, tuple) else message
            if not text:
                continue
            observations.append((text, Location(path, lineno if lineno and lineno > 0 else None)))
        return observations


EXTRACTORS = {
    'literal': LiteralExtractor,
    'babel': BabelExtractor,
}


def get_extractor(name: str) -> Extractor:
    """Instantiate an extractor by its configured name."""
    try:
        return EXTRACTORS[name]()
    except KeyError:
        raise ValueError(f"Unknown extractor '{name}', expected one of: {', '.join(sorted(EXTRACTORS))}")
