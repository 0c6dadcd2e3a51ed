import logging
import re
from datetime import datetime, timezone

import pytest

from stablepo.config import Config
from stablepo.services.session import ExtractionSession


FILE1_JS = '''
        const msg1 = "Zebra message"
        const msg2 = "Alpha message"
        const msg3 = "Beta message"
    '''

FILE2_JS = '''
        const msg4 = "Beta message"  // Same as file1 - should be grouped
        const msg5 = "Gamma message"
        const msg6 = "Alpha message" // Same as file1 - should be grouped
    '''

FILE3_JS = '''
        const msg7 = "Delta message"
        const msg8 = "Zebra message"  // Same as file1 - should be grouped
    '''


def normalize_po(content):
    """Blank out the two header timestamps so runs can be compared."""
    content = re.sub(r'"PO-Revision-Date: [^"]*\\n"', r'"PO-Revision-Date: NORMALIZED\\n"', content)
    return re.sub(r'"POT-Creation-Date: [^"]*\\n"', r'"POT-Creation-Date: NORMALIZED\\n"', content)


def msgids(content):
    """Non-empty msgids of a rendered catalog, in file order (single-line entries only)."""
    return [m for m in re.findall(r'^msgid "(.*)"$', content, re.MULTILINE) if m]


@pytest.fixture
def project_dir(tmp_path):
    """A small source tree with overlapping messages across files."""
    (tmp_path / 'subdir').mkdir()
    (tmp_path / 'file1.js').write_text(FILE1_JS, encoding='utf-8')
    (tmp_path / 'file2.js').write_text(FILE2_JS, encoding='utf-8')
    (tmp_path / 'subdir' / 'file3.js').write_text(FILE3_JS, encoding='utf-8')
    (tmp_path / 'loader.js').write_text('export const loadCatalog = () => {}', encoding='utf-8')
    return tmp_path


@pytest.fixture
def source_files(project_dir):
    return [
        str(project_dir / 'file1.js'),
        str(project_dir / 'file2.js'),
        str(project_dir / 'subdir' / 'file3.js'),
    ]


@pytest.fixture
def fixed_clock():
    """A clock that can be moved forward by tests."""

    class Clock:
        def __init__(self):
            self.now = datetime(2024, 1, 2, 3, 4, tzinfo=timezone.utc)

        def __call__(self):
            return self.now

    return Clock()


@pytest.fixture
def make_config(project_dir):
    def _make(**overrides):
        values = {'ROOT_DIR': str(project_dir), 'FILE_PATTERNS': ['**/*.js']}
        values.update(overrides)
        return Config(_env_file=None, **values)
    return _make


@pytest.fixture
def make_session(make_config, fixed_clock):
    def _make(extractor=None, compile_hook=None, **overrides):
        session = ExtractionSession(
            make_config(**overrides),
            extractor=extractor,
            compile_hook=compile_hook,
            clock=fixed_clock,
        )
        return session.init()
    return _make


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by the CLI so later tests never log to a closed stream."""
    yield
    logger = logging.getLogger('stablepo')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
