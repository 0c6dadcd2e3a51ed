import pytest

from stablepo.models import Location
from stablepo.services.extractors import BabelExtractor, LiteralExtractor, get_extractor
from stablepo.utils.errors import ExtractionError

from conftest import FILE2_JS


def test_literal_extractor_finds_strings_with_lines():
    found = LiteralExtractor()(FILE2_JS, 'file2.js')
    assert found == [
        ('Beta message', Location('file2.js', 2)),
        ('Gamma message', Location('file2.js', 3)),
        ('Alpha message', Location('file2.js', 4)),
    ]


def test_literal_extractor_skips_comments():
    source = '''
        // "commented out"
        /* "also
           commented" */
        const a = 'single quoted'
        const b = "has // no comment"
    '''
    texts = [text for text, _ in LiteralExtractor()(source, 'a.js')]
    assert texts == ['single quoted', 'has // no comment']


def test_literal_extractor_decodes_escapes():
    source = r'''x = "Say \"hi\"\n"; y = 'it\'s'; z = "é\x41\u{1F600}"'''
    texts = [text for text, _ in LiteralExtractor()(source, 'a.js')]
    assert texts == ['Say "hi"\n', "it's", 'éA\U0001F600']


def test_literal_extractor_min_length_and_blank():
    source = '"a" "  " "ok"'
    assert [t for t, _ in LiteralExtractor()(source, 'a.js')] == ['a', 'ok']
    assert [t for t, _ in LiteralExtractor(min_length=2)(source, 'a.js')] == ['ok']


def test_babel_extractor_python_gettext_calls():
    source = (
        'from gettext import gettext as _\n'
        'title = _("Welcome")\n'
        'plain = "not extracted"\n'
        'count = ngettext("One file", "%(n)s files", n)\n'
    )
    found = BabelExtractor()(source, 'app/views.py')
    assert found == [
        ('Welcome', Location('app/views.py', 2)),
        ('One file', Location('app/views.py', 4)),
    ]


def test_babel_extractor_javascript():
    source = 'const a = gettext("Hello from JS");\nconst b = "ignored";\n'
    assert BabelExtractor()(source, 'static/app.js') == [('Hello from JS', Location('static/app.js', 1))]


def test_babel_extractor_unknown_extension_yields_nothing():
    assert BabelExtractor()('_("x")', 'README.md') == []
    assert BabelExtractor(methods={'.md': 'python'})('_("x")', 'README.md') == [('x', Location('README.md', 1))]


def test_get_extractor():
    assert isinstance(get_extractor('literal'), LiteralExtractor)
    assert isinstance(get_extractor('babel'), BabelExtractor)
    with pytest.raises(ValueError):
        get_extractor('regex')


def test_literal_extractor_joins_surrogate_pair_escapes():
    source = 'const s = "Hi \\uD83D\\uDE00"'
    assert LiteralExtractor()(source, 'a.js') == [('Hi \U0001F600', Location('a.js', 1))]


def test_literal_extractor_rejects_unpaired_surrogate():
    source = '\nconst s = "broken \\uD83D here"'
    with pytest.raises(ExtractionError) as excinfo:
        LiteralExtractor()(source, 'a.js')
    assert excinfo.value.path == 'a.js'
    assert 'line 2' in excinfo.value.message
