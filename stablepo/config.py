from typing import List, Optional

from babel import Locale, UnknownLocaleError
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    # Project layout
    ROOT_DIR: str = '.'
    CATALOG_PATTERN: str = '{locale}.po'
    FILE_PATTERNS: List[str] = ['**/*.js', '**/*.py']

    # Locales
    SOURCE_LOCALE: str = 'en'
    OTHER_LOCALES: List[str] = []

    # Catalog header
    PROJECT_NAME: str = 'PROJECT'
    PROJECT_VERSION: str = 'VERSION'
    MSGID_BUGS_ADDRESS: Optional[str] = None

    # Extraction: 'literal' picks up every string literal, 'babel' only gettext calls
    EXTRACTOR: str = 'literal'
    MAX_WORKERS: Optional[int] = None

    # Messages no longer found in the sources are dropped unless retained
    # as obsolete (#~) entries
    RETAIN_STALE_MESSAGES: bool = False

    # Leave the catalog (and its PO-Revision-Date) untouched when nothing changed
    PRESERVE_REVISION_DATE: bool = True

    # Rendering
    WRAP_WIDTH: int = 0  # 0 disables folding of long strings
    INCLUDE_LINENO: bool = True

    # Compile .mo files next to each written catalog
    COMPILE_CATALOGS: bool = False

    # Logging
    LOG_LEVEL: str = 'INFO'
    LOG_JSON: bool = False

    model_config = SettingsConfigDict(
        env_prefix='STABLEPO_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    @field_validator('SOURCE_LOCALE', mode='before')
    def _parse_source_locale(cls, v):
        return _normalize_locale(v)

    @field_validator('OTHER_LOCALES', 'FILE_PATTERNS', mode='before')
    def _split_list(cls, v):
        """Accept comma separated strings, e.g. OTHER_LOCALES='pl,de' from the command line.

        Environment variables use JSON lists: STABLEPO_OTHER_LOCALES='["pl", "de"]'
        """
        if isinstance(v, str):
            return [item.strip() for item in v.split(',') if item.strip()]
        return v

    @field_validator('OTHER_LOCALES')
    def _parse_other_locales(cls, v):
        return [_normalize_locale(item) for item in v]

    @field_validator('CATALOG_PATTERN')
    def _check_catalog_pattern(cls, v):
        if '{locale}' not in v:
            raise ValueError("CATALOG_PATTERN must contain '{locale}'")
        return v

    @field_validator('EXTRACTOR')
    def _check_extractor(cls, v):
        v = v.lower()
        if v not in ('literal', 'babel'):
            raise ValueError(f"EXTRACTOR must be 'literal' or 'babel', got '{v}'")
        return v

    @field_validator('WRAP_WIDTH')
    def _check_wrap_width(cls, v):
        if v < 0:
            raise ValueError('WRAP_WIDTH must be >= 0')
        return v

    @model_validator(mode='after')
    def dedupe_locales(self) -> 'Config':
        """Drop the source locale and repeated entries from OTHER_LOCALES, keeping order."""
        seen = {self.SOURCE_LOCALE}
        others = []
        for locale in self.OTHER_LOCALES:
            if locale not in seen:
                seen.add(locale)
                others.append(locale)
        self.OTHER_LOCALES = others
        return self

    @property
    def locales(self) -> List[str]:
        return [self.SOURCE_LOCALE] + list(self.OTHER_LOCALES)


def _normalize_locale(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f'Invalid locale: {value!r}')
    try:
        return str(Locale.parse(value.strip().replace('-', '_')))
    except (UnknownLocaleError, ValueError) as e:
        raise ValueError(f'Unknown locale {value!r}: {e}')
