"""Command line entry point: ``stablepo extract`` and ``stablepo compile``."""

import logging
import sys

import click
from pydantic import ValidationError

from stablepo.config import Config
from stablepo.services.compiler import compile_catalog
from stablepo.services.session import ExtractionSession
from stablepo.utils.errors import FormatError, PersistenceError
from stablepo.utils.extraction_log import configure_logging

logger = logging.getLogger(__name__)


@click.group()
@click.option('--log-level', default=None, help='Logging level (default from STABLEPO_LOG_LEVEL or INFO).')
@click.option('--json-logs/--text-logs', default=None, help='Emit log records as JSON lines.')
@click.pass_context
def main(ctx, log_level, json_logs):
    """Deterministic gettext catalog extraction."""
    ctx.ensure_object(dict)
    ctx.obj['log_level'] = log_level
    ctx.obj['json_logs'] = json_logs


def _load_config(ctx, **overrides) -> Config:
    overrides = {k: v for k, v in overrides.items() if v not in (None, ())}
    try:
        config = Config(**overrides)
    except ValidationError as e:
        raise click.BadParameter(str(e))
    configure_logging(
        ctx.obj.get('log_level') or config.LOG_LEVEL,
        json_logs=config.LOG_JSON if ctx.obj.get('json_logs') is None else ctx.obj['json_logs'],
    )
    return config


@main.command('extract')
@click.argument('root', required=False, type=click.Path(exists=True, file_okay=False))
@click.option('--source-locale', help='Locale of the message texts.')
@click.option('--locale', 'locales', multiple=True, help='Additional target locale (repeatable).')
@click.option('--pattern', 'patterns', multiple=True, help='Glob of source files, relative to ROOT (repeatable).')
@click.option('--catalog', 'catalog_pattern', help="Catalog path pattern containing '{locale}'.")
@click.option('--extractor', type=click.Choice(['literal', 'babel']), default=None)
@click.option('--retain-stale/--drop-stale', default=None, help='Keep messages no longer found as obsolete entries.')
@click.option('--compile', 'compile_mo', is_flag=True, default=None, help='Also write .mo files.')
@click.option('--workers', type=int, default=None, help='Number of extraction threads.')
@click.pass_context
def extract_command(ctx, root, source_locale, locales, patterns, catalog_pattern, extractor,
                    retain_stale, compile_mo, workers):
    """Extract messages under ROOT and write one catalog per locale."""
    config = _load_config(
        ctx,
        ROOT_DIR=root,
        SOURCE_LOCALE=source_locale,
        OTHER_LOCALES=list(locales) or None,
        FILE_PATTERNS=list(patterns) or None,
        CATALOG_PATTERN=catalog_pattern,
        EXTRACTOR=extractor,
        RETAIN_STALE_MESSAGES=retain_stale,
        COMPILE_CATALOGS=compile_mo,
        MAX_WORKERS=workers,
    )

    session = ExtractionSession(config).init()
    files = session.discover_files()
    session.observe_files(files)

    for error in session.report.errors:
        click.echo(f"warning: {error}", err=True)
    for warning in session.report.warnings:
        click.echo(f"warning: {warning}", err=True)

    try:
        results = session.finalize_all()
    except (PersistenceError, FormatError) as e:
        click.echo(f"error: {e}", err=True)
        sys.exit(2)

    for result in results:
        click.echo(f"{'wrote' if result.changed else 'unchanged'} {result.path}")

    if not session.report.ok:
        sys.exit(1)


@main.command('compile')
@click.argument('po_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--locale', default=None, help='Catalog locale (default: Language header).')
@click.option('--output', 'mo_file', default=None, type=click.Path(dir_okay=False))
def compile_command(po_file, locale, mo_file):
    """Compile PO_FILE into a binary .mo catalog."""
    try:
        written = compile_catalog(po_file, locale=locale, mo_path=mo_file)
    except (PersistenceError, FormatError) as e:
        click.echo(f"error: {e}", err=True)
        sys.exit(2)
    click.echo(f"wrote {written}")


if __name__ == '__main__':
    main()
