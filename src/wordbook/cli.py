"""
Command-line interface for Wordbook.

Provides the `wordbook` command with the following subcommands:
- init: Create the database schema and the dictionary row
- show: Print the dictionary, optionally in a translation language
- save: Save an edited dictionary JSON file
- migrate: Import a legacy dictionary dump
- export: Write the text listing, translation template or sample JSON
- import: Import a filled-in translation template or JSON file
- translate: Machine-translate missing fields
- coverage: Show how much of the dictionary is translated
- serve: Run the JSON web API
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import Config, ConfigError, build_store, build_translator, load_config
from .errors import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    EXIT_SUCCESS,
    ConfigurationError,
    WordbookError,
)
from .io import load_dictionary_file, load_json_file, read_text_file, write_text_file
from .logging_config import level_from_name, setup_logging
from .models import BASE_LANGUAGE, LANGUAGE_NAMES, SUPPORTED_LANGUAGES, TRANSLATION_LANGUAGES
from .overlay import load_dictionary, translation_coverage
from .repository import DictionaryRepository
from .sync import save_dictionary

# Set up module logger
logger = logging.getLogger(__name__)


def _config(args: argparse.Namespace) -> Config:
    return getattr(args, "_config", None) or Config()


def _repository(args: argparse.Namespace) -> DictionaryRepository:
    config = _config(args)
    return DictionaryRepository(build_store(config), config.dictionary.id)


def _fail(e: WordbookError) -> int:
    logger.error(f"{type(e).__name__}: {e.message}")
    print(f"❌ Error: {e.message}")
    for problem in getattr(e, "problems", []):
        print(f"   - {problem}")
    return e.exit_code


def _emit(content: str, output: Optional[str]) -> None:
    """Write to ``output`` if given, otherwise to stdout."""
    if output:
        path = write_text_file(Path(output), content)
        print(f"✅ Wrote {path}")
    else:
        sys.stdout.write(content)


def init_command(args: argparse.Namespace) -> int:
    """
    Execute the init command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code.
    """
    from .store import SQLiteRowStore, init_db

    config = _config(args)
    try:
        if config.store.backend == "sqlite":
            db_path = init_db(config.db_path(), force=args.force)
            store = SQLiteRowStore(db_path)
            print(f"✅ Database initialized: {db_path}")
        else:
            store = build_store(config)

        repo = DictionaryRepository(store, config.dictionary.id)
        dictionary = repo.ensure_dictionary(args.title, args.description)
        print(f"✅ Dictionary ready: {dictionary.title} ({dictionary.id})")
        return EXIT_SUCCESS
    except WordbookError as e:
        return _fail(e)


def show_command(args: argparse.Namespace) -> int:
    """Execute the show command."""
    from .text_export import export_dictionary_text

    try:
        data = load_dictionary(_repository(args), args.lang)
    except WordbookError as e:
        return _fail(e)

    if args.json:
        print(json.dumps(data.to_dict(), indent=2, ensure_ascii=False))
    else:
        sys.stdout.write(export_dictionary_text(data))
    return EXIT_SUCCESS


def _print_save_report(report) -> None:
    print("\n💾 Save Results:")
    print(
        f"   Entries: {report.entries_inserted} inserted, "
        f"{report.entries_updated} updated, {report.entries_deleted} deleted"
    )
    print(
        f"   Definitions: {report.definitions_inserted} inserted, "
        f"{report.definitions_updated} updated, {report.definitions_deleted} deleted"
    )


def save_command(args: argparse.Namespace) -> int:
    """Execute the save command."""
    try:
        data = load_dictionary_file(Path(args.file))
        report = save_dictionary(_repository(args), data)
    except WordbookError as e:
        return _fail(e)

    _print_save_report(report)
    return EXIT_SUCCESS


def migrate_command(args: argparse.Namespace) -> int:
    """
    Execute the migrate command.

    Only an empty dictionary is migrated into unless --force is given.
    """
    from .io import migrate_legacy_data

    try:
        repo = _repository(args)
        current = repo.load()
        if current.entries and not args.force:
            print(
                f"❌ The dictionary already has {len(current.entries)} entries. "
                "Use --force to save the legacy data over it."
            )
            return EXIT_ERROR

        data = migrate_legacy_data(load_json_file(Path(args.file)), current)
        report = save_dictionary(repo, data)
    except WordbookError as e:
        return _fail(e)

    _print_save_report(report)
    return EXIT_SUCCESS


def export_command(args: argparse.Namespace) -> int:
    """Execute the export command."""
    from .template_codec import export_translation_template
    from .text_export import export_dictionary_text
    from .translation_import import build_sample_json

    try:
        repo = _repository(args)
        if args.kind == "text":
            content = export_dictionary_text(load_dictionary(repo, args.lang))
        elif args.kind == "template":
            content = export_translation_template(repo.load())
        else:
            if args.lang not in TRANSLATION_LANGUAGES:
                raise ConfigurationError("json-sample needs --lang de or --lang pt")
            sample = build_sample_json(repo.load(), args.lang)
            content = json.dumps(sample, indent=2, ensure_ascii=False) + "\n"
        _emit(content, args.output)
    except WordbookError as e:
        return _fail(e)
    return EXIT_SUCCESS


def import_command(args: argparse.Namespace) -> int:
    """Execute the import command."""
    from .translation_import import import_translation_file

    path = Path(args.file)
    try:
        text = read_text_file(path)
        repo = _repository(args)
        report = import_translation_file(repo, repo.load(), text, args.lang, filename=path.name)
    except WordbookError as e:
        return _fail(e)

    print(f"\n📥 Import Results ({LANGUAGE_NAMES[args.lang]}):")
    print(f"   Entries: {report.entries_translated}/{report.entries_processed} translated")
    print(f"   Definitions: {report.definitions_translated}/{report.definitions_processed} translated")
    print(f"   Rows written: {report.rows_written}")
    for warning in report.warnings:
        print(f"   ⚠️  {warning}")
    return EXIT_SUCCESS


def translate_command(args: argparse.Namespace) -> int:
    """Execute the translate command."""
    from .translator import auto_translate_dictionary

    config = _config(args)
    try:
        translator = build_translator(config)
        if translator is None:
            raise ConfigurationError(
                "No translation endpoint configured. Set [translator] endpoint or WORDBOOK_TRANSLATOR_URL."
            )
        repo = _repository(args)
        report = auto_translate_dictionary(repo, repo.load(), args.lang, translator, overwrite=args.overwrite)
    except WordbookError as e:
        return _fail(e)

    print(f"\n🌐 Translation Results ({LANGUAGE_NAMES[args.lang]}):")
    print(f"   Fields translated: {report.fields_translated}")
    print(f"   Already translated: {report.fields_skipped}")
    print(f"   Rows written: {report.rows_written}")
    for failure in report.failures:
        print(f"   ⚠️  {failure['field']}: {failure['reason']}")
    return EXIT_SUCCESS


def coverage_command(args: argparse.Namespace) -> int:
    """Execute the coverage command."""
    try:
        repo = _repository(args)
        report = translation_coverage(repo, repo.load(), args.lang)
    except WordbookError as e:
        return _fail(e)

    print(
        f"{LANGUAGE_NAMES[args.lang]}: {report.translated}/{report.total} fields "
        f"translated ({report.percent}%)"
    )
    if args.missing:
        for label in report.missing:
            print(f"   - {label}")
    return EXIT_SUCCESS


def serve_command(args: argparse.Namespace) -> int:
    """Execute the serve command."""
    from .web import run_server

    try:
        run_server(
            _config(args),
            host=args.host,
            port=args.port,
            debug=args.debug,
            allow_unsafe_bind=args.i_know_what_im_doing,
        )
    except WordbookError as e:
        return _fail(e)
    return EXIT_SUCCESS


def create_parser() -> argparse.ArgumentParser:
    """
    Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="wordbook",
        description="Personal multilingual dictionary with English, German and Portuguese.",
        epilog="Example: wordbook show --lang de"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"wordbook {__version__}"
    )

    # Global options
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output (INFO level logging)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output (DEBUG level logging)"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress output except errors"
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        dest="config_file",
        help="Path to config file (default: wordbook.toml)"
    )
    parser.add_argument(
        "--db",
        type=str,
        help="Path to the SQLite database (overrides config and WORDBOOK_DB)"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands"
    )

    # Init command
    init_parser = subparsers.add_parser(
        "init",
        help="Initialize the database and the dictionary",
        description="Create the database schema and the dictionary row."
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Recreate the database even if it exists"
    )
    init_parser.add_argument("--title", default="My Dictionary", help="Dictionary title")
    init_parser.add_argument("--description", default="", help="Dictionary description")
    init_parser.set_defaults(func=init_command)

    # Show command
    show_parser = subparsers.add_parser(
        "show",
        help="Print the dictionary",
        description="Print the dictionary with translations overlaid for --lang."
    )
    show_parser.add_argument("--lang", choices=SUPPORTED_LANGUAGES, default=BASE_LANGUAGE)
    show_parser.add_argument("--json", action="store_true", help="Print JSON instead of text")
    show_parser.set_defaults(func=show_command)

    # Save command
    save_parser = subparsers.add_parser(
        "save",
        help="Save a dictionary JSON file",
        description="Save an edited dictionary, keeping the ids of unchanged entries."
    )
    save_parser.add_argument("file", help="Dictionary JSON file (camelCase keys)")
    save_parser.set_defaults(func=save_command)

    # Migrate command
    migrate_parser = subparsers.add_parser(
        "migrate",
        help="Import a legacy dictionary dump",
        description="Replace legacy ids with UUIDs, sort entries and save."
    )
    migrate_parser.add_argument("file", help="Legacy dictionary JSON file")
    migrate_parser.add_argument(
        "--force",
        action="store_true",
        help="Migrate even if the dictionary already has entries"
    )
    migrate_parser.set_defaults(func=migrate_command)

    # Export command
    export_parser = subparsers.add_parser(
        "export",
        help="Export the dictionary",
        description="Write the text listing, the translation template or a sample JSON file."
    )
    export_parser.add_argument("kind", choices=["text", "template", "json-sample"])
    export_parser.add_argument("--lang", choices=SUPPORTED_LANGUAGES, default=BASE_LANGUAGE)
    export_parser.add_argument("-o", "--output", help="Output file (default: stdout)")
    export_parser.set_defaults(func=export_command)

    # Import command
    import_parser = subparsers.add_parser(
        "import",
        help="Import translations",
        description="Import a filled-in translation template (.txt) or JSON file (.json)."
    )
    import_parser.add_argument("file", help="Translation file")
    import_parser.add_argument("--lang", choices=TRANSLATION_LANGUAGES, required=True)
    import_parser.set_defaults(func=import_command)

    # Translate command
    translate_parser = subparsers.add_parser(
        "translate",
        help="Machine-translate missing fields",
        description="Send every untranslated field to the translation service."
    )
    translate_parser.add_argument("--lang", choices=TRANSLATION_LANGUAGES, required=True)
    translate_parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Also re-translate fields that already have a translation"
    )
    translate_parser.set_defaults(func=translate_command)

    # Coverage command
    coverage_parser = subparsers.add_parser(
        "coverage",
        help="Show translation coverage",
        description="Count translated and missing fields for a language."
    )
    coverage_parser.add_argument("--lang", choices=TRANSLATION_LANGUAGES, required=True)
    coverage_parser.add_argument("--missing", action="store_true", help="List missing fields")
    coverage_parser.set_defaults(func=coverage_command)

    # Serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the web API",
        description="Start the JSON web API (localhost only by default)."
    )
    serve_parser.add_argument("--host", help="Host to bind (default: [web] host)")
    serve_parser.add_argument("--port", type=int, help="Port (default: [web] port)")
    serve_parser.add_argument(
        "--i-know-what-im-doing",
        action="store_true",
        dest="i_know_what_im_doing",
        help="Allow binding to a non-localhost address"
    )
    serve_parser.set_defaults(func=serve_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv).

    Returns:
        Exit code.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, debug=args.debug, quiet=args.quiet)

    config_path = Path(args.config_file) if args.config_file else None
    try:
        config = load_config(config_path)
    except ConfigError as e:
        logger.error(f"Config error: {e}")
        print(f"❌ Config error: {e}")
        return EXIT_CONFIG_ERROR

    if args.db:
        config.store.db = str(Path(args.db).resolve())
    args._config = config

    setup_logging(
        verbose=args.verbose,
        debug=args.debug,
        quiet=args.quiet,
        log_file=config.log_file_path(),
        default_level=level_from_name(config.logging.level),
    )

    if hasattr(args, "func"):
        return args.func(args)

    parser.print_help()
    return EXIT_SUCCESS


def main_cli() -> None:
    """
    CLI entry point for setuptools console_scripts.

    Calls main() and exits with the returned code.
    """
    sys.exit(main())


if __name__ == "__main__":
    main_cli()
