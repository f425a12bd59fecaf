"""
JSON web API for Wordbook.

Provides a local-first HTTP interface for:
- Reading the dictionary in any of the supported languages
- Saving an edited dictionary (identity-preserving reconciliation)
- Downloading the plain text export, the translation template and a sample
  JSON translation file
- Importing translation files and editing translations per entry
- Running machine translation for a language

Edit routes sit behind a 4-digit PIN sent in the ``X-Wordbook-Pin`` header.
With no PIN configured edit mode is disabled and those routes answer 403.
"""

from __future__ import annotations

import functools
import json
import logging
import secrets
from typing import Any, Callable, Optional

from flask import Flask, Response, current_app, jsonify, request

from .config import Config, build_store, build_translator
from .errors import StoreError, ValidationError, WordbookError
from .models import BASE_LANGUAGE, SUPPORTED_LANGUAGES, DictionaryData
from .overlay import (
    check_translation_language,
    load_dictionary,
    load_dictionary_translations,
    load_entry_translations,
    save_dictionary_translation,
    save_entry_drafts,
    translation_coverage,
)
from .repository import DictionaryRepository
from .store import RowStore
from .sync import save_dictionary
from .template_codec import export_translation_template
from .text_export import export_dictionary_text, export_filename
from .translation_import import build_sample_json, import_translation_file, sample_json_filename
from .translator import auto_translate_dictionary

logger = logging.getLogger(__name__)

PIN_HEADER = "X-Wordbook-Pin"


def _error(message: str, error_type: str, status: int, **extra: Any):
    payload = {"error": message, "type": error_type}
    payload.update(extra)
    return jsonify(payload), status


def check_pin(provided: Optional[str], expected: str) -> bool:
    """
    Compare a PIN with the configured one.

    Uses constant-time comparison to prevent timing attacks.
    """
    if not expected or provided is None:
        return False
    return secrets.compare_digest(provided.strip(), expected)


def requires_pin(f: Callable) -> Callable:
    """
    Decorator that requires the edit PIN.

    No PIN configured: 403 (edit mode disabled). Missing or wrong PIN: 401.
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        expected = current_app.config["WORDBOOK_CONFIG"].web.pin
        if not expected:
            return _error("Edit mode is disabled: no PIN configured", "EditModeDisabled", 403)
        if not check_pin(request.headers.get(PIN_HEADER), expected):
            return _error("A valid PIN is required for edit mode", "InvalidPin", 401)
        return f(*args, **kwargs)
    return decorated


def is_localhost(host: str) -> bool:
    """True if host is localhost (127.x.x.x, ::1 or "localhost")."""
    return host == "localhost" or host.startswith("127.") or host == "::1"


def _attachment(content: str, filename: str, mimetype: str) -> Response:
    return Response(
        content,
        mimetype=mimetype,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def create_app(
    config: Optional[Config] = None,
    store: Optional[RowStore] = None,
    translator=None,
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config: Loaded configuration. Defaults are used if None.
        store: Row store to use instead of the configured one.
        translator: Translation client to use instead of the configured one.

    Returns:
        Configured Flask application.
    """
    config = config or Config()
    app = Flask(__name__)
    app.config["WORDBOOK_CONFIG"] = config

    repo = DictionaryRepository(store or build_store(config), config.dictionary.id)
    app.config["WORDBOOK_REPO"] = repo

    def get_translator():
        return translator or build_translator(config)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        return _error(e.message, "ValidationError", 400, problems=e.problems)

    @app.errorhandler(StoreError)
    def handle_store_error(e: StoreError):
        logger.error(f"Store error: {e.message}")
        return _error(e.message, "StoreError", 502)

    @app.errorhandler(WordbookError)
    def handle_wordbook_error(e: WordbookError):
        logger.error(f"{type(e).__name__}: {e.message}")
        return _error(e.message, type(e).__name__, 500)

    # ------------------------------------------------------------- dictionary

    @app.route("/api/dictionary", methods=["GET"])
    def get_dictionary():
        language = request.args.get("lang", BASE_LANGUAGE)
        if language not in SUPPORTED_LANGUAGES:
            raise ValidationError(f"Unsupported language: {language!r}")
        data = load_dictionary(repo, language)
        payload = data.to_dict()
        payload["language"] = language
        return jsonify(payload)

    @app.route("/api/dictionary", methods=["PUT"])
    @requires_pin
    def put_dictionary():
        data = DictionaryData.from_dict(_json_body())
        report = save_dictionary(repo, data)
        return jsonify({"report": report.to_dict(), "dictionary": report.data.to_dict()})

    @app.route("/api/pin/verify", methods=["POST"])
    def verify_pin():
        body = request.get_json(silent=True) or {}
        return jsonify({"valid": check_pin(str(body.get("pin", "")), config.web.pin)})

    @app.route("/api/export/text")
    def export_text():
        data = repo.load()
        return _attachment(export_dictionary_text(data), export_filename(data.title), "text/plain")

    # ----------------------------------------------------------- translations

    @app.route("/api/translations/<lang>/template")
    def translation_template(lang: str):
        check_translation_language(lang)
        content = export_translation_template(repo.load())
        return _attachment(content, f"translation-template-{lang}.txt", "text/plain")

    @app.route("/api/translations/<lang>/sample.json")
    def translation_sample(lang: str):
        check_translation_language(lang)
        content = json.dumps(build_sample_json(repo.load(), lang), indent=2, ensure_ascii=False)
        return _attachment(content, sample_json_filename(lang), "application/json")

    @app.route("/api/translations/<lang>/import", methods=["POST"])
    @requires_pin
    def translation_import(lang: str):
        check_translation_language(lang)
        upload = request.files.get("file")
        if upload is not None:
            filename = upload.filename or ""
            raw = upload.read()
        else:
            filename = request.args.get("filename", "")
            raw = request.get_data()
        try:
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError("Translation file must be UTF-8 text")
        if not text.strip():
            raise ValidationError("Translation file is empty")

        report = import_translation_file(repo, repo.load(), text, lang, filename=filename)
        return jsonify(report.to_dict())

    @app.route("/api/translations/<lang>/coverage")
    def translation_coverage_route(lang: str):
        return jsonify(translation_coverage(repo, repo.load(), lang).to_dict())

    @app.route("/api/translations/<lang>/metadata", methods=["GET"])
    def get_metadata_translation(lang: str):
        check_translation_language(lang)
        return jsonify(load_dictionary_translations(repo, [lang])[lang])

    @app.route("/api/translations/<lang>/metadata", methods=["PUT"])
    @requires_pin
    def put_metadata_translation(lang: str):
        body = _json_body()
        written = save_dictionary_translation(
            repo, lang, title=body.get("title") or "", description=body.get("description") or ""
        )
        return jsonify({"written": written})

    def _find_entry(entry_id: str):
        return repo.load().find_entry(entry_id)

    @app.route("/api/translations/<lang>/entries/<entry_id>", methods=["GET"])
    def get_entry_translation(lang: str, entry_id: str):
        check_translation_language(lang)
        entry = _find_entry(entry_id)
        if entry is None:
            return _error(f"Entry not found: {entry_id}", "NotFound", 404)
        draft = load_entry_translations(repo, entry, [lang])[lang]
        return jsonify({"entry": entry.to_dict(), "translation": draft})

    @app.route("/api/translations/<lang>/entries/<entry_id>", methods=["PUT"])
    @requires_pin
    def put_entry_translation(lang: str, entry_id: str):
        check_translation_language(lang)
        body = _json_body()
        entry = _find_entry(entry_id)
        if entry is None:
            return _error(f"Entry not found: {entry_id}", "NotFound", 404)
        return jsonify({"rows_written": save_entry_drafts(repo, entry, lang, body)})

    @app.route("/api/translations/<lang>/auto", methods=["POST"])
    @requires_pin
    def auto_translate(lang: str):
        check_translation_language(lang)
        client = get_translator()
        if client is None:
            return _error("Translation service is not configured", "TranslatorNotConfigured", 503)
        body = request.get_json(silent=True) or {}
        report = auto_translate_dictionary(
            repo, repo.load(), lang, client, overwrite=bool(body.get("overwrite", False))
        )
        return jsonify(report.to_dict())

    return app


def run_server(
    config: Optional[Config] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    debug: bool = False,
    allow_unsafe_bind: bool = False,
) -> None:
    """
    Run the web server.

    Args:
        config: Loaded configuration.
        host: Host to bind to. Defaults to ``[web] host``.
        port: Port to listen on. Defaults to ``[web] port``.
        debug: Enable debug mode.
        allow_unsafe_bind: If True, suppress the refusal for non-localhost bindings.
    """
    config = config or Config()
    host = host or config.web.host
    port = port or config.web.port

    if not is_localhost(host) and not allow_unsafe_bind:
        print("\n" + "=" * 70)
        print("WARNING: BINDING TO NON-LOCALHOST ADDRESS")
        print("=" * 70)
        print(f"   You are binding to '{host}' which may expose this server")
        print("   to other machines on your network or the internet.")
        print("   The only protection of edit mode is a 4-digit PIN.")
        print()
        print("   To proceed anyway, use:")
        print("     --i-know-what-im-doing")
        print("=" * 70 + "\n")
        raise SystemExit(1)

    if config.web.pin:
        logger.info("Edit mode is ENABLED (PIN configured)")
    else:
        logger.info("Edit mode is DISABLED (set [web] pin or WORDBOOK_PIN to enable)")

    app = create_app(config)
    logger.info(f"Starting Wordbook web server at http://{host}:{port}")
    print(f"\nWordbook running at http://{host}:{port}")
    print("   Press Ctrl+C to stop\n")
    app.run(host=host, port=port, debug=debug)
