"""
Client for the external AI translation endpoint and batch auto-translation.

The endpoint receives ``{"text", "targetLanguage", "context"}`` as JSON and
answers ``{"translation": "..."}``. Failures are classified so callers can
tell a spent quota from a busy service.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from .errors import TranslationServiceError
from .models import (
    LANGUAGE_NAMES,
    DefinitionTranslationRow,
    DictionaryData,
    DictionaryTranslationRow,
    EntryTranslationRow,
    is_blank,
)
from .overlay import check_translation_language
from .repository import DictionaryRepository

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


def classify_failure(status_code: Optional[int], message: str) -> str:
    """Map an HTTP status and error text to a ``TranslationServiceError`` reason."""
    text = (message or "").lower()
    if "insufficient_quota" in text or "quota" in text:
        return TranslationServiceError.QUOTA
    if status_code == 429 or "rate limit" in text or "429" in text:
        return TranslationServiceError.RATE_LIMITED
    if status_code in (401, 403) or "api key" in text:
        return TranslationServiceError.AUTH
    return TranslationServiceError.UNAVAILABLE


class Translator:
    """Calls the translation endpoint with a bounded timeout."""

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def translate(self, text: str, target_language: str, context: Optional[str] = None) -> str:
        """
        Translate ``text`` from English into ``target_language``.

        Blank text returns an empty string without calling the service.

        Raises:
            TranslationServiceError: With ``reason`` set to quota,
                rate_limited, auth or unavailable.
        """
        if is_blank(text):
            return ""

        payload = {"text": text, "targetLanguage": target_language, "context": context}
        try:
            response = self.session.post(
                self.endpoint, json=payload, headers=self._headers(), timeout=self.timeout
            )
        except requests.Timeout:
            raise TranslationServiceError(
                f"Translation service timed out after {self.timeout}s",
                reason=TranslationServiceError.UNAVAILABLE,
            )
        except requests.RequestException as e:
            raise TranslationServiceError(
                f"Could not reach translation service: {e}",
                reason=TranslationServiceError.UNAVAILABLE,
            )

        if response.status_code >= 400:
            reason = classify_failure(response.status_code, response.text)
            raise TranslationServiceError(
                f"Translation service returned {response.status_code}: {response.text[:200]}",
                reason=reason,
            )

        try:
            data = response.json()
        except ValueError:
            raise TranslationServiceError("Translation service returned invalid JSON")

        if data.get("error"):
            message = str(data["error"])
            raise TranslationServiceError(message, reason=classify_failure(None, message))

        translation = data.get("translation")
        if not isinstance(translation, str):
            raise TranslationServiceError("Translation service response has no translation")
        return translation.strip()


# =============================================================================
# BATCH TRANSLATION
# =============================================================================

@dataclass
class TranslationRunReport:
    """Outcome of an auto-translation run."""

    language: str
    fields_translated: int = 0
    fields_skipped: int = 0
    rows_written: int = 0
    failures: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "language": self.language,
            "fields_translated": self.fields_translated,
            "fields_skipped": self.fields_skipped,
            "fields_failed": len(self.failures),
            "rows_written": self.rows_written,
            "failures": self.failures,
        }


def auto_translate_dictionary(
    repo: DictionaryRepository,
    base: DictionaryData,
    language: str,
    translator: Translator,
    overwrite: bool = False,
) -> TranslationRunReport:
    """
    Machine-translate every field of ``base`` that has no stored translation.

    A field that fails is recorded in the report and left untranslated; the
    rest of the batch continues. Only translated fields are written, so stored
    translations of other fields are kept.

    Args:
        repo: Repository of the dictionary.
        base: Base-language dictionary as persisted.
        language: Target language.
        translator: Translation client.
        overwrite: Also re-translate fields that already have a translation.
    """
    check_translation_language(language)
    report = TranslationRunReport(language=language)

    def translated(label: str, source: Optional[str], existing: Optional[str], context: str) -> Optional[str]:
        if is_blank(source):
            return None
        if not overwrite and not is_blank(existing):
            report.fields_skipped += 1
            return None
        try:
            value = translator.translate(source, language, context)
        except TranslationServiceError as e:
            report.failures.append({"field": label, "reason": e.reason, "message": e.message})
            logger.warning(f"Translation of {label} failed ({e.reason}): {e.message}")
            return None
        if is_blank(value):
            return None
        report.fields_translated += 1
        return value

    def write(row) -> None:
        if repo.upsert_translation(row, merge=True):
            report.rows_written += 1

    stored = repo.get_dictionary_translation(language)
    write(DictionaryTranslationRow(
        dictionary_id=repo.dictionary_id,
        language=language,
        title=translated("title", base.title, stored.title if stored else None, "Dictionary title"),
        description=translated(
            "description", base.description, stored.description if stored else None,
            "Dictionary description",
        ),
    ))

    entry_rows = repo.list_entry_translations(language, base.entry_ids())
    definition_rows = repo.list_definition_translations(language, base.definition_ids())

    for entry in base.entries:
        context = f"Dictionary entry for the word '{entry.word}'"
        entry_row = entry_rows.get(entry.id)
        write(EntryTranslationRow(
            entry_id=entry.id,
            language=language,
            origin=translated(
                f"{entry.word}: origin", entry.origin, entry_row.origin if entry_row else None, context
            ),
        ))

        for m, definition in enumerate(entry.definitions, start=1):
            row = definition_rows.get(definition.id)
            prefix = f"{entry.word}: definition {m}"
            write(DefinitionTranslationRow(
                definition_id=definition.id,
                language=language,
                grammatical_class=translated(
                    f"{prefix} class", definition.grammatical_class,
                    row.grammatical_class if row else None, context,
                ),
                meaning=translated(f"{prefix} meaning", definition.meaning, row.meaning if row else None, context),
                example=translated(f"{prefix} example", definition.example, row.example if row else None, context),
            ))

    logger.info(
        f"Auto-translated {report.fields_translated} field(s) into "
        f"{LANGUAGE_NAMES.get(language, language)}: {len(report.failures)} failed, "
        f"{report.fields_skipped} already translated"
    )
    return report
