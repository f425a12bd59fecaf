"""
Configuration file support for Wordbook.

Provides:
- Config dataclasses for holding configuration values
- TOML config file loading (wordbook.toml)
- Environment overrides (WORDBOOK_DB, WORDBOOK_PB_URL, ...)
- Precedence: CLI > environment > config file > defaults
- Construction of the configured row store and translator
"""

import logging
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

# Python 3.11+ has tomllib in stdlib, earlier versions need tomli
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .errors import ConfigurationError
from .identity import is_valid_uuid
from .models import BASE_LANGUAGE, DEFAULT_DICTIONARY_ID, TRANSLATION_LANGUAGES
from .paths import get_default_db_path, get_repo_root, resolve_path

logger = logging.getLogger(__name__)

# Default config file name
DEFAULT_CONFIG_NAME = "wordbook.toml"

STORE_BACKENDS = ("sqlite", "pocketbase")

PIN_PATTERN = re.compile(r"^\d{4}$")

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    "WORDBOOK_DB": ("store", "db"),
    "WORDBOOK_PB_URL": ("store", "url"),
    "WORDBOOK_TRANSLATOR_URL": ("translator", "endpoint"),
    "WORDBOOK_TRANSLATOR_KEY": ("translator", "api_key"),
    "WORDBOOK_PIN": ("web", "pin"),
}


class ConfigError(ConfigurationError):
    """Error loading or parsing configuration."""

    pass


@dataclass
class DictionaryConfig:
    """Which dictionary and which languages."""

    id: str = DEFAULT_DICTIONARY_ID
    base_language: str = BASE_LANGUAGE
    languages: List[str] = field(default_factory=lambda: list(TRANSLATION_LANGUAGES))


@dataclass
class StoreConfig:
    """Row store backend."""

    backend: str = "sqlite"
    db: Optional[str] = None
    url: str = ""
    timeout: float = 15


@dataclass
class TranslatorConfig:
    """External translation endpoint."""

    endpoint: str = ""
    api_key: str = ""
    timeout: float = 30


@dataclass
class WebConfig:
    """Web API settings."""

    pin: str = ""
    host: str = "127.0.0.1"
    port: int = 5000


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"
    log_file: Optional[str] = None


@dataclass
class Config:
    """Complete configuration for Wordbook."""

    dictionary: DictionaryConfig = field(default_factory=DictionaryConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    translator: TranslatorConfig = field(default_factory=TranslatorConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    config_path: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], config_path: Optional[Path] = None) -> "Config":
        """Create Config from a dictionary (parsed TOML)."""
        dictionary_data = data.get("dictionary", {})
        store_data = data.get("store", {})
        translator_data = data.get("translator", {})
        web_data = data.get("web", {})
        logging_data = data.get("logging", {})

        try:
            return cls(
                dictionary=DictionaryConfig(
                    id=str(dictionary_data.get("id", DEFAULT_DICTIONARY_ID)),
                    base_language=dictionary_data.get("base_language", BASE_LANGUAGE),
                    languages=list(dictionary_data.get("languages", TRANSLATION_LANGUAGES)),
                ),
                store=StoreConfig(
                    backend=store_data.get("backend", "sqlite"),
                    db=store_data.get("db") or None,
                    url=store_data.get("url", ""),
                    timeout=float(store_data.get("timeout", 15)),
                ),
                translator=TranslatorConfig(
                    endpoint=translator_data.get("endpoint", ""),
                    api_key=translator_data.get("api_key", ""),
                    timeout=float(translator_data.get("timeout", 30)),
                ),
                web=WebConfig(
                    pin=str(web_data.get("pin", "")),
                    host=web_data.get("host", "127.0.0.1"),
                    port=int(web_data.get("port", 5000)),
                ),
                logging=LoggingConfig(
                    level=logging_data.get("level", "WARNING"),
                    log_file=logging_data.get("log_file") or None,
                ),
                config_path=config_path,
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}")

    def apply_env(self, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Override values from WORDBOOK_* environment variables."""
        environ = os.environ if environ is None else environ
        for name, (section, key) in ENV_OVERRIDES.items():
            value = environ.get(name)
            if value:
                setattr(getattr(self, section), key, value)
                logger.debug(f"Using {name} for [{section}] {key}")
        return self

    def validate(self) -> "Config":
        """
        Check values that cannot be used as given.

        Raises:
            ConfigError: On the first invalid value.
        """
        if not is_valid_uuid(self.dictionary.id):
            raise ConfigError(f"[dictionary] id must be a UUID, got {self.dictionary.id!r}")
        if self.dictionary.base_language != BASE_LANGUAGE:
            raise ConfigError(f"[dictionary] base_language must be {BASE_LANGUAGE!r}")
        unknown = [lang for lang in self.dictionary.languages if lang not in TRANSLATION_LANGUAGES]
        if unknown:
            raise ConfigError(
                f"[dictionary] unsupported languages: {', '.join(unknown)} "
                f"(supported: {', '.join(TRANSLATION_LANGUAGES)})"
            )
        if self.store.backend not in STORE_BACKENDS:
            raise ConfigError(
                f"[store] backend must be one of {', '.join(STORE_BACKENDS)}, got {self.store.backend!r}"
            )
        if self.store.timeout <= 0 or self.translator.timeout <= 0:
            raise ConfigError("Timeouts must be positive numbers of seconds")
        if self.web.pin and not PIN_PATTERN.match(self.web.pin):
            raise ConfigError("[web] pin must be exactly 4 digits")
        return self

    def base_dir(self) -> Path:
        """Directory relative paths are resolved against."""
        if self.config_path is not None:
            return self.config_path.resolve().parent
        return get_repo_root()

    def db_path(self) -> Path:
        if self.store.db:
            return resolve_path(self.store.db, base=self.base_dir())
        return get_default_db_path()

    def log_file_path(self) -> Optional[Path]:
        if not self.logging.log_file:
            return None
        return resolve_path(self.logging.log_file, base=self.base_dir())


def find_config_file(config_path: Optional[Path] = None) -> Optional[Path]:
    """
    Find the configuration file.

    Search order:
    1. Explicit path if provided
    2. wordbook.toml in current directory
    3. wordbook.toml in repository root

    Returns:
        Path to config file, or None if not found.
    """
    if config_path is not None:
        if config_path.exists():
            return config_path
        raise ConfigError(f"Config file not found: {config_path}")

    cwd_config = Path.cwd() / DEFAULT_CONFIG_NAME
    if cwd_config.exists():
        return cwd_config

    root_config = get_repo_root() / DEFAULT_CONFIG_NAME
    if root_config.exists():
        return root_config

    return None


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Load configuration from a TOML file and the environment.

    If no config file is found, defaults plus environment are used.

    Raises:
        ConfigError: If the file cannot be parsed or a value is invalid.
    """
    config_file = find_config_file(config_path)

    if config_file is None:
        logger.debug("No config file found, using defaults")
        return Config().apply_env(environ).validate()

    logger.debug(f"Loading config from: {config_file}")

    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_file}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_file}: {e}")

    config = Config.from_dict(data, config_path=config_file).apply_env(environ).validate()
    logger.info(f"Loaded config from: {config_file}")
    return config


def build_store(config: Config):
    """
    Create the row store selected by ``[store] backend``.

    Raises:
        ConfigError: If the backend cannot be built from the given values.
    """
    if config.store.backend == "pocketbase":
        from .rest_store import PocketBaseRowStore

        if not config.store.url:
            raise ConfigError("[store] url (or WORDBOOK_PB_URL) is required for the pocketbase backend")
        return PocketBaseRowStore(config.store.url, timeout=config.store.timeout)

    from .store import SQLiteRowStore

    return SQLiteRowStore(config.db_path())


def build_translator(config: Config):
    """The configured ``Translator``, or None when no endpoint is set."""
    if not config.translator.endpoint:
        return None

    from .translator import Translator

    return Translator(
        config.translator.endpoint,
        api_key=config.translator.api_key or None,
        timeout=config.translator.timeout,
    )
