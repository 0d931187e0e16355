"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

    1. config/config.yaml  -- static defaults checked into the repo
    2. .env file           -- local developer overrides (not committed)
    3. Environment vars    -- set at deploy time

``load_config`` reads the YAML file first, then deep-merges on top only the
:class:`Settings` fields that were explicitly provided (environment, ``.env``
or constructor keyword).  A Settings field left at its class default never
masks the YAML value for the same key.
"""

from pathlib import Path

import yaml

from lexbrief.config.settings import Settings

# Settings field -> (YAML section, YAML key)
_SETTINGS_TO_YAML: dict[str, tuple[str, str]] = {
    "app_env": ("app", "env"),
    "openai_embedding_model": ("embedding", "model"),
    "embedding_max_chars": ("embedding", "max_chars"),
    "embedding_max_tokens": ("embedding", "max_tokens"),
    "embedding_chars_per_token": ("embedding", "chars_per_token"),
    "embedding_timeout_seconds": ("embedding", "timeout_seconds"),
    "openai_text_model": ("summary", "model"),
    "chunk_max_chars": ("ingestion", "chunk_max_chars"),
    "min_extracted_chars": ("ingestion", "min_extracted_chars"),
    "max_upload_bytes": ("ingestion", "max_upload_bytes"),
    "ingestion_concurrency": ("ingestion", "concurrency"),
    "composer_top_k": ("composer", "top_k"),
    "document_store_backend": ("document_store", "backend"),
    "document_store_path": ("document_store", "path"),
    "log_level": ("logging", "level"),
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Explicitly set Settings fields override YAML values where keys overlap.
    Empty strings (e.g. an unset ``OPENAI_EMBEDDING_MODEL=``) count as unset.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; a fresh ``Settings()`` is read when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    _deep_merge(yaml_config, _explicit_overrides(settings))
    yaml_config.setdefault("embedding", {})["available"] = settings.has_embedding_credentials()
    return yaml_config


def _explicit_overrides(settings: Settings) -> dict:
    """Nest the explicitly provided Settings fields under their YAML keys."""
    overrides: dict = {}
    for field in settings.model_fields_set:
        if field not in _SETTINGS_TO_YAML:
            continue
        value = getattr(settings, field)
        if value is None or value == "":
            continue
        section, key = _SETTINGS_TO_YAML[field]
        overrides.setdefault(section, {})[key] = value
    return overrides


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
