import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from cerberus import Validator
from dotenv import load_dotenv

from gcpvault.dto.settings import Settings
from gcpvault.util.errors import ConfigError
from gcpvault.util.logger import log

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "config" / "settings-schema.yml"
SEARCH_PATHS = ("config.yml", "config.yaml", "config/config.yml", "config/config.yaml")

TRUE_STRINGS = {"1", "true", "yes", "on"}
FALSE_STRINGS = {"0", "false", "no", "off", ""}


class SettingsValidator(Validator):
    """Cerberus validator with the coercions needed for env var strings."""

    def _normalize_coerce_to_int(self, value):
        return int(value)

    def _normalize_coerce_to_float(self, value):
        return float(value)

    def _normalize_coerce_to_bool(self, value):
        if isinstance(value, bool):
            return value
        lowered = str(value).strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
        raise ValueError(f"not a boolean: {value}")

    def _normalize_coerce_to_list(self, value):
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    def _normalize_coerce_upper(self, value):
        return str(value).upper()


def load_settings(config_path: Optional[str] = None, environ=None) -> Settings:
    """Load settings: schema defaults, then the YAML file, then env overrides."""
    if environ is None:
        load_dotenv()
        environ = os.environ

    schema = load_schema()
    document = read_config_file(config_path or environ.get("CONFIG_FILE"))
    apply_env_overrides(document, schema, environ)

    v = SettingsValidator(schema)  # type: ignore
    if not v.validate(document):  # type: ignore
        log(f"Invalid config: {v.errors}", "ERROR")
        raise ConfigError(f"Invalid config: {v.errors}")  # type: ignore

    return Settings.from_document(v.document)


def load_schema() -> Dict[str, Any]:
    with open(SCHEMA_PATH, "r") as schema_file:
        return yaml.safe_load(schema_file)


def find_config_file() -> Optional[str]:
    for candidate in SEARCH_PATHS:
        if os.path.isfile(candidate):
            return candidate
    return None


def read_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    if config_path is None:
        config_path = find_config_file()
        if config_path is None:
            log("No config file found, using defaults and environment")
            return {}
    elif not os.path.exists(config_path):
        log(f"Config file not found: {config_path}", "ERROR")
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r") as yaml_file:
            loaded_yaml = yaml.safe_load(yaml_file)
    except yaml.YAMLError as e:
        log(f"Malformed config file {config_path}: {e}", "ERROR")
        raise ConfigError(f"Malformed config file {config_path}: {e}") from e

    if loaded_yaml is None:
        return {}
    if not isinstance(loaded_yaml, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping at the top level")

    log(f"Loaded config file: {config_path}")
    return loaded_yaml


def env_var_name(dotted_key: str) -> str:
    return dotted_key.upper().replace(".", "_")


def apply_env_overrides(document: Dict[str, Any], schema: Dict[str, Any], environ) -> None:
    """Overwrite document values with env vars named after their dotted keys (vault.token -> VAULT_TOKEN)."""
    for section, section_schema in schema.items():
        for key in section_schema.get("schema", {}):
            name = env_var_name(f"{section}.{key}")
            if name not in environ:
                continue
            target = document.setdefault(section, {})
            if not isinstance(target, dict):
                raise ConfigError(f"Config section '{section}' must be a mapping")
            target[key] = environ[name]
