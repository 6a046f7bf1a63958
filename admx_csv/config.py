# (C) 2025 Noverse. All Rights Reserved.
# https://github.com/nohuto
# https://discord.gg/E2ybG4j9jU

import codecs
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from jsonschema import ValidationError, validate

from .errors import ConfigError
from .output import DEFAULT_ENCODING, FORMATS

DEFAULT_DEFINITIONS = Path(r"C:\Windows\PolicyDefinitions")
DEFAULT_LANGUAGE = "en-US"
POLICY_CLASSES = ("Machine", "User")

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "definitions": {"type": "string"},
        "language": {"type": "string"},
        "policy": {"type": "string"},
        "format": {"type": "string", "enum": list(FORMATS)},
        "output": {"type": "string"},
        "delimiter": {"type": "string", "minLength": 1, "maxLength": 1},
        "encoding": {"type": "string", "minLength": 1},
        "use_culture": {"type": "boolean"},
        "hive": {"type": "boolean"},
        "ignore": {"type": "array", "items": {"type": "string"}},
        "class": {"type": "array", "items": {"type": "string", "enum": list(POLICY_CLASSES)}},
        "vendors": {"type": "object", "additionalProperties": {"type": "string"}},
    },
    "additionalProperties": False,
}
KNOWN_KEYS = frozenset(CONFIG_SCHEMA["properties"])
# a single string is accepted where a list is expected
_LIST_KEYS = ("ignore", "class")


@dataclass
class Settings:
    definitions: Path = DEFAULT_DEFINITIONS
    language: str = DEFAULT_LANGUAGE
    vendors: Dict[str, Path] = field(default_factory=dict)
    ignore: List[str] = field(default_factory=list)
    classes: List[str] = field(default_factory=list)
    policy: Optional[str] = None
    format: str = "csv"
    output: Optional[Path] = None
    delimiter: Optional[str] = None
    use_culture: bool = False
    encoding: str = DEFAULT_ENCODING
    hive: bool = False

    def output_path(self) -> Path:
        if self.output is not None:
            return self.output
        return Path(f"Policies.{self.format}")


def load_config(path: Path) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Unable to read config file {path}: {exc.strerror or exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return validate_config(raw, source=str(path))


def validate_config(raw: Mapping[str, Any], *, source: str = "config") -> Dict[str, Any]:
    config: Dict[str, Any] = {}
    for key, value in raw.items():
        normalized = str(key).replace("-", "_")
        if normalized in _LIST_KEYS and isinstance(value, str):
            value = [value]
        elif normalized == "vendors" and isinstance(value, dict):
            value = {str(k): v for k, v in value.items()}
        config[normalized] = value
    _validate_schema(config, source)
    return config


def _validate_schema(config: Mapping[str, Any], source: str) -> None:
    """Validate against CONFIG_SCHEMA, then check that the encoding exists."""
    try:
        validate(instance=dict(config), schema=CONFIG_SCHEMA)
    except ValidationError as e:
        path = ".".join(str(p) for p in e.path)
        where = f" at '{path}'" if path else ""
        suggestion = None
        if e.validator == "additionalProperties" and not e.path:
            suggestion = f"Valid keys: {', '.join(sorted(KNOWN_KEYS))}"
        raise ConfigError(f"Configuration validation failed in {source}{where}: {e.message}", suggestion) from e

    encoding = config.get("encoding")
    if encoding is not None:
        try:
            codecs.lookup(encoding)
        except LookupError as exc:
            raise ConfigError(
                f"Unknown encoding '{encoding}' in {source}",
                "Use a Python codec name such as utf-8-sig, utf-8 or utf-16.",
            ) from exc


def parse_vendor_option(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise ConfigError(
            f"Invalid vendor '{value}'",
            "Use KEY=PATH, for example --vendor windows=en-US/Windows.adml",
        )
    key, path = value.split("=", 1)
    key, path = key.strip(), path.strip()
    if not key or not path:
        raise ConfigError(f"Invalid vendor '{value}'", "Both the vendor prefix and the ADML path are required.")
    return key, path


def build_settings(args: Any, config: Optional[Mapping[str, Any]] = None) -> Settings:
    """Merge the config file with parsed arguments; explicit arguments win."""
    config = config or {}

    def pick(name: str, config_key: Optional[str] = None) -> Any:
        value = getattr(args, name, None)
        if value is not None:
            return value
        return config.get(config_key or name)

    settings = Settings()
    definitions = pick("definitions")
    if definitions is not None:
        settings.definitions = Path(definitions)
    settings.language = pick("language") or DEFAULT_LANGUAGE

    vendors: Dict[str, Path] = {k.lower(): Path(v) for k, v in config.get("vendors", {}).items()}
    for option in getattr(args, "vendors", None) or []:
        key, path = parse_vendor_option(option)
        vendors[key.lower()] = Path(path)
    settings.vendors = vendors

    settings.ignore = list(pick("ignored_admx", "ignore") or [])
    settings.classes = list(pick("class_filter", "class") or [])
    settings.policy = pick("policy_filter", "policy")
    settings.format = pick("format") or "csv"
    output = pick("output")
    settings.output = Path(output) if output is not None else None
    settings.delimiter = pick("delimiter")
    settings.use_culture = bool(pick("use_culture"))
    settings.encoding = pick("encoding") or DEFAULT_ENCODING
    settings.hive = bool(pick("hive"))

    merged = {
        "format": settings.format,
        "class": settings.classes,
        "delimiter": settings.delimiter,
        "encoding": settings.encoding,
    }
    _validate_schema({k: v for k, v in merged.items() if v is not None}, "arguments")
    return settings
