"""Configuration Management Package"""

import json
import os
import sys
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Optional

# Valid configuration values
VALID_PROVIDERS = {"auto", "openai", "ollama"}
VALID_OPENAI_MODES = {"auto", "chat", "responses"}

# Positive integer limits validated the same way
_POSITIVE_INT_FIELDS = (
    "timeout_secs",
    "max_input_tokens",
    "max_output_tokens",
    "max_file_bytes",
    "max_file_lines",
    "max_files",
    "max_file_display",
)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class GenerationBudget:
    """Per-invocation limits and formatting policy for the pipeline."""
    max_input_tokens: int = 6000
    max_output_tokens: int = 2048
    max_file_bytes: int = 200_000
    max_file_lines: int = 2000
    max_files: int = 40
    summary_concurrency: int = 4
    timeout_secs: int = 20
    temperature: float = 0.2
    conventional: bool = True
    one_line: bool = True
    emoji: bool = False
    lang: Optional[str] = None


@dataclass
class Config:
    """User configuration with sensible defaults."""
    provider: str = "auto"
    model: Optional[str] = None
    openai_mode: str = "auto"
    openai_base_url: str = "https://api.openai.com/v1"
    openai_api_key: Optional[str] = None
    ollama_host: str = "http://localhost:11434"
    conventional: bool = True
    one_line: bool = True
    emoji: bool = False
    lang: Optional[str] = None
    timeout_secs: int = 20
    max_input_tokens: int = 6000
    max_output_tokens: int = 2048
    max_file_bytes: int = 200_000
    max_file_lines: int = 2000
    max_files: int = 40
    summary_concurrency: int = 4
    temperature: float = 0.2
    ignore: list[str] = field(default_factory=list)
    max_file_display: int = 8  # Max files shown before collapsing list

    def to_dict(self) -> dict:
        # API keys stay in the environment, never on disk
        return {k: v for k, v in asdict(self).items() if v is not None and k != "openai_api_key"}

    def budget(self) -> GenerationBudget:
        return GenerationBudget(
            max_input_tokens=self.max_input_tokens,
            max_output_tokens=self.max_output_tokens,
            max_file_bytes=self.max_file_bytes,
            max_file_lines=self.max_file_lines,
            max_files=self.max_files,
            summary_concurrency=self.summary_concurrency,
            timeout_secs=self.timeout_secs,
            temperature=self.temperature,
            conventional=self.conventional,
            one_line=self.one_line,
            emoji=self.emoji,
            lang=self.lang,
        )

    def validate(self) -> list[str]:
        """Validate config values and return list of warnings.

        Invalid values are replaced with defaults silently after warning.
        """
        warnings = []
        defaults = Config()

        if self.provider not in VALID_PROVIDERS:
            warnings.append(f"Invalid provider '{self.provider}', using '{defaults.provider}'")
            self.provider = defaults.provider

        if self.openai_mode not in VALID_OPENAI_MODES:
            warnings.append(f"Invalid openai_mode '{self.openai_mode}', using '{defaults.openai_mode}'")
            self.openai_mode = defaults.openai_mode

        for name in _POSITIVE_INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                default = getattr(defaults, name)
                warnings.append(f"Invalid {name} '{value}', using {default}")
                setattr(self, name, default)

        # 0 is tolerated here; the orchestrator clamps it to 1
        if isinstance(self.summary_concurrency, bool) or not isinstance(self.summary_concurrency, int) \
                or self.summary_concurrency < 0:
            warnings.append(f"Invalid summary_concurrency '{self.summary_concurrency}', using {defaults.summary_concurrency}")
            self.summary_concurrency = defaults.summary_concurrency

        if isinstance(self.temperature, bool) or not isinstance(self.temperature, (int, float)) \
                or not 0 <= self.temperature <= 2:
            warnings.append(f"Invalid temperature '{self.temperature}', using {defaults.temperature}")
            self.temperature = defaults.temperature

        if not isinstance(self.ignore, list) or not all(isinstance(p, str) for p in self.ignore):
            warnings.append("Invalid ignore list, expected a list of glob strings")
            self.ignore = []

        return warnings

    @classmethod
    def from_dict(cls, data: dict) -> 'Config':
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        config = cls(**filtered)
        # Validate and print warnings to stderr
        for warning in config.validate():
            print(f"Config warning: {warning}", file=sys.stderr)
        return config


def parse_bool(value: str) -> Optional[bool]:
    """Parse an env-style boolean. Returns None when unrecognized."""
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


def _env_first(*names: str) -> Optional[str]:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None


# env var -> (config field, converter)
_ENV_OVERRIDES = {
    "CM_PROVIDER": ("provider", str),
    "CM_MODEL": ("model", str),
    "CM_OPENAI_MODE": ("openai_mode", str),
    "CM_OPENAI_BASE_URL": ("openai_base_url", str),
    "OLLAMA_HOST": ("ollama_host", str),
    "CM_CONVENTIONAL": ("conventional", parse_bool),
    "CM_ONE_LINE": ("one_line", parse_bool),
    "CM_EMOJI": ("emoji", parse_bool),
    "CM_LANG": ("lang", str),
    "CM_TIMEOUT": ("timeout_secs", int),
    "CM_MAX_INPUT_TOKENS": ("max_input_tokens", int),
    "CM_MAX_OUTPUT_TOKENS": ("max_output_tokens", int),
    "CM_MAX_FILE_BYTES": ("max_file_bytes", int),
    "CM_MAX_FILE_LINES": ("max_file_lines", int),
    "CM_MAX_FILES": ("max_files", int),
    "CM_SUMMARY_CONCURRENCY": ("summary_concurrency", int),
    "CM_TEMPERATURE": ("temperature", float),
}


def apply_env_overrides(config: Config) -> list[str]:
    """Overlay CM_* environment variables onto config. Returns warnings."""
    warnings = []
    for env_name, (attr, convert) in _ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            value = convert(raw)
        except ValueError:
            value = None
        if value is None:
            warnings.append(f"Ignoring {env_name}={raw!r}: not a valid value")
            continue
        setattr(config, attr, value)

    api_key = _env_first("CM_OPENAI_API_KEY", "OPENAI_API_KEY")
    if api_key:
        config.openai_api_key = api_key

    warnings.extend(config.validate())
    return warnings


class ConfigManager:
    """Manages loading and saving configuration."""

    CONFIG_FILENAME = ".cmrc"

    def __init__(self):
        self._config: Optional[Config] = None
        self._config_path: Optional[Path] = None

    def load(self) -> Config:
        if self._config is not None:
            return self._config

        for path in (Path.cwd() / self.CONFIG_FILENAME, Path.home() / self.CONFIG_FILENAME):
            if path.exists():
                self._config = self._load_from_file(path)
                self._config_path = path
                return self._config

        self._config = Config()
        return self._config

    def _load_from_file(self, path: Path) -> Config:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("top-level value must be an object")
            return Config.from_dict(data)
        except (json.JSONDecodeError, ValueError, TypeError, OSError) as e:
            print(f"Warning: Could not load {path}: {e}", file=sys.stderr)
            return Config()

    def save(self, config: Config, global_config: bool = True) -> Path:
        path = Path.home() / self.CONFIG_FILENAME if global_config else Path.cwd() / self.CONFIG_FILENAME
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(config.to_dict(), f, indent=2)
        return path

    def get_config_path(self) -> Optional[Path]:
        return self._config_path


_manager = ConfigManager()


def load_config() -> Config:
    return _manager.load()


def save_config(config: Config, global_config: bool = True) -> Path:
    return _manager.save(config, global_config)


def get_config_path() -> Optional[Path]:
    return _manager.get_config_path()


__all__ = [
    "Config",
    "ConfigManager",
    "GenerationBudget",
    "apply_env_overrides",
    "parse_bool",
    "load_config",
    "save_config",
    "get_config_path",
    "VALID_PROVIDERS",
    "VALID_OPENAI_MODES",
]
