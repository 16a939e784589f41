"""Configuration management for chatexporter."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from chatexporter.constants import (
    CONFIG_FILENAME,
    DEFAULT_BASE_URL,
    DEFAULT_CUSTOM_MARKER_TEXT,
    DEFAULT_FETCH_CONCURRENCY,
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_FILENAME_FORMAT,
    DEFAULT_HTML_LANG,
    DEFAULT_HTML_THEME,
    DEFAULT_IMAGE_QUALITY,
    DEFAULT_IMAGE_STRATEGY,
    DEFAULT_INCLUDE_IMAGE_METADATA,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_RETENTION,
    DEFAULT_LOG_ROTATION,
    DEFAULT_MAX_IMAGE_SIZE,
    DEFAULT_ON_CONFLICT,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_USER_AGENT,
)


class EnvVarNotFoundError(ValueError):
    """Raised when an environment variable referenced by env: syntax is not found."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name
        super().__init__(f"Environment variable not found: {var_name}")


def resolve_env_value(value: str, strict: bool = True) -> str | None:
    """Resolve env:VAR_NAME syntax to actual environment variable value.

    Args:
        value: The value to resolve. If starts with "env:", looks up environment variable.
        strict: If True, raises EnvVarNotFoundError when variable not found.
                If False, returns None when variable not found.

    Returns:
        The resolved value, or None if env var not found and strict=False.

    Raises:
        EnvVarNotFoundError: If strict=True and environment variable not found.
    """
    if isinstance(value, str) and value.startswith("env:"):
        env_var = value[4:]
        env_value = os.environ.get(env_var)
        if env_value is None:
            if strict:
                raise EnvVarNotFoundError(env_var)
            return None
        return env_value
    return value


ImageStrategyName = Literal["embed_base64", "text_marker", "separate_files"]


class ImageConfig(BaseModel):
    """Image handling configuration.

    quality and max_size are recorded in the export manifest; they do not
    alter the exported bytes.
    """

    strategy: ImageStrategyName = DEFAULT_IMAGE_STRATEGY
    custom_marker: str = DEFAULT_CUSTOM_MARKER_TEXT
    quality: int = Field(default=DEFAULT_IMAGE_QUALITY, ge=1, le=100)
    max_size: int = Field(default=DEFAULT_MAX_IMAGE_SIZE, ge=1)
    include_metadata: bool = DEFAULT_INCLUDE_IMAGE_METADATA


class TimestampConfig(BaseModel):
    """Per-message timestamp display configuration."""

    enabled: bool = False
    use_24h: bool = False
    markdown: bool = False
    html: bool = False


class ExportMeta(BaseModel):
    """One `name: value` metadata template line."""

    name: str
    value: str


def _default_meta_items() -> list[ExportMeta]:
    return [
        ExportMeta(name="title", value="{title}"),
        ExportMeta(name="source", value="{source}"),
    ]


class MetaConfig(BaseModel):
    """Front matter / metadata table configuration."""

    enabled: bool = False
    items: list[ExportMeta] = Field(default_factory=_default_meta_items)


class FetchConfig(BaseModel):
    """Image fetch configuration."""

    timeout: int = Field(default=DEFAULT_FETCH_TIMEOUT, ge=1)  # seconds
    concurrency: int = Field(default=DEFAULT_FETCH_CONCURRENCY, ge=1)
    user_agent: str = DEFAULT_USER_AGENT
    headers: dict[str, str] = Field(default_factory=dict)
    access_token: str | None = None  # Supports env: syntax

    def get_resolved_access_token(self, strict: bool = False) -> str | None:
        """Get access token with env: syntax resolved.

        Args:
            strict: If True, raises EnvVarNotFoundError when env var not found.
                    If False (default), returns None when env var not found.

        Returns:
            The resolved token, or None if not configured or env var not found.
        """
        if self.access_token:
            return resolve_env_value(self.access_token, strict=strict)
        return None


class HtmlConfig(BaseModel):
    """HTML page template configuration."""

    lang: str = DEFAULT_HTML_LANG
    theme: Literal["light", "dark"] = DEFAULT_HTML_THEME
    user_avatar: str = ""


class ExportConfig(BaseModel):
    """Export naming and output configuration."""

    filename_format: str = DEFAULT_FILENAME_FORMAT
    base_url: str = DEFAULT_BASE_URL
    output_dir: str = DEFAULT_OUTPUT_DIR
    on_conflict: Literal["skip", "overwrite", "rename"] = DEFAULT_ON_CONFLICT


class LogConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = DEFAULT_LOG_LEVEL
    dir: str | None = DEFAULT_LOG_DIR
    rotation: str = DEFAULT_LOG_ROTATION
    retention: str = DEFAULT_LOG_RETENTION


class ChatExporterConfig(BaseModel):
    """Main configuration model."""

    image: ImageConfig = Field(default_factory=ImageConfig)
    timestamp: TimestampConfig = Field(default_factory=TimestampConfig)
    meta: MetaConfig = Field(default_factory=MetaConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    html: HtmlConfig = Field(default_factory=HtmlConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    log: LogConfig = Field(default_factory=LogConfig)

    def active_meta_items(self) -> list[ExportMeta]:
        """Metadata templates to render, empty when metadata is disabled."""
        if not self.meta.enabled:
            return []
        return [item for item in self.meta.items if item.name]


def _set_nested_value(data: dict[str, Any], key_path: str, value: Any) -> None:
    """Set a nested value in a dict using dot-separated key path.

    Creates intermediate dicts if they don't exist.
    """
    parts = key_path.split(".")
    current = data
    for part in parts[:-1]:
        if part not in current or not isinstance(current[part], dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value


class ConfigManager:
    """Configuration manager for loading and merging configs."""

    CONFIG_FILENAME = CONFIG_FILENAME
    DEFAULT_USER_CONFIG_DIR = Path.home() / ".chatexporter"

    def __init__(self) -> None:
        self._config: ChatExporterConfig | None = None
        self._config_path: Path | None = None
        self._raw_data: dict[str, Any] = {}  # Preserve original JSON structure
        self._modified_keys: set[str] = set()  # Track modified key paths

    @property
    def config(self) -> ChatExporterConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    @property
    def config_path(self) -> Path | None:
        """Get the path of the loaded configuration file."""
        return self._config_path

    def load(
        self,
        config_path: Path | str | None = None,
        env_override: bool = True,
    ) -> ChatExporterConfig:
        """
        Load configuration from file with fallback chain.

        Priority (highest to lowest):
        1. Explicit config_path parameter
        2. CHATEXPORTER_CONFIG environment variable
        3. ./chatexporter.json (current directory)
        4. ~/.chatexporter/config.json (user directory)
        5. Default values
        """
        config_data: dict[str, Any] = {}

        resolved_path = self._resolve_config_path(config_path, env_override)

        if resolved_path and resolved_path.exists():
            config_data = self._load_json(resolved_path)
            self._config_path = resolved_path

        self._raw_data = config_data.copy()
        self._modified_keys.clear()

        self._config = ChatExporterConfig.model_validate(config_data)
        return self._config

    def _resolve_config_path(
        self,
        config_path: Path | str | None,
        env_override: bool,
    ) -> Path | None:
        """Resolve configuration file path based on priority."""
        if config_path:
            return Path(config_path)

        if env_override:
            env_path = os.environ.get("CHATEXPORTER_CONFIG")
            if env_path:
                return Path(env_path)

        cwd_config = Path.cwd() / self.CONFIG_FILENAME
        if cwd_config.exists():
            return cwd_config

        user_config = self.DEFAULT_USER_CONFIG_DIR / "config.json"
        if user_config.exists():
            return user_config

        return None

    def _load_json(self, path: Path) -> dict[str, Any]:
        """Load JSON configuration file."""
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def _generate_minimal_config(self) -> dict[str, Any]:
        """Generate minimal template config for the init command."""
        return {
            "image": {
                "strategy": DEFAULT_IMAGE_STRATEGY,
                "custom_marker": DEFAULT_CUSTOM_MARKER_TEXT,
            },
            "export": {
                "filename_format": DEFAULT_FILENAME_FORMAT,
                "output_dir": DEFAULT_OUTPUT_DIR,
            },
            "fetch": {"access_token": "env:CHATGPT_ACCESS_TOKEN"},
        }

    def save(
        self,
        path: Path | str | None = None,
        full_dump: bool = False,
        minimal: bool = False,
    ) -> Path:
        """Save current configuration to file.

        Args:
            path: Optional path to save to. If None, uses loaded config path.
            full_dump: If True, dumps entire config including defaults.
                       If False (default), only updates modified keys in original JSON.
            minimal: If True, generates a minimal template config (for init command).
        """
        if self._config is None:
            self._config = ChatExporterConfig()

        save_path = Path(path) if path else self._config_path
        if save_path is None:
            save_path = self.DEFAULT_USER_CONFIG_DIR / "config.json"
        elif save_path.is_dir():
            save_path = save_path / self.CONFIG_FILENAME

        save_path.parent.mkdir(parents=True, exist_ok=True)

        if minimal:
            output_data = self._generate_minimal_config()
        elif full_dump:
            output_data = self._config.model_dump(mode="json")
        else:
            output_data = self._raw_data.copy()
            for key in self._modified_keys:
                _set_nested_value(output_data, key, self.get(key))

        with open(save_path, "w", encoding="utf-8") as f:
            json.dump(output_data, f, indent=2, ensure_ascii=False)
            f.write("\n")

        return save_path

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by dot-separated key path.

        Example: config_manager.get("image.strategy")
        """
        parts = key.split(".")
        value: Any = self.config

        for part in parts:
            if isinstance(value, BaseModel):
                value = getattr(value, part, None)
            elif isinstance(value, dict):
                value = value.get(part)
            else:
                return default

            if value is None:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value by dot-separated key path.

        The resulting configuration is re-validated so an invalid value
        (e.g. an unknown strategy) is rejected immediately.

        Example: config_manager.set("image.strategy", "text_marker")
        """
        data = self.config.model_dump(mode="json")
        _set_nested_value(data, key, value)
        self._config = ChatExporterConfig.model_validate(data)
        self._modified_keys.add(key)

    def merge_cli_args(self, **kwargs: Any) -> None:
        """Merge CLI arguments given as dotted key paths into configuration.

        Example: merge_cli_args(**{"image.strategy": "text_marker"})
        """
        for key, value in kwargs.items():
            if value is not None:
                self.set(key, value)
