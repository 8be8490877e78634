# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Hierarchical configuration from YAML/TOML files, env vars, and typed binding."""

from __future__ import annotations

import dataclasses
import importlib.resources
import os
import re
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar, cast, get_type_hints

import yaml  # type: ignore[import-untyped]

T = TypeVar("T")

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")

_CONFIG_PROPERTIES_ATTR = "__kirei_config_prefix__"

_ENV_PREFIX = "KIREI_"

_MAX_PLACEHOLDER_DEPTH = 10


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Mark a dataclass or Pydantic model as bindable to a configuration prefix.

    Usage:
        @config_properties(prefix="kirei.data.json")
        @dataclass
        class JsonFileStoreProperties:
            resources_path: str = "Resources"
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _CONFIG_PROPERTIES_ATTR, prefix)
        return cls

    return decorator


class Config:
    """Dot-notation configuration with environment variable overrides.

    Priority (highest wins):
    1. Environment variables (``KIREI_SECTION_KEY`` format)
    2. Values from the loaded YAML/TOML file
    3. Framework defaults (``kirei/resources/kirei-defaults.yaml``)
    4. Defaults declared on the bound property class
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}
        self._loaded_sources: list[str] = []

    @property
    def loaded_sources(self) -> list[str]:
        """Config file paths that were loaded, in merge order."""
        return list(self._loaded_sources)

    def to_dict(self) -> dict[str, Any]:
        """Return a shallow copy of the raw configuration data."""
        return dict(self._data)

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        active_profiles: list[str] | None = None,
        load_defaults: bool = True,
    ) -> Config:
        """Load a YAML or TOML file, merged over the framework defaults.

        Profile overlays named ``<stem>-<profile><suffix>`` next to *path*
        are merged afterwards, in the order given.
        """
        path = Path(path)
        data: dict[str, Any] = {}
        sources: list[str] = []

        if load_defaults:
            data = cls._load_framework_defaults()
            sources.append("kirei-defaults.yaml (framework defaults)")

        if path.is_file():
            data = cls._deep_merge(data, cls._load_config_data(path))
            sources.append(str(path))

            for profile in active_profiles or []:
                overlay = path.parent / f"{path.stem}-{profile}{path.suffix}"
                if overlay.is_file():
                    data = cls._deep_merge(data, cls._load_config_data(overlay))
                    sources.append(f"{overlay} (profile: {profile})")

        instance = cls(data)
        instance._loaded_sources = sources
        return instance

    @classmethod
    def defaults(cls) -> Config:
        """A config holding only the framework defaults."""
        instance = cls(cls._load_framework_defaults())
        instance._loaded_sources = ["kirei-defaults.yaml (framework defaults)"]
        return instance

    @staticmethod
    def _load_config_data(path: Path) -> dict[str, Any]:
        if path.suffix == ".toml":
            with open(path, "rb") as f:
                return tomllib.load(f) or {}
        with open(path) as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def _load_framework_defaults() -> dict[str, Any]:
        defaults_file = importlib.resources.files("kirei.resources").joinpath("kirei-defaults.yaml")
        with importlib.resources.as_file(defaults_file) as p, open(p) as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Recursively merge *override* into *base*; override values win."""
        merged = dict(base)
        for key, value in override.items():
            if isinstance(merged.get(key), dict) and isinstance(value, dict):
                merged[key] = Config._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _lookup(self, key: str) -> Any:
        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None
        return current

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key, checking env vars first.

        ``kirei.data.json.resources_path`` is overridden by
        ``KIREI_DATA_JSON_RESOURCES_PATH``. String values containing
        ``${ENV_VAR}``, ``${config.key}`` or ``${key:default}`` placeholders
        are resolved.
        """
        env_base = key.removeprefix("kirei.")
        env_val = os.environ.get(_ENV_PREFIX + env_base.upper().replace(".", "_").replace("-", "_"))
        if env_val is not None:
            return env_val

        value = self._lookup(key)
        if value is None:
            return default
        if isinstance(value, str) and "${" in value:
            return self._resolve_placeholders(value)
        return value

    def _resolve_placeholders(self, value: str, _depth: int = 0) -> str:
        if _depth > _MAX_PLACEHOLDER_DEPTH:
            raise ValueError(f"Max recursion depth exceeded resolving placeholders in '{value}'")

        def _replace(match: re.Match[str]) -> str:
            ref_key, _, default_val = match.group(1).partition(":")
            has_default = ":" in match.group(1)

            env_val = os.environ.get(ref_key)
            if env_val is not None:
                return env_val

            found = self._lookup(ref_key)
            if found is not None:
                resolved = str(found)
                if "${" in resolved:
                    resolved = self._resolve_placeholders(resolved, _depth + 1)
                return resolved

            if has_default:
                return cast(str, default_val)
            raise ValueError(f"Cannot resolve placeholder '${{{match.group(1)}}}'")

        return _PLACEHOLDER_RE.sub(_replace, value)

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Get all values under a prefix as a dict."""
        section = self._lookup(prefix)
        return section if isinstance(section, dict) else {}

    def bind(self, config_cls: type[T]) -> T:
        """Bind the section named by ``@config_properties`` onto *config_cls*.

        Pydantic models are validated with ``model_validate``; dataclasses get
        simple string coercion for ``int``, ``float`` and ``bool`` fields.
        """
        prefix = getattr(config_cls, _CONFIG_PROPERTIES_ATTR, None)
        if prefix is None:
            raise ValueError(f"{config_cls.__name__} is not decorated with @config_properties")

        section = self.get_section(prefix)

        from pydantic import BaseModel, ValidationError

        if isinstance(config_cls, type) and issubclass(config_cls, BaseModel):
            try:
                return config_cls.model_validate(section)
            except ValidationError as exc:
                raise ValueError(
                    f"Configuration validation failed for '{config_cls.__name__}' (prefix='{prefix}'):\n{exc}"
                ) from exc

        hints = get_type_hints(config_cls)
        kwargs: dict[str, Any] = {}
        for field in dataclasses.fields(config_cls):  # type: ignore[arg-type]
            if field.name not in section:
                continue
            value = self.get(f"{prefix}.{field.name}", section[field.name])
            expected = hints.get(field.name)
            if isinstance(value, str):
                if expected is int:
                    value = int(value)
                elif expected is float:
                    value = float(value)
                elif expected is bool:
                    value = value.lower() in ("true", "1", "yes")
            kwargs[field.name] = value

        return config_cls(**kwargs)
