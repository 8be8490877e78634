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
"""LoggingPort: how Kirei components obtain and tune their loggers.

Kirei logs by *area*: the part of the library a logger belongs to, written
relative to the ``kirei`` package (``data.batching``, ``data.repository``,
``web``). Areas map onto stdlib logger names with :func:`logger_name`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from kirei.core.config import Config, config_properties

ROOT_AREA = "kirei"


def logger_name(area: str) -> str:
    """Full logger name for *area*; names already under ``kirei`` pass through."""
    if area == ROOT_AREA or area.startswith(f"{ROOT_AREA}."):
        return area
    return f"{ROOT_AREA}.{area}"


@config_properties(prefix="kirei.logging")
@dataclass
class LoggingProperties:
    """Logging settings.

    ``format``: ``console`` or ``json``.
    ``level``: ``root`` plus per-area levels, flat (``data.batching: DEBUG``)
    or nested (``data: {batching: DEBUG}``).
    """

    format: str = "console"
    level: dict[str, Any] = field(default_factory=lambda: {"root": "INFO"})

    def root_level(self) -> str:
        return str(self.level.get("root", "INFO")).upper()

    def area_levels(self) -> dict[str, str]:
        """Per-area levels keyed by full logger name."""
        levels: dict[str, str] = {}
        _flatten(self.level, "", levels)
        levels.pop("root", None)
        return {logger_name(area): level for area, level in levels.items()}


def _flatten(section: dict[str, Any], prefix: str, out: dict[str, str]) -> None:
    for key, value in section.items():
        area = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            _flatten(value, area, out)
        else:
            out[area] = str(value).upper()


@runtime_checkable
class LoggingPort(Protocol):
    """Logging contract: configure once, then hand out loggers by area."""

    def configure(self, config: Config) -> None: ...
    def get_logger(self, area: str) -> Any: ...
    def set_level(self, area: str, level: str) -> None: ...
