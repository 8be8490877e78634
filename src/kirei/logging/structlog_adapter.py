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
"""StructlogAdapter: the structlog-backed :class:`LoggingPort`.

Every Kirei module logs through ``structlog.get_logger("kirei.<area>")``
with snake_case event names. Once configured, those events flow through the
stdlib logger of the same name, so per-area levels filter them before any
rendering happens. Context bound with ``structlog.contextvars`` (such as the
``batch_scope`` id an active :class:`~kirei.data.batching.BatchScope`
carries) is merged into every event.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from kirei.core.config import Config
from kirei.logging.port import LoggingProperties, logger_name


def _level_number(level: str) -> int:
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


class StructlogAdapter:
    """Configure structlog and stdlib logging from ``kirei.logging``.

    Usage::

        adapter = StructlogAdapter()
        adapter.configure(Config.from_file("kirei.yaml"))
        adapter.get_logger("data.batching").info("ready")
    """

    def __init__(self, stream: Any = None) -> None:
        self._stream = stream or sys.stdout
        self._properties = LoggingProperties()
        self._configured = False

    @property
    def properties(self) -> LoggingProperties:
        return self._properties

    @property
    def configured(self) -> bool:
        return self._configured

    def configure(self, config: Config) -> None:
        """Bind :class:`LoggingProperties` from *config* and apply them."""
        self.apply(config.bind(LoggingProperties))

    def apply(self, properties: LoggingProperties) -> None:
        self._properties = properties
        self._setup_structlog(properties.format.lower() == "json")
        logging.basicConfig(
            format="%(message)s",
            stream=self._stream,
            level=_level_number(properties.root_level()),
            force=True,
        )
        for name, level in properties.area_levels().items():
            logging.getLogger(name).setLevel(_level_number(level))
        self._configured = True

    def get_logger(self, area: str) -> Any:
        return structlog.get_logger(logger_name(area))

    def set_level(self, area: str, level: str) -> None:
        logging.getLogger(logger_name(area)).setLevel(_level_number(level))

    def _setup_structlog(self, as_json: bool) -> None:
        processors: list[structlog.types.Processor] = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
        ]
        if as_json:
            processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
        else:
            processors.append(structlog.dev.ConsoleRenderer(colors=False))

        structlog.configure(
            processors=processors,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=False,
        )
