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
"""Tests for the logging port: area names and bound logging properties."""

from typing import Any

from kirei.core.config import Config
from kirei.logging.port import LoggingPort, LoggingProperties, logger_name


class TestLoggerName:
    def test_area_is_placed_under_kirei(self):
        assert logger_name("data.batching") == "kirei.data.batching"
        assert logger_name("web") == "kirei.web"

    def test_full_names_pass_through(self):
        assert logger_name("kirei") == "kirei"
        assert logger_name("kirei.data.repository") == "kirei.data.repository"
        assert logger_name("kireikit") == "kirei.kireikit"


class TestLoggingProperties:
    def test_defaults(self):
        properties = LoggingProperties()
        assert properties.format == "console"
        assert properties.root_level() == "INFO"
        assert properties.area_levels() == {}

    def test_bind_flat_and_nested_levels(self):
        config = Config(
            {
                "kirei": {
                    "logging": {
                        "format": "json",
                        "level": {"root": "warning", "web": "error", "data": {"batching": "debug"}},
                    }
                }
            }
        )
        properties = config.bind(LoggingProperties)

        assert properties.format == "json"
        assert properties.root_level() == "WARNING"
        assert properties.area_levels() == {"kirei.web": "ERROR", "kirei.data.batching": "DEBUG"}

    def test_framework_defaults_bind(self):
        properties = Config.defaults().bind(LoggingProperties)
        assert properties.format == "console"
        assert properties.root_level() == "INFO"

    def test_format_env_override(self, monkeypatch):
        monkeypatch.setenv("KIREI_LOGGING_FORMAT", "json")
        assert Config.defaults().bind(LoggingProperties).format == "json"


class TestLoggingPortProtocol:
    def test_conforming_class_is_instance(self):
        class RecordingLogging:
            def configure(self, config: Any) -> None:
                pass

            def get_logger(self, area: str) -> Any:
                pass

            def set_level(self, area: str, level: str) -> None:
                pass

        assert isinstance(RecordingLogging(), LoggingPort)

    def test_non_conforming_class_is_not_instance(self):
        class Incomplete:
            def get_logger(self, area: str) -> Any:
                pass

        assert not isinstance(Incomplete(), LoggingPort)
