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
"""Kirei web application factory built on Starlette.

Usage::

    config = Config.from_file("kirei.yaml")
    app = create_app({"/widgets": RepositoryRestController(widgets, uuid.UUID)}, config)
"""

from __future__ import annotations

from collections.abc import Mapping

import structlog
from starlette.applications import Starlette
from starlette.middleware import Middleware

from kirei.core.config import Config
from kirei.data.batching.scope import BatchingProperties
from kirei.logging.port import LoggingPort
from kirei.logging.structlog_adapter import StructlogAdapter
from kirei.web.adapters.starlette.controller import RepositoryRestController
from kirei.web.adapters.starlette.middleware import BatchScopeMiddleware

logger = structlog.get_logger("kirei.web")


def create_app(
    controllers: Mapping[str, RepositoryRestController],
    config: Config | None = None,
    logging_port: LoggingPort | None = None,
    debug: bool = False,
) -> Starlette:
    """Create a Starlette application serving *controllers*.

    Each controller is mounted at its mapping key. Logging is configured
    from ``kirei.logging`` and every request runs in a batch scope bound
    from ``kirei.data.batching``. Without *config* only the framework
    defaults apply.
    """
    if config is None:
        config = Config.defaults()

    logging_port = logging_port or StructlogAdapter()
    logging_port.configure(config)

    properties = config.bind(BatchingProperties)
    app = Starlette(
        debug=debug,
        routes=[controller.mount(path) for path, controller in controllers.items()],
        middleware=[Middleware(BatchScopeMiddleware, properties=properties)],
    )
    logger.info("kirei_app_created", mounts=sorted(controllers), auto_dispatch=properties.auto_dispatch)
    return app
