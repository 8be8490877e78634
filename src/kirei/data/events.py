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
"""Repository lifecycle observers.

A repository invokes every registered :class:`RepositoryEvents` in
registration order at each extension point. Observers must not change the
outcome of the operation; subclass and override only the hooks you need::

    class AuditEvents(RepositoryEvents[Widget]):
        def saved(self, model: Widget) -> None:
            audit_log.append(("saved", model.id))
"""

from __future__ import annotations

from typing import Generic, TypeVar

T = TypeVar("T")


class RepositoryEvents(Generic[T]):
    """No-op base class for repository lifecycle hooks."""

    def created(self, model: T) -> None:
        pass

    def found(self, model: T) -> None:
        pass

    def saving(self, model: T) -> None:
        pass

    def saved(self, model: T) -> None:
        pass

    def removed(self, model: T) -> None:
        pass
