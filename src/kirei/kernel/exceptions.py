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
"""Exception hierarchy for Kirei.

All errors raised by the framework derive from :class:`KireiException`, which
carries an optional machine-readable code and a context dict.
"""

from __future__ import annotations

# =============================================================================
# Base Exception
# =============================================================================


class KireiException(Exception):
    """Base exception for all Kirei errors.

    Carries an optional error code and context dict for structured error data.
    Catch KireiException to handle all framework errors, or catch specific
    subclasses for targeted handling.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "REWRITE_001").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(KireiException):
    """Wiring between model and storage types is broken.

    Raised immediately and never retried: a missing key member or an
    expression signature that has no correspondence with its target.
    """


class KeyResolutionError(ConfigurationError):
    """No primary key member could be located on an entity type."""


# =============================================================================
# Expression Exceptions
# =============================================================================


class RewriteError(KireiException):
    """An expression cannot be rewritten against the requested target type."""


class SignatureMismatchError(RewriteError, ConfigurationError):
    """Source and target expression signatures have different arity."""


# =============================================================================
# Batching Exceptions
# =============================================================================


class BatchPartitionError(KireiException):
    """Splitting a batched result back to one request failed.

    Only the failing request observes this error; sibling requests in the
    same batch still resolve.
    """


class BatchScopeError(KireiException):
    """A batched lookup was queued with no active :class:`BatchScope`."""
