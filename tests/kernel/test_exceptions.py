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
"""Tests for the Kirei exception hierarchy."""

from kirei.kernel.exceptions import (
    BatchPartitionError,
    BatchScopeError,
    ConfigurationError,
    KeyResolutionError,
    KireiException,
    RewriteError,
    SignatureMismatchError,
)


class TestKireiException:
    def test_basic_creation(self):
        exc = KireiException("something went wrong")
        assert str(exc) == "something went wrong"
        assert exc.code is None
        assert exc.context == {}

    def test_with_code_and_context(self):
        exc = KireiException("no member", code="REWRITE_MEMBER_MISSING", context={"member": "name"})
        assert exc.code == "REWRITE_MEMBER_MISSING"
        assert exc.context["member"] == "name"

    def test_context_is_not_shared(self):
        KireiException("first").context["key"] = "value"
        assert KireiException("second").context == {}


class TestExceptionHierarchy:
    def test_key_resolution_is_configuration(self):
        assert issubclass(KeyResolutionError, ConfigurationError)

    def test_signature_mismatch_is_rewrite_and_configuration(self):
        assert issubclass(SignatureMismatchError, RewriteError)
        assert issubclass(SignatureMismatchError, ConfigurationError)

    def test_all_derive_from_base(self):
        for exc_type in (ConfigurationError, RewriteError, BatchPartitionError, BatchScopeError):
            assert issubclass(exc_type, KireiException)
