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
"""Tests for ExpressionConverter: rewriting lambdas between entity types."""

from dataclasses import dataclass
from uuid import UUID, uuid4

import pytest

from kirei.data.converter import ExpressionConverter
from kirei.data.expression import Member, selector, where
from kirei.kernel.exceptions import ConfigurationError, RewriteError, SignatureMismatchError


@dataclass
class Widget:
    id: UUID | None = None
    name: str = ""
    price: float = 0.0


@dataclass
class WidgetRecord:
    id: UUID | None = None
    name: str = ""
    price: float = 0.0
    audit_note: str = ""


@dataclass
class NamelessRecord:
    id: UUID | None = None
    price: float = 0.0


@dataclass
class TextPriceRecord:
    id: UUID | None = None
    name: str = ""
    price: str = ""


@pytest.fixture
def converter():
    return ExpressionConverter()


class TestConvertTo:
    def test_rewritten_predicate_targets_storage_type(self, converter):
        predicate = where(Widget, lambda w: w.price > 10)
        rewritten = converter.convert_to(predicate, Widget, WidgetRecord)

        assert rewritten.parameters[0].type is WidgetRecord
        member = rewritten.body.left
        assert isinstance(member, Member)
        assert member.receiver is rewritten.parameters[0]
        assert member.type is float

    def test_rewritten_predicate_agrees_with_original(self, converter):
        predicate = where(Widget, lambda w: (w.price > 10) & w.name.startswith("B"))
        rewritten = converter.convert_to(predicate, Widget, WidgetRecord)

        samples = [("A", 5.0), ("B", 20.0), ("Bb", 9.0), ("C", 15.0)]
        for name, price in samples:
            model = Widget(id=uuid4(), name=name, price=price)
            record = WidgetRecord(id=model.id, name=name, price=price)
            assert predicate.compile()(model) == rewritten.compile()(record)

    def test_original_expression_is_untouched(self, converter):
        predicate = where(Widget, lambda w: w.price > 10)
        converter.convert_to(predicate, Widget, WidgetRecord)
        assert predicate.parameters[0].type is Widget

    def test_ordering_key_result_type_is_kept(self, converter):
        key = selector(Widget, lambda w: w.name)
        rewritten = converter.convert_to(key, Widget, WidgetRecord)
        assert rewritten.signature == (WidgetRecord, str)

    def test_identical_signature_returns_input(self, converter):
        predicate = where(Widget, lambda w: w.price > 10)
        assert converter.convert(predicate, (Widget, bool)) is predicate

    def test_missing_member_on_target(self, converter):
        predicate = where(Widget, lambda w: w.name == "A")
        with pytest.raises(RewriteError) as exc_info:
            converter.convert_to(predicate, Widget, NamelessRecord)
        assert exc_info.value.code == "REWRITE_MEMBER_MISSING"

    def test_incompatible_member_type_on_target(self, converter):
        predicate = where(Widget, lambda w: w.price > 10)
        with pytest.raises(RewriteError) as exc_info:
            converter.convert_to(predicate, Widget, TextPriceRecord)
        assert exc_info.value.code == "REWRITE_MEMBER_TYPE"

    def test_members_not_referenced_do_not_matter(self, converter):
        predicate = where(Widget, lambda w: w.price > 10)
        rewritten = converter.convert_to(predicate, Widget, NamelessRecord)
        assert rewritten.compile()(NamelessRecord(price=11.0)) is True


class TestConvertSignature:
    def test_arity_mismatch_is_a_configuration_error(self, converter):
        predicate = where(Widget, lambda w: w.price > 10)
        with pytest.raises(SignatureMismatchError) as exc_info:
            converter.convert(predicate, (WidgetRecord, WidgetRecord, bool))
        assert isinstance(exc_info.value, ConfigurationError)
        assert exc_info.value.code == "REWRITE_SIGNATURE"

    def test_non_entity_receiver_fails(self, converter):
        predicate = where(Widget, lambda w: w.price > 10)
        with pytest.raises(RewriteError) as exc_info:
            converter.convert(predicate, (int, bool))
        assert exc_info.value.code == "REWRITE_RECEIVER"
