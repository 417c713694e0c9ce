"""Element filters of the Current/Sample commands."""

import pytest

from adapters.xml_filters import (
    apply_filters,
    build_stream_filters,
    by_category,
    by_expression,
    match_string,
)
from core.domain.models import Category, Document, local_name
from core.errors import FilterError
from mt_samples import STREAMS_XML


@pytest.fixture
def document():
    return Document.parse(STREAMS_XML.encode())


def tags(elements):
    return [local_name(element.tag) for element in elements]


class TestMatchString:
    def test_case_insensitive_equality(self):
        assert match_string("SpindleSpeed", "spindlespeed")
        assert not match_string("SpindleSpeed", "Spindle")

    def test_regex_between_slashes(self):
        assert match_string("SpindleSpeed", "/^spin/")
        assert not match_string("Position", "/^spin/")

    def test_missing_values(self):
        assert not match_string(None, "x")
        assert not match_string("x", None)
        assert match_string(None, None)

    def test_slashes_against_blank_target_compare_literally(self):
        assert not match_string("", "/.*/")


class TestFilters:
    def test_category_selects_the_container_children(self, document):
        elements = apply_filters(document, [by_category(Category.SAMPLES)])
        assert tags(elements) == ["SpindleSpeed", "Position"]

    def test_condition_category(self, document):
        elements = apply_filters(document, build_stream_filters(category=Category.CONDITION))
        assert tags(elements) == ["Normal", "Fault"]

    def test_filters_chain_in_order(self, document):
        filters = build_stream_filters(category=Category.EVENTS, data_item_id="E1")
        assert tags(apply_filters(document, filters)) == ["Execution"]

    def test_name_type_and_sub_type(self, document):
        assert tags(apply_filters(document, build_stream_filters(data_item_name="xact"))) == ["Position"]
        assert tags(apply_filters(document, build_stream_filters(data_item_type="/speed$/"))) == ["SpindleSpeed"]
        assert tags(apply_filters(document, build_stream_filters(data_item_sub_type="actual"))) == ["Position"]

    def test_blank_options_add_no_filter(self):
        assert build_stream_filters(data_item_id=" ", data_item_name="", expression=None) == []


class TestExpression:
    def test_tag_value_and_attribute_keys(self, document):
        elements = apply_filters(document, [by_expression("tag=Execution;value=active")])
        assert tags(elements) == ["Execution"]
        elements = apply_filters(document, [by_expression("sequence=/^1[45]$/")])
        assert tags(elements) == ["Normal", "Fault"]

    def test_every_clause_must_match(self, document):
        assert apply_filters(document, [by_expression("tag=Execution;value=READY")]) == []

    def test_value_may_contain_equals(self, document):
        assert apply_filters(document, [by_expression("name=a=b")]) == []

    def test_invalid_token(self):
        with pytest.raises(FilterError, match="Invalid filter: tagExecution"):
            by_expression("tagExecution")

    def test_invalid_regex_fails_when_the_filter_is_built(self):
        with pytest.raises(FilterError, match=r"Invalid pattern /\[/"):
            by_expression("tag=/[/")
        with pytest.raises(FilterError):
            build_stream_filters(data_item_id="/(/")

    def test_blank_expression_keeps_everything(self, document):
        assert len(apply_filters(document, [by_expression("  ")])) == len(list(document.root.iter()))
