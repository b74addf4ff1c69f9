"""
Tests for the filter engine — parsing, wildcards, stack and layer filters.
"""

import pytest

from opsfleet.core.engine.filters import (
    apply_filters,
    compile_pattern,
    filters_from_option,
    parse_filter,
    parse_filters,
)
from opsfleet.core.errors import ValidationError

# ── Parsing ──────────────────────────────────────────────────────────


class TestParseFilter:
    def test_field_and_pattern(self):
        expr = parse_filter("region:us-west-1")
        assert expr.field == "region"
        assert expr.pattern == "us-west-1"
        assert expr.stack_level

    def test_layer_level_fields(self):
        assert not parse_filter("layer:database").stack_level
        assert not parse_filter("env:production").stack_level

    def test_str_round_trips_text(self):
        assert str(parse_filter("stack:wordpress*")) == "stack:wordpress*"

    @pytest.mark.parametrize(
        "text", ["thisisnotafilter", "that:is:notright", ":value", "field:", ""]
    )
    def test_malformed(self, text):
        with pytest.raises(ValidationError, match="Incorrect filter"):
            parse_filter(text)

    def test_same_field_twice(self):
        with pytest.raises(ValidationError, match="same filter"):
            parse_filters(["env:production", "env:staging"])

    def test_batch_rejected_as_a_whole(self, fleet):
        """A bad expression anywhere means nothing is filtered."""
        with pytest.raises(ValidationError):
            apply_filters(fleet, ["region:us-west-1", "broken"])


class TestFiltersFromOption:
    def test_repeated_and_comma_separated(self):
        values = ("region:us-west-1,layer:database", "env:production")
        assert filters_from_option(values) == [
            "region:us-west-1",
            "layer:database",
            "env:production",
        ]

    def test_blank_parts_dropped(self):
        assert filters_from_option(("stack:a, ,",)) == ["stack:a"]


# ── Wildcards ────────────────────────────────────────────────────────


class TestCompilePattern:
    def test_wildcard_matches_any_run(self):
        regex = compile_pattern("us-*-1")
        assert regex.fullmatch("us-west-1")
        assert regex.fullmatch("us--1")
        assert not regex.fullmatch("eu-west-1")

    def test_anchored_both_ends(self):
        regex = compile_pattern("us-west*")
        assert regex.fullmatch("us-west-2a")
        assert not regex.fullmatch("eu-us-west-1")

    def test_regex_metacharacters_are_literal(self):
        regex = compile_pattern("a.b+c")
        assert regex.fullmatch("a.b+c")
        assert not regex.fullmatch("axbbc")

    def test_brackets_are_literal(self):
        assert compile_pattern("web[1]").fullmatch("web[1]")
        assert not compile_pattern("web[1]").fullmatch("web1")


# ── Stack-level filters ──────────────────────────────────────────────


class TestStackFilters:
    def test_by_region(self, fleet):
        assert len(apply_filters(fleet, ["region:us-west-1"])) == 2

    def test_by_stack_name(self, fleet):
        result = apply_filters(fleet, ["stack:wordpress-production"])
        assert [s.name for s in result] == ["wordpress-production"]

    def test_wildcard_before(self, fleet):
        assert len(apply_filters(fleet, ["stack:*"])) == 3
        assert len(apply_filters(fleet, ["stack:*-production"])) == 1

    def test_wildcard_after(self, fleet):
        assert len(apply_filters(fleet, ["stack:wordp*"])) == 3
        assert len(apply_filters(fleet, ["region:us-west*"])) == 2

    def test_multiple_wildcards(self, fleet):
        assert len(apply_filters(fleet, ["stack:*-*"])) == 3
        assert len(apply_filters(fleet, ["region:us-*-1"])) == 3

    def test_layers_untouched(self, fleet):
        for stack in apply_filters(fleet, ["region:us-west-1"]):
            assert len(stack.layers) == 2


# ── Layer-level filters ──────────────────────────────────────────────


class TestLayerFilters:
    def test_by_layer_name(self, fleet):
        result = apply_filters(fleet, ["layer:database"])
        assert len(result) == 3
        for stack in result:
            assert stack.layer_names == ["database"]

    def test_custom_json_key(self, fleet):
        assert len(apply_filters(fleet, ["env:production"])) == 3

    def test_layer_document_overrides_stack(self, fleet):
        # stack 0 says env=test, both of its layers say production
        assert apply_filters(fleet, ["env:test"]) == []

    def test_stack_document_is_queryable(self, fleet):
        result = apply_filters(fleet, ["stackjsontest:somevalue"])
        assert [s.name for s in result] == ["wordpress-production"]

    def test_layer_without_document_inherits_stack(self, stack_records, layer_records):
        first = [layer_records[0].model_copy(update={"custom_json": None}), layer_records[1]]
        fleet = [stack_records[0].attach_layers(first)] + [
            s.attach_layers(layer_records) for s in stack_records[1:]
        ]
        result = apply_filters(fleet, ["env:test"])
        assert len(result) == 1
        assert result[0].layer_names == ["database"]

    def test_unknown_key_matches_nothing(self, fleet):
        assert apply_filters(fleet, ["thisdoesnotexist:somevalue"]) == []

    def test_stacks_without_layers_omitted(self, fleet):
        assert apply_filters(fleet, ["layer:thisdoesnotexist"]) == []

    def test_non_string_values_match_json_text(self, fleet):
        assert len(apply_filters(fleet, ["replicas:2"])) == 3
        assert len(apply_filters(fleet, ["backup:true"])) == 3
        assert apply_filters(fleet, ["backup:True"]) == []

    def test_nested_objects_never_match(self, fleet):
        assert apply_filters(fleet, ["php:*"]) == []


# ── Combined ─────────────────────────────────────────────────────────


class TestCombined:
    def test_region_stack_and_layer(self, fleet):
        result = apply_filters(
            fleet, ["region:us-west*", "stack:wordpress*", "layer:database"]
        )
        assert len(result) == 2
        for stack in result:
            assert len(stack.layers) == 1

    def test_order_does_not_matter(self, fleet):
        a = apply_filters(fleet, ["layer:database", "region:us-west-1"])
        b = apply_filters(fleet, ["region:us-west-1", "layer:database"])
        assert a == b

    def test_empty_batch_is_identity(self, fleet):
        assert apply_filters(fleet, []) == fleet

    def test_input_never_modified(self, fleet):
        before = [s.model_copy(deep=True) for s in fleet]
        apply_filters(fleet, ["layer:database", "region:us-west-1"])
        assert fleet == before

    def test_result_is_subset(self, fleet):
        ids = {s.id for s in fleet}
        for stack in apply_filters(fleet, ["env:production"]):
            assert stack.id in ids
