"""Tests for setup-time field configuration validation and parsing."""

from __future__ import annotations

import pytest

from changeaudit.models.fields import ArrayKind, ContextRule, FieldSpec
from changeaudit.tracking.validation import (
    ConfigurationError,
    InvalidArrayKindError,
    InvalidChildrenError,
    InvalidContextRuleError,
    InvalidFieldSpecError,
    InvalidMaskRuleError,
    InvalidValueFieldError,
    MissingArrayKeyError,
    MissingPathError,
    parse_field_specs,
    validate_field_specs,
)

# ---------------------------------------------------------------------------
# validate_field_specs
# ---------------------------------------------------------------------------


class TestValidateFieldSpecs:
    def test_valid_tree(self) -> None:
        specs = [
            FieldSpec(path="status", mask_rule="***", context_rule=["user.name"]),
            FieldSpec(
                path="items",
                array_kind=ArrayKind.KEYED_OBJECT_LIST,
                array_key="sku",
                children=(FieldSpec(path="qty"),),
            ),
        ]
        assert validate_field_specs(specs) == specs

    def test_not_a_list(self) -> None:
        with pytest.raises(InvalidChildrenError):
            validate_field_specs(FieldSpec(path="a"))

    def test_non_spec_node(self) -> None:
        with pytest.raises(InvalidFieldSpecError) as exc_info:
            validate_field_specs([{"path": "a"}])
        assert exc_info.value.location == "fields[0]"

    def test_empty_path(self) -> None:
        with pytest.raises(MissingPathError):
            validate_field_specs([FieldSpec(path="")])

    def test_keyed_without_key(self) -> None:
        with pytest.raises(MissingArrayKeyError) as exc_info:
            validate_field_specs([FieldSpec(path="items", array_kind=ArrayKind.KEYED_OBJECT_LIST)])
        assert exc_info.value.location == "fields[0](items)"

    def test_unknown_array_kind(self) -> None:
        with pytest.raises(InvalidArrayKindError):
            validate_field_specs([FieldSpec(path="a", array_kind="matrix")])  # type: ignore[arg-type]

    def test_non_string_value_field(self) -> None:
        with pytest.raises(InvalidValueFieldError):
            validate_field_specs([FieldSpec(path="a", value_field=3)])  # type: ignore[arg-type]

    def test_bad_mask_rule(self) -> None:
        with pytest.raises(InvalidMaskRuleError):
            validate_field_specs([FieldSpec(path="a", mask_rule=5)])  # type: ignore[arg-type]

    @pytest.mark.parametrize("rule", ["user.name", {"document": "user.name"}, ContextRule(item=(1,))])
    def test_bad_context_rule(self, rule: object) -> None:
        with pytest.raises(InvalidContextRuleError):
            validate_field_specs([FieldSpec(path="a", context_rule=rule)])  # type: ignore[arg-type]

    def test_child_location(self) -> None:
        spec = FieldSpec(
            path="items",
            array_kind=ArrayKind.KEYED_OBJECT_LIST,
            array_key="sku",
            children=(FieldSpec(path="qty"), FieldSpec(path="")),
        )
        with pytest.raises(MissingPathError) as exc_info:
            validate_field_specs([FieldSpec(path="status"), spec])
        assert exc_info.value.location == "fields[1](items).children[1]"

    def test_errors_are_value_errors(self) -> None:
        with pytest.raises(ValueError):
            validate_field_specs([FieldSpec(path="")])
        assert issubclass(MissingPathError, ConfigurationError)


# ---------------------------------------------------------------------------
# parse_field_specs
# ---------------------------------------------------------------------------


class TestParseFieldSpecs:
    def test_snake_case(self) -> None:
        [spec] = parse_field_specs([{"path": "tags", "array_kind": "primitive-list"}])
        assert spec == FieldSpec(path="tags", array_kind=ArrayKind.PRIMITIVE_LIST)

    def test_legacy_names(self) -> None:
        raw = [
            {
                "value": "items",
                "arrayType": "custom-key",
                "arrayKey": "sku",
                "valueField": "name",
                "contextFields": {"doc": ["order_no"], "item": ["sku"]},
                "trackedFields": [{"value": "qty", "maskedValue": "#"}],
            },
            {"value": "tags", "arrayType": "simple"},
        ]
        items, tags = parse_field_specs(raw)
        assert items.array_kind == ArrayKind.KEYED_OBJECT_LIST
        assert items.array_key == "sku"
        assert items.value_field == "name"
        assert items.context_rule == ContextRule(document=("order_no",), item=("sku",))
        assert items.children == (FieldSpec(path="qty", mask_rule="#"),)
        assert tags.array_kind == ArrayKind.PRIMITIVE_LIST

    def test_flat_context_list(self) -> None:
        [spec] = parse_field_specs([{"path": "a", "context_rule": ["b"]}])
        assert spec.context_rule == ContextRule(document=("b",))

    def test_unknown_kind(self) -> None:
        with pytest.raises(InvalidArrayKindError):
            parse_field_specs([{"path": "a", "arrayType": "grid"}])

    def test_missing_path(self) -> None:
        with pytest.raises(MissingPathError):
            parse_field_specs([{"arrayType": "simple"}])

    def test_non_mapping_node(self) -> None:
        with pytest.raises(InvalidFieldSpecError):
            parse_field_specs(["status"])

    def test_keyed_without_key(self) -> None:
        with pytest.raises(MissingArrayKeyError):
            parse_field_specs([{"path": "items", "arrayType": "custom-key"}])

    def test_children_must_be_a_list(self) -> None:
        with pytest.raises(InvalidChildrenError):
            parse_field_specs([{"path": "items", "arrayType": "custom-key", "arrayKey": "sku", "children": "qty"}])
