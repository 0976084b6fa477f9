"""Tests for rule sets, payload validation, and the rule registry."""

from __future__ import annotations

import math
from typing import Any

import pytest

from mantenedor.domain.rules import (
    FieldKind,
    FieldRule,
    RuleRegistry,
    RuleSet,
    ValidationResult,
    validate_payload,
)


def _checker(existing: set[tuple[str, Any]]):
    def check(record_type: str, value: Any) -> bool:
        return (record_type, value) in existing

    return check


class TestKinds:
    @pytest.mark.parametrize(
        ("kind", "value"),
        [
            (FieldKind.STRING, "x"),
            (FieldKind.NUMBER, 1),
            (FieldKind.NUMBER, 1.5),
            (FieldKind.BOOLEAN, False),
            (FieldKind.ARRAY, [1, 2]),
            (FieldKind.OBJECT, {"a": 1}),
        ],
    )
    def test_accepts_matching_kind(self, kind: FieldKind, value: Any) -> None:
        rs = RuleSet(fields={"f": FieldRule(kind=kind)})
        assert validate_payload(rs, {"f": value}).valid

    @pytest.mark.parametrize(
        ("kind", "value"),
        [
            (FieldKind.STRING, 1),
            (FieldKind.NUMBER, "1"),
            (FieldKind.NUMBER, True),
            (FieldKind.NUMBER, math.nan),
            (FieldKind.BOOLEAN, 0),
            (FieldKind.ARRAY, {"a": 1}),
            (FieldKind.OBJECT, [1]),
        ],
    )
    def test_rejects_wrong_kind(self, kind: FieldKind, value: Any) -> None:
        rs = RuleSet(fields={"f": FieldRule(kind=kind)})
        result = validate_payload(rs, {"f": value})
        assert not result.valid
        assert result.errors == [f"Field 'f' must be a {kind}"]


class TestRequired:
    @pytest.mark.parametrize("payload", [{}, {"code": None}, {"code": ""}])
    def test_missing_values(self, payload: dict[str, Any]) -> None:
        rs = RuleSet(fields={"code": FieldRule(kind=FieldKind.STRING, required=True)})
        result = validate_payload(rs, payload)
        assert result.errors == ["Field 'code' is required"]

    def test_required_failure_skips_other_checks(self) -> None:
        calls: list[Any] = []

        def predicate(value: Any) -> str | None:
            calls.append(value)
            return "never"

        rs = RuleSet(
            fields={"code": FieldRule(kind=FieldKind.STRING, required=True, predicate=predicate)}
        )
        result = validate_payload(rs, {})
        assert result.errors == ["Field 'code' is required"]
        assert calls == []

    def test_optional_absent_field_is_skipped(self) -> None:
        rs = RuleSet(fields={"note": FieldRule(kind=FieldKind.STRING)})
        assert validate_payload(rs, {"note": None}).valid
        assert validate_payload(rs, {}).valid

    def test_zero_and_false_satisfy_required(self) -> None:
        rs = RuleSet(
            fields={
                "amount": FieldRule(kind=FieldKind.NUMBER, required=True),
                "flag": FieldRule(kind=FieldKind.BOOLEAN, required=True),
            }
        )
        assert validate_payload(rs, {"amount": 0, "flag": False}).valid


class TestReferences:
    rs = RuleSet(
        fields={
            "costTypeId": FieldRule(
                kind=FieldKind.NUMBER, required=True, reference_type="COST_TYPE"
            )
        }
    )

    def test_existing_reference(self) -> None:
        result = validate_payload(self.rs, {"costTypeId": 3}, _checker({("COST_TYPE", 3)}))
        assert result.valid

    def test_missing_reference(self) -> None:
        result = validate_payload(self.rs, {"costTypeId": 999}, _checker(set()))
        assert result.errors == [
            "Field 'costTypeId' references non-existent COST_TYPE with id 999"
        ]

    def test_wrong_type_reference(self) -> None:
        result = validate_payload(self.rs, {"costTypeId": 3}, _checker({("OTHER", 3)}))
        assert not result.valid

    def test_no_checker_skips_reference(self) -> None:
        assert validate_payload(self.rs, {"costTypeId": 999}).valid

    def test_kind_mismatch_still_checks_reference(self) -> None:
        result = validate_payload(self.rs, {"costTypeId": "abc"}, _checker(set()))
        assert result.errors == [
            "Field 'costTypeId' must be a number",
            "Field 'costTypeId' references non-existent COST_TYPE with id abc",
        ]


class TestPredicates:
    def test_predicate_message_appended(self) -> None:
        rs = RuleSet(
            fields={
                "rate": FieldRule(
                    kind=FieldKind.NUMBER,
                    predicate=lambda v: "Rate too high" if v > 1 else None,
                )
            }
        )
        assert validate_payload(rs, {"rate": 0.5}).valid
        assert validate_payload(rs, {"rate": 2}).errors == ["Rate too high"]

    def test_empty_message_means_pass(self) -> None:
        rs = RuleSet(fields={"x": FieldRule(kind=FieldKind.STRING, predicate=lambda v: "")})
        assert validate_payload(rs, {"x": "a"}).valid


class TestErrorOrder:
    def test_errors_follow_field_declaration_order(self) -> None:
        rs = RuleSet(
            fields={
                "b": FieldRule(kind=FieldKind.STRING, required=True),
                "a": FieldRule(kind=FieldKind.NUMBER),
                "c": FieldRule(kind=FieldKind.BOOLEAN, required=True),
            }
        )
        result = validate_payload(rs, {"a": "x"})
        assert result.errors == [
            "Field 'b' is required",
            "Field 'a' must be a number",
            "Field 'c' is required",
        ]

    def test_undeclared_fields_are_ignored(self) -> None:
        rs = RuleSet(fields={"code": FieldRule(kind=FieldKind.STRING)})
        assert validate_payload(rs, {"code": "A", "extra": object()}).valid


class TestRuleSet:
    def test_from_dict(self) -> None:
        rs = RuleSet.from_dict(
            {
                "code": {"kind": "string", "required": True},
                "costTypeId": {"kind": "number", "reference": "COST_TYPE"},
            }
        )
        assert rs.fields["code"] == FieldRule(kind=FieldKind.STRING, required=True)
        assert rs.fields["costTypeId"].reference_type == "COST_TYPE"
        assert list(rs.fields) == ["code", "costTypeId"]

    def test_from_dict_unknown_kind(self) -> None:
        with pytest.raises(ValueError):
            RuleSet.from_dict({"x": {"kind": "date"}})

    def test_fields_are_read_only(self) -> None:
        rs = RuleSet(fields={"code": FieldRule(kind=FieldKind.STRING)})
        with pytest.raises(TypeError):
            rs.fields["other"] = FieldRule(kind=FieldKind.STRING)  # type: ignore[index]

    def test_describe(self) -> None:
        rs = RuleSet(
            fields={
                "code": FieldRule(kind=FieldKind.STRING, required=True),
                "rate": FieldRule(kind=FieldKind.NUMBER, predicate=lambda v: None),
            }
        )
        assert rs.describe() == {
            "code": {"kind": "string", "required": True, "reference": None, "custom": False},
            "rate": {"kind": "number", "required": False, "reference": None, "custom": True},
        }


class TestRuleRegistry:
    def test_unregistered_type_accepts_anything(self) -> None:
        registry = RuleRegistry()
        assert registry.validate("ANY", {"x": object()}) == ValidationResult(valid=True)
        assert not registry.has_validation("ANY")
        assert registry.get_schema("ANY") is None

    def test_registered_type_validates(self) -> None:
        registry = RuleRegistry(
            {"COST_TYPE": RuleSet(fields={"code": FieldRule(FieldKind.STRING, required=True)})}
        )
        assert registry.has_validation("COST_TYPE")
        assert registry.types == ["COST_TYPE"]
        assert not registry.validate("COST_TYPE", {}).valid

    def test_registry_copy_is_isolated(self) -> None:
        source = {"A": RuleSet()}
        registry = RuleRegistry(source)
        source["B"] = RuleSet()
        assert registry.types == ["A"]
