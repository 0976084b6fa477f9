"""Per-type rule sets and payload validation.

Validation is opt-in: a type without a registered :class:`RuleSet`
accepts any payload.  When a rule set exists, each declared field is
checked in declaration order and every problem is collected — nothing
here raises for a bad payload, failures come back as
:class:`ValidationResult.errors`.

Cross-type references are verified through a caller-supplied checker
``(reference_type, value) -> bool`` so lookups can run inside the
caller's transaction.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any

Predicate = Callable[[Any], str | None]
ReferenceCheck = Callable[[str, Any], bool]


class FieldKind(StrEnum):
    """Primitive JSON kinds a payload field can be constrained to."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class FieldRule:
    """Constraints for one payload field.

    Attributes:
        kind: Expected primitive kind.
        required: Reject absent, null, or empty-string values.
        reference_type: When set, the value must be the id of an existing
            record of this type.
        predicate: Custom check returning an error message, or None.
    """

    kind: FieldKind
    required: bool = False
    reference_type: str | None = None
    predicate: Predicate | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FieldRule:
        """Build a rule from a plain mapping (``kind``/``required``/``reference``)."""
        return cls(
            kind=FieldKind(data["kind"]),
            required=bool(data.get("required", False)),
            reference_type=data.get("reference"),
        )


@dataclass(frozen=True)
class RuleSet:
    """Ordered field rules for one record type."""

    fields: Mapping[str, FieldRule] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @classmethod
    def from_dict(cls, fields: Mapping[str, Mapping[str, Any]]) -> RuleSet:
        """Build a rule set from ``{field_name: {kind, required, reference}}``."""
        return cls(fields={name: FieldRule.from_dict(spec) for name, spec in fields.items()})

    def describe(self) -> dict[str, dict[str, Any]]:
        """Serializable summary of the rules (predicates reported as a flag)."""
        return {
            name: {
                "kind": str(rule.kind),
                "required": rule.required,
                "reference": rule.reference_type,
                "custom": rule.predicate is not None,
            }
            for name, rule in self.fields.items()
        }


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a payload against a rule set."""

    valid: bool
    errors: list[str] = field(default_factory=list)


def _matches_kind(kind: FieldKind, value: Any) -> bool:
    if kind is FieldKind.STRING:
        return isinstance(value, str)
    if kind is FieldKind.NUMBER:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        return not (isinstance(value, float) and math.isnan(value))
    if kind is FieldKind.BOOLEAN:
        return isinstance(value, bool)
    if kind is FieldKind.ARRAY:
        return isinstance(value, (list, tuple))
    return isinstance(value, dict)


def validate_payload(
    rule_set: RuleSet,
    payload: Mapping[str, Any],
    reference_checker: ReferenceCheck | None = None,
) -> ValidationResult:
    """Check *payload* against *rule_set*, collecting every error.

    Per field: required → skip-if-absent → kind → reference → predicate.
    A kind mismatch does not stop the reference and predicate checks.
    Reference checks are skipped when no *reference_checker* is given.
    """
    errors: list[str] = []

    for name, rule in rule_set.fields.items():
        value = payload.get(name)

        if rule.required and (value is None or value == ""):
            errors.append(f"Field '{name}' is required")
            continue

        if value is None:
            continue

        if not _matches_kind(rule.kind, value):
            errors.append(f"Field '{name}' must be a {rule.kind}")

        if rule.reference_type and reference_checker is not None:
            if not reference_checker(rule.reference_type, value):
                errors.append(
                    f"Field '{name}' references non-existent "
                    f"{rule.reference_type} with id {value}"
                )

        if rule.predicate is not None:
            custom_error = rule.predicate(value)
            if custom_error:
                errors.append(custom_error)

    return ValidationResult(valid=not errors, errors=errors)


# Built-in rule sets. Empty: every type accepts any payload until a rule
# set is registered here or declared under [schemas] in mantenedor.toml.
DEFAULT_RULE_SETS: dict[str, RuleSet] = {}


class RuleRegistry:
    """Immutable mapping from record type to its optional rule set.

    Built once at startup; a missing entry is the normal "accept anything"
    state, not an error.
    """

    def __init__(self, rule_sets: Mapping[str, RuleSet] | None = None) -> None:
        self._rule_sets: Mapping[str, RuleSet] = MappingProxyType(dict(rule_sets or {}))

    @property
    def types(self) -> list[str]:
        """Record types that have a rule set, sorted."""
        return sorted(self._rule_sets)

    def get_schema(self, record_type: str) -> RuleSet | None:
        """Return the rule set for *record_type*, or None."""
        return self._rule_sets.get(record_type)

    def has_validation(self, record_type: str) -> bool:
        """Whether *record_type* has a registered rule set."""
        return record_type in self._rule_sets

    def validate(
        self,
        record_type: str,
        payload: Mapping[str, Any],
        reference_checker: ReferenceCheck | None = None,
    ) -> ValidationResult:
        """Validate *payload* for *record_type*; unregistered types always pass."""
        rule_set = self._rule_sets.get(record_type)
        if rule_set is None:
            return ValidationResult(valid=True)
        return validate_payload(rule_set, payload, reference_checker)
