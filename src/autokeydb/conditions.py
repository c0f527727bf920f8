from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from .errors import ValidationError

type LogicalOp = Literal["AND", "OR"]

_OPERATORS = ("AND", "OR")


@dataclass(frozen=True)
class ExpectedAttribute:
    op: str
    values: tuple[Any, ...] = ()

    @staticmethod
    def not_exists() -> ExpectedAttribute:
        return ExpectedAttribute(op="not_exists")

    @staticmethod
    def exists() -> ExpectedAttribute:
        return ExpectedAttribute(op="exists")

    @staticmethod
    def eq(value: Any) -> ExpectedAttribute:
        return ExpectedAttribute(op="=", values=(value,))


@dataclass(frozen=True)
class ConditionSet:
    """Expected-attribute predicates keyed by field name, joined by one operator."""

    expected: Mapping[str, ExpectedAttribute]
    operator: LogicalOp = "AND"

    def __post_init__(self) -> None:
        if self.operator not in _OPERATORS:
            raise ValidationError(f"unsupported conditional operator: {self.operator}")

    @staticmethod
    def all(**expected: ExpectedAttribute) -> ConditionSet:
        return ConditionSet(expected=dict(expected), operator="AND")

    @staticmethod
    def any(**expected: ExpectedAttribute) -> ConditionSet:
        return ConditionSet(expected=dict(expected), operator="OR")

    def with_operator(self, operator: LogicalOp) -> ConditionSet:
        return ConditionSet(expected=dict(self.expected), operator=operator)


def generated_key_guard(generated_fields: Sequence[str]) -> ConditionSet | None:
    if not generated_fields:
        return None
    return ConditionSet(
        expected={name: ExpectedAttribute.not_exists() for name in generated_fields},
        operator="AND",
    )


def merge_conditions(guard: ConditionSet | None, caller: ConditionSet | None) -> ConditionSet | None:
    """Combine the generated-key guard with caller-supplied conditions.

    AND sets merge by field name with the caller winning on overlap. An OR set
    is only accepted when it restates a condition for every guarded field, in
    which case it replaces the guard outright.
    """
    if caller is not None and not caller.expected:
        caller = None

    if guard is None:
        return caller
    if caller is None:
        return guard

    if caller.operator == "AND":
        merged = dict(guard.expected)
        merged.update(caller.expected)
        return ConditionSet(expected=merged, operator="AND")

    missing = [name for name in guard.expected if name not in caller.expected]
    if missing:
        raise ValidationError(
            "OR conditions must cover every auto-generated key field "
            f"(missing: {', '.join(sorted(missing))})"
        )
    return ConditionSet(expected=dict(caller.expected), operator="OR")
