from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any


class _AnySentinel:
    def __repr__(self) -> str:  # pragma: no cover
        return "ANY"


ANY: Any = _AnySentinel()

type RequestCheck = Mapping[str, Any] | Callable[[Mapping[str, Any]], None]


def _mismatches(expected: Any, actual: Any, path: str) -> list[str]:
    if expected is ANY:
        return []

    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping):
            return [f"{path}: expected mapping, got {type(actual).__name__}"]
        out: list[str] = []
        for k, v in expected.items():
            if k in actual:
                out.extend(_mismatches(v, actual[k], f"{path}.{k}"))
            else:
                out.append(f"{path}: missing key {k!r}")
        return out

    if isinstance(expected, list) and isinstance(actual, list) and len(expected) == len(actual):
        out = []
        for i, (e, a) in enumerate(zip(expected, actual, strict=True)):
            out.extend(_mismatches(e, a, f"{path}[{i}]"))
        return out

    if expected != actual:
        return [f"{path}: expected {expected!r}, got {actual!r}"]
    return []


@dataclass(frozen=True)
class ScriptedCall:
    method: str
    check: RequestCheck | None = None
    response: Mapping[str, Any] | None = None
    error: Exception | None = None


class FakeDynamoDBClient:
    """Scripted stand-in for the boto3 DynamoDB client.

    Calls must arrive in the order they were scripted. Request mappings are
    partial: only the keys they name are compared, and ``ANY`` matches any
    value. Every mismatch in a request is reported in one ``AssertionError``.
    """

    def __init__(self) -> None:
        self._script: list[ScriptedCall] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def expect(
        self,
        method: str,
        expected: RequestCheck | None = None,
        *,
        response: Mapping[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._script.append(ScriptedCall(method=method, check=expected, response=response, error=error))

    def expect_put(
        self,
        item: Mapping[str, Any] = ANY,
        *,
        condition: str | None = None,
        error: Exception | None = None,
    ) -> None:
        """Script a ``put_item`` whose item and condition expression must match."""
        check: dict[str, Any] = {"Item": item}
        if condition is not None:
            check["ConditionExpression"] = condition
        self.expect("put_item", check, error=error)

    def assert_no_pending(self) -> None:
        if self._script:
            pending = ", ".join(call.method for call in self._script)
            raise AssertionError(f"pending expected calls: {pending}")

    def requests(self, method: str) -> list[dict[str, Any]]:
        return [req for name, req in self.calls if name == method]

    def _dispatch(self, method: str, req: dict[str, Any]) -> Mapping[str, Any]:
        self.calls.append((method, dict(req)))
        if not self._script:
            raise AssertionError(f"unexpected call: {method}")

        call = self._script.pop(0)
        if call.method != method:
            raise AssertionError(f"expected {call.method}, got {method}")

        if callable(call.check):
            call.check(req)
        elif call.check is not None:
            problems = _mismatches(call.check, req, method)
            if problems:
                raise AssertionError("; ".join(problems))

        if call.error is not None:
            raise call.error
        return dict(call.response or {})

    def put_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._dispatch("put_item", kwargs)

    def get_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._dispatch("get_item", kwargs)

    def delete_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._dispatch("delete_item", kwargs)
