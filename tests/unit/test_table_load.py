from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from autokeydb import ConditionSet, ExpectedAttribute, ModelDefinition, Table, autokey_field
from autokeydb.mocks import FakeDynamoDBClient
from autokeydb.table import _coerce_value
from autokeydb.testkit import sequential_keys


class CsvConverter:
    def to_dynamodb(self, value: Any) -> Any:
        return ",".join(value)

    def from_dynamodb(self, value: Any) -> Any:
        return tuple(value.split(","))


@dataclass(frozen=True)
class Counter:
    key: str | None = autokey_field(roles=["pk"], auto_generated=True)
    count: int | None = autokey_field(default=None)
    ratio: float | None = autokey_field(default=None)
    buckets: set[int] | None = autokey_field(default=None)
    labels: tuple[str, ...] = autokey_field(converter=CsvConverter(), default=())


def _table(client: FakeDynamoDBClient) -> Table[Counter]:
    model = ModelDefinition.from_dataclass(Counter, table_name="counters")
    return Table(model, client=client, key_factory=sequential_keys("c"))


def test_coerce_value_unwraps_optional_and_sets() -> None:
    assert _coerce_value(Decimal("3"), int | None) == 3
    assert type(_coerce_value(Decimal("3"), int | None)) is int
    assert type(_coerce_value(Decimal("0.5"), float | None)) is float
    assert _coerce_value({Decimal("1"), Decimal("2")}, set[int] | None) == {1, 2}
    assert _coerce_value(Decimal("7"), Any) == Decimal("7")
    assert _coerce_value(None, int) is None


def test_get_coerces_numbers_for_optional_and_set_fields() -> None:
    client = FakeDynamoDBClient()
    client.expect(
        "get_item",
        response={
            "Item": {
                "key": {"S": "c1"},
                "count": {"N": "3"},
                "ratio": {"N": "0.5"},
                "buckets": {"NS": ["1", "2"]},
            }
        },
    )

    got = _table(client).get("c1")

    assert got == Counter(key="c1", count=3, ratio=0.5, buckets={1, 2})
    assert type(got.count) is int
    assert type(got.ratio) is float
    assert all(type(b) is int for b in got.buckets or ())


def test_converter_applies_on_save_condition_and_get() -> None:
    client = FakeDynamoDBClient()
    client.expect(
        "put_item",
        {
            "Item": {"key": {"S": "c1"}, "labels": {"S": "red,blue"}},
            "ConditionExpression": "attribute_not_exists(#c_key) AND #c_labels = :c1",
            "ExpressionAttributeValues": {":c1": {"S": "red"}},
        },
    )
    client.expect("get_item", response={"Item": {"key": {"S": "c1"}, "labels": {"S": "red,blue"}}})
    table = _table(client)

    result = table.save(
        Counter(labels=("red", "blue")),
        conditions=ConditionSet.all(labels=ExpectedAttribute.eq(("red",))),
    )

    assert table.get(result.pk) == Counter(key="c1", labels=("red", "blue"))
    client.assert_no_pending()
