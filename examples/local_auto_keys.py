from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from autokeydb import (
    ConditionFailedError,
    ConditionSet,
    ExpectedAttribute,
    AwsCallMetric,
    ModelDefinition,
    Table,
    autokey_field,
    dynamodb_client_from_env,
)


@dataclass(frozen=True)
class Event:
    key: str | None = autokey_field(roles=["pk"], auto_generated=True)
    range_key: str | None = autokey_field(name="rangeKey", roles=["sk"], auto_generated=True)
    payload: str = autokey_field(omitempty=True, default="")


def main() -> None:
    logging.basicConfig(level=logging.DEBUG)

    metrics: list[AwsCallMetric] = []
    client = dynamodb_client_from_env(on_call=metrics.append)
    table_name = f"autokeydb_example_{uuid.uuid4().hex[:12]}"

    client.create_table(
        TableName=table_name,
        KeySchema=[
            {"AttributeName": "key", "KeyType": "HASH"},
            {"AttributeName": "rangeKey", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "key", "AttributeType": "S"},
            {"AttributeName": "rangeKey", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=table_name)

    try:
        table = Table(ModelDefinition.from_dataclass(Event, table_name=table_name), client=client)

        result = table.save(Event(payload="hello"))
        print("saved:", result.item)
        print("get:", table.get(result.pk, result.sk))

        try:
            table.save(
                Event(),
                conditions=ConditionSet.any(
                    payload=ExpectedAttribute.eq("never"),
                    key=ExpectedAttribute.eq("never"),
                    range_key=ExpectedAttribute.eq("never"),
                ),
            )
        except ConditionFailedError as err:
            print("rejected:", err.item)

        for outcome in table.batch_save([Event(payload="a"), Event(payload="b")]):
            print("batch:", outcome.ok, outcome.item)
    finally:
        client.delete_table(TableName=table_name)

    failed = [m.operation for m in metrics if not m.ok]
    print(f"dynamodb calls: {len(metrics)} failed: {failed}")


if __name__ == "__main__":
    main()
