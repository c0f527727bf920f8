from __future__ import annotations

import pytest

from autokeydb.mocks import ANY, FakeDynamoDBClient
from autokeydb.testkit import conditional_check_failed, sequential_keys


def test_fake_dynamodb_client_matches_nested_requests() -> None:
    client = FakeDynamoDBClient()
    client.expect("put_item", {"TableName": "t", "Item": {"key": ANY}}, response={"ok": True})

    assert client.put_item(TableName="t", Item={"key": {"S": "a"}}) == {"ok": True}
    client.assert_no_pending()
    assert client.calls == [("put_item", {"TableName": "t", "Item": {"key": {"S": "a"}}})]


def test_fake_dynamodb_client_reports_mismatches() -> None:
    client = FakeDynamoDBClient()
    with pytest.raises(AssertionError, match="unexpected call: get_item"):
        client.get_item(TableName="t")

    client.expect("put_item")
    with pytest.raises(AssertionError, match="expected put_item, got delete_item"):
        client.delete_item(TableName="t")

    client.expect("put_item", {"TableName": "a"})
    with pytest.raises(AssertionError, match="expected 'a', got 'b'"):
        client.put_item(TableName="b")

    client.expect("put_item", {"Item": {"key": ANY}})
    with pytest.raises(AssertionError, match="missing key 'key'"):
        client.put_item(Item={})

    client.expect("put_item", {"Keys": [1]})
    with pytest.raises(AssertionError):
        client.put_item(Keys=[1, 2])


def test_fake_dynamodb_client_raises_scripted_errors_and_pending() -> None:
    client = FakeDynamoDBClient()
    client.expect("put_item", error=conditional_check_failed())
    client.expect("get_item")

    with pytest.raises(Exception, match="ConditionalCheckFailedException"):
        client.put_item(TableName="t")
    with pytest.raises(AssertionError, match="pending expected calls"):
        client.assert_no_pending()


def test_fake_dynamodb_client_reports_every_mismatch() -> None:
    client = FakeDynamoDBClient()
    client.expect("put_item", {"TableName": "t", "Item": {"key": {"S": "a"}, "note": ANY}})

    with pytest.raises(AssertionError) as excinfo:
        client.put_item(TableName="u", Item={"key": {"S": "b"}})

    message = str(excinfo.value)
    assert "put_item.TableName: expected 't', got 'u'" in message
    assert "put_item.Item.key.S: expected 'a', got 'b'" in message
    assert "put_item.Item: missing key 'note'" in message


def test_fake_dynamodb_client_expect_put_checks_item_and_condition() -> None:
    client = FakeDynamoDBClient()
    client.expect_put({"key": {"S": "k1"}}, condition="attribute_not_exists(#c_key)")
    client.expect_put(error=conditional_check_failed())

    client.put_item(TableName="t", Item={"key": {"S": "k1"}}, ConditionExpression="attribute_not_exists(#c_key)")
    with pytest.raises(Exception, match="ConditionalCheckFailedException"):
        client.put_item(TableName="t", Item={"key": {"S": "k2"}})

    assert [req["Item"] for req in client.requests("put_item")] == [{"key": {"S": "k1"}}, {"key": {"S": "k2"}}]
    assert client.requests("get_item") == []
    client.assert_no_pending()


def test_sequential_keys() -> None:
    factory = sequential_keys("id-")
    assert [factory(), factory(), factory()] == ["id-1", "id-2", "id-3"]
