from __future__ import annotations

import itertools
from collections.abc import Callable

from botocore.exceptions import ClientError

from .mocks import ANY, FakeDynamoDBClient


def sequential_keys(prefix: str = "key-") -> Callable[[], str]:
    counter = itertools.count(1)

    def next_key() -> str:
        return f"{prefix}{next(counter)}"

    return next_key


def fixed_keys(*values: str) -> Callable[[], str]:
    if not values:
        raise ValueError("values must be non-empty")
    pending = list(values)

    def next_key() -> str:
        if not pending:
            raise AssertionError("fixed_keys exhausted")
        return pending.pop(0)

    return next_key


def client_error(code: str, message: str = "", *, operation: str = "PutItem") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def conditional_check_failed(operation: str = "PutItem") -> ClientError:
    return client_error(
        "ConditionalCheckFailedException",
        "The conditional request failed",
        operation=operation,
    )


__all__ = [
    "ANY",
    "FakeDynamoDBClient",
    "client_error",
    "conditional_check_failed",
    "fixed_keys",
    "sequential_keys",
]
