from __future__ import annotations

from typing import Any


class AutokeydbError(Exception):
    pass


class ConditionFailedError(AutokeydbError):
    def __init__(self, message: str = "", *, item: Any | None = None) -> None:
        super().__init__(message)
        self.item = item


class NotFoundError(AutokeydbError):
    pass


class ValidationError(AutokeydbError):
    pass


class AwsError(AutokeydbError):
    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
